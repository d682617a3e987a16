from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union


@dataclass(frozen=True)
class SingleOption:
    """One selected option; `text` is kept alongside but never graded."""
    option_id: str
    text: Optional[str] = None


@dataclass(frozen=True)
class FreeText:
    text: str


Selection = Union[SingleOption, FreeText]


def build_selection(selected_option_id=None, text_answer=None) -> Optional[Selection]:
    if selected_option_id:
        return SingleOption(option_id=str(selected_option_id), text=text_answer)
    if text_answer is not None:
        return FreeText(text=text_answer)
    return None


@dataclass
class GradingResult:
    points_earned: Optional[Decimal]
    is_correct: Optional[bool]
    grading_method: str

    @property
    def is_graded(self) -> bool:
        return self.points_earned is not None


class Grader(ABC):
    @abstractmethod
    def grade(self, question, selection: Selection, option=None) -> GradingResult:
        pass

    @abstractmethod
    def get_grader_name(self) -> str:
        pass
