from decimal import Decimal

from quizzes.models import Answer
from .base import Grader, GradingResult, SingleOption
from .manual import ManualGrader


class ObjectiveGrader(Grader):
    """Grades a single selected option against the option's is_correct flag."""

    def get_grader_name(self) -> str:
        return Answer.GradingMethod.AUTO_OBJECTIVE

    def grade(self, question, selection, option=None) -> GradingResult:
        if not isinstance(selection, SingleOption) or option is None:
            # Nothing selected, so there is nothing to compare against
            return ManualGrader().grade(question, selection)

        is_correct = bool(option.is_correct)
        return GradingResult(
            points_earned=question.points if is_correct else Decimal('0'),
            is_correct=is_correct,
            grading_method=self.get_grader_name(),
        )
