from .base import Grader, GradingResult, Selection, SingleOption, FreeText, build_selection
from .objective import ObjectiveGrader
from .manual import ManualGrader
from .factory import get_grader

__all__ = [
    'Grader', 'GradingResult', 'Selection', 'SingleOption', 'FreeText', 'build_selection',
    'ObjectiveGrader', 'ManualGrader', 'get_grader',
]
