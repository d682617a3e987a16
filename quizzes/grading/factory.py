from quizzes.models import Question
from .base import Grader
from .manual import ManualGrader
from .objective import ObjectiveGrader


def get_grader(question_type: str) -> Grader:
    if question_type in Question.OPTION_TYPES:
        return ObjectiveGrader()
    return ManualGrader()
