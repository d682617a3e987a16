from quizzes.models import Answer
from .base import Grader, GradingResult


class ManualGrader(Grader):
    """Leaves the answer ungraded until an instructor scores it."""

    def get_grader_name(self) -> str:
        return Answer.GradingMethod.PENDING_MANUAL

    def grade(self, question, selection, option=None) -> GradingResult:
        return GradingResult(
            points_earned=None,
            is_correct=None,
            grading_method=self.get_grader_name(),
        )
