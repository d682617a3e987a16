"""
Grading Coordinator: manual grading of short-answer questions.

Each manual grade rewrites one answer and recomputes the owning attempt's
aggregate from all of its answers while holding the attempt row lock, so two
graders working on the same attempt cannot overwrite each other's totals.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from quizzes.exceptions import InvalidState, Validation
from quizzes.models import Answer, AuditLog, Quiz, QuizAttempt
from quizzes.permissions import QUIZ_GRADE, authorize
from .common import fetch
from .notification import NotificationService
from .scoring import recompute_attempt

logger = logging.getLogger(__name__)


class GradingCoordinator:

    @classmethod
    def grade_answer(cls, user, answer_id, points_earned, feedback=None) -> Answer:
        authorize(user, QUIZ_GRADE)
        try:
            points = Decimal(str(points_earned))
        except (InvalidOperation, TypeError, ValueError):
            raise Validation("points_earned must be a number.")
        if not points.is_finite():
            raise Validation("points_earned must be a number.")

        with transaction.atomic():
            attempt_id = fetch(
                Answer.objects.values_list('attempt_id', flat=True), "Answer not found.", id=answer_id
            )
            attempt = QuizAttempt.objects.select_for_update().get(id=attempt_id)
            answer = Answer.objects.select_related('question').get(id=answer_id)

            if attempt.is_in_progress:
                raise InvalidState("Answers can only be graded after the attempt is submitted.")
            max_points = answer.question.points
            if points < 0 or points > max_points:
                raise Validation(f"points_earned must be between 0 and {max_points}.")

            old_points = answer.points_earned
            was_graded = attempt.status == QuizAttempt.Status.GRADED

            answer.points_earned = points
            # Any credit above zero counts as correct
            answer.is_correct = points > 0
            if feedback is not None:
                answer.feedback = feedback
            answer.grading_method = Answer.GradingMethod.MANUAL_REVIEW
            answer.graded_by = user
            answer.save(update_fields=['points_earned', 'is_correct', 'feedback', 'grading_method', 'graded_by'])

            recompute_attempt(attempt)

            AuditLog.log(
                event_type=AuditLog.EventType.ANSWER_GRADED,
                description=f"Manual grade: {old_points} -> {points}",
                user=user,
                metadata={'answer_id': str(answer.id), 'attempt_id': str(attempt.id)}
            )

            if attempt.status == QuizAttempt.Status.GRADED and not was_graded:
                transaction.on_commit(lambda: NotificationService.send_attempt_graded(attempt))

        logger.info(
            f"Answer {answer.id} graded {points} by {user.username}; "
            f"attempt {attempt.id} now {attempt.status} with score {attempt.score}"
        )
        return answer

    @classmethod
    def pending_answers(cls, user, quiz_id=None):
        """Answers on submitted attempts that still wait for a grade."""
        authorize(user, QUIZ_GRADE)
        answers = Answer.objects.filter(
            points_earned__isnull=True,
            attempt__status=QuizAttempt.Status.SUBMITTED,
            attempt__quiz__record_state=Quiz.RecordState.ACTIVE,
        ).select_related(
            'question', 'attempt', 'attempt__quiz', 'attempt__student'
        ).order_by('attempt__submitted_at', 'question__order')

        if quiz_id:
            quiz = fetch(Quiz.objects.active(), "Quiz not found.", id=quiz_id)
            answers = answers.filter(attempt__quiz=quiz)
        return answers
