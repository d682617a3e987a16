"""
Attempt Engine: the per-student quiz attempt lifecycle.

An attempt is created IN_PROGRESS, collects one answer per question
(last write wins), and is closed exactly once by submission, which scores it
and moves it to GRADED, or to SUBMITTED while manual grading is pending.
"""
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Prefetch
from django.utils import timezone

from quizzes.exceptions import Conflict, InvalidState, OutOfWindow, Validation
from quizzes.grading import SingleOption, get_grader
from quizzes.models import Answer, AuditLog, Option, Question, Quiz, QuizAttempt
from quizzes.permissions import QUIZ_GRADE, QUIZ_TAKE, authorize, has_permission
from .common import fetch
from .notification import NotificationService
from .scoring import recompute_attempt

logger = logging.getLogger(__name__)

UNGRADED_BY_QUESTION_TYPES = 'question_types'
UNGRADED_BY_ANSWERS = 'answers'


class AttemptEngine:

    @classmethod
    def start_attempt(cls, user, quiz_id) -> QuizAttempt:
        """Start the user's attempt on a quiz, or resume the one in progress."""
        authorize(user, QUIZ_TAKE)

        quiz = fetch(Quiz.objects.active(), "Quiz not found.", id=quiz_id)
        if quiz.status != Quiz.Status.PUBLISHED:
            raise InvalidState("This quiz is not available.")
        window_error = quiz.window_error()
        if window_error:
            raise OutOfWindow(window_error)

        existing = QuizAttempt.objects.filter(quiz=quiz, student=user).first()
        if existing:
            return cls._resume(existing)

        if not quiz.questions.exists():
            raise InvalidState("This quiz has no questions.")

        try:
            with transaction.atomic():
                attempt = QuizAttempt.objects.create(quiz=quiz, student=user)
        except IntegrityError:
            # A concurrent start for the same student won the unique constraint
            return cls._resume(QuizAttempt.objects.get(quiz=quiz, student=user))

        AuditLog.log(
            event_type=AuditLog.EventType.ATTEMPT_START,
            description=f"Started: {quiz.title}",
            user=user,
            metadata={'quiz_id': str(quiz.id), 'attempt_id': str(attempt.id)}
        )
        logger.info(f"Attempt {attempt.id} started by {user.username} on quiz {quiz.id}")
        return attempt

    @classmethod
    def _resume(cls, attempt):
        if attempt.status != QuizAttempt.Status.IN_PROGRESS:
            raise Conflict("You have already submitted this quiz.")
        logger.info(f"Attempt {attempt.id} resumed")
        return attempt

    @classmethod
    def submit_answer(cls, user, attempt_id, question_id, selection) -> Answer:
        """Record (or overwrite) the answer to one question of an in-progress attempt."""
        authorize(user, QUIZ_TAKE)
        if selection is None:
            raise Validation("Either a selected option or a text answer is required.")

        with transaction.atomic():
            attempt = cls._lock_own_attempt(user, attempt_id)
            if not attempt.is_in_progress:
                raise InvalidState("This attempt is no longer in progress.")

            question = fetch(
                Question.objects.all(), "Question not found in this quiz.",
                id=question_id, quiz_id=attempt.quiz_id
            )

            option = None
            if isinstance(selection, SingleOption):
                try:
                    option = Option.objects.get(id=selection.option_id, question=question)
                except (Option.DoesNotExist, ValueError, DjangoValidationError):
                    raise Validation("The selected option does not belong to this question.")

            result = get_grader(question.question_type).grade(question, selection, option)
            answer, created = Answer.objects.update_or_create(
                attempt=attempt,
                question=question,
                defaults={
                    'selected_option': option,
                    'text_answer': selection.text,
                    'is_correct': result.is_correct,
                    'points_earned': result.points_earned,
                    'grading_method': result.grading_method,
                    'feedback': '',
                    'graded_by': None,
                }
            )

        logger.debug(f"Answer {'saved' if created else 'overwritten'} for attempt {attempt.id}, question {question.id}")
        return answer

    @classmethod
    def submit_attempt(cls, user, attempt_id) -> QuizAttempt:
        """Close an in-progress attempt and score it. Allowed exactly once."""
        authorize(user, QUIZ_TAKE)

        with transaction.atomic():
            attempt = cls._lock_own_attempt(user, attempt_id)
            if not attempt.is_in_progress:
                raise InvalidState("This attempt is no longer in progress.")

            now = timezone.now()
            has_ungraded = cls._has_ungraded(attempt)
            attempt.submitted_at = now
            recompute_attempt(attempt, fully_graded=not has_ungraded, now=now)

            AuditLog.log(
                event_type=AuditLog.EventType.ATTEMPT_SUBMIT,
                description=f"Submitted: {attempt.quiz.title}",
                user=user,
                metadata={
                    'attempt_id': str(attempt.id),
                    'score': str(attempt.score),
                    'status': attempt.status
                }
            )

            if attempt.status == QuizAttempt.Status.GRADED:
                transaction.on_commit(lambda: NotificationService.send_attempt_graded(attempt))
            else:
                transaction.on_commit(lambda: NotificationService.send_grading_required(attempt))

        logger.info(f"Attempt {attempt.id} submitted: score={attempt.score} status={attempt.status}")
        return attempt

    @classmethod
    def get_attempt(cls, user, attempt_id) -> QuizAttempt:
        queryset = QuizAttempt.objects.select_related('quiz', 'student', 'student__profile').prefetch_related(
            Prefetch('answers', queryset=Answer.objects.select_related('question', 'selected_option')),
            Prefetch('quiz__questions', queryset=Question.objects.prefetch_related('options')),
        )
        if has_permission(user, QUIZ_GRADE):
            return fetch(queryset, "Attempt not found.", id=attempt_id)

        authorize(user, QUIZ_TAKE)
        return fetch(queryset, "Attempt not found.", id=attempt_id, student=user)

    @classmethod
    def list_attempts(cls, user, quiz_id):
        """All attempts of a quiz, newest first."""
        authorize(user, QUIZ_GRADE)
        quiz = fetch(Quiz.objects.active(), "Quiz not found.", id=quiz_id)
        return QuizAttempt.objects.filter(quiz=quiz).select_related(
            'student', 'student__profile'
        ).order_by('-started_at')

    @classmethod
    def _lock_own_attempt(cls, user, attempt_id):
        return fetch(
            QuizAttempt.objects.select_for_update(), "Attempt not found.",
            id=attempt_id, student=user
        )

    @classmethod
    def _has_ungraded(cls, attempt):
        policy = getattr(settings, 'QUIZ_ENGINE', {}).get('UNGRADED_POLICY', UNGRADED_BY_QUESTION_TYPES)
        if policy == UNGRADED_BY_ANSWERS:
            return attempt.answers.filter(points_earned__isnull=True).exists()
        return attempt.quiz.questions.filter(
            question_type=Question.QuestionType.SHORT_ANSWER
        ).exists()
