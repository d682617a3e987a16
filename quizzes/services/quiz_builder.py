"""
Quiz definition and question bank management.

Every question mutation locks the quiz row and recomputes total_points in the
same transaction, so scoring never sees a point total that disagrees with the
question set.
"""
import logging
import uuid

from django.db import transaction
from django.db.models import Count, Prefetch
from django.utils import timezone

from quizzes.exceptions import Conflict, InvalidState, Validation
from quizzes.models import AuditLog, Option, Question, Quiz
from quizzes.permissions import (
    QUIZ_CREATE, QUIZ_DELETE, QUIZ_EDIT, QUIZ_PUBLISH, QUIZ_VIEW, authorize, has_permission,
)
from .common import fetch, validate_model

logger = logging.getLogger(__name__)

QUIZ_FIELDS = (
    'title', 'description', 'offering', 'duration', 'passing_score',
    'shuffle_questions', 'shuffle_options', 'show_results', 'allow_review',
    'start_time', 'end_time',
)

STUDENT_VISIBLE_STATUSES = (Quiz.Status.PUBLISHED, Quiz.Status.CLOSED)


class QuizBuilder:

    @classmethod
    def list_quizzes(cls, user, offering_id=None, status=None):
        authorize(user, QUIZ_VIEW)
        quizzes = Quiz.objects.active().select_related('offering', 'creator').annotate(
            question_count=Count('questions', distinct=True),
            attempt_count=Count('attempts', distinct=True),
        ).order_by('-created_at')

        if not has_permission(user, QUIZ_EDIT):
            quizzes = quizzes.filter(status__in=STUDENT_VISIBLE_STATUSES)
        if offering_id:
            try:
                uuid.UUID(str(offering_id))
            except ValueError:
                raise Validation("offering must be a valid identifier.")
            quizzes = quizzes.filter(offering_id=offering_id)
        if status and status.upper() != 'ALL':
            if status not in Quiz.Status.values:
                raise Validation(f"Unknown quiz status: {status}.")
            quizzes = quizzes.filter(status=status)
        return quizzes

    @classmethod
    def get_quiz(cls, user, quiz_id) -> Quiz:
        authorize(user, QUIZ_VIEW)
        queryset = Quiz.objects.active().select_related('offering', 'creator').prefetch_related(
            Prefetch('questions', queryset=Question.objects.prefetch_related('options'))
        )
        if not has_permission(user, QUIZ_EDIT):
            queryset = queryset.filter(status__in=STUDENT_VISIBLE_STATUSES)
        return fetch(queryset, "Quiz not found.", id=quiz_id)

    @classmethod
    def create_quiz(cls, user, **data) -> Quiz:
        authorize(user, QUIZ_CREATE)
        unknown = set(data) - set(QUIZ_FIELDS)
        if unknown:
            raise Validation(f"Unknown quiz fields: {', '.join(sorted(unknown))}.")

        quiz = Quiz(creator=user, **data)
        validate_model(quiz)
        quiz.save()
        logger.info(f"Quiz {quiz.id} created by {user.username}")
        return quiz

    @classmethod
    def publish_quiz(cls, user, quiz_id) -> Quiz:
        authorize(user, QUIZ_PUBLISH)
        with transaction.atomic():
            quiz = cls._lock_quiz(quiz_id)
            if quiz.status == Quiz.Status.CLOSED:
                raise InvalidState("A closed quiz cannot be published.")
            if not quiz.questions.exists():
                raise InvalidState("Add questions before publishing.")

            quiz.total_points = quiz.compute_total_points()
            quiz.status = Quiz.Status.PUBLISHED
            quiz.published_at = timezone.now()
            quiz.save(update_fields=['total_points', 'status', 'published_at', 'updated_at'])

            AuditLog.log(
                event_type=AuditLog.EventType.QUIZ_PUBLISHED,
                description=f"Published: {quiz.title}",
                user=user,
                metadata={'quiz_id': str(quiz.id), 'total_points': str(quiz.total_points)}
            )
        logger.info(f"Quiz {quiz.id} published with {quiz.total_points} points")
        return quiz

    @classmethod
    def close_quiz(cls, user, quiz_id) -> Quiz:
        authorize(user, QUIZ_EDIT)
        with transaction.atomic():
            quiz = cls._lock_quiz(quiz_id)
            quiz.status = Quiz.Status.CLOSED
            quiz.save(update_fields=['status', 'updated_at'])
        logger.info(f"Quiz {quiz.id} closed")
        return quiz

    @classmethod
    def delete_quiz(cls, user, quiz_id):
        authorize(user, QUIZ_DELETE)
        with transaction.atomic():
            quiz = cls._lock_quiz(quiz_id)
            if quiz.attempts.exists():
                raise Conflict("A quiz with attempts cannot be deleted.")
            quiz.mark_deleted()
        logger.info(f"Quiz {quiz.id} deleted by {user.username}")

    @classmethod
    def add_question(cls, user, quiz_id, *, question_type, text, points, explanation='',
                     difficulty=Question.Difficulty.MEDIUM, options=None, is_ai_generated=False) -> Question:
        authorize(user, QUIZ_EDIT)
        options = options or []
        cls._validate_options(question_type, options)

        with transaction.atomic():
            quiz = cls._lock_quiz(quiz_id)
            if quiz.status == Quiz.Status.CLOSED:
                raise InvalidState("Questions cannot be added to a closed quiz.")

            question = Question(
                quiz=quiz,
                question_type=question_type,
                text=text,
                explanation=explanation or '',
                points=points,
                difficulty=difficulty,
                order=quiz.next_question_order(),
                is_ai_generated=is_ai_generated,
            )
            validate_model(question)
            question.save()
            Option.objects.bulk_create([
                Option(question=question, text=opt['text'], is_correct=bool(opt.get('is_correct', False)), order=idx)
                for idx, opt in enumerate(options, start=1)
            ])
            quiz.refresh_total_points()

        logger.info(f"Question {question.id} added to quiz {quiz.id}; total points {quiz.total_points}")
        return question

    @classmethod
    def delete_question(cls, user, question_id):
        authorize(user, QUIZ_EDIT)
        with transaction.atomic():
            quiz_id = fetch(
                Question.objects.filter(quiz__record_state=Quiz.RecordState.ACTIVE).values_list('quiz_id', flat=True),
                "Question not found.", id=question_id
            )
            quiz = cls._lock_quiz(quiz_id)
            if quiz.status == Quiz.Status.CLOSED:
                raise InvalidState("Questions cannot be removed from a closed quiz.")
            Question.objects.filter(id=question_id).delete()
            quiz.refresh_total_points()
        logger.info(f"Question {question_id} removed from quiz {quiz.id}; total points {quiz.total_points}")
        return quiz

    @classmethod
    def _lock_quiz(cls, quiz_id):
        return fetch(Quiz.objects.active().select_for_update(), "Quiz not found.", id=quiz_id)

    @classmethod
    def _validate_options(cls, question_type, options):
        if question_type not in Question.QuestionType.values:
            raise Validation(f"Unknown question type: {question_type}.")
        if question_type == Question.QuestionType.SHORT_ANSWER:
            if options:
                raise Validation("Short answer questions do not take options.")
            return

        if any(not (opt.get('text') or '').strip() for opt in options):
            raise Validation("Every option needs text.")
        if len(options) < 2:
            raise Validation("At least two options are required.")
        if question_type == Question.QuestionType.TRUE_FALSE and len(options) != 2:
            raise Validation("True/false questions take exactly two options.")
        if not any(opt.get('is_correct') for opt in options):
            raise Validation("Mark at least one option as correct.")
