"""
Test cases for the University Quiz Engine.
Covers grading, the attempt lifecycle, manual grading, the question bank
and the HTTP surface.
"""
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.core import mail
from django.db import IntegrityError, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status
from rest_framework.authtoken.models import Token

from .exceptions import Conflict, InvalidState, NotFound, OutOfWindow, Unauthorized, Validation
from .grading import FreeText, ManualGrader, ObjectiveGrader, SingleOption, build_selection, get_grader
from .models import Answer, AuditLog, CourseOffering, Option, Question, Quiz, QuizAttempt, UserProfile
from .services import AttemptEngine, GradingCoordinator, QuizBuilder
from .services.scoring import calculate_percentage, recompute_attempt


def make_user(username, role=UserProfile.Role.STUDENT):
    user = User.objects.create_user(username, f'{username}@test.com', 'pass12345')
    user.profile.role = role
    user.profile.save()
    return user


def make_quiz(creator, **kwargs):
    kwargs.setdefault('title', 'Week 1 Quiz')
    kwargs.setdefault('duration', 30)
    kwargs.setdefault('status', Quiz.Status.PUBLISHED)
    return Quiz.objects.create(creator=creator, **kwargs)


def add_choice_question(quiz, points, order=1, options=('A', 'B', 'C'), correct='A',
                        question_type=Question.QuestionType.MULTIPLE_CHOICE):
    question = Question.objects.create(
        quiz=quiz, question_type=question_type,
        text=f'Question {order}', points=Decimal(str(points)), order=order
    )
    by_text = {}
    for idx, text in enumerate(options, start=1):
        by_text[text] = Option.objects.create(question=question, text=text, is_correct=(text == correct), order=idx)
    return question, by_text


def add_short_question(quiz, points, order=1):
    return Question.objects.create(
        quiz=quiz, question_type=Question.QuestionType.SHORT_ANSWER,
        text=f'Explain {order}', points=Decimal(str(points)), order=order
    )


class GraderTests(TestCase):
    """Tests for the objective and manual graders."""

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.quiz = make_quiz(self.instructor)
        self.question, self.options = add_choice_question(self.quiz, 2)

    def test_correct_option_earns_full_points(self):
        option = self.options['A']
        result = ObjectiveGrader().grade(self.question, SingleOption(str(option.id)), option)
        self.assertEqual(result.points_earned, Decimal('2'))
        self.assertTrue(result.is_correct)
        self.assertEqual(result.grading_method, Answer.GradingMethod.AUTO_OBJECTIVE)

    def test_wrong_option_earns_nothing(self):
        option = self.options['B']
        result = ObjectiveGrader().grade(self.question, SingleOption(str(option.id)), option)
        self.assertEqual(result.points_earned, Decimal('0'))
        self.assertFalse(result.is_correct)

    def test_free_text_on_choice_question_waits_for_manual_grade(self):
        result = ObjectiveGrader().grade(self.question, FreeText('A'))
        self.assertIsNone(result.points_earned)
        self.assertFalse(result.is_graded)

    def test_manual_grader_leaves_answer_ungraded(self):
        question = add_short_question(self.quiz, 3, order=2)
        result = ManualGrader().grade(question, FreeText('Because.'))
        self.assertIsNone(result.points_earned)
        self.assertIsNone(result.is_correct)
        self.assertEqual(result.grading_method, Answer.GradingMethod.PENDING_MANUAL)

    def test_factory_picks_grader_by_question_type(self):
        self.assertIsInstance(get_grader(Question.QuestionType.TRUE_FALSE), ObjectiveGrader)
        self.assertIsInstance(get_grader(Question.QuestionType.SHORT_ANSWER), ManualGrader)

    def test_build_selection(self):
        self.assertEqual(build_selection('abc'), SingleOption('abc'))
        self.assertEqual(build_selection(None, 'text'), FreeText('text'))
        self.assertIsNone(build_selection())


class ScoringTests(TestCase):

    def test_percentage_rounds_half_up(self):
        self.assertEqual(calculate_percentage(Decimal('4'), Decimal('6')), Decimal('66.67'))
        self.assertEqual(calculate_percentage(Decimal('1'), Decimal('8')), Decimal('12.50'))

    def test_zero_total_uses_denominator_of_one(self):
        self.assertEqual(calculate_percentage(Decimal('0'), Decimal('0')), Decimal('0.00'))
        self.assertEqual(calculate_percentage(Decimal('1'), None), Decimal('100.00'))

    def test_totals_below_one_point_still_divide_by_one(self):
        self.assertEqual(calculate_percentage(Decimal('0.5'), Decimal('0.5')), Decimal('50.00'))


@override_settings(QUIZ_ENGINE={'UNGRADED_POLICY': 'question_types', 'NOTIFY_ON_GRADE': True})
class AttemptEngineTests(TestCase):
    """Tests for starting, answering and submitting attempts."""

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student = make_user('student')
        self.quiz = make_quiz(self.instructor)
        self.q1, self.q1_options = add_choice_question(self.quiz, 1, order=1)
        self.q2, self.q2_options = add_choice_question(self.quiz, 2, order=2)
        self.q3, self.q3_options = add_choice_question(self.quiz, 3, order=3)

    def answer(self, attempt, question, option, user=None):
        return AttemptEngine.submit_answer(
            user or self.student, attempt.id, question.id, SingleOption(str(option.id))
        )

    def test_start_twice_resumes_same_attempt(self):
        first = AttemptEngine.start_attempt(self.student, self.quiz.id)
        second = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.assertEqual(first.id, second.id)
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz, student=self.student).count(), 1)
        self.assertEqual(AuditLog.objects.filter(event_type=AuditLog.EventType.ATTEMPT_START).count(), 1)

    def test_start_after_submission_conflicts(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        AttemptEngine.submit_attempt(self.student, attempt.id)
        with self.assertRaises(Conflict):
            AttemptEngine.start_attempt(self.student, self.quiz.id)

    def test_start_requires_published_quiz(self):
        self.quiz.status = Quiz.Status.DRAFT
        self.quiz.save()
        with self.assertRaises(InvalidState):
            AttemptEngine.start_attempt(self.student, self.quiz.id)

    def test_start_outside_window(self):
        self.quiz.start_time = timezone.now() + timedelta(hours=1)
        self.quiz.save()
        with self.assertRaises(OutOfWindow) as ctx:
            AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.assertEqual(ctx.exception.message, "The quiz has not started yet.")

        self.quiz.start_time = timezone.now() - timedelta(hours=2)
        self.quiz.end_time = timezone.now() - timedelta(hours=1)
        self.quiz.save()
        with self.assertRaises(OutOfWindow) as ctx:
            AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.assertEqual(ctx.exception.message, "The quiz time has ended.")

    def test_start_on_deleted_quiz_not_found(self):
        self.quiz.mark_deleted()
        with self.assertRaises(NotFound):
            AttemptEngine.start_attempt(self.student, self.quiz.id)

    def test_instructor_cannot_take_quiz(self):
        with self.assertRaises(Unauthorized):
            AttemptEngine.start_attempt(self.instructor, self.quiz.id)
        self.assertTrue(AuditLog.objects.filter(
            event_type=AuditLog.EventType.PERMISSION_DENIED, user=self.instructor
        ).exists())

    def test_auto_grade_correct_and_wrong(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)

        answer = self.answer(attempt, self.q2, self.q2_options['A'])
        self.assertTrue(answer.is_correct)
        self.assertEqual(answer.points_earned, Decimal('2'))

        answer = self.answer(attempt, self.q2, self.q2_options['C'])
        self.assertFalse(answer.is_correct)
        self.assertEqual(answer.points_earned, Decimal('0'))

    def test_answer_overwrite_keeps_one_row(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.answer(attempt, self.q1, self.q1_options['B'])
        self.answer(attempt, self.q1, self.q1_options['A'])

        answers = Answer.objects.filter(attempt=attempt, question=self.q1)
        self.assertEqual(answers.count(), 1)
        self.assertEqual(answers.get().selected_option, self.q1_options['A'])
        self.assertTrue(answers.get().is_correct)

    def test_aggregate_score_and_percentage(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.answer(attempt, self.q1, self.q1_options['A'])
        self.answer(attempt, self.q2, self.q2_options['B'])
        self.answer(attempt, self.q3, self.q3_options['A'])

        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        attempt.refresh_from_db()
        self.assertEqual(attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(attempt.score, Decimal('4'))
        self.assertEqual(attempt.percentage, Decimal('66.67'))
        self.assertIsNotNone(attempt.submitted_at)
        self.assertIsNotNone(attempt.graded_at)
        self.assertTrue(attempt.passed)

    def test_unanswered_questions_count_as_zero(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.answer(attempt, self.q1, self.q1_options['A'])
        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(attempt.score, Decimal('1'))
        self.assertEqual(attempt.percentage, Decimal('16.67'))
        self.assertFalse(attempt.passed)

    def test_second_submission_is_rejected(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        AttemptEngine.submit_attempt(self.student, attempt.id)
        with self.assertRaises(InvalidState):
            AttemptEngine.submit_attempt(self.student, attempt.id)

    def test_answering_after_submission_is_rejected(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.answer(attempt, self.q1, self.q1_options['B'])
        AttemptEngine.submit_attempt(self.student, attempt.id)

        with self.assertRaises(InvalidState):
            self.answer(attempt, self.q1, self.q1_options['A'])
        answer = Answer.objects.get(attempt=attempt, question=self.q1)
        self.assertEqual(answer.selected_option, self.q1_options['B'])
        self.assertEqual(answer.points_earned, Decimal('0'))

    def test_other_student_cannot_answer_or_submit(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        intruder = make_user('intruder')
        with self.assertRaises(NotFound):
            self.answer(attempt, self.q1, self.q1_options['A'], user=intruder)
        with self.assertRaises(NotFound):
            AttemptEngine.submit_attempt(intruder, attempt.id)
        with self.assertRaises(NotFound):
            AttemptEngine.get_attempt(intruder, attempt.id)

    def test_option_must_belong_to_question(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        with self.assertRaises(Validation):
            self.answer(attempt, self.q1, self.q2_options['A'])
        self.assertFalse(Answer.objects.filter(attempt=attempt).exists())

    def test_question_must_belong_to_quiz(self):
        other_quiz = make_quiz(self.instructor, title='Other Quiz')
        other_question, other_options = add_choice_question(other_quiz, 1)
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        with self.assertRaises(NotFound):
            self.answer(attempt, other_question, other_options['A'])

    def test_empty_selection_is_rejected(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        with self.assertRaises(Validation):
            AttemptEngine.submit_answer(self.student, attempt.id, self.q1.id, None)

    def test_graded_submission_notifies_student(self):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        self.answer(attempt, self.q3, self.q3_options['A'])
        with self.captureOnCommitCallbacks(execute=True):
            AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.quiz.title, mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, [self.student.email])

    def test_instructor_lists_attempts(self):
        AttemptEngine.start_attempt(self.student, self.quiz.id)
        attempts = AttemptEngine.list_attempts(self.instructor, self.quiz.id)
        self.assertEqual([a.student for a in attempts], [self.student])
        with self.assertRaises(Unauthorized):
            AttemptEngine.list_attempts(self.student, self.quiz.id)


class ZeroPointQuizTests(TestCase):

    def test_submission_on_zero_point_quiz(self):
        instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        student = make_user('student')
        quiz = make_quiz(instructor)
        question, options = add_choice_question(quiz, 0)

        attempt = AttemptEngine.start_attempt(student, quiz.id)
        AttemptEngine.submit_answer(student, attempt.id, question.id, SingleOption(str(options['A'].id)))
        attempt = AttemptEngine.submit_attempt(student, attempt.id)

        self.assertEqual(attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(attempt.score, Decimal('0'))
        self.assertEqual(attempt.percentage, Decimal('0.00'))


class MixedGradingTests(TestCase):
    """Attempts with short answers stay SUBMITTED until every answer has a grade."""

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student = make_user('student')
        self.quiz = make_quiz(self.instructor)
        self.choice, self.options = add_choice_question(self.quiz, 2, order=1)
        self.short = add_short_question(self.quiz, 3, order=2)

    def start_and_answer(self, answer_short=True):
        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        AttemptEngine.submit_answer(self.student, attempt.id, self.choice.id, SingleOption(str(self.options['A'].id)))
        if answer_short:
            AttemptEngine.submit_answer(self.student, attempt.id, self.short.id, FreeText('It wraps a function.'))
        return attempt

    def test_short_answer_defers_terminal_state(self):
        attempt = self.start_and_answer()
        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(attempt.status, QuizAttempt.Status.SUBMITTED)
        self.assertEqual(attempt.score, Decimal('2'))
        self.assertIsNone(attempt.graded_at)
        self.assertIsNone(attempt.passed)

        short_answer = Answer.objects.get(attempt=attempt, question=self.short)
        GradingCoordinator.grade_answer(self.instructor, short_answer.id, Decimal('3'), 'Good.')

        attempt.refresh_from_db()
        self.assertEqual(attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(attempt.score, Decimal('5'))
        self.assertEqual(attempt.percentage, Decimal('100.00'))
        self.assertIsNotNone(attempt.graded_at)

        short_answer.refresh_from_db()
        self.assertTrue(short_answer.is_correct)
        self.assertEqual(short_answer.feedback, 'Good.')
        self.assertEqual(short_answer.grading_method, Answer.GradingMethod.MANUAL_REVIEW)
        self.assertEqual(short_answer.graded_by, self.instructor)

    def test_zero_points_marks_answer_incorrect(self):
        attempt = self.start_and_answer()
        AttemptEngine.submit_attempt(self.student, attempt.id)
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)

        answer = GradingCoordinator.grade_answer(self.instructor, short_answer.id, 0)
        self.assertFalse(answer.is_correct)
        attempt.refresh_from_db()
        self.assertEqual(attempt.percentage, Decimal('40.00'))

    def test_regrade_recomputes_score(self):
        attempt = self.start_and_answer()
        AttemptEngine.submit_attempt(self.student, attempt.id)
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)

        GradingCoordinator.grade_answer(self.instructor, short_answer.id, 3)
        GradingCoordinator.grade_answer(self.instructor, short_answer.id, 1)
        attempt.refresh_from_db()
        self.assertEqual(attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(attempt.score, Decimal('3'))

    def test_grading_keeps_answer_time(self):
        attempt = self.start_and_answer()
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)
        answered_at = short_answer.answered_at
        AttemptEngine.submit_attempt(self.student, attempt.id)

        GradingCoordinator.grade_answer(self.instructor, short_answer.id, 2)
        short_answer.refresh_from_db()
        self.assertEqual(short_answer.points_earned, Decimal('2'))
        self.assertEqual(short_answer.answered_at, answered_at)

    def test_grading_in_progress_attempt_is_rejected(self):
        attempt = self.start_and_answer()
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)
        with self.assertRaises(InvalidState):
            GradingCoordinator.grade_answer(self.instructor, short_answer.id, 1)

    def test_points_must_be_within_question_points(self):
        attempt = self.start_and_answer()
        AttemptEngine.submit_attempt(self.student, attempt.id)
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)
        with self.assertRaises(Validation):
            GradingCoordinator.grade_answer(self.instructor, short_answer.id, Decimal('3.5'))
        with self.assertRaises(Validation):
            GradingCoordinator.grade_answer(self.instructor, short_answer.id, -1)
        with self.assertRaises(Validation):
            GradingCoordinator.grade_answer(self.instructor, short_answer.id, 'lots')

    def test_student_cannot_grade(self):
        attempt = self.start_and_answer()
        AttemptEngine.submit_attempt(self.student, attempt.id)
        short_answer = Answer.objects.get(attempt=attempt, question=self.short)
        with self.assertRaises(Unauthorized):
            GradingCoordinator.grade_answer(self.student, short_answer.id, 3)

    def test_unknown_answer_not_found(self):
        with self.assertRaises(NotFound):
            GradingCoordinator.grade_answer(self.instructor, '00000000-0000-0000-0000-000000000000', 1)

    def test_pending_answers_queue(self):
        attempt = self.start_and_answer()
        self.assertEqual(list(GradingCoordinator.pending_answers(self.instructor)), [])

        AttemptEngine.submit_attempt(self.student, attempt.id)
        pending = list(GradingCoordinator.pending_answers(self.instructor, self.quiz.id))
        self.assertEqual([a.question for a in pending], [self.short])

        GradingCoordinator.grade_answer(self.instructor, pending[0].id, 2)
        self.assertEqual(list(GradingCoordinator.pending_answers(self.instructor)), [])

    def test_submission_notifies_quiz_creator(self):
        attempt = self.start_and_answer()
        with self.captureOnCommitCallbacks(execute=True):
            AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.instructor.email])

    def test_unanswered_short_answer_blocks_grading_by_question_type(self):
        attempt = self.start_and_answer(answer_short=False)
        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(attempt.status, QuizAttempt.Status.SUBMITTED)

    @override_settings(QUIZ_ENGINE={'UNGRADED_POLICY': 'answers', 'NOTIFY_ON_GRADE': False})
    def test_answers_policy_grades_when_no_answer_is_pending(self):
        attempt = self.start_and_answer(answer_short=False)
        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(attempt.percentage, Decimal('40.00'))

    @override_settings(QUIZ_ENGINE={'UNGRADED_POLICY': 'answers', 'NOTIFY_ON_GRADE': False})
    def test_answers_policy_waits_for_pending_answers(self):
        attempt = self.start_and_answer()
        attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.assertEqual(attempt.status, QuizAttempt.Status.SUBMITTED)


class TwoShortAnswerFixture:

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student = make_user('student')
        self.quiz = make_quiz(self.instructor)
        self.choice, self.options = add_choice_question(self.quiz, 2, order=1)
        self.first_short = add_short_question(self.quiz, 3, order=2)
        self.second_short = add_short_question(self.quiz, 5, order=3)

        attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)
        AttemptEngine.submit_answer(self.student, attempt.id, self.choice.id, SingleOption(str(self.options['A'].id)))
        AttemptEngine.submit_answer(self.student, attempt.id, self.first_short.id, FreeText('First.'))
        AttemptEngine.submit_answer(self.student, attempt.id, self.second_short.id, FreeText('Second.'))
        self.attempt = AttemptEngine.submit_attempt(self.student, attempt.id)
        self.first_answer = Answer.objects.get(attempt=self.attempt, question=self.first_short)
        self.second_answer = Answer.objects.get(attempt=self.attempt, question=self.second_short)


class TwoShortAnswerTests(TwoShortAnswerFixture, TestCase):
    """An attempt is graded only once its last pending answer has points."""

    def test_partial_grading_keeps_attempt_submitted(self):
        self.assertEqual(self.attempt.status, QuizAttempt.Status.SUBMITTED)
        self.assertEqual(self.attempt.score, Decimal('2'))
        self.assertEqual(self.attempt.percentage, Decimal('20.00'))

        GradingCoordinator.grade_answer(self.instructor, self.first_answer.id, 3)
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.SUBMITTED)
        self.assertIsNone(self.attempt.graded_at)
        self.assertEqual(self.attempt.score, Decimal('5'))
        self.assertEqual(self.attempt.percentage, Decimal('50.00'))

        GradingCoordinator.grade_answer(self.instructor, self.second_answer.id, 4)
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.GRADED)
        self.assertIsNotNone(self.attempt.graded_at)
        self.assertEqual(self.attempt.score, Decimal('9'))
        self.assertEqual(self.attempt.percentage, Decimal('90.00'))

    def test_grading_order_does_not_matter(self):
        GradingCoordinator.grade_answer(self.instructor, self.second_answer.id, 4)
        GradingCoordinator.grade_answer(self.instructor, self.first_answer.id, 3)
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(self.attempt.score, Decimal('9'))


class StaleAttemptGradingTests(TwoShortAnswerFixture, TransactionTestCase):
    """Recomputation reads the answers, never a previously loaded attempt."""

    def test_graders_holding_stale_attempts_converge(self):
        first_view = QuizAttempt.objects.get(id=self.attempt.id)
        second_view = QuizAttempt.objects.get(id=self.attempt.id)

        GradingCoordinator.grade_answer(self.instructor, self.first_answer.id, 3)
        GradingCoordinator.grade_answer(self.instructor, self.second_answer.id, 4)

        # Both snapshots still show the submitted state
        self.assertEqual(first_view.status, QuizAttempt.Status.SUBMITTED)
        self.assertEqual(second_view.score, Decimal('2'))

        for stale in (first_view, second_view):
            with transaction.atomic():
                QuizAttempt.objects.select_for_update().get(id=stale.id)
                recompute_attempt(stale)

        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.GRADED)
        self.assertEqual(self.attempt.score, Decimal('9'))
        self.assertEqual(self.attempt.percentage, Decimal('90.00'))


class UniqueAttemptTests(TransactionTestCase):
    """The (quiz, student) constraint decides concurrent starts."""

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student = make_user('student')
        self.quiz = make_quiz(self.instructor)
        add_choice_question(self.quiz, 1)

    def test_constraint_rejects_second_attempt(self):
        QuizAttempt.objects.create(quiz=self.quiz, student=self.student)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                QuizAttempt.objects.create(quiz=self.quiz, student=self.student)

    def test_losing_start_returns_surviving_attempt(self):
        winner = QuizAttempt.objects.create(quiz=self.quiz, student=self.student)

        # The losing request checked for an attempt before the winner committed
        with mock.patch.object(QuizAttempt.objects, 'filter') as lookup:
            lookup.return_value.first.return_value = None
            attempt = AttemptEngine.start_attempt(self.student, self.quiz.id)

        self.assertEqual(attempt.id, winner.id)
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz, student=self.student).count(), 1)


class QuizBuilderTests(TestCase):
    """Tests for quiz definition and the question bank."""

    def setUp(self):
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student = make_user('student')
        self.quiz = QuizBuilder.create_quiz(self.instructor, title='Draft Quiz', duration=20)

    def add_choice(self, points=2, **kwargs):
        kwargs.setdefault('options', [
            {'text': 'Yes', 'is_correct': True},
            {'text': 'No', 'is_correct': False},
        ])
        return QuizBuilder.add_question(
            self.instructor, self.quiz.id,
            question_type=kwargs.pop('question_type', Question.QuestionType.MULTIPLE_CHOICE),
            text='Is this a question?', points=Decimal(str(points)), **kwargs
        )

    def test_create_quiz_defaults(self):
        self.assertEqual(self.quiz.status, Quiz.Status.DRAFT)
        self.assertEqual(self.quiz.record_state, Quiz.RecordState.ACTIVE)
        self.assertEqual(self.quiz.creator, self.instructor)
        self.assertEqual(self.quiz.total_points, Decimal('0'))

    def test_create_quiz_validation(self):
        with self.assertRaises(Validation):
            QuizBuilder.create_quiz(self.instructor, title='X', duration=20)
        with self.assertRaises(Validation):
            QuizBuilder.create_quiz(self.instructor, title='Quiz', duration=2)
        with self.assertRaises(Validation):
            QuizBuilder.create_quiz(self.instructor, title='Quiz', duration=20, passing_score=120)
        now = timezone.now()
        with self.assertRaises(Validation):
            QuizBuilder.create_quiz(self.instructor, title='Quiz', duration=20, start_time=now, end_time=now)
        with self.assertRaises(Validation):
            QuizBuilder.create_quiz(self.instructor, title='Quiz', duration=20, max_attempts=3)

    def test_student_cannot_create_quiz(self):
        with self.assertRaises(Unauthorized):
            QuizBuilder.create_quiz(self.student, title='Quiz', duration=20)

    def test_question_mutations_recompute_total_points(self):
        first = self.add_choice(2)
        self.add_choice(Decimal('1.5'))
        self.quiz.refresh_from_db()
        self.assertEqual(self.quiz.total_points, Decimal('3.5'))
        self.assertEqual(first.order, 1)
        self.assertEqual([o.order for o in first.options.all()], [1, 2])

        QuizBuilder.delete_question(self.instructor, first.id)
        self.quiz.refresh_from_db()
        self.assertEqual(self.quiz.total_points, Decimal('1.5'))

    def test_option_rules(self):
        with self.assertRaises(Validation):
            self.add_choice(options=[{'text': 'Only', 'is_correct': True}])
        with self.assertRaises(Validation):
            self.add_choice(options=[{'text': 'A', 'is_correct': False}, {'text': 'B', 'is_correct': False}])
        with self.assertRaises(Validation):
            self.add_choice(options=[{'text': ' ', 'is_correct': True}, {'text': 'B', 'is_correct': False}])
        with self.assertRaises(Validation):
            self.add_choice(question_type=Question.QuestionType.TRUE_FALSE, options=[
                {'text': 'True', 'is_correct': True},
                {'text': 'False', 'is_correct': False},
                {'text': 'Maybe', 'is_correct': False},
            ])
        with self.assertRaises(Validation):
            self.add_choice(question_type=Question.QuestionType.SHORT_ANSWER)
        self.assertFalse(self.quiz.questions.exists())

    def test_option_without_flag_is_incorrect(self):
        question = self.add_choice(options=[{'text': 'Yes', 'is_correct': True}, {'text': 'No'}])
        self.assertEqual(
            [(o.text, o.is_correct) for o in question.options.all()],
            [('Yes', True), ('No', False)],
        )

    def test_question_points_minimum(self):
        with self.assertRaises(Validation):
            self.add_choice(Decimal('0.25'))

    def test_short_answer_question(self):
        question = QuizBuilder.add_question(
            self.instructor, self.quiz.id,
            question_type=Question.QuestionType.SHORT_ANSWER, text='Explain recursion.', points=5
        )
        self.assertFalse(question.options.exists())
        self.assertFalse(question.uses_options)

    def test_publish_requires_questions(self):
        with self.assertRaises(InvalidState):
            QuizBuilder.publish_quiz(self.instructor, self.quiz.id)
        self.add_choice(2)
        quiz = QuizBuilder.publish_quiz(self.instructor, self.quiz.id)
        self.assertEqual(quiz.status, Quiz.Status.PUBLISHED)
        self.assertIsNotNone(quiz.published_at)
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.QUIZ_PUBLISHED).exists())

    def test_closed_quiz_rejects_question_changes(self):
        question = self.add_choice(2)
        QuizBuilder.close_quiz(self.instructor, self.quiz.id)
        with self.assertRaises(InvalidState):
            self.add_choice(1)
        with self.assertRaises(InvalidState):
            QuizBuilder.delete_question(self.instructor, question.id)
        with self.assertRaises(InvalidState):
            QuizBuilder.publish_quiz(self.instructor, self.quiz.id)

    def test_delete_quiz_is_soft(self):
        QuizBuilder.delete_quiz(self.instructor, self.quiz.id)
        quiz = Quiz.objects.get(id=self.quiz.id)
        self.assertEqual(quiz.record_state, Quiz.RecordState.DELETED)
        self.assertIsNotNone(quiz.deleted_at)
        with self.assertRaises(NotFound):
            QuizBuilder.get_quiz(self.instructor, self.quiz.id)

    def test_delete_quiz_with_attempts_conflicts(self):
        self.add_choice(2)
        QuizBuilder.publish_quiz(self.instructor, self.quiz.id)
        AttemptEngine.start_attempt(self.student, self.quiz.id)
        with self.assertRaises(Conflict):
            QuizBuilder.delete_quiz(self.instructor, self.quiz.id)

    def test_students_only_see_published_and_closed(self):
        published = make_quiz(self.instructor, title='Published')
        closed = make_quiz(self.instructor, title='Closed', status=Quiz.Status.CLOSED)

        visible = set(QuizBuilder.list_quizzes(self.student))
        self.assertEqual(visible, {published, closed})
        self.assertIn(self.quiz, set(QuizBuilder.list_quizzes(self.instructor)))
        with self.assertRaises(NotFound):
            QuizBuilder.get_quiz(self.student, self.quiz.id)

    def test_list_filters(self):
        make_quiz(self.instructor, title='Published')
        drafts = QuizBuilder.list_quizzes(self.instructor, status=Quiz.Status.DRAFT)
        self.assertEqual(list(drafts), [self.quiz])
        with self.assertRaises(Validation):
            QuizBuilder.list_quizzes(self.instructor, status='archived')
        with self.assertRaises(Validation):
            QuizBuilder.list_quizzes(self.instructor, offering_id='not-a-uuid')


class ApiTestCase(APITestCase):

    def setUp(self):
        self.student = make_user('student')
        self.instructor = make_user('instructor', UserProfile.Role.INSTRUCTOR)
        self.student_token = Token.objects.create(user=self.student)
        self.instructor_token = Token.objects.create(user=self.instructor)

    def as_student(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {self.student_token.key}')

    def as_instructor(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {self.instructor_token.key}')

    def assertFailure(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['code'], code)
        self.assertTrue(response.data['error'])


class AuthenticationApiTests(ApiTestCase):

    def test_login_returns_token(self):
        response = self.client.post('/api/auth/token/', {'username': 'student', 'password': 'pass12345'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['token'], self.student_token.key)
        self.assertEqual(response.data['data']['user']['role'], 'student')

    def test_login_wrong_password(self):
        response = self.client.post('/api/auth/token/', {'username': 'student', 'password': 'nope'})
        self.assertFailure(response, status.HTTP_400_BAD_REQUEST, 'validation')
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.LOGIN_FAILED).exists())

    def test_protected_endpoint_without_auth(self):
        response = self.client.get('/api/quizzes/')
        self.assertFailure(response, status.HTTP_401_UNAUTHORIZED, 'unauthenticated')


class QuizApiTests(ApiTestCase):
    """Quiz building over HTTP."""

    def create_quiz(self, **data):
        payload = {'title': 'API Quiz', 'duration': 30}
        payload.update(data)
        return self.client.post('/api/quizzes/', payload, format='json')

    def test_instructor_builds_and_publishes_quiz(self):
        self.as_instructor()
        response = self.create_quiz()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        quiz_id = response.data['data']['id']
        self.assertEqual(response.data['data']['status'], 'draft')

        response = self.client.post(f'/api/quizzes/{quiz_id}/questions/', {
            'question_type': 'multiple_choice',
            'text': 'What is 2 + 2?',
            'points': '2.00',
            'options': [{'text': '3'}, {'text': '4', 'is_correct': True}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['data']['options']), 2)

        response = self.client.post(f'/api/quizzes/{quiz_id}/publish/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'published')
        self.assertEqual(response.data['data']['total_points'], '2.00')

    def test_student_cannot_create_quiz(self):
        self.as_student()
        response = self.create_quiz()
        self.assertFailure(response, status.HTTP_403_FORBIDDEN, 'unauthorized')
        self.assertFalse(Quiz.objects.exists())

    def test_invalid_quiz_is_rejected(self):
        self.as_instructor()
        response = self.create_quiz(duration=500)
        self.assertFailure(response, status.HTTP_400_BAD_REQUEST, 'validation')
        self.assertIn('duration', response.data['error'])

    def test_publish_empty_quiz_is_invalid_state(self):
        self.as_instructor()
        quiz = make_quiz(self.instructor, status=Quiz.Status.DRAFT)
        response = self.client.post(f'/api/quizzes/{quiz.id}/publish/')
        self.assertFailure(response, status.HTTP_409_CONFLICT, 'invalid_state')

    def test_unknown_quiz_not_found(self):
        self.as_instructor()
        response = self.client.get('/api/quizzes/00000000-0000-0000-0000-000000000000/')
        self.assertFailure(response, status.HTTP_404_NOT_FOUND, 'not_found')

    def test_delete_quiz(self):
        self.as_instructor()
        quiz = make_quiz(self.instructor, status=Quiz.Status.DRAFT)
        response = self.client.delete(f'/api/quizzes/{quiz.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        response = self.client.get('/api/quizzes/')
        self.assertEqual(response.data['data']['count'], 0)

    def test_delete_question(self):
        self.as_instructor()
        quiz = make_quiz(self.instructor)
        question, _ = add_choice_question(quiz, 2, order=1)
        add_choice_question(quiz, 3, order=2)
        response = self.client.delete(f'/api/questions/{question.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['total_points'], '3.00')

    def test_student_list_and_detail_hide_answers(self):
        quiz = make_quiz(self.instructor)
        add_choice_question(quiz, 2)
        make_quiz(self.instructor, title='Draft', status=Quiz.Status.DRAFT)

        self.as_student()
        response = self.client.get('/api/quizzes/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']['results']
        self.assertEqual([q['id'] for q in results], [str(quiz.id)])
        self.assertEqual(results[0]['question_count'], 1)

        response = self.client.get(f'/api/quizzes/{quiz.id}/')
        question = response.data['data']['questions'][0]
        self.assertNotIn('explanation', question)
        self.assertTrue(all('is_correct' not in option for option in question['options']))

    def test_offerings_are_listed(self):
        CourseOffering.objects.create(code='CS101-A', course_code='CS101', course_name='Intro to CS')
        self.as_student()
        response = self.client.get('/api/offerings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['results'][0]['code'], 'CS101-A')


class AttemptApiTests(ApiTestCase):
    """The attempt lifecycle over HTTP."""

    def setUp(self):
        super().setUp()
        self.quiz = make_quiz(self.instructor)
        self.choice, self.options = add_choice_question(self.quiz, 2, order=1)
        self.short = add_short_question(self.quiz, 3, order=2)

    def start(self):
        response = self.client.post(f'/api/quizzes/{self.quiz.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response.data['data']

    def answer(self, attempt_id, **payload):
        return self.client.post(f'/api/attempts/{attempt_id}/answers/', payload, format='json')

    def test_full_attempt_with_manual_grading(self):
        self.as_student()
        attempt = self.start()
        self.assertEqual(attempt['status'], 'in_progress')
        self.assertEqual(len(attempt['questions']), 2)
        self.assertIsNotNone(attempt['time_remaining'])

        response = self.answer(attempt['id'], question_id=str(self.choice.id), selected_option_id=str(self.options['A'].id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['data']['is_correct'])
        response = self.answer(attempt['id'], question_id=str(self.short.id), text_answer='It wraps a function.')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'submitted')
        self.assertEqual(response.data['data']['score'], '2.00')

        self.as_instructor()
        response = self.client.get('/api/answers/pending/')
        pending = response.data['data']['results']
        self.assertEqual(len(pending), 1)

        response = self.client.post(
            f"/api/answers/{pending[0]['id']}/grade/", {'points_earned': '3', 'feedback': 'Correct.'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['points_earned'], '3.00')

        response = self.client.get(f"/api/attempts/{attempt['id']}/")
        self.assertEqual(response.data['data']['status'], 'graded')
        self.assertEqual(response.data['data']['percentage'], '100.00')
        self.assertTrue(response.data['data']['passed'])

    def test_start_twice_returns_same_attempt(self):
        self.as_student()
        self.assertEqual(self.start()['id'], self.start()['id'])

    def test_start_after_submit_is_conflict(self):
        self.as_student()
        attempt = self.start()
        self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        response = self.client.post(f'/api/quizzes/{self.quiz.id}/start/')
        self.assertFailure(response, status.HTTP_409_CONFLICT, 'conflict')

    def test_second_submit_is_invalid_state(self):
        self.as_student()
        attempt = self.start()
        self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        response = self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        self.assertFailure(response, status.HTTP_409_CONFLICT, 'invalid_state')

    def test_start_outside_window(self):
        self.quiz.end_time = timezone.now() - timedelta(minutes=1)
        self.quiz.save()
        self.as_student()
        response = self.client.post(f'/api/quizzes/{self.quiz.id}/start/')
        self.assertFailure(response, status.HTTP_409_CONFLICT, 'out_of_window')

    def test_instructor_cannot_start(self):
        self.as_instructor()
        response = self.client.post(f'/api/quizzes/{self.quiz.id}/start/')
        self.assertFailure(response, status.HTTP_403_FORBIDDEN, 'unauthorized')

    def test_answer_requires_option_or_text(self):
        self.as_student()
        attempt = self.start()
        response = self.answer(attempt['id'], question_id=str(self.choice.id))
        self.assertFailure(response, status.HTTP_400_BAD_REQUEST, 'validation')

    def test_answer_with_foreign_option(self):
        _, other_options = add_choice_question(self.quiz, 1, order=3)
        self.as_student()
        attempt = self.start()
        response = self.answer(attempt['id'], question_id=str(self.choice.id), selected_option_id=str(other_options['A'].id))
        self.assertFailure(response, status.HTTP_400_BAD_REQUEST, 'validation')

    def test_other_student_cannot_see_attempt(self):
        self.as_student()
        attempt = self.start()
        intruder = make_user('intruder')
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {Token.objects.create(user=intruder).key}')
        response = self.client.get(f"/api/attempts/{attempt['id']}/")
        self.assertFailure(response, status.HTTP_404_NOT_FOUND, 'not_found')

    def test_hidden_results_are_masked_until_graded(self):
        self.quiz.show_results = False
        self.quiz.save()
        self.as_student()
        attempt = self.start()

        response = self.answer(attempt['id'], question_id=str(self.choice.id), selected_option_id=str(self.options['A'].id))
        self.assertIsNone(response.data['data']['is_correct'])
        self.assertIsNone(response.data['data']['points_earned'])

        response = self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        data = response.data['data']
        self.assertEqual(data['status'], 'submitted')
        self.assertIsNone(data['score'])
        self.assertIsNone(data['answers'][0]['is_correct'])

    def test_grades_hidden_while_attempt_in_progress(self):
        self.as_student()
        attempt = self.start()

        for label in ('C', 'B', 'A'):
            response = self.answer(
                attempt['id'], question_id=str(self.choice.id), selected_option_id=str(self.options[label].id)
            )
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertIsNone(response.data['data']['is_correct'])
            self.assertIsNone(response.data['data']['points_earned'])
            self.assertIsNone(response.data['data']['feedback'])

        response = self.client.get(f"/api/attempts/{attempt['id']}/")
        data = response.data['data']
        self.assertEqual(data['status'], 'in_progress')
        self.assertEqual(len(data['answers']), 1)
        self.assertIsNone(data['answers'][0]['is_correct'])
        self.assertIsNone(data['answers'][0]['points_earned'])
        self.assertIsNone(data['score'])

        response = self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        data = response.data['data']
        self.assertEqual(data['status'], 'submitted')
        self.assertEqual(data['score'], '2.00')
        self.assertTrue(data['answers'][0]['is_correct'])
        self.assertEqual(data['answers'][0]['points_earned'], '2.00')

    def test_instructor_sees_grades_of_open_attempt(self):
        self.as_student()
        attempt = self.start()
        self.answer(attempt['id'], question_id=str(self.choice.id), selected_option_id=str(self.options['A'].id))

        self.as_instructor()
        response = self.client.get(f"/api/attempts/{attempt['id']}/")
        self.assertTrue(response.data['data']['answers'][0]['is_correct'])

    def test_review_disabled_hides_answers_after_submit(self):
        self.quiz.allow_review = False
        self.quiz.save()
        self.as_student()
        attempt = self.start()
        self.answer(attempt['id'], question_id=str(self.choice.id), selected_option_id=str(self.options['A'].id))
        response = self.client.post(f"/api/attempts/{attempt['id']}/submit/")
        self.assertEqual(response.data['data']['answers'], [])

    def test_shuffled_order_is_stable_per_attempt(self):
        self.quiz.shuffle_questions = True
        self.quiz.shuffle_options = True
        self.quiz.save()
        for order in range(3, 8):
            add_choice_question(self.quiz, 1, order=order)

        self.as_student()
        first = self.start()
        second = self.start()
        self.assertEqual(
            [q['id'] for q in first['questions']],
            [q['id'] for q in second['questions']],
        )
        self.assertEqual(
            [[o['id'] for o in q['options']] for q in first['questions']],
            [[o['id'] for o in q['options']] for q in second['questions']],
        )
        self.assertEqual(
            sorted(q['id'] for q in first['questions']),
            sorted(str(q.id) for q in self.quiz.questions.all()),
        )

    def test_instructor_lists_quiz_attempts(self):
        self.as_student()
        self.start()
        self.as_instructor()
        response = self.client.get(f'/api/quizzes/{self.quiz.id}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']['results']
        self.assertEqual(results[0]['student']['username'], 'student')

    def test_student_cannot_grade(self):
        self.as_student()
        attempt = self.start()
        self.answer(attempt['id'], question_id=str(self.short.id), text_answer='Answer')
        answer = Answer.objects.get(question=self.short)
        response = self.client.post(f'/api/answers/{answer.id}/grade/', {'points_earned': '3'}, format='json')
        self.assertFailure(response, status.HTTP_403_FORBIDDEN, 'unauthorized')
