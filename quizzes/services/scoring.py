"""
Attempt aggregate computation shared by submission and manual grading.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

from quizzes.models import QuizAttempt

TWO_PLACES = Decimal('0.01')


@dataclass
class AttemptAggregate:
    score: Decimal
    percentage: Decimal
    all_graded: bool


def calculate_percentage(score, total_points) -> Decimal:
    # Zero-point quizzes score against a denominator of 1
    denominator = max(Decimal(total_points or 0), Decimal('1'))
    percentage = Decimal(score) / denominator * 100
    return percentage.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def aggregate_answers(answers, total_points) -> AttemptAggregate:
    score = sum((a.points_earned or Decimal('0') for a in answers), Decimal('0'))
    return AttemptAggregate(
        score=score.quantize(TWO_PLACES),
        percentage=calculate_percentage(score, total_points),
        all_graded=all(a.points_earned is not None for a in answers),
    )


def recompute_attempt(attempt, fully_graded=None, now=None) -> AttemptAggregate:
    """
    Recompute score, percentage and status of `attempt` from all its answers
    and save it. The caller must hold the attempt row lock.

    `fully_graded` overrides the answers' own grading state; when omitted the
    attempt is graded once every answer carries points.
    """
    now = now or timezone.now()
    answers = list(attempt.answers.all())
    total_points = attempt.quiz.compute_total_points()
    aggregate = aggregate_answers(answers, total_points)

    if fully_graded is None:
        fully_graded = aggregate.all_graded

    attempt.score = aggregate.score
    attempt.percentage = aggregate.percentage
    if fully_graded:
        attempt.status = QuizAttempt.Status.GRADED
        attempt.graded_at = now
    else:
        attempt.status = QuizAttempt.Status.SUBMITTED
        attempt.graded_at = None
    attempt.save(update_fields=['score', 'percentage', 'status', 'graded_at', 'submitted_at'])
    return aggregate
