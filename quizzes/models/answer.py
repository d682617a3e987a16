import uuid

from django.db import models
from django.contrib.auth.models import User


class Answer(models.Model):
    class GradingMethod(models.TextChoices):
        AUTO_OBJECTIVE = 'auto_objective', 'Auto-graded'
        PENDING_MANUAL = 'pending_manual', 'Awaiting Manual Grading'
        MANUAL_REVIEW = 'manual_review', 'Manually Graded'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    attempt = models.ForeignKey(
        'QuizAttempt',
        on_delete=models.CASCADE,
        related_name='answers',
        db_index=True
    )
    question = models.ForeignKey(
        'Question',
        on_delete=models.CASCADE,
        related_name='answers',
        db_index=True
    )

    selected_option = models.ForeignKey(
        'Option',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='answers'
    )
    text_answer = models.TextField(null=True, blank=True)

    # None means not graded yet
    points_earned = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    is_correct = models.BooleanField(null=True)
    feedback = models.TextField(blank=True)
    grading_method = models.CharField(max_length=20, choices=GradingMethod.choices, blank=True)
    graded_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='graded_answers'
    )
    answered_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['question__order']
        indexes = [
            models.Index(fields=['attempt', 'question'], name='answer_attempt_question_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['attempt', 'question'],
                name='unique_attempt_question'
            )
        ]

    def __str__(self):
        return f"Answer to Q{self.question.order} by {self.attempt.student.username}"
