import uuid
from datetime import timedelta

from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone


class QuizAttempt(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In Progress'
        SUBMITTED = 'submitted', 'Submitted'
        GRADED = 'graded', 'Graded'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='quiz_attempts',
        db_index=True
    )
    quiz = models.ForeignKey(
        'Quiz',
        on_delete=models.CASCADE,
        related_name='attempts',
        db_index=True
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.IN_PROGRESS,
        db_index=True
    )

    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    graded_at = models.DateTimeField(null=True, blank=True)

    score = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ['-started_at']
        indexes = [
            models.Index(fields=['quiz', 'status'], name='attempt_quiz_status_idx'),
            models.Index(fields=['student', 'status'], name='attempt_student_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['quiz', 'student'],
                name='unique_quiz_student_attempt'
            )
        ]

    def __str__(self):
        return f"{self.student.username} - {self.quiz.title} ({self.status})"

    @property
    def is_in_progress(self):
        return self.status == self.Status.IN_PROGRESS

    @property
    def passed(self):
        if self.status != self.Status.GRADED or self.percentage is None:
            return None
        return self.percentage >= self.quiz.passing_score

    @property
    def time_remaining(self):
        """Seconds left on the informational timer, None once submitted."""
        if not self.is_in_progress:
            return None
        deadline = self.started_at + timedelta(minutes=self.quiz.duration)
        return max(0, int((deadline - timezone.now()).total_seconds()))
