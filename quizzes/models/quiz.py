import uuid
from decimal import Decimal

from django.db import models
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MinLengthValidator, MinValueValidator, MaxValueValidator
from django.utils import timezone


class QuizQuerySet(models.QuerySet):
    def active(self):
        return self.filter(record_state=Quiz.RecordState.ACTIVE)


class Quiz(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PUBLISHED = 'published', 'Published'
        CLOSED = 'closed', 'Closed'

    class RecordState(models.TextChoices):
        ACTIVE = 'active', 'Active'
        DELETED = 'deleted', 'Deleted'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=300, validators=[MinLengthValidator(2)])
    description = models.TextField(blank=True)
    offering = models.ForeignKey(
        'CourseOffering',
        on_delete=models.CASCADE,
        related_name='quizzes',
        null=True,
        blank=True,
        db_index=True
    )
    creator = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_quizzes'
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True
    )
    duration = models.PositiveIntegerField(
        help_text="Minutes",
        validators=[MinValueValidator(5), MaxValueValidator(300)]
    )
    total_points = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('0'))
    passing_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('60.00'),
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    shuffle_questions = models.BooleanField(default=False)
    shuffle_options = models.BooleanField(default=False)
    show_results = models.BooleanField(default=True)
    allow_review = models.BooleanField(default=True)

    # Window in which attempts may be started
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    record_state = models.CharField(
        max_length=10,
        choices=RecordState.choices,
        default=RecordState.ACTIVE,
        db_index=True
    )
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    published_at = models.DateTimeField(null=True, blank=True)

    objects = QuizQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'quizzes'
        indexes = [
            models.Index(fields=['status', 'record_state'], name='quiz_status_state_idx'),
            models.Index(fields=['offering', 'status'], name='quiz_offering_status_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError("The end time must be after the start time.")

    def compute_total_points(self):
        return self.questions.aggregate(total=models.Sum('points'))['total'] or Decimal('0')

    def refresh_total_points(self):
        """Recompute and persist total_points from the current question set."""
        self.total_points = self.compute_total_points()
        self.save(update_fields=['total_points', 'updated_at'])
        return self.total_points

    def next_question_order(self):
        last = self.questions.aggregate(last=models.Max('order'))['last']
        return (last or 0) + 1

    def window_error(self, now=None):
        """Return a message when `now` is outside the start window, else None."""
        now = now or timezone.now()
        if self.start_time and now < self.start_time:
            return "The quiz has not started yet."
        if self.end_time and now > self.end_time:
            return "The quiz time has ended."
        return None

    def mark_deleted(self):
        self.record_state = self.RecordState.DELETED
        self.deleted_at = timezone.now()
        self.save(update_fields=['record_state', 'deleted_at', 'updated_at'])
