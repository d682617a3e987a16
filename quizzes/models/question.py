import uuid
from decimal import Decimal

from django.db import models
from django.core.validators import MinLengthValidator, MinValueValidator


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = 'multiple_choice', 'Multiple Choice'
        TRUE_FALSE = 'true_false', 'True/False'
        SHORT_ANSWER = 'short_answer', 'Short Answer'

    class Difficulty(models.TextChoices):
        EASY = 'easy', 'Easy'
        MEDIUM = 'medium', 'Medium'
        HARD = 'hard', 'Hard'

    OPTION_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quiz = models.ForeignKey(
        'Quiz',
        on_delete=models.CASCADE,
        related_name='questions',
        db_index=True
    )
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        db_index=True
    )
    difficulty = models.CharField(
        max_length=10,
        choices=Difficulty.choices,
        default=Difficulty.MEDIUM
    )
    text = models.TextField(validators=[MinLengthValidator(3)])
    explanation = models.TextField(blank=True)
    points = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('1.00'),
        validators=[MinValueValidator(Decimal('0.5'))]
    )
    order = models.PositiveIntegerField(default=0)
    is_ai_generated = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['order', 'created_at']
        indexes = [
            models.Index(fields=['quiz', 'order'], name='question_quiz_order_idx'),
        ]

    def __str__(self):
        return f"Q{self.order}: {self.text[:50]}..."

    @property
    def uses_options(self):
        return self.question_type in self.OPTION_TYPES


class Option(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    question = models.ForeignKey(
        'Question',
        on_delete=models.CASCADE,
        related_name='options',
        db_index=True
    )
    text = models.CharField(max_length=500)
    is_correct = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order']

    def __str__(self):
        return self.text
