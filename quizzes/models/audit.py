from django.db import models
from django.contrib.auth.models import User


class AuditLog(models.Model):
    class EventType(models.TextChoices):
        LOGIN = 'login', 'Login'
        LOGIN_FAILED = 'login_failed', 'Login Failed'
        ATTEMPT_START = 'attempt_start', 'Attempt Started'
        ATTEMPT_SUBMIT = 'attempt_submit', 'Attempt Submitted'
        ANSWER_GRADED = 'answer_graded', 'Answer Graded'
        QUIZ_PUBLISHED = 'quiz_published', 'Quiz Published'
        PERMISSION_DENIED = 'permission_denied', 'Permission Denied'

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    event_type = models.CharField(max_length=30, choices=EventType.choices, db_index=True)
    description = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'event_type'], name='audit_user_event_idx'),
            models.Index(fields=['created_at', 'event_type'], name='audit_created_event_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} - {self.user} - {self.created_at}"

    @classmethod
    def log(cls, event_type, description, user=None, metadata=None):
        if user is not None and not user.is_authenticated:
            user = None
        return cls.objects.create(
            user=user,
            event_type=event_type,
            description=description,
            metadata=metadata or {}
        )
