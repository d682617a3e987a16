import uuid
from django.db import models


class CourseOffering(models.Model):
    """A course section in a semester. Maintained by the academic catalog."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=30, unique=True, db_index=True)
    course_code = models.CharField(max_length=20)
    course_name = models.CharField(max_length=200)
    semester_name = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.course_name}"
