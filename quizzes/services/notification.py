"""
Notification Service for quiz result emails.
Delivery is best effort: failures are logged and never fail the action.
"""
from django.core.mail import send_mail
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    FROM_EMAIL = getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@university.local')

    @classmethod
    def _enabled(cls):
        return getattr(settings, 'QUIZ_ENGINE', {}).get('NOTIFY_ON_GRADE', True)

    @classmethod
    def _send_email(cls, subject, message, recipient_list):
        try:
            send_mail(
                subject=subject,
                message=message,
                from_email=cls.FROM_EMAIL,
                recipient_list=recipient_list,
                fail_silently=False
            )
            logger.info(f"Email sent to {recipient_list}: {subject}")
            return True
        except Exception as e:
            logger.error(f"Email send failed to {recipient_list}: {e}")
            return False

    @classmethod
    def send_attempt_graded(cls, attempt):
        """Tell the student their attempt has a final grade."""
        student = attempt.student
        quiz = attempt.quiz
        if not cls._enabled() or not student.email:
            return False

        subject = f"Your result for {quiz.title}"
        message = f"""
Hello {student.get_full_name() or student.username},

Your attempt on "{quiz.title}" has been graded.
"""
        if quiz.show_results:
            message += f"""
Score: {attempt.score} / {quiz.total_points}
Percentage: {attempt.percentage}%
Status: {'Passed' if attempt.passed else 'Not passed'}
"""
        message += """
Log in to the university portal to see the details.
"""
        return cls._send_email(subject, message, [student.email])

    @classmethod
    def send_grading_required(cls, attempt):
        """Tell the quiz creator that an attempt waits for manual grading."""
        quiz = attempt.quiz
        creator = quiz.creator
        if not cls._enabled() or creator is None or not creator.email:
            return False

        pending = attempt.answers.filter(points_earned__isnull=True).count()
        subject = f"Grading required: {quiz.title}"
        message = f"""
Hello {creator.get_full_name() or creator.username},

{attempt.student.get_full_name() or attempt.student.username} submitted "{quiz.title}".
{pending} answer(s) need manual grading before the attempt can be finalized.
"""
        return cls._send_email(subject, message, [creator.email])
