from .offering import CourseOffering
from .quiz import Quiz
from .question import Question, Option
from .attempt import QuizAttempt
from .answer import Answer
from .audit import AuditLog
from .user_profile import UserProfile

__all__ = [
    'CourseOffering', 'Quiz', 'Question', 'Option', 'QuizAttempt', 'Answer',
    'AuditLog', 'UserProfile',
]
