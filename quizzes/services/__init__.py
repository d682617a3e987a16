from .quiz_builder import QuizBuilder
from .attempt_engine import AttemptEngine
from .grading_coordinator import GradingCoordinator
from .notification import NotificationService

__all__ = [
    'QuizBuilder', 'AttemptEngine', 'GradingCoordinator', 'NotificationService',
]
