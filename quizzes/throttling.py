from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class AnswerRateThrottle(UserRateThrottle):
    """Rate limit for saving individual answers while an attempt is open."""
    scope = 'answer'


class SubmissionRateThrottle(UserRateThrottle):
    """Strict rate limit for final attempt submissions."""
    scope = 'submission'


class GradingRateThrottle(UserRateThrottle):
    """Burst protection for manual grading."""
    scope = 'grading'


class AuthRateThrottle(AnonRateThrottle):
    """Strict rate limit for token login to slow down credential guessing."""
    scope = 'auth'
