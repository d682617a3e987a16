import logging

from rest_framework import permissions

from quizzes.exceptions import Unauthorized

logger = logging.getLogger(__name__)


QUIZ_VIEW = 'quiz.view'
QUIZ_CREATE = 'quiz.create'
QUIZ_EDIT = 'quiz.edit'
QUIZ_PUBLISH = 'quiz.publish'
QUIZ_DELETE = 'quiz.delete'
QUIZ_TAKE = 'quiz.take'
QUIZ_GRADE = 'quiz.grade'

ALL_PERMISSIONS = frozenset([
    QUIZ_VIEW, QUIZ_CREATE, QUIZ_EDIT, QUIZ_PUBLISH, QUIZ_DELETE, QUIZ_TAKE, QUIZ_GRADE,
])

ROLE_PERMISSIONS = {
    'student': frozenset([QUIZ_VIEW, QUIZ_TAKE]),
    'instructor': frozenset([QUIZ_VIEW, QUIZ_CREATE, QUIZ_EDIT, QUIZ_PUBLISH, QUIZ_DELETE, QUIZ_GRADE]),
    'admin': ALL_PERMISSIONS,
}


def get_permissions(user):
    if user is None or not user.is_authenticated:
        return frozenset()
    if user.is_superuser or user.is_staff:
        return ALL_PERMISSIONS
    if not hasattr(user, 'profile'):
        return frozenset()
    return ROLE_PERMISSIONS.get(user.profile.role, frozenset())


def has_permission(user, code):
    return code in get_permissions(user)


def authorize(user, code):
    """Raise Unauthorized unless `user` holds the permission `code`."""
    if not has_permission(user, code):
        _log_denied(user, code)
        raise Unauthorized()


def _log_denied(user, code):
    # Imported here so models never depend on this module at import time
    from quizzes.models import AuditLog
    logger.warning(f"Permission {code} denied for {getattr(user, 'username', None)}")
    AuditLog.log(
        event_type=AuditLog.EventType.PERMISSION_DENIED,
        description=f"Denied: {code}",
        user=user,
        metadata={'permission': code}
    )


class HasQuizPermission(permissions.BasePermission):
    """
    Gate a viewset action on the permission code(s) in `view.permission_codes`.
    A tuple of codes means any one of them is enough.
    """
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        codes = getattr(view, 'permission_codes', {}).get(view.action)
        if not codes:
            return True
        if isinstance(codes, str):
            codes = (codes,)
        if any(has_permission(request.user, code) for code in codes):
            return True
        _log_denied(request.user, codes[0])
        return False
