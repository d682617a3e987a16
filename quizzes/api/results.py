"""
Structured action results.

Every API response is {"success": true, "data": ...} or
{"success": false, "error": "...", "code": "..."}; errors never cross the API
boundary as raw faults.
"""
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from quizzes.exceptions import QuizEngineError


def failure(message, code, status_code):
    return Response({'success': False, 'error': message, 'code': code}, status=status_code)


def action_result_exception_handler(exc, context):
    if isinstance(exc, QuizEngineError):
        return failure(exc.message, exc.code, exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        code = 'validation'
        message = _first_message(exc.detail)
    elif isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = 'unauthenticated'
        message = str(exc.detail)
    elif isinstance(exc, exceptions.PermissionDenied):
        code = 'unauthorized'
        message = str(exc.detail)
    elif response.status_code == 404:
        code = 'not_found'
        message = 'Not found.'
    elif isinstance(exc, exceptions.Throttled):
        code = 'throttled'
        message = str(exc.detail)
    else:
        code = 'error'
        message = str(getattr(exc, 'detail', exc))

    response.data = {'success': False, 'error': message, 'code': code}
    return response


def _first_message(detail):
    if isinstance(detail, dict) and detail:
        field, value = next(iter(detail.items()))
        message = _first_message(value)
        if field in ('non_field_errors', '__all__'):
            return message
        return f"{field}: {message}"
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


class ActionResultMixin:
    """Wraps successful view responses in the action result envelope."""

    def finalize_response(self, request, response, *args, **kwargs):
        if isinstance(response, Response) and not response.exception and response.status_code < 400:
            data = response.data
            if not (isinstance(data, dict) and 'success' in data):
                response.data = {'success': True, 'data': data}
        return super().finalize_response(request, response, *args, **kwargs)
