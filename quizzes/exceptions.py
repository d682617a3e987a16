"""
Domain errors raised by the quiz engine services.
The API layer turns them into structured action results.
"""
from rest_framework import status


class QuizEngineError(Exception):
    code = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The action could not be completed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(QuizEngineError):
    code = 'unauthorized'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class NotFound(QuizEngineError):
    code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class InvalidState(QuizEngineError):
    code = 'invalid_state'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This action is not allowed in the current state.'


class OutOfWindow(QuizEngineError):
    code = 'out_of_window'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'The quiz is not available at this time.'


class Conflict(QuizEngineError):
    code = 'conflict'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Conflicting record.'


class Validation(QuizEngineError):
    code = 'validation'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid input.'
