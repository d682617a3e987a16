from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError

from quizzes.exceptions import NotFound, Validation


def fetch(queryset, message, **lookup):
    """Get one row or raise NotFound. Malformed identifiers count as missing."""
    try:
        return queryset.get(**lookup)
    except (ObjectDoesNotExist, ValueError, DjangoValidationError):
        raise NotFound(message)


def validate_model(instance, exclude=None):
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as exc:
        raise Validation(first_error(exc))


def first_error(exc):
    if hasattr(exc, 'message_dict'):
        field, messages = next(iter(exc.message_dict.items()))
        if field == '__all__':
            return messages[0]
        return f"{field}: {messages[0]}"
    return exc.messages[0]
