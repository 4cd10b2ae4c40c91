"""Small helpers for the error bodies returned by KorX views."""

from rest_framework import status
from rest_framework.response import Response


def error_response(message, status_code=status.HTTP_400_BAD_REQUEST, **extra):
    """Return ``{"error": message, ...extra}`` with the given status."""
    body = {'error': message}
    body.update(extra)
    return Response(body, status=status_code)


def message_response(message, status_code=status.HTTP_200_OK, **extra):
    """Return ``{"message": message, ...extra}`` with the given status."""
    body = {'message': message}
    body.update(extra)
    return Response(body, status=status_code)


def first_error(errors):
    """
    Pull the first readable message out of serializer errors.

    ``{'phone': ['Phone number is required']}`` → ``"Phone number is required"``
    """
    if isinstance(errors, dict):
        for messages in errors.values():
            return first_error(messages)
        return ''
    if isinstance(errors, (list, tuple)):
        return first_error(errors[0]) if errors else ''
    return str(errors)
