"""
Error kinds raised by the signing services.

Services raise these directly; DRF turns them into responses, and
``signing_exception_handler`` gives them the ``{"error": ..., "code": ...}``
shape the rest of the API uses.
"""

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class SigningError(APIException):
    """Base class for signing and lifecycle failures."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Signing request failed.'
    default_code = 'signing_error'


class NotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class Forbidden(SigningError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have access to this document.'
    default_code = 'forbidden'


class Expired(SigningError):
    status_code = status.HTTP_410_GONE
    default_detail = 'Signature link has expired.'
    default_code = 'expired'


class Conflict(SigningError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This signature request has already been processed.'
    default_code = 'conflict'


class InvalidInput(SigningError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid_input'


class RenderFailure(SigningError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'The document could not be rendered.'
    default_code = 'render_failure'


def signing_exception_handler(exc, context):
    """DRF exception handler flattening SigningError payloads."""
    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, SigningError):
        response.data = {
            'error': str(exc.detail),
            'code': exc.get_codes(),
        }
    return response
