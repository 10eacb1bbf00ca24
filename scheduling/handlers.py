"""DRF exception handler mapping domain errors to HTTP responses.

Handlers never expose internal error details: only the error code and the
user-safe message are returned.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import ConflictError, DomainError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _status_for(error: DomainError) -> int:
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def domain_exception_handler(exc, context):
    """Render DomainError subclasses; defer everything else to DRF."""
    if isinstance(exc, DomainError):
        http_status = _status_for(exc)
        logger.info("Request rejected with %s (%s)", exc.code.value, http_status)
        return Response(
            {'code': exc.code.value, 'error': exc.message},
            status=http_status,
        )

    return exception_handler(exc, context)
