import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import TemplateServiceError

logger = logging.getLogger(__name__)


def envelope_response(data=None, message: str = "", error: str = None, meta: dict = None):
    """Wrap a template registry result or failure for the wire.

    ``error`` carries a ``TemplateServiceError.error_code`` (or a DRF code);
    its presence marks the envelope as unsuccessful, so views never pass
    ``success`` themselves. ``meta`` holds listing totals, affected languages
    or field-level validation errors.
    """
    return {
        "success": error is None,
        "data": data,
        "error": error,
        "message": message,
        "meta": meta or {},
    }


def envelope_exception_handler(exc, context):
    """DRF exception handler that wraps every failure in the response envelope."""
    if isinstance(exc, TemplateServiceError):
        if exc.status_code >= 500:
            logger.error("Request failed with %s: %s", exc.error_code, exc.message)
        return Response(
            envelope_response(message=exc.message, error=exc.error_code),
            status=exc.status_code,
        )

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            envelope_response(message="Invalid request", error="invalid_input",
                              meta={"errors": exc.detail}),
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None
    detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
    code = getattr(exc, "default_code", "error")
    response.data = envelope_response(message=str(detail), error=code)
    return response
