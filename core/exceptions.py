from django.db import InterfaceError, OperationalError
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("marketplace")


class TransientFailure(APIException):
    """
    Infrastructure fault (store or storage unreachable).

    The only error kind a caller should retry, with backoff.
    """
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable. Please retry."
    default_code = "transient_failure"


def _error_code(exc, response):
    codes = getattr(exc, "get_codes", None)
    if codes is None:
        return "error"
    value = codes()
    if isinstance(value, str):
        return value
    return "invalid" if response.status_code == status.HTTP_400_BAD_REQUEST else "error"


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.warning("Database unavailable, surfacing as transient failure: %s", exc)
        exc = TransientFailure()

    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        body = {
            "success": False,
            "status_code": response.status_code,
            "code": _error_code(exc, response),
            "errors": response.data,
        }
        current_status = getattr(exc, "current_status", None)
        if current_status is not None:
            body["current_status"] = current_status
        return Response(body, status=response.status_code, headers=_retry_headers(exc))

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "code": "error",
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _retry_headers(exc):
    if isinstance(exc, TransientFailure):
        return {"Retry-After": "5"}
    return None
