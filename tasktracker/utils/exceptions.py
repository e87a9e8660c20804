"""DRF exception handler producing the ``{success, message, errors}`` envelope."""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from tasktracker.tasks.errors import TaskError
from tasktracker.utils.responses import error_body

logger = logging.getLogger(__name__)

MSG_SERVER_ERROR = "Internal server error"
MSG_INVALID_DATA = "Invalid data"


def _first_code(exc: APIException) -> str | None:
    codes = exc.get_codes()
    if isinstance(codes, str):
        return codes
    if isinstance(codes, dict) and isinstance(codes.get("detail"), str):
        return codes["detail"]
    return None


def api_exception_handler(exc, context):
    if isinstance(exc, TaskError):
        return Response(
            error_body(exc.message, code=exc.code, errors=exc.errors),
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception(
            "Unhandled error in %s", type(view).__name__ if view else "API",
            exc_info=exc,
        )
        return Response(
            error_body(MSG_SERVER_ERROR, code="unexpected"),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        response.data = error_body(
            MSG_INVALID_DATA, code="validation_error", errors=response.data
        )
        return response

    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    response.data = error_body(
        str(detail) if detail else str(exc),
        code=_first_code(exc),
    )
    return response
