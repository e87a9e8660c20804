from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response


def success_response(
    data: Any = None,
    *,
    message: str = "",
    status: int = http_status.HTTP_200_OK,
    **extra: Any,
) -> Response:
    """Wrap ``data`` in the ``{success, message, data}`` envelope."""

    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return Response(body, status=status)


def error_body(
    message: str,
    *,
    code: str | None = None,
    errors: Any = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return body
