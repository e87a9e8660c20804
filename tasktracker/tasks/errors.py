"""Typed failures of the task mutation handlers.

Each error knows its wire ``code`` and the HTTP status the REST adapter
answers with; the Socket.IO adapter sends the same ``message`` and ``code``
in a ``task_error`` event to the originating connection.
"""

from __future__ import annotations

from typing import Any


class TaskError(Exception):
    code = "error"
    status_code = 400
    default_message = "Task operation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(TaskError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid data"


class InvalidReference(TaskError):
    code = "invalid_reference"
    status_code = 400
    default_message = "Assigned user not found"


class Forbidden(TaskError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(TaskError):
    code = "not_found"
    status_code = 404
    default_message = "Task not found"
