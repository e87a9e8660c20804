"""Global Socket.IO server for the frontend.

This module only owns the server instance and room naming. Connection and
event handlers live in ``tasktracker.realtime.socketio``; domain publishers
live in ``tasktracker.realtime.events``.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: settings.SOCKETIO_PATH (default ``/ws/tasks/``)
- Auth: ``Authorization: Bearer <access token>`` header, ``auth.token`` or
  ``query.token``
"""

from __future__ import annotations

import socketio
from django.conf import settings

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=getattr(settings, "SOCKETIO_CORS_ALLOWED_ORIGINS", "*"),
    logger=False,
    engineio_logger=False,
)


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"
