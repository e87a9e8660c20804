"""Socket.IO connection and event handlers.

The server instance lives in ``tasktracker.realtime.server``; importing this
module registers the handlers on it (``config.asgi`` does so at startup).

Handshake credential, first match wins:
- ``Authorization: Bearer <access token>`` header
- ``auth: { token }``
- ``?token=<access token>`` query string
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from socketio.exceptions import ConnectionRefusedError  # noqa: A004

from tasktracker.realtime.events import tasks as task_events
from tasktracker.realtime.server import room_for_user
from tasktracker.realtime.server import sio
from tasktracker.realtime.sessions import registry
from tasktracker.tasks import services
from tasktracker.tasks.errors import TaskError
from tasktracker.users import identity
from tasktracker.users.identity import CredentialError
from tasktracker.users.identity import Identity

logger = logging.getLogger(__name__)

__all__ = ["sio"]

MSG_SERVER_ERROR = "server error"
MSG_UNEXPECTED = "Internal server error"
CODE_UNEXPECTED = "unexpected"
MSG_NOT_CONNECTED = "Not authenticated"


def _scope(environ: dict[str, Any]) -> dict[str, Any]:
    inner = environ.get("asgi.scope") if isinstance(environ, dict) else None
    return inner if isinstance(inner, dict) else environ


def _header_token(environ: dict[str, Any]) -> str | None:
    value = environ.get("HTTP_AUTHORIZATION") if isinstance(environ, dict) else None
    if not value:
        for name, raw in _scope(environ).get("headers", []) or []:
            if name.lower() == b"authorization":
                value = raw.decode("latin-1")
                break
    return identity.extract_bearer(value)


def _query_token(environ: dict[str, Any]) -> str | None:
    scope = _scope(environ)
    query_string: str | bytes = scope.get("query_string") or scope.get(
        "QUERY_STRING", ""
    )
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")
    token = parse_qs(str(query_string)).get("token", [None])[0]
    return token or None


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract the access token from the Socket.IO handshake."""

    token = _header_token(environ)
    if token:
        return token

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return identity.extract_bearer(auth_token) or auth_token

    return _query_token(environ)


async def _actor(sid: str) -> Identity | None:
    session = await sio.get_session(sid)
    if not isinstance(session, dict) or "user_id" not in session:
        return None
    return Identity(**session)


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    try:
        actor = await identity.averify(token)
    except CredentialError as exc:
        logger.info("Socket.IO connection %s refused: %s", sid, exc.kind)
        raise ConnectionRefusedError(exc.message) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        raise ConnectionRefusedError(MSG_SERVER_ERROR) from exc

    await sio.save_session(sid, actor.as_session())
    registry.register(actor.user_id, sid)
    await sio.enter_room(sid, room_for_user(actor.user_id))
    logger.info("User %s connected (sid=%s)", actor.user_id, sid)


@sio.event
async def disconnect(sid: str, *args):
    # python-socketio >= 5.12 passes a disconnect reason.
    actor = await _actor(sid)
    if actor is None:
        return
    registry.unregister(actor.user_id, sid)
    logger.info("User %s disconnected (sid=%s)", actor.user_id, sid)


async def _run_mutation(sid: str, handler, plan, *args) -> None:
    """Run a mutation handler for the socket's user and emit its outcome."""

    actor = await _actor(sid)
    if actor is None:
        await task_events.deliver(
            task_events.plan_task_error(MSG_NOT_CONNECTED, "not_authenticated", sid)
        )
        return

    try:
        result = await database_sync_to_async(handler)(actor, *args)
    except TaskError as exc:
        events = task_events.plan_task_error(exc.message, exc.code, sid)
    except Exception:
        logger.exception("Socket.IO %s failed for user %s", handler.__name__, actor.user_id)
        events = task_events.plan_task_error(MSG_UNEXPECTED, CODE_UNEXPECTED, sid)
    else:
        events = plan(result, actor, origin_sid=sid)
    await task_events.deliver(events)


def _task_id(data: Any) -> Any:
    if isinstance(data, dict):
        for key in ("taskId", "task_id", "_id", "id"):
            if key in data:
                return data[key]
        return None
    return data


@sio.event
async def create_task(sid: str, data: Any):
    await _run_mutation(
        sid, services.create_task, task_events.plan_task_created, data
    )


@sio.event
async def update_task(sid: str, data: Any):
    changes = data if isinstance(data, dict) else {}
    await _run_mutation(
        sid,
        services.update_task,
        task_events.plan_task_updated,
        _task_id(data),
        changes,
    )


@sio.event
async def delete_task(sid: str, data: Any):
    await _run_mutation(
        sid, services.delete_task, task_events.plan_task_deleted, _task_id(data)
    )


@sio.on("task_updated")
async def task_updated(sid: str, data: Any):
    """Legacy path: a client rebroadcasts a task it already changed."""

    actor = await _actor(sid)
    if actor is None:
        return
    task = data.get("task", data) if isinstance(data, dict) else data
    await task_events.deliver(task_events.plan_task_rebroadcast(task, actor))
