"""Task publishers: turn a mutation result into outbound Socket.IO events.

Two independent classes of message go out for every mutation:

1. list-sync fan-out to every connection (``new_task``, ``task_updated``,
   ``task_deleted``) so each client keeps its task list current;
2. targeted ``task_notification`` toasts to the affected user(s) only, plus
   an echo to the connection that issued the mutation.

Planning is pure (``plan_*`` return ``OutboundEvent`` lists); ``deliver``
does the emitting. Targeted sends to users without a live session are
dropped: there is no queue and no retry.

The ``publish_*`` functions and ``send_notification_to_user`` are the sync
entry points other apps call; the latter is the generic ``notification``
channel for messages that are not tied to a task mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from asgiref.sync import async_to_sync
from django.utils import timezone

from tasktracker.realtime.server import room_for_user
from tasktracker.realtime.server import sio
from tasktracker.realtime.sessions import registry as default_registry

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

    from socketio import AsyncServer

    from tasktracker.realtime.sessions import SessionRegistry
    from tasktracker.tasks.services import TaskCreated
    from tasktracker.tasks.services import TaskDeleted
    from tasktracker.tasks.services import TaskUpdated
    from tasktracker.users.identity import Identity

logger = logging.getLogger(__name__)

__all__ = [
    "BROADCAST",
    "OutboundEvent",
    "Sid",
    "UserRoom",
    "deliver",
    "plan_task_created",
    "plan_task_deleted",
    "plan_task_error",
    "plan_task_rebroadcast",
    "plan_task_updated",
    "publish_task_created",
    "publish_task_deleted",
    "publish_task_updated",
    "send_notification_to_user",
]

EVENT_TASK_CREATED = "task_created"
EVENT_NEW_TASK = "new_task"
EVENT_TASK_UPDATED = "task_updated"
EVENT_TASK_DELETED = "task_deleted"
EVENT_TASK_ERROR = "task_error"
EVENT_TASK_NOTIFICATION = "task_notification"
EVENT_NOTIFICATION = "notification"

NOTIFY_CREATED = "task_created"
NOTIFY_UPDATED = "task_updated"
NOTIFY_ASSIGNED = "task_assigned"
NOTIFY_UNASSIGNED = "task_unassigned"
NOTIFY_DELETED = "task_deleted"


@dataclass(frozen=True)
class Broadcast:
    """Every active connection."""


@dataclass(frozen=True)
class UserRoom:
    """Every connection of one user (room ``user_<id>``)."""

    user_id: int


@dataclass(frozen=True)
class Sid:
    """One connection."""

    sid: str


Target = Broadcast | UserRoom | Sid

BROADCAST = Broadcast()


@dataclass(frozen=True)
class OutboundEvent:
    event: str
    payload: dict[str, Any]
    target: Target


def _now() -> str:
    return timezone.now().isoformat()


def _echo(events: list[OutboundEvent], origin_sid: str | None, event, payload):
    # Only socket-originated mutations get an echo; over REST the HTTP
    # response is the actor's feedback.
    if origin_sid is not None:
        events.append(OutboundEvent(event, payload, Sid(origin_sid)))


def _to_user(
    events: list[OutboundEvent], user_id: int | None, event: str, payload
) -> None:
    if user_id is not None:
        events.append(OutboundEvent(event, payload, UserRoom(int(user_id))))


def plan_task_created(
    result: TaskCreated,
    actor: Identity,
    *,
    origin_sid: str | None = None,
) -> list[OutboundEvent]:
    timestamp = _now()
    created_by = actor.display()
    notification = {
        "type": NOTIFY_CREATED,
        "task": result.data,
        "createdBy": created_by,
        "timestamp": timestamp,
    }

    events: list[OutboundEvent] = []
    _echo(
        events,
        origin_sid,
        EVENT_TASK_CREATED,
        {"task": result.data, "timestamp": timestamp},
    )
    events.append(
        OutboundEvent(
            EVENT_NEW_TASK,
            {
                "type": EVENT_NEW_TASK,
                "task": result.data,
                "createdBy": created_by,
                "timestamp": timestamp,
            },
            BROADCAST,
        )
    )
    _to_user(events, result.assignee_id, EVENT_TASK_NOTIFICATION, notification)
    _echo(events, origin_sid, EVENT_TASK_NOTIFICATION, notification)
    return events


def plan_task_updated(
    result: TaskUpdated,
    actor: Identity,
    *,
    origin_sid: str | None = None,
) -> list[OutboundEvent]:
    timestamp = _now()
    updated_by = actor.display()

    def notification(kind: str) -> dict[str, Any]:
        return {
            "type": kind,
            "task": result.data,
            "updatedBy": updated_by,
            "timestamp": timestamp,
        }

    events = [
        OutboundEvent(
            EVENT_TASK_UPDATED,
            {
                "type": "task_update",
                "task": result.data,
                "updatedBy": updated_by,
                "timestamp": timestamp,
            },
            BROADCAST,
        )
    ]
    if result.reassigned:
        _to_user(
            events,
            result.previous_assignee_id,
            EVENT_TASK_NOTIFICATION,
            notification(NOTIFY_UNASSIGNED),
        )
        _to_user(
            events,
            result.assignee_id,
            EVENT_TASK_NOTIFICATION,
            notification(NOTIFY_ASSIGNED),
        )
    else:
        _to_user(
            events,
            result.assignee_id,
            EVENT_TASK_NOTIFICATION,
            notification(NOTIFY_UPDATED),
        )
    _echo(events, origin_sid, EVENT_TASK_NOTIFICATION, notification(NOTIFY_UPDATED))
    return events


def plan_task_deleted(
    result: TaskDeleted,
    actor: Identity,
    *,
    origin_sid: str | None = None,
) -> list[OutboundEvent]:
    timestamp = _now()
    deleted_by = actor.display()
    notification = {
        "type": NOTIFY_DELETED,
        "taskId": result.task_id,
        "assignedUserId": result.assignee_id,
        "deletedBy": deleted_by,
        "timestamp": timestamp,
    }

    events = [
        OutboundEvent(
            EVENT_TASK_DELETED,
            {"taskId": result.task_id, "deletedBy": deleted_by, "timestamp": timestamp},
            BROADCAST,
        )
    ]
    _to_user(events, result.assignee_id, EVENT_TASK_NOTIFICATION, notification)
    _echo(events, origin_sid, EVENT_TASK_NOTIFICATION, notification)
    return events


def plan_task_error(message: str, code: str, origin_sid: str) -> list[OutboundEvent]:
    return [
        OutboundEvent(
            EVENT_TASK_ERROR,
            {"message": message, "code": code},
            Sid(origin_sid),
        )
    ]


def plan_task_rebroadcast(task: Any, actor: Identity) -> list[OutboundEvent]:
    """Legacy echo path: a client pushes a task it changed to everyone."""

    return [
        OutboundEvent(
            EVENT_TASK_UPDATED,
            {
                "type": "task_update",
                "task": task,
                "updatedBy": actor.display(),
                "timestamp": _now(),
            },
            BROADCAST,
        )
    ]


def build_notification_payload(message: str, kind: str = "info") -> dict[str, Any]:
    return {"message": message, "type": kind, "timestamp": _now()}


async def deliver(
    events: Iterable[OutboundEvent],
    *,
    server: AsyncServer | None = None,
    registry: SessionRegistry | None = None,
) -> None:
    server = server or sio
    registry = registry or default_registry
    for out in events:
        target = out.target
        if isinstance(target, Broadcast):
            await server.emit(out.event, out.payload)
        elif isinstance(target, UserRoom):
            if not registry.is_connected(target.user_id):
                logger.debug(
                    "Dropping %s for offline user %s", out.event, target.user_id
                )
                continue
            await server.emit(out.event, out.payload, room=room_for_user(target.user_id))
        else:
            await server.emit(out.event, out.payload, to=target.sid)


def _publish(events: list[OutboundEvent], what: str) -> None:
    # Called after the write committed; a delivery failure must not turn a
    # successful request into an error.
    try:
        async_to_sync(deliver)(events)
    except Exception:
        logger.exception("Failed to publish %s events", what)


def publish_task_created(result: TaskCreated, actor: Identity) -> None:
    _publish(plan_task_created(result, actor), EVENT_TASK_CREATED)


def publish_task_updated(result: TaskUpdated, actor: Identity) -> None:
    _publish(plan_task_updated(result, actor), EVENT_TASK_UPDATED)


def publish_task_deleted(result: TaskDeleted, actor: Identity) -> None:
    _publish(plan_task_deleted(result, actor), EVENT_TASK_DELETED)


def send_notification_to_user(user_id: int, message: str, kind: str = "info") -> None:
    """Generic ``notification`` to one user from sync code; no-op if offline."""

    if not default_registry.is_connected(user_id):
        return
    _publish(
        [
            OutboundEvent(
                EVENT_NOTIFICATION,
                build_notification_payload(message, kind),
                UserRoom(int(user_id)),
            )
        ],
        EVENT_NOTIFICATION,
    )
