"""Task mutation handlers.

Every handler is a plain function of the verified actor and the raw input.
It enforces validation and authorization before touching the database and
either returns a result object or raises a ``TaskError``. The REST views and
the Socket.IO gateway are thin adapters around these functions, so both entry
points share exactly the same rules.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any

from django.contrib.auth import get_user_model
from django.db.models import Count
from django.db.models import Q
from django.http import QueryDict

from tasktracker.tasks import policies
from tasktracker.tasks.api.serializers import TaskCreateSerializer
from tasktracker.tasks.api.serializers import TaskSerializer
from tasktracker.tasks.api.serializers import TaskUpdateSerializer
from tasktracker.tasks.api.serializers import user_display
from tasktracker.tasks.errors import Forbidden
from tasktracker.tasks.errors import InvalidReference
from tasktracker.tasks.errors import NotFound
from tasktracker.tasks.errors import ValidationFailed
from tasktracker.tasks.models import Task

if TYPE_CHECKING:  # import for type checking only
    from tasktracker.users.identity import Identity

logger = logging.getLogger(__name__)

# Frontend key -> model field.
PAYLOAD_ALIASES = {
    "assignedTo": "assigned_to",
    "dueDate": "due_date",
}
# Keys identifying the target task rather than requesting a change.
IDENTITY_KEYS = frozenset({"taskId", "task_id", "id", "_id"})

MSG_CREATE_FOR_OTHERS = "You can only create tasks for yourself"
MSG_DELETE_DENIED = "You do not have permission to delete this task"
MSG_INVALID_PAYLOAD = "Invalid data"
MSG_INVALID_TASK_ID = "Invalid task id"


@dataclass(frozen=True)
class TaskCreated:
    task: Task
    data: dict[str, Any]

    @property
    def assignee_id(self) -> int | None:
        return self.task.assigned_to_id


@dataclass(frozen=True)
class TaskUpdated:
    task: Task
    data: dict[str, Any]
    previous_assignee_id: int | None
    changed_fields: tuple[str, ...] = field(default=())

    @property
    def assignee_id(self) -> int | None:
        return self.task.assigned_to_id

    @property
    def reassigned(self) -> bool:
        return (
            policies.FIELD_ASSIGNED_TO in self.changed_fields
            and self.previous_assignee_id != self.task.assigned_to_id
        )


@dataclass(frozen=True)
class TaskDeleted:
    task_id: int
    assignee_id: int | None


def normalize_task_payload(data: Any) -> dict[str, Any]:
    """Accept the frontend's camelCase keys and map them to model fields."""

    if isinstance(data, QueryDict):
        out = data.dict()
    elif isinstance(data, Mapping):
        out = dict(data)
    else:
        raise ValidationFailed(MSG_INVALID_PAYLOAD)

    for alias, name in PAYLOAD_ALIASES.items():
        if alias in out and name not in out:
            out[name] = out.pop(alias)
        else:
            out.pop(alias, None)
    return out


def _coerce_task_id(task_id: Any) -> int:
    try:
        return int(task_id)
    except (TypeError, ValueError) as exc:
        raise ValidationFailed(
            MSG_INVALID_TASK_ID, errors={"taskId": [MSG_INVALID_TASK_ID]}
        ) from exc


def _joined_tasks():
    return Task.objects.select_related("assigned_to", "created_by")


def _load_task(task_id: Any) -> Task:
    task = _joined_tasks().filter(pk=_coerce_task_id(task_id)).first()
    if task is None:
        raise NotFound
    return task


def _user_exists(user_id: int) -> bool:
    return get_user_model().objects.filter(pk=user_id, is_active=True).exists()


def serialize_task(task: Task) -> dict[str, Any]:
    return dict(TaskSerializer(task).data)


def create_task(actor: Identity, payload: Any) -> TaskCreated:
    serializer = TaskCreateSerializer(data=normalize_task_payload(payload))
    if not serializer.is_valid():
        raise ValidationFailed(errors=dict(serializer.errors))
    data = serializer.validated_data

    assignee_id = data["assigned_to"]
    if not policies.can_create_for(actor, assignee_id):
        raise Forbidden(MSG_CREATE_FOR_OTHERS)
    if not _user_exists(assignee_id):
        raise InvalidReference

    task = Task.objects.create(
        title=data["title"],
        description=data["description"],
        priority=data["priority"],
        due_date=data["due_date"],
        tags=list(data["tags"]),
        assigned_to_id=assignee_id,
        created_by_id=actor.user_id,
        status=Task.Status.PENDING,
    )
    task = _load_task(task.pk)
    logger.info("Task %s created by user %s", task.pk, actor.user_id)
    return TaskCreated(task=task, data=serialize_task(task))


def update_task(actor: Identity, task_id: Any, changes: Any) -> TaskUpdated:
    task = _load_task(task_id)
    requested = {
        key: value
        for key, value in normalize_task_payload(changes).items()
        if key not in IDENTITY_KEYS
    }

    role = policies.resolve_role(actor, task)
    denied = policies.denied_update_fields(actor, task, requested)
    if role is policies.TaskRole.NONE or denied:
        logger.info(
            "Update of task %s denied for user %s (role=%s, fields=%s)",
            task.pk,
            actor.user_id,
            role.value,
            denied,
        )
        raise Forbidden(policies.DENIED_MESSAGES.get(role))

    serializer = TaskUpdateSerializer(data=requested)
    if not serializer.is_valid():
        raise ValidationFailed(errors=dict(serializer.errors))
    values = serializer.validated_data

    new_assignee = values.get(policies.FIELD_ASSIGNED_TO)
    if new_assignee is not None and not _user_exists(new_assignee):
        raise InvalidReference

    previous_assignee_id = task.assigned_to_id
    update_fields = []
    for name, value in values.items():
        if name == policies.FIELD_ASSIGNED_TO:
            task.assigned_to_id = value
        else:
            setattr(task, name, value)
        update_fields.append(name)
    task.save(update_fields=[*update_fields, "updated_at"])

    task = _load_task(task.pk)
    logger.info(
        "Task %s updated by user %s: %s", task.pk, actor.user_id, update_fields
    )
    return TaskUpdated(
        task=task,
        data=serialize_task(task),
        previous_assignee_id=previous_assignee_id,
        changed_fields=tuple(update_fields),
    )


def delete_task(actor: Identity, task_id: Any) -> TaskDeleted:
    task = _load_task(task_id)
    if not policies.can_delete(actor, task):
        raise Forbidden(MSG_DELETE_DENIED)

    # The record is gone once notifications go out; keep the assignee now.
    result = TaskDeleted(task_id=task.pk, assignee_id=task.assigned_to_id)
    task.delete()
    logger.info("Task %s deleted by user %s", result.task_id, actor.user_id)
    return result


def list_tasks() -> list[dict[str, Any]]:
    """Every task, most recently updated first (all users see all tasks)."""

    tasks = _joined_tasks().order_by("-updated_at")
    return list(TaskSerializer(tasks, many=True).data)


def get_task(task_id: Any) -> dict[str, Any]:
    return serialize_task(_load_task(task_id))


def task_stats(actor: Identity) -> dict[str, int]:
    """Task counts per status over tasks the actor created or is assigned."""

    rows = (
        Task.objects.filter(
            Q(assigned_to_id=actor.user_id) | Q(created_by_id=actor.user_id)
        )
        .values("status")
        .annotate(count=Count("id"))
    )
    stats = dict.fromkeys(Task.Status.values, 0)
    stats["total"] = 0
    for row in rows:
        stats[row["status"]] = row["count"]
        stats["total"] += row["count"]
    return stats


def user_directory() -> list[dict[str, Any]]:
    users = get_user_model().objects.filter(is_active=True).order_by("username")
    return [user_display(user) for user in users]
