"""Who may do what to a task.

The update policy is a table of task role -> fields that role may change. A
request is checked against it as a whole: one field outside the allow-list
denies the entire update.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

    from tasktracker.tasks.models import Task
    from tasktracker.users.identity import Identity

FIELD_STATUS = "status"
FIELD_PRIORITY = "priority"
FIELD_ASSIGNED_TO = "assigned_to"


class TaskRole(enum.Enum):
    ADMIN = "admin"
    CREATOR = "creator"
    ASSIGNEE = "assignee"
    NONE = "none"


UPDATE_POLICY: dict[TaskRole, frozenset[str]] = {
    TaskRole.ADMIN: frozenset({FIELD_STATUS, FIELD_PRIORITY, FIELD_ASSIGNED_TO}),
    TaskRole.CREATOR: frozenset({FIELD_STATUS, FIELD_PRIORITY}),
    TaskRole.ASSIGNEE: frozenset({FIELD_STATUS}),
    TaskRole.NONE: frozenset(),
}

DELETE_ROLES = frozenset({TaskRole.ADMIN, TaskRole.CREATOR})

DENIED_MESSAGES = {
    TaskRole.CREATOR: "You can only modify the status and the priority",
    TaskRole.ASSIGNEE: "You can only modify the status",
    TaskRole.NONE: (
        "You can only modify tasks you created or that are assigned to you"
    ),
}


def resolve_role(actor: Identity, task: Task) -> TaskRole:
    """Most privileged role the actor holds on ``task``."""

    if actor.is_admin:
        return TaskRole.ADMIN
    if task.created_by_id == actor.user_id:
        return TaskRole.CREATOR
    if task.assigned_to_id == actor.user_id:
        return TaskRole.ASSIGNEE
    return TaskRole.NONE


def allowed_update_fields(actor: Identity, task: Task) -> frozenset[str]:
    return UPDATE_POLICY[resolve_role(actor, task)]


def denied_update_fields(
    actor: Identity, task: Task, requested: Iterable[str]
) -> list[str]:
    allowed = allowed_update_fields(actor, task)
    return sorted(field for field in requested if field not in allowed)


def can_delete(actor: Identity, task: Task) -> bool:
    return resolve_role(actor, task) in DELETE_ROLES


def can_create_for(actor: Identity, assignee_id: int) -> bool:
    """Members only create tasks for themselves; admins for anyone."""

    return actor.is_admin or int(assignee_id) == actor.user_id
