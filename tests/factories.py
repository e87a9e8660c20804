from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from tasktracker.tasks.models import Task
from tasktracker.users.identity import Identity

User = get_user_model()

TEST_PASSWORD = "TestPass123!"  # noqa: S105 - test credentials only


def create_user(
    username: str,
    *,
    role: str = User.Role.MEMBER,
    is_active: bool = True,
) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=TEST_PASSWORD,
        role=role,
        is_active=is_active,
    )


def create_admin(username: str = "admin") -> User:
    return create_user(username, role=User.Role.ADMIN)


def identity_for(user: User) -> Identity:
    return Identity.from_user(user)


def access_token_for(user: User, *, expired: bool = False) -> str:
    token = AccessToken.for_user(user)
    if expired:
        token.set_exp(lifetime=-timedelta(minutes=1))
    return str(token)


def create_task(
    *,
    created_by: User,
    assigned_to: User | None = None,
    **fields: Any,
) -> Task:
    defaults: dict[str, Any] = {
        "title": "Write report",
        "description": "",
        "priority": Task.Priority.MEDIUM,
        "status": Task.Status.PENDING,
        "tags": [],
    }
    defaults.update(fields)
    return Task.objects.create(
        created_by=created_by,
        assigned_to=assigned_to if assigned_to is not None else created_by,
        **defaults,
    )


def future_iso(days: int = 3) -> str:
    return (timezone.now() + timedelta(days=days)).isoformat()
