from __future__ import annotations

from datetime import datetime
from datetime import time
from typing import Any

from django.utils import timezone
from django.utils.dateparse import parse_date
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from tasktracker.tasks.models import DESCRIPTION_MAX_LENGTH
from tasktracker.tasks.models import TAG_MAX_LENGTH
from tasktracker.tasks.models import TITLE_MAX_LENGTH
from tasktracker.tasks.models import Task

UNKNOWN_USER = {"_id": None, "username": "Unknown user", "email": ""}

# Model attribute -> key used by the frontend.
WIRE_NAMES = {
    "assigned_to": "assignedTo",
    "created_by": "createdBy",
    "due_date": "dueDate",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def user_display(user: Any) -> dict[str, Any]:
    """Display fields of a referenced user, tolerating dangling references."""

    if user is None:
        return dict(UNKNOWN_USER)
    return {"_id": user.pk, "username": user.username, "email": user.email}


class TaskSerializer(serializers.ModelSerializer):
    """Read serializer: the task joined with its referenced users."""

    assigned_to = serializers.SerializerMethodField()
    created_by = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = (
            "id",
            "title",
            "description",
            "status",
            "priority",
            "assigned_to",
            "created_by",
            "due_date",
            "tags",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_assigned_to(self, obj: Task) -> dict[str, Any]:
        return user_display(obj.assigned_to)

    def get_created_by(self, obj: Task) -> dict[str, Any]:
        return user_display(obj.created_by)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        out = {"_id": data["id"]}
        for key, value in data.items():
            out[WIRE_NAMES.get(key, key)] = value
        return out


class DueDateField(serializers.DateTimeField):
    """ISO 8601 datetime; a bare date means midnight of that day."""

    def to_internal_value(self, value):
        if isinstance(value, str):
            day = parse_date(value.strip())
            if day is not None:
                value = datetime.combine(day, time.min)
        return super().to_internal_value(value)


class TaskCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=TITLE_MAX_LENGTH)
    description = serializers.CharField(
        max_length=DESCRIPTION_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    assigned_to = serializers.IntegerField(min_value=1)
    priority = serializers.ChoiceField(
        choices=Task.Priority.choices,
        required=False,
        default=Task.Priority.MEDIUM,
    )
    due_date = DueDateField(required=False, allow_null=True, default=None)
    tags = serializers.ListField(
        child=serializers.CharField(max_length=TAG_MAX_LENGTH),
        required=False,
        default=list,
    )

    def validate_due_date(self, value):
        if value is not None and value <= timezone.now():
            msg = _("Due date must be in the future.")
            raise serializers.ValidationError(msg)
        return value


class TaskUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Task.Status.choices, required=False)
    priority = serializers.ChoiceField(choices=Task.Priority.choices, required=False)
    assigned_to = serializers.IntegerField(min_value=1, required=False)


class TaskStatsSerializer(serializers.Serializer):
    pending = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    completed = serializers.IntegerField()
    cancelled = serializers.IntegerField()
    total = serializers.IntegerField()
