"""Task REST endpoints.

Views only translate HTTP to the mutation handlers in ``tasks.services``;
domain errors propagate to ``api_exception_handler``. Realtime events are
published once the write has committed.
"""

import logging

from django.db import transaction
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import permissions
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action

from tasktracker.realtime.events import tasks as task_events
from tasktracker.tasks import services
from tasktracker.tasks.api.serializers import TaskCreateSerializer
from tasktracker.tasks.api.serializers import TaskSerializer
from tasktracker.tasks.api.serializers import TaskStatsSerializer
from tasktracker.tasks.api.serializers import TaskUpdateSerializer
from tasktracker.users.identity import Identity
from tasktracker.utils.responses import success_response

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(tags=["Tasks"], responses=TaskSerializer(many=True)),
    create=extend_schema(
        tags=["Tasks"], request=TaskCreateSerializer, responses=TaskSerializer
    ),
    retrieve=extend_schema(tags=["Tasks"], responses=TaskSerializer),
    update=extend_schema(
        tags=["Tasks"], request=TaskUpdateSerializer, responses=TaskSerializer
    ),
    partial_update=extend_schema(
        tags=["Tasks"], request=TaskUpdateSerializer, responses=TaskSerializer
    ),
    destroy=extend_schema(tags=["Tasks"]),
    stats=extend_schema(tags=["Tasks"], responses=TaskStatsSerializer),
)
class TaskViewSet(viewsets.ViewSet):
    """Tasks shared by every authenticated user.

    - list / retrieve: everyone sees every task; admins also get the user list
    - create: members only for themselves, admins for anyone
    - update: field allow-list depends on admin / creator / assignee
    - destroy: admin or creator
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = TaskSerializer

    def _actor(self) -> Identity:
        return Identity.from_user(self.request.user)

    def list(self, request):
        actor = self._actor()
        users = services.user_directory() if actor.is_admin else None
        return success_response({"tasks": services.list_tasks(), "users": users})

    def create(self, request):
        actor = self._actor()
        result = services.create_task(actor, request.data)
        transaction.on_commit(
            lambda: task_events.publish_task_created(result, actor),
        )
        return success_response(
            {"task": result.data},
            message="Task created",
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, pk=None):
        return success_response({"task": services.get_task(pk)})

    def update(self, request, pk=None):
        actor = self._actor()
        result = services.update_task(actor, pk, request.data)
        transaction.on_commit(
            lambda: task_events.publish_task_updated(result, actor),
        )
        return success_response({"task": result.data}, message="Task updated")

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        actor = self._actor()
        result = services.delete_task(actor, pk)
        transaction.on_commit(
            lambda: task_events.publish_task_deleted(result, actor),
        )
        return success_response(message="Task deleted")

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return success_response({"stats": services.task_stats(self._actor())})
