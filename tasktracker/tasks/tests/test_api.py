from unittest import mock

import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from tasktracker.realtime.events import tasks as task_events
from tasktracker.tasks import services
from tasktracker.tasks.models import Task
from tests.factories import access_token_for
from tests.factories import create_task
from tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def published(monkeypatch):
    calls = {
        name: mock.Mock()
        for name in (
            "publish_task_created",
            "publish_task_updated",
            "publish_task_deleted",
        )
    }
    for name, stub in calls.items():
        monkeypatch.setattr(task_events, name, stub)
    return calls


def client_for(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(user)}")
    return client


def detail_url(task) -> str:
    return reverse("api_v1:task-detail", kwargs={"pk": task.pk})


def test_list_requires_authentication():
    r = APIClient().get(reverse("api_v1:task-list"))
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.data["success"] is False


def test_member_lists_all_tasks_without_user_directory(alice, bob):
    create_task(created_by=bob)
    create_task(created_by=alice)
    r = client_for(alice).get(reverse("api_v1:task-list"))
    assert r.status_code == status.HTTP_200_OK
    assert r.data["success"] is True
    assert len(r.data["data"]["tasks"]) == 2
    assert r.data["data"]["users"] is None


def test_admin_list_includes_user_directory(admin, alice):
    r = client_for(admin).get(reverse("api_v1:task-list"))
    usernames = {row["username"] for row in r.data["data"]["users"]}
    assert usernames == {"admin", "alice"}


def test_create_publishes_after_commit(
    alice, published, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(alice).post(
            reverse("api_v1:task-list"),
            {"title": "From REST", "assignedTo": alice.pk, "tags": ["x"]},
            format="json",
        )
    assert r.status_code == status.HTTP_201_CREATED, r.data
    assert r.data["message"] == "Task created"
    assert r.data["data"]["task"]["title"] == "From REST"
    published["publish_task_created"].assert_called_once()
    result, actor = published["publish_task_created"].call_args.args
    assert result.task.title == "From REST"
    assert actor.user_id == alice.pk


def test_create_for_someone_else_is_forbidden(alice, bob, published):
    r = client_for(alice).post(
        reverse("api_v1:task-list"),
        {"title": "Not mine", "assignedTo": bob.pk},
        format="json",
    )
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert r.data == {
        "success": False,
        "message": "You can only create tasks for yourself",
        "code": "forbidden",
    }
    assert not Task.objects.exists()
    published["publish_task_created"].assert_not_called()


def test_create_with_invalid_data(alice):
    r = client_for(alice).post(
        reverse("api_v1:task-list"), {"assignedTo": alice.pk}, format="json"
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.data["code"] == "validation_error"
    assert "title" in r.data["errors"]


def test_create_with_unknown_assignee(admin):
    r = client_for(admin).post(
        reverse("api_v1:task-list"),
        {"title": "Ghost", "assignedTo": 999_999},
        format="json",
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.data["code"] == "invalid_reference"


def test_retrieve(alice):
    task = create_task(created_by=alice)
    r = client_for(alice).get(detail_url(task))
    assert r.status_code == status.HTTP_200_OK
    assert r.data["data"]["task"]["_id"] == task.pk


def test_retrieve_missing():
    r = client_for(create_user("nina")).get(
        reverse("api_v1:task-detail", kwargs={"pk": 424242})
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.data["message"] == "Task not found"


def test_patch_by_assignee(
    alice, bob, published, django_capture_on_commit_callbacks
):
    task = create_task(created_by=alice, assigned_to=bob)
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(bob).patch(
            detail_url(task), {"status": "in_progress"}, format="json"
        )
    assert r.status_code == status.HTTP_200_OK, r.data
    assert r.data["data"]["task"]["status"] == "in_progress"
    published["publish_task_updated"].assert_called_once()


def test_put_denied_leaves_task_untouched(alice, bob, published):
    task = create_task(created_by=alice, assigned_to=bob)
    r = client_for(bob).put(
        detail_url(task), {"status": "completed", "priority": "high"}, format="json"
    )
    assert r.status_code == status.HTTP_403_FORBIDDEN
    task.refresh_from_db()
    assert (task.status, task.priority) == ("pending", "medium")
    published["publish_task_updated"].assert_not_called()


def test_delete_by_creator(alice, bob, published, django_capture_on_commit_callbacks):
    task = create_task(created_by=alice, assigned_to=bob)
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(alice).delete(detail_url(task))
    assert r.status_code == status.HTTP_200_OK
    assert r.data == {"success": True, "message": "Task deleted"}
    result, _ = published["publish_task_deleted"].call_args.args
    assert result.assignee_id == bob.pk


def test_delete_by_assignee_is_forbidden(alice, bob):
    task = create_task(created_by=alice, assigned_to=bob)
    r = client_for(bob).delete(detail_url(task))
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert Task.objects.filter(pk=task.pk).exists()


def test_stats(alice):
    create_task(created_by=alice)
    r = client_for(alice).get(reverse("api_v1:task-stats"))
    assert r.status_code == status.HTTP_200_OK
    assert r.data["data"]["stats"]["pending"] == 1
    assert r.data["data"]["stats"]["total"] == 1


def test_legacy_prefix_routes_to_the_same_views(alice):
    r = client_for(alice).get("/api/tasks/")
    assert r.status_code == status.HTTP_200_OK


def test_unexpected_error_is_reduced_to_generic_message(alice, monkeypatch):
    def boom():
        msg = "database exploded"
        raise RuntimeError(msg)

    monkeypatch.setattr(services, "list_tasks", boom)
    r = client_for(alice).get(reverse("api_v1:task-list"))
    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.data == {
        "success": False,
        "message": "Internal server error",
        "code": "unexpected",
    }
