from types import SimpleNamespace
from unittest import mock

import pytest

from tasktracker.realtime.events import tasks as task_events
from tasktracker.realtime.events.tasks import BROADCAST
from tasktracker.realtime.events.tasks import OutboundEvent
from tasktracker.realtime.events.tasks import Sid
from tasktracker.realtime.events.tasks import UserRoom
from tasktracker.realtime.sessions import SessionRegistry
from tasktracker.tasks.services import TaskCreated
from tasktracker.tasks.services import TaskDeleted
from tasktracker.tasks.services import TaskUpdated
from tasktracker.users.identity import Identity

ACTOR = Identity(user_id=1, username="boss", email="boss@example.com", role="admin")
TASK_DATA = {"_id": 10, "title": "Report"}


def created(assignee_id=2) -> TaskCreated:
    return TaskCreated(task=SimpleNamespace(assigned_to_id=assignee_id), data=TASK_DATA)


def updated(previous, current, fields=("status",)) -> TaskUpdated:
    return TaskUpdated(
        task=SimpleNamespace(assigned_to_id=current),
        data=TASK_DATA,
        previous_assignee_id=previous,
        changed_fields=fields,
    )


def targeted(events):
    return [e for e in events if isinstance(e.target, UserRoom)]


def broadcasts(events):
    return [e for e in events if e.target == BROADCAST]


class TestPlanning:
    def test_create_over_rest(self):
        events = task_events.plan_task_created(created(), ACTOR)
        assert [(e.event, e.target) for e in events] == [
            ("new_task", BROADCAST),
            ("task_notification", UserRoom(2)),
        ]
        notification = events[1].payload
        assert notification["type"] == "task_created"
        assert notification["task"] == TASK_DATA
        assert notification["createdBy"] == {"_id": 1, "username": "boss"}
        assert "timestamp" in notification

    def test_create_over_socket_acks_and_echoes(self):
        events = task_events.plan_task_created(created(), ACTOR, origin_sid="s1")
        assert [(e.event, e.target) for e in events] == [
            ("task_created", Sid("s1")),
            ("new_task", BROADCAST),
            ("task_notification", UserRoom(2)),
            ("task_notification", Sid("s1")),
        ]

    def test_actor_who_is_assignee_gets_echo_and_notification(self):
        events = task_events.plan_task_created(
            created(assignee_id=ACTOR.user_id), ACTOR, origin_sid="s1"
        )
        notifications = [e for e in events if e.event == "task_notification"]
        assert [e.target for e in notifications] == [UserRoom(1), Sid("s1")]

    def test_update_notifies_current_assignee(self):
        events = task_events.plan_task_updated(updated(2, 2), ACTOR)
        assert len(broadcasts(events)) == 1
        assert broadcasts(events)[0].event == "task_updated"
        assert broadcasts(events)[0].payload["updatedBy"]["username"] == "boss"
        assert [(e.target, e.payload["type"]) for e in targeted(events)] == [
            (UserRoom(2), "task_updated"),
        ]

    def test_reassignment_produces_two_targeted_notifications(self):
        events = task_events.plan_task_updated(
            updated(2, 3, fields=("assigned_to",)), ACTOR
        )
        assert len(broadcasts(events)) == 1
        assert [(e.target, e.payload["type"]) for e in targeted(events)] == [
            (UserRoom(2), "task_unassigned"),
            (UserRoom(3), "task_assigned"),
        ]

    def test_reassignment_over_socket_adds_only_an_echo(self):
        events = task_events.plan_task_updated(
            updated(2, 3, fields=("assigned_to",)), ACTOR, origin_sid="s9"
        )
        assert len(targeted(events)) == 2
        echoes = [e for e in events if isinstance(e.target, Sid)]
        assert [(e.event, e.payload["type"]) for e in echoes] == [
            ("task_notification", "task_updated"),
        ]

    def test_update_without_assignee_sends_no_targeted_notification(self):
        events = task_events.plan_task_updated(updated(None, None), ACTOR)
        assert targeted(events) == []

    def test_delete_notifies_captured_assignee(self):
        events = task_events.plan_task_deleted(
            TaskDeleted(task_id=10, assignee_id=4), ACTOR
        )
        assert events[0].event == "task_deleted"
        assert events[0].payload["taskId"] == 10
        assert events[0].payload["deletedBy"] == {"_id": 1, "username": "boss"}
        [notification] = targeted(events)
        assert notification.target == UserRoom(4)
        assert notification.payload["type"] == "task_deleted"
        assert notification.payload["taskId"] == 10
        assert notification.payload["assignedUserId"] == 4

    def test_task_error_goes_to_origin_only(self):
        [event] = task_events.plan_task_error("Task not found", "not_found", "s1")
        assert event == OutboundEvent(
            "task_error", {"message": "Task not found", "code": "not_found"}, Sid("s1")
        )

    def test_rebroadcast_uses_given_actor(self):
        [event] = task_events.plan_task_rebroadcast({"_id": 3}, ACTOR)
        assert event.target == BROADCAST
        assert event.payload["task"] == {"_id": 3}
        assert event.payload["updatedBy"] == ACTOR.display()


class TestDelivery:
    @pytest.mark.asyncio
    async def test_deliver_routes_targets(self):
        server = mock.AsyncMock()
        registry = SessionRegistry()
        registry.register(2, "s2")
        events = [
            OutboundEvent("new_task", {"a": 1}, BROADCAST),
            OutboundEvent("task_notification", {"b": 2}, UserRoom(2)),
            OutboundEvent("task_created", {"c": 3}, Sid("s1")),
        ]
        await task_events.deliver(events, server=server, registry=registry)
        assert server.emit.await_args_list == [
            mock.call("new_task", {"a": 1}),
            mock.call("task_notification", {"b": 2}, room="user_2"),
            mock.call("task_created", {"c": 3}, to="s1"),
        ]

    @pytest.mark.asyncio
    async def test_deliver_drops_targeted_sends_to_offline_users(self):
        server = mock.AsyncMock()
        events = [OutboundEvent("task_notification", {}, UserRoom(7))]
        await task_events.deliver(events, server=server, registry=SessionRegistry())
        server.emit.assert_not_awaited()


class TestPublishing:
    def test_publish_uses_default_server_and_registry(self, monkeypatch):
        emit = mock.AsyncMock()
        monkeypatch.setattr(task_events.sio, "emit", emit)
        task_events.default_registry.register(4, "s4")

        task_events.publish_task_deleted(
            TaskDeleted(task_id=10, assignee_id=4), ACTOR
        )

        emitted = [c.args[0] for c in emit.await_args_list]
        assert emitted == ["task_deleted", "task_notification"]

    def test_publish_failures_are_logged_not_raised(self, monkeypatch, caplog):
        emit = mock.AsyncMock(side_effect=RuntimeError("transport down"))
        monkeypatch.setattr(task_events.sio, "emit", emit)

        task_events.publish_task_created(created(), ACTOR)

        assert "Failed to publish task_created events" in caplog.text

    def test_send_notification_to_connected_user(self, monkeypatch):
        emit = mock.AsyncMock()
        monkeypatch.setattr(task_events.sio, "emit", emit)
        task_events.default_registry.register(5, "s5")

        task_events.send_notification_to_user(5, "Hello", "success")

        [call] = emit.await_args_list
        assert call.args[0] == "notification"
        assert call.args[1]["message"] == "Hello"
        assert call.args[1]["type"] == "success"
        assert call.kwargs == {"room": "user_5"}

    def test_send_notification_to_offline_user_is_noop(self, monkeypatch):
        emit = mock.AsyncMock()
        monkeypatch.setattr(task_events.sio, "emit", emit)
        task_events.send_notification_to_user(6, "Hello")
        emit.assert_not_awaited()

    def test_notification_helper_is_exported(self):
        assert "send_notification_to_user" in task_events.__all__
