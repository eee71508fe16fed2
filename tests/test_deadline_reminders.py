"""Deadline reminders and the notifications they produce."""
import logging
from datetime import timedelta

import pytest

from tests.helpers import FakeClock, auth_header, signup
from webnest.application.services.deadline_service import DeadlineService
from webnest.application.services.notification_service import NotificationService
from webnest.core.errors import Forbidden, NotFound, ValidationFailed
from webnest.domain.models import Actor, ActorKind
from webnest.infrastructure.persistence.memory import InMemoryPersistence
from webnest.services.email_service import EmailService


class _Harness:
    def __init__(self) -> None:
        self.clock = FakeClock()
        self.store = InMemoryPersistence()
        self.notifications = NotificationService(self.store, clock=self.clock)
        self.deadlines = DeadlineService(
            self.store, self.store, self.notifications, EmailService("http://localhost:3000"), clock=self.clock
        )

    async def actors(self):
        client = await self.store.create_actor(
            Actor(id=None, kind=ActorKind.USER, email="client@x.com", password_hash="x")
        )
        developer = await self.store.create_actor(
            Actor(id=None, kind=ActorKind.DEVELOPER, email="dev@x.com", password_hash="x")
        )
        return client, developer

    async def deadline(self, creator, assignee, project_id="p-1", **offset):
        return await self.deadlines.create_deadline(
            creator,
            project_id=project_id,
            title="Launch",
            deadline_date=self.clock.now + timedelta(**offset),
            assignee_kind=assignee.kind,
            assignee_id=assignee.id,
            project_title="Shop",
        )


@pytest.mark.asyncio
async def test_reminders_scheduled_ahead_of_deadline():
    harness = _Harness()
    client, developer = await harness.actors()

    far = await harness.deadline(client, developer, days=10)
    near = await harness.deadline(client, developer, days=2)

    assert [item.reminder_type for item in far.reminders] == ["7_days", "3_days", "1_day", "2_hours"]
    assert far.reminders[0].remind_at == far.deadline_date - timedelta(days=7)
    assert [item.reminder_type for item in near.reminders] == ["1_day", "2_hours"]


@pytest.mark.asyncio
async def test_deadline_validation():
    harness = _Harness()
    client, developer = await harness.actors()

    with pytest.raises(ValidationFailed):
        await harness.deadline(client, developer, days=-1)
    with pytest.raises(NotFound):
        await harness.deadlines.create_deadline(
            client,
            project_id="p-1",
            title="Launch",
            deadline_date=harness.clock.now + timedelta(days=3),
            assignee_kind=ActorKind.DEVELOPER,
            assignee_id="ffffffffffffffffffffffff",
        )


@pytest.mark.asyncio
async def test_tick_sends_each_due_reminder_once():
    harness = _Harness()
    client, developer = await harness.actors()
    deadline = await harness.deadline(client, developer, days=10)

    assert await harness.deadlines.send_due_reminders() == 0

    harness.clock.advance(days=3, hours=1)
    assert await harness.deadlines.send_due_reminders() == 1
    assert await harness.deadlines.send_due_reminders() == 0

    notifications = await harness.notifications.list_for(ActorKind.DEVELOPER, developer.id)
    assert len(notifications) == 1
    assert notifications[0].message == "Reminder: Launch deadline is in 7 days"
    assert notifications[0].priority == "low"
    assert notifications[0].type == "deadline_reminder"
    assert notifications[0].project_id == "p-1"

    harness.clock.now = deadline.deadline_date - timedelta(hours=1)
    assert await harness.deadlines.send_due_reminders() == 3
    priorities = [item.priority for item in await harness.notifications.list_for(ActorKind.DEVELOPER, developer.id)]
    assert sorted(priorities) == ["high", "low", "medium", "urgent"]

    stored = await harness.store.get_deadline(deadline.id)
    assert all(reminder.sent for reminder in stored.reminders)


@pytest.mark.asyncio
async def test_completed_and_past_deadlines_are_skipped():
    harness = _Harness()
    client, developer = await harness.actors()
    completed = await harness.deadline(client, developer, days=10)
    await harness.deadline(client, developer, project_id="p-2", days=4)
    await harness.deadlines.complete(developer, completed.id)

    harness.clock.advance(days=5)

    assert await harness.deadlines.send_due_reminders() == 0
    assert await harness.notifications.unread_count(ActorKind.DEVELOPER, developer.id) == 0


@pytest.mark.asyncio
async def test_failing_deadline_does_not_stop_the_tick(caplog):
    harness = _Harness()
    client, developer = await harness.actors()
    await harness.deadline(client, developer, project_id="p-broken", days=8)
    await harness.deadline(client, developer, project_id="p-ok", days=8)
    real_notify = harness.notifications.notify

    async def flaky_notify(*args, **kwargs):
        if kwargs.get("project_id") == "p-broken":
            raise RuntimeError("notification store unavailable")
        return await real_notify(*args, **kwargs)

    harness.notifications.notify = flaky_notify
    harness.clock.advance(days=1, hours=1)

    with caplog.at_level(logging.ERROR):
        sent = await harness.deadlines.send_due_reminders()

    assert sent == 1
    assert "Deadline reminder failed" in caplog.text


@pytest.mark.asyncio
async def test_only_involved_actors_complete_a_deadline():
    harness = _Harness()
    client, developer = await harness.actors()
    outsider = await harness.store.create_actor(
        Actor(id=None, kind=ActorKind.USER, email="other@x.com", password_hash="x")
    )
    deadline = await harness.deadline(client, developer, days=10)

    with pytest.raises(Forbidden):
        await harness.deadlines.complete(outsider, deadline.id)

    done = await harness.deadlines.complete(client, deadline.id)
    assert done.is_completed is True


@pytest.mark.asyncio
async def test_only_participants_extend_a_project():
    harness = _Harness()
    client, developer = await harness.actors()
    outsider = await harness.store.create_actor(
        Actor(id=None, kind=ActorKind.DEVELOPER, email="outsider@x.com", password_hash="x")
    )
    admin = await harness.store.create_actor(
        Actor(id=None, kind=ActorKind.ADMIN, email="admin@x.com", password_hash="x", role="owner")
    )
    await harness.deadline(client, developer, days=10)

    with pytest.raises(Forbidden):
        await harness.deadline(outsider, outsider, days=5)
    with pytest.raises(Forbidden):
        await harness.deadline(client, outsider, days=5)

    # Participants assign each other; admins may bring in anyone.
    await harness.deadline(developer, client, days=5)
    await harness.deadline(admin, outsider, days=5)
    await harness.deadline(client, outsider, days=4)


@pytest.mark.asyncio
async def test_project_listing_is_scoped_to_the_caller():
    harness = _Harness()
    client, developer = await harness.actors()
    second = await harness.store.create_actor(
        Actor(id=None, kind=ActorKind.DEVELOPER, email="second@x.com", password_hash="x")
    )
    admin = await harness.store.create_actor(
        Actor(id=None, kind=ActorKind.ADMIN, email="admin@x.com", password_hash="x", role="owner")
    )
    shared = await harness.deadline(client, developer, days=10)
    other = await harness.deadline(admin, second, days=6)

    assert [item.id for item in await harness.deadlines.list_for_project(developer, "p-1")] == [shared.id]
    assert [item.id for item in await harness.deadlines.list_for_project(second, "p-1")] == [other.id]
    assert len(await harness.deadlines.list_for_project(admin, "p-1")) == 2


def test_deadline_and_notification_endpoints(make_client, clock):
    client_service = make_client("client")
    developer_service = make_client("developer")
    owner = signup(client_service, email="client@example.com")
    developer = signup(developer_service, email="dev@example.com")
    owner_headers = auth_header(owner["access_token"])
    dev_headers = auth_header(developer["access_token"])

    created = client_service.post(
        "/api/deadlines",
        json={
            "project_id": "p-1",
            "project_title": "Shop",
            "title": "Launch",
            "deadline_date": (clock.now + timedelta(days=10)).isoformat(),
            "assignee_kind": "developer",
            "assignee_id": developer["actor"]["id"],
            "priority": "high",
        },
        headers=owner_headers,
    )
    assert created.status_code == 201
    deadline = created.json()["data"]
    assert len(deadline["reminders"]) == 4

    listed = client_service.get("/api/deadlines/project/p-1", headers=owner_headers).json()["data"]
    assert [item["id"] for item in listed] == [deadline["id"]]

    clock.advance(days=8)
    container = client_service.app.state.container
    client_service.portal.call(container.deadline_service.send_due_reminders)

    assert developer_service.get("/api/notifications/unread-count", headers=dev_headers).json()["data"]["count"] == 2
    notifications = developer_service.get("/api/notifications", headers=dev_headers).json()["data"]
    assert {item["priority"] for item in notifications} == {"low", "medium"}

    first_id = notifications[0]["id"]
    assert developer_service.patch(f"/api/notifications/{first_id}/read", headers=dev_headers).status_code == 200
    assert developer_service.get(
        "/api/notifications", params={"unread_only": True}, headers=dev_headers
    ).json()["data"][0]["id"] != first_id
    # Only the recipient can touch a notification.
    assert client_service.patch(f"/api/notifications/{first_id}/read", headers=owner_headers).status_code == 404

    marked = developer_service.patch("/api/notifications/read-all", headers=dev_headers).json()["data"]
    assert marked["updated"] == 1
    assert developer_service.get("/api/notifications/unread-count", headers=dev_headers).json()["data"]["count"] == 0

    completed = developer_service.patch(f"/api/deadlines/{deadline['id']}/complete", headers=dev_headers)
    assert completed.status_code == 200
    assert completed.json()["data"]["is_completed"] is True


def test_outsiders_cannot_read_or_join_a_project(make_client, clock):
    client_service = make_client("client")
    developer_service = make_client("developer")
    owner = signup(client_service, email="client@example.com")
    developer = signup(developer_service, email="dev@example.com")
    client_service.cookies.clear()
    outsider = signup(client_service, email="outsider@example.com")
    client_service.cookies.clear()
    payload = {
        "project_id": "p-1",
        "title": "Launch",
        "deadline_date": (clock.now + timedelta(days=10)).isoformat(),
        "assignee_kind": "developer",
        "assignee_id": developer["actor"]["id"],
    }

    created = client_service.post("/api/deadlines", json=payload, headers=auth_header(owner["access_token"]))
    assert created.status_code == 201

    outsider_headers = auth_header(outsider["access_token"])
    listed = client_service.get("/api/deadlines/project/p-1", headers=outsider_headers)
    assert listed.status_code == 200
    assert listed.json()["data"] == []
    joined = client_service.post("/api/deadlines", json=payload, headers=outsider_headers)
    assert joined.status_code == 403
