from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

from ...core.clock import Clock, utcnow
from ...core.errors import Forbidden, NotFound, ValidationFailed
from ...domain.models import Actor, ActorKind, ProjectDeadline, Reminder
from ...domain.models.deadline import DEADLINE_PRIORITIES, build_reminders
from ...domain.ports.persistence import ActorRepository, DeadlineRepository
from ...services.email_service import EmailService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

REMINDER_MESSAGES = {
    "7_days": "Reminder: {title} deadline is in 7 days",
    "3_days": "Urgent: {title} deadline is in 3 days",
    "1_day": "Critical: {title} deadline is tomorrow",
    "2_hours": "Final Notice: {title} deadline is in 2 hours",
}

REMINDER_PRIORITIES = {
    "7_days": "low",
    "3_days": "medium",
    "1_day": "high",
    "2_hours": "urgent",
}


class DeadlineService:
    """Project deadlines and the reminder sweep run by the scheduler."""

    def __init__(
        self,
        deadlines: DeadlineRepository,
        actors: ActorRepository,
        notifications: NotificationService,
        email_service: EmailService,
        clock: Clock = utcnow,
    ) -> None:
        self._deadlines = deadlines
        self._actors = actors
        self._notifications = notifications
        self._email = email_service
        self._clock = clock

    async def create_deadline(
        self,
        creator: Actor,
        *,
        project_id: str,
        title: str,
        deadline_date: datetime,
        assignee_kind: ActorKind,
        assignee_id: str,
        project_title: str = "",
        description: Optional[str] = None,
        priority: str = "medium",
    ) -> ProjectDeadline:
        """Store a deadline with its 7 day, 3 day, 1 day and 2 hour reminders.

        Reminders whose time has already passed are left out.
        """
        now = self._clock()
        if deadline_date.tzinfo is None:
            deadline_date = deadline_date.replace(tzinfo=timezone.utc)
        if deadline_date <= now:
            raise ValidationFailed("Deadline date must be in the future.")
        if priority not in DEADLINE_PRIORITIES:
            raise ValidationFailed(f"Unknown priority: {priority}")
        if assignee_kind is ActorKind.ADMIN:
            raise ValidationFailed("Deadlines are assigned to clients or developers.")
        if await self._actors.get_actor_by_id(assignee_kind, assignee_id) is None:
            raise NotFound("Assignee not found")
        if creator.kind is not ActorKind.ADMIN:
            await self._check_assignment(creator, project_id, assignee_kind, assignee_id)

        deadline = ProjectDeadline(
            project_id=project_id,
            project_title=project_title,
            title=title,
            description=description,
            deadline_date=deadline_date,
            priority=priority,
            assignee_id=assignee_id,
            assignee_kind=assignee_kind,
            creator_id=str(creator.id),
            creator_kind=creator.kind,
            reminders=build_reminders(deadline_date, now),
            created_at=now,
        )
        return await self._deadlines.create_deadline(deadline)

    async def list_for_project(self, actor: Actor, project_id: str) -> List[ProjectDeadline]:
        """Deadlines of a project that ``actor`` created or is assigned to. Admins see all."""
        deadlines = await self._deadlines.list_project_deadlines(project_id)
        if actor.kind is ActorKind.ADMIN:
            return deadlines
        return [deadline for deadline in deadlines if _actor_key(actor) in _involved(deadline)]

    async def complete(self, actor: Actor, deadline_id: str) -> ProjectDeadline:
        deadline = await self._deadlines.get_deadline(deadline_id)
        if deadline is None:
            raise NotFound("Deadline not found")
        if _actor_key(actor) not in _involved(deadline) and actor.kind is not ActorKind.ADMIN:
            raise Forbidden("Not allowed to complete this deadline")
        if not deadline.is_completed:
            now = self._clock()
            await self._deadlines.complete_deadline(deadline_id, now)
            deadline.is_completed = True
            deadline.completed_at = now
        return deadline

    async def _check_assignment(
        self, creator: Actor, project_id: str, assignee_kind: ActorKind, assignee_id: str
    ) -> None:
        existing = await self._deadlines.list_project_deadlines(project_id)
        if not existing:
            # The opening deadline names the project's first counterpart.
            return
        participants: Set[Tuple[ActorKind, str]] = set()
        for deadline in existing:
            participants |= _involved(deadline)
        if _actor_key(creator) not in participants:
            raise Forbidden("Not a participant of this project")
        if (assignee_kind, assignee_id) not in participants:
            raise Forbidden("Deadlines can only be assigned to project participants")

    # ------------------------------------------------------------------
    async def send_due_reminders(self) -> int:
        """Notify assignees of every reminder whose time has come. Returns the number sent."""
        now = self._clock()
        sent = 0
        deadlines = await self._deadlines.list_deadlines_with_due_reminders(now)
        for deadline in deadlines:
            try:
                for reminder in deadline.due_reminders(now):
                    await self._send_reminder(deadline, reminder, now)
                    await self._deadlines.mark_reminder_sent(deadline.id, reminder.reminder_type, self._clock())
                    reminder.sent = True
                    sent += 1
            except Exception:
                logger.exception("Deadline reminder failed for deadline %s", deadline.id)
        if sent:
            logger.info("Sent %s deadline reminders.", sent)
        return sent

    async def _send_reminder(self, deadline: ProjectDeadline, reminder: Reminder, now: datetime) -> None:
        days_until = math.ceil((deadline.deadline_date - now) / timedelta(days=1))
        template = REMINDER_MESSAGES.get(reminder.reminder_type, "Deadline reminder: {title}")
        await self._notifications.notify(
            deadline.assignee_kind,
            deadline.assignee_id,
            title="Deadline Reminder",
            message=template.format(title=deadline.title),
            type="deadline_reminder",
            priority=REMINDER_PRIORITIES.get(reminder.reminder_type, "medium"),
            project_id=deadline.project_id,
            action_url=f"/projects/{deadline.project_id}",
            action_text="View Project",
            metadata={"deadline": deadline.deadline_date.isoformat(), "days_until": days_until},
        )
        assignee = await self._actors.get_actor_by_id(deadline.assignee_kind, deadline.assignee_id)
        if assignee is None:
            logger.warning("Assignee %s of deadline %s no longer exists", deadline.assignee_id, deadline.id)
            return
        self._email.send_deadline_reminder(
            to_email=assignee.email,
            deadline_title=deadline.title,
            project_id=deadline.project_id,
            project_title=deadline.project_title,
            deadline_date=deadline.deadline_date,
            days_until=days_until,
        )


def _actor_key(actor: Actor) -> Tuple[ActorKind, str]:
    return actor.kind, str(actor.id)


def _involved(deadline: ProjectDeadline) -> Set[Tuple[ActorKind, str]]:
    return {
        (deadline.assignee_kind, deadline.assignee_id),
        (deadline.creator_kind, deadline.creator_id),
    }
