"""Project deadlines and the reminders scheduled ahead of them."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from .actor import ActorKind

# Offsets ahead of the deadline at which reminders fire, largest first.
REMINDER_OFFSETS = (
    ("7_days", timedelta(days=7)),
    ("3_days", timedelta(days=3)),
    ("1_day", timedelta(days=1)),
    ("2_hours", timedelta(hours=2)),
)

DEADLINE_PRIORITIES = ("low", "medium", "high", "critical")


@dataclass(slots=True)
class Reminder:
    reminder_type: str
    remind_at: datetime
    sent: bool = False
    sent_at: Optional[datetime] = None


@dataclass(slots=True)
class ProjectDeadline:
    project_id: str
    title: str
    deadline_date: datetime
    assignee_id: str
    assignee_kind: ActorKind
    creator_id: str
    creator_kind: ActorKind
    project_title: str = ""
    description: Optional[str] = None
    priority: str = "medium"
    reminders: List[Reminder] = field(default_factory=list)
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def due_reminders(self, now: datetime) -> List[Reminder]:
        return [reminder for reminder in self.reminders if not reminder.sent and reminder.remind_at <= now]


def build_reminders(deadline_date: datetime, now: datetime) -> List[Reminder]:
    """Reminders for every offset that still lies in the future."""
    reminders = []
    for reminder_type, offset in REMINDER_OFFSETS:
        remind_at = deadline_date - offset
        if remind_at > now:
            reminders.append(Reminder(reminder_type=reminder_type, remind_at=remind_at))
    return reminders
