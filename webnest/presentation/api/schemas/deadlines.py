from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ....domain.models import ProjectDeadline


class DeadlineCreateRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    project_title: str = ""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    deadline_date: datetime
    priority: Literal["low", "medium", "high", "critical"] = "medium"
    assignee_kind: Literal["user", "developer"]
    assignee_id: str = Field(..., min_length=1)


class ReminderResponse(BaseModel):
    reminder_type: str
    remind_at: datetime
    sent: bool
    sent_at: Optional[datetime] = None


class DeadlineResponse(BaseModel):
    id: str
    project_id: str
    project_title: str
    title: str
    description: Optional[str] = None
    deadline_date: datetime
    priority: str
    assignee_kind: str
    assignee_id: str
    creator_kind: str
    creator_id: str
    is_completed: bool
    completed_at: Optional[datetime] = None
    reminders: List[ReminderResponse] = Field(default_factory=list)

    @classmethod
    def from_deadline(cls, deadline: ProjectDeadline) -> "DeadlineResponse":
        return cls(
            id=str(deadline.id),
            project_id=deadline.project_id,
            project_title=deadline.project_title,
            title=deadline.title,
            description=deadline.description,
            deadline_date=deadline.deadline_date,
            priority=deadline.priority,
            assignee_kind=deadline.assignee_kind.value,
            assignee_id=deadline.assignee_id,
            creator_kind=deadline.creator_kind.value,
            creator_id=deadline.creator_id,
            is_completed=deadline.is_completed,
            completed_at=deadline.completed_at,
            reminders=[
                ReminderResponse(
                    reminder_type=reminder.reminder_type,
                    remind_at=reminder.remind_at,
                    sent=reminder.sent,
                    sent_at=reminder.sent_at,
                )
                for reminder in deadline.reminders
            ],
        )
