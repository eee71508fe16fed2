from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ....domain.models import Session


class SessionResponse(BaseModel):
    id: str
    device_type: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    last_activity: datetime
    expires_at: datetime
    is_current: bool = False

    @classmethod
    def from_session(cls, session: Session, current_session_id: Optional[str] = None) -> "SessionResponse":
        return cls(
            id=session.id,
            device_type=session.device_type,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            created_at=session.created_at,
            last_activity=session.last_activity,
            expires_at=session.expires_at,
            is_current=session.id == current_session_id,
        )
