"""Outbound mail rendered to the application log."""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class EmailService:
    """Formats WebNest mails and hands them to the log.

    Delivery providers are not wired in. The recipient and subject are logged
    at INFO; bodies, which may carry one-time codes, only at DEBUG.
    """

    def __init__(self, frontend_url: str, from_name: str = "WebNest") -> None:
        self.frontend_url = frontend_url.rstrip("/")
        self.from_name = from_name

    def send_otp_email(self, to_email: str, code: str, expires_at: datetime, purpose: str = "verification") -> bool:
        subject = "Your WebNest login code" if purpose == "login" else "Verify your WebNest email"
        body = (
            f"Your {self.from_name} code is {code}. "
            f"It expires at {expires_at.strftime('%H:%M UTC')}."
        )
        return self._send_email(to_email, subject, body)

    def send_deadline_reminder(
        self,
        to_email: str,
        deadline_title: str,
        project_id: str,
        project_title: str,
        deadline_date: datetime,
        days_until: int,
    ) -> bool:
        subject = f"Deadline Reminder: {deadline_title}"
        body = (
            f"Project: {project_title or project_id}. "
            f"Deadline: {deadline_date.isoformat()}. "
            f"Time remaining: {days_until} day(s). "
            f"View project: {self.frontend_url}/projects/{project_id}"
        )
        return self._send_email(to_email, subject, body)

    def _send_email(self, to_email: str, subject: str, body: str) -> bool:
        logger.info("[EMAIL] to=%s subject=%r", to_email, subject)
        logger.debug("[EMAIL] to=%s body=%r", to_email, body)
        return True
