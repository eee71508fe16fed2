from dataclasses import dataclass

from ..application.services.admin_service import AdminService
from ..application.services.auth_service import AuthService
from ..application.services.deadline_service import DeadlineService
from ..application.services.notification_service import NotificationService
from ..application.services.otp_service import OtpService
from ..application.services.session_service import SessionService
from ..application.services.token_service import TokenService
from .clock import Clock
from .config import Settings
from ..domain.ports.persistence import PersistenceGateway
from ..services.email_service import EmailService
from ..services.scheduler import PeriodicScheduler


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    clock: Clock
    email_service: EmailService
    otp_service: OtpService
    token_service: TokenService
    session_service: SessionService
    auth_service: AuthService
    notification_service: NotificationService
    deadline_service: DeadlineService
    admin_service: AdminService
    scheduler: PeriodicScheduler
