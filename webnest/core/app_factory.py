from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .clock import Clock, utcnow
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.admin_service import AdminService
from ..application.services.auth_service import AuthService
from ..application.services.deadline_service import DeadlineService
from ..application.services.notification_service import NotificationService
from ..application.services.otp_service import OtpService
from ..application.services.session_service import SessionService
from ..application.services.token_service import TokenService
from ..domain.ports.persistence import PersistenceGateway
from ..infrastructure.persistence.memory import InMemoryPersistence
from ..infrastructure.persistence.mongo import MongoPersistence
from ..presentation.api.exception_handlers import register_exception_handlers
from ..presentation.api.middleware import RequestLoggingMiddleware
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import deadlines as deadlines_router
from ..presentation.api.routers import notifications as notifications_router
from ..presentation.api.routers import sessions as sessions_router
from ..services.email_service import EmailService
from ..services.scheduler import PeriodicScheduler

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    persistence: Optional[PersistenceGateway] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title=settings.title, lifespan=_create_lifespan(settings, persistence, clock))

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(sessions_router.router)
    app.include_router(notifications_router.router)
    app.include_router(deadlines_router.router)
    if settings.service == "admin":
        app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {
            "success": True,
            "data": {
                "service": settings.title,
                "status": "ok",
                "scheduler": container.scheduler.is_running,
                "timestamp": container.clock().isoformat(),
            },
        }

    return app


def build_persistence(settings: Settings) -> PersistenceGateway:
    if settings.uses_memory_store:
        logger.warning("Using the in-process store; data is lost on restart.")
        return InMemoryPersistence()
    return MongoPersistence(settings.mongodb_uri, settings.mongodb_database)


def build_container(settings: Settings, persistence: PersistenceGateway, clock: Clock = utcnow) -> ApplicationContainer:
    email_service = EmailService(settings.frontend_url)
    otp_service = OtpService(
        persistence,
        ttl_minutes=settings.otp_ttl_minutes,
        max_attempts=settings.otp_max_attempts,
        block_minutes=settings.otp_block_minutes,
        clock=clock,
    )
    token_service = TokenService(
        persistence,
        jwt_secret=settings.jwt_secret,
        session_secret=settings.session_secret,
        access_exp_minutes=settings.jwt_expire_minutes,
        refresh_exp_days=settings.refresh_token_days,
        session_max_age_seconds=settings.session_ttl_days * 24 * 3600,
        clock=clock,
    )
    session_service = SessionService(persistence, token_service, ttl_days=settings.session_ttl_days, clock=clock)
    auth_service = AuthService(
        settings.actor_kind,
        persistence,
        otp_service,
        session_service,
        token_service,
        email_service,
        otp_on_login=settings.otp_on_login,
        clock=clock,
    )
    notification_service = NotificationService(persistence, clock=clock)
    deadline_service = DeadlineService(persistence, persistence, notification_service, email_service, clock=clock)
    admin_service = AdminService(persistence, session_service)

    scheduler = PeriodicScheduler()
    scheduler.add_job("deadline-reminders", settings.reminder_interval_seconds, deadline_service.send_due_reminders)
    scheduler.add_job("session-purge", settings.session_purge_interval_seconds, session_service.purge_expired)

    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        clock=clock,
        email_service=email_service,
        otp_service=otp_service,
        token_service=token_service,
        session_service=session_service,
        auth_service=auth_service,
        notification_service=notification_service,
        deadline_service=deadline_service,
        admin_service=admin_service,
        scheduler=scheduler,
    )


def _create_lifespan(settings: Settings, persistence: Optional[PersistenceGateway], clock: Clock):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        for name in settings.insecure_secrets():
            logger.warning("%s is using the default value; set it before deploying.", name)

        gateway = persistence or build_persistence(settings)
        await gateway.ensure_indexes()
        container = build_container(settings, gateway, clock)
        app.state.container = container  # type: ignore[attr-defined]

        await container.auth_service.ensure_default_admin(
            settings.admin_default_email, settings.admin_default_password
        )
        if settings.scheduler_enabled:
            await container.scheduler.start()
        logger.info("%s ready on port %s", settings.title, settings.port)

        try:
            yield
        finally:
            await container.scheduler.stop()
            gateway.close()

    return lifespan
