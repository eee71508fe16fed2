from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import bcrypt

from ...core.clock import Clock, utcnow
from ...core.errors import Forbidden, Unauthorized, ValidationFailed
from ...domain.models import Actor, ActorKind, OtpOutcome, Session
from ...domain.models.actor import PERMISSION_ACTIONS, PERMISSION_MODULES
from ...domain.ports.persistence import ActorRepository
from ...services.email_service import EmailService
from .otp_service import OtpService
from .session_service import ClientInfo, SessionService
from .token_service import TokenService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72


@dataclass(slots=True)
class Principal:
    """The actor a request runs as, together with its session."""

    actor: Actor
    session: Session


@dataclass(slots=True)
class AuthResult:
    actor: Actor
    verification_required: bool = False
    session: Optional[Session] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))


def validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:
    """Registration, OTP verification, login and token resolution for one actor kind."""

    def __init__(
        self,
        kind: ActorKind,
        actors: ActorRepository,
        otp_service: OtpService,
        session_service: SessionService,
        token_service: TokenService,
        email_service: EmailService,
        *,
        otp_on_login: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self.kind = kind
        self._actors = actors
        self._otp = otp_service
        self._sessions = session_service
        self._tokens = token_service
        self._email = email_service
        self._otp_on_login = otp_on_login
        self._clock = clock

    # ------------------------------------------------------------------
    async def register(
        self,
        email: str,
        password: str,
        name: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> Actor:
        """
        Create an unverified account and send it a verification code.

        Raises:
            ValidationFailed: on a bad password or an existing account
        """
        if self.kind is ActorKind.ADMIN:
            raise Forbidden("Administrators are created by the platform owner.")
        email_clean = normalize_email(email)
        if not email_clean:
            raise ValidationFailed("Email is required.")
        validate_password(password)
        if await self._actors.get_actor_by_email(self.kind, email_clean):
            raise ValidationFailed("An account with this email already exists.")

        actor = await self._actors.create_actor(
            Actor(
                id=None,
                kind=self.kind,
                email=email_clean,
                password_hash=hash_password(password),
                name=(name or "").strip(),
                profile=profile or {},
            )
        )
        logger.info("Registered %s %s", self.kind.value, actor.id)
        await self._send_code(actor, purpose="verification")
        return actor

    async def verify_otp(self, email: str, code: str, client: ClientInfo) -> AuthResult:
        actor = await self._actors.get_actor_by_email(self.kind, normalize_email(email))
        if actor is None:
            raise ValidationFailed("Invalid verification code")
        if not actor.is_active:
            raise Forbidden("Account has been deactivated.")
        if actor.is_verified and not actor.otp.has_challenge(self._clock()):
            raise ValidationFailed("No login is awaiting verification. Please log in again.")

        outcome = await self._otp.verify(actor, code)
        if outcome is OtpOutcome.BLOCKED:
            raise Forbidden(self._otp.blocked_message(actor.otp))
        if outcome is OtpOutcome.EXPIRED:
            raise ValidationFailed("Verification code has expired. Please request a new one.")
        if outcome is OtpOutcome.NOT_ISSUED:
            raise ValidationFailed("No verification code has been issued. Please request a new one.")
        if outcome is OtpOutcome.INVALID:
            raise ValidationFailed("Invalid verification code")

        if not actor.is_verified:
            await self._actors.mark_actor_verified(self.kind, actor.id)
            actor.is_verified = True
        return await self.start_session(actor, client)

    async def resend_otp(self, email: str) -> None:
        actor = await self._actors.get_actor_by_email(self.kind, normalize_email(email))
        if actor is None or not actor.is_active:
            # Unknown addresses get the same answer as known ones.
            return
        if actor.is_verified and not self._otp_on_login:
            raise ValidationFailed("Email already verified")
        if actor.is_verified and not actor.otp.has_challenge(self._clock()):
            # Login codes are only re-sent after a successful password check.
            return
        await self._send_code(actor, purpose="login" if actor.is_verified else "verification")

    async def login(self, email: str, password: str, client: ClientInfo) -> AuthResult:
        actor = await self._actors.get_actor_by_email(self.kind, normalize_email(email))
        if actor is None or not verify_password(password, actor.password_hash):
            raise Unauthorized("Invalid credentials")
        if not actor.is_active:
            raise Forbidden("Account has been deactivated.")

        if not actor.is_verified or self._otp_on_login:
            await self._send_code(
                actor,
                purpose="login" if actor.is_verified else "verification",
                login_challenge=actor.is_verified,
            )
            return AuthResult(actor=actor, verification_required=True)
        return await self.start_session(actor, client)

    async def start_session(self, actor: Actor, client: ClientInfo) -> AuthResult:
        session = await self._sessions.start(actor, client)
        access_token = self._tokens.create_access_token(actor, session)
        refresh_token = await self._tokens.issue_refresh_token(actor, session)

        now = self._clock()
        entry = None
        if actor.kind is ActorKind.ADMIN:
            entry = {"ip": client.ip_address, "user_agent": client.user_agent, "login_at": now}
        await self._actors.record_actor_login(actor.kind, actor.id, now, entry)
        actor.last_login_at = now
        logger.info("Started session for %s %s", actor.kind.value, actor.id)
        return AuthResult(
            actor=actor,
            session=session,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self._tokens.access_expires_in,
        )

    async def refresh(self, refresh_token: str) -> AuthResult:
        record = await self._tokens.validate_refresh_token(refresh_token)
        if record.actor_kind is not self.kind:
            raise Unauthorized("Invalid or expired refresh token")
        session = await self._sessions.get_live(record.session_id)
        actor = await self._load_active_actor(record.actor_id)
        return AuthResult(
            actor=actor,
            session=session,
            access_token=self._tokens.create_access_token(actor, session),
            expires_in=self._tokens.access_expires_in,
        )

    async def logout(self, principal: Principal) -> None:
        await self._sessions.end(principal.session.id)
        logger.info("Ended session for %s %s", principal.actor.kind.value, principal.actor.id)

    async def update_password(self, principal: Principal, current_password: str, new_password: str) -> None:
        actor = principal.actor
        if not verify_password(current_password, actor.password_hash):
            raise Unauthorized("Current password is incorrect")
        validate_password(new_password)
        await self._actors.update_actor_password(actor.kind, actor.id, hash_password(new_password))
        revoked = await self._sessions.revoke_others(actor.kind, actor.id, principal.session.id)
        logger.info("Password changed for %s %s; revoked %s other sessions", actor.kind.value, actor.id, revoked)

    # ------------------------------------------------------------------
    async def resolve(self, token: Optional[str] = None, signed_session: Optional[str] = None) -> Principal:
        """Map a bearer token or a signed session cookie to the acting principal.

        Raises:
            Unauthorized: when neither credential identifies a live session
        """
        if token:
            claims = self._tokens.decode_access_token(token)
            if claims.actor_kind is not self.kind:
                raise Unauthorized("Not authorized, token failed")
            session = await self._sessions.get_live(claims.session_id)
            if session.actor_id != claims.actor_id:
                raise Unauthorized("Invalid or expired session. Please log in again.")
        elif signed_session:
            session = await self._sessions.get_live(self._tokens.unsign_session_id(signed_session))
            if session.actor_kind is not self.kind:
                raise Unauthorized("Invalid or expired session. Please log in again.")
        else:
            raise Unauthorized("Not authorized, no valid session or token")

        actor = await self._load_active_actor(session.actor_id)
        return Principal(actor=actor, session=session)

    async def touch(self, principal: Principal) -> None:
        """Record activity after a request. Failures are logged, never raised."""
        try:
            await self._sessions.touch(principal.session)
            await self._actors.touch_actor(principal.actor.kind, principal.actor.id, self._clock())
        except Exception:  # pragma: no cover - best effort bookkeeping
            logger.exception("Unable to record activity for %s %s", principal.actor.kind.value, principal.actor.id)

    # ------------------------------------------------------------------
    async def ensure_default_admin(self, email: Optional[str], password: Optional[str]) -> Optional[Actor]:
        if self.kind is not ActorKind.ADMIN or not email or not password:
            return None
        existing = await self._actors.get_actor_by_email(ActorKind.ADMIN, normalize_email(email))
        if existing:
            return existing
        logger.info("Creating default owner account for %s", email)
        return await self._actors.create_actor(
            Actor(
                id=None,
                kind=ActorKind.ADMIN,
                email=normalize_email(email),
                password_hash=hash_password(password),
                name="Owner",
                role="owner",
                is_verified=True,
            )
        )

    async def create_admin(
        self,
        creator: Actor,
        email: str,
        password: str,
        name: str,
        permissions: List[Dict[str, Any]],
    ) -> Actor:
        if not creator.is_owner:
            raise Forbidden("Only the owner can create administrators.")
        email_clean = normalize_email(email)
        validate_password(password)
        _validate_permissions(permissions)
        if await self._actors.get_actor_by_email(ActorKind.ADMIN, email_clean):
            raise ValidationFailed("An administrator with this email already exists.")
        actor = await self._actors.create_actor(
            Actor(
                id=None,
                kind=ActorKind.ADMIN,
                email=email_clean,
                password_hash=hash_password(password),
                name=(name or "").strip(),
                role="admin",
                is_verified=True,
                permissions=permissions,
            )
        )
        logger.info("Owner %s created administrator %s", creator.id, actor.id)
        return actor

    # ------------------------------------------------------------------
    async def _send_code(self, actor: Actor, purpose: str, login_challenge: bool = False) -> None:
        code = await self._otp.issue(actor, login_challenge=login_challenge)
        self._email.send_otp_email(actor.email, code, actor.otp.expires_at, purpose=purpose)

    async def _load_active_actor(self, actor_id: str) -> Actor:
        actor = await self._actors.get_actor_by_id(self.kind, actor_id)
        if actor is None:
            raise Unauthorized("User not found")
        if not actor.is_active:
            raise Unauthorized("Account has been deactivated.")
        return actor


def _validate_permissions(permissions: List[Dict[str, Any]]) -> None:
    for permission in permissions:
        if permission.get("module") not in PERMISSION_MODULES:
            raise ValidationFailed(f"Unknown permission module: {permission.get('module')}")
        unknown = [action for action in permission.get("actions", []) if action not in PERMISSION_ACTIONS]
        if unknown:
            raise ValidationFailed(f"Unknown permission actions: {', '.join(unknown)}")

