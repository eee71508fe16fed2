from typing import Optional

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.auth_service import AuthService, Principal
from ...application.services.session_service import ClientInfo
from ...core.config import Settings
from ...core.dependencies import get_auth_service, get_settings
from ...core.errors import Forbidden
from ...domain.models import Actor, ActorKind

_bearer_scheme = HTTPBearer(auto_error=False)


def client_info(request: Request, settings: Settings) -> ClientInfo:
    """Caller address and agent. ``X-Forwarded-For`` is honoured only behind a trusted proxy."""
    forwarded = request.headers.get("x-forwarded-for") if settings.trust_proxy_headers else None
    if forwarded:
        ip_address: Optional[str] = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return ClientInfo(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


async def require_principal(
    request: Request,
    background_tasks: BackgroundTasks,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
) -> Principal:
    """Resolve the caller from a bearer token, falling back to the session cookie."""
    token = None
    if credentials is not None and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    principal = await auth_service.resolve(
        token=token,
        signed_session=request.cookies.get(settings.session_cookie_name),
    )
    request.state.actor_id = principal.actor.id
    background_tasks.add_task(auth_service.touch, principal)
    return principal


def ensure_admin_permission(actor: Actor, module: str, action: str) -> None:
    if actor.kind is not ActorKind.ADMIN:
        raise Forbidden("Administrator access required")
    if not actor.has_permission(module, action):
        raise Forbidden(f"Missing permission {module}:{action}")
