from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response, status

from ....application.services.auth_service import AuthResult, AuthService, Principal
from ....application.services.session_service import SessionService
from ....application.services.token_service import TokenService
from ....core.config import Settings
from ....core.dependencies import get_auth_service, get_session_service, get_settings, get_token_service
from ...api.dependencies import client_info, require_principal
from ...api.schemas.auth import (
    ActorResponse,
    AuthResponse,
    CreateAdminRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResendOtpRequest,
    UpdatePasswordRequest,
    VerificationRequiredResponse,
    VerifyOtpRequest,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_payload(
    result: AuthResult,
    response: Response,
    settings: Settings,
    token_service: TokenService,
    session_service: SessionService,
) -> Dict[str, Any]:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token_service.sign_session_id(result.session.id),
        max_age=session_service.ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return {
        "success": True,
        "data": AuthResponse(
            actor=ActorResponse.from_actor(result.actor),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_in=result.expires_in,
        ),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    actor = await auth_service.register(payload.email, payload.password, payload.name, payload.profile)
    return {
        "success": True,
        "message": "Registration successful. Please verify your email with the code we sent.",
        "data": {"actor": ActorResponse.from_actor(actor), "verification_required": True},
    }


@router.post("/verify-otp")
async def verify_otp(
    payload: VerifyOtpRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
    session_service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    result = await auth_service.verify_otp(payload.email, payload.otp, client_info(request, settings))
    return _session_payload(result, response, settings, token_service, session_service)


@router.post("/resend-otp")
async def resend_otp(
    payload: ResendOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    await auth_service.resend_otp(payload.email)
    return {"success": True, "message": "If the account exists, a new verification code has been sent."}


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
    session_service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    result = await auth_service.login(payload.email, payload.password, client_info(request, settings))
    if result.verification_required:
        return {
            "success": True,
            "message": "Verification code sent to your email.",
            "data": VerificationRequiredResponse(email=result.actor.email),
        }
    return _session_payload(result, response, settings, token_service, session_service)


@router.post("/refresh")
async def refresh(
    payload: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    result = await auth_service.refresh(payload.refresh_token)
    return {
        "success": True,
        "data": AuthResponse(
            actor=ActorResponse.from_actor(result.actor),
            access_token=result.access_token,
            expires_in=result.expires_in,
        ),
    }


@router.post("/logout")
async def logout(
    response: Response,
    principal: Principal = Depends(require_principal),
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    await auth_service.logout(principal)
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return {"success": True, "message": "Logged out successfully."}


@router.get("/me")
async def me(principal: Principal = Depends(require_principal)) -> Dict[str, Any]:
    return {"success": True, "data": ActorResponse.from_actor(principal.actor)}


@router.put("/update-password")
async def update_password(
    payload: UpdatePasswordRequest,
    principal: Principal = Depends(require_principal),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    await auth_service.update_password(principal, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password updated. Other sessions have been signed out."}


@router.post("/create-admin", status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: CreateAdminRequest,
    principal: Principal = Depends(require_principal),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    actor = await auth_service.create_admin(
        principal.actor,
        payload.email,
        payload.password,
        payload.name,
        [permission.model_dump() for permission in payload.permissions],
    )
    return {"success": True, "data": ActorResponse.from_actor(actor)}
