"""Pydantic schemas for the authentication endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from ....domain.models import Actor


class RegisterRequest(BaseModel):
    """Request schema for client and developer registration."""

    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=100)
    profile: Dict[str, Any] = Field(default_factory=dict)


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)


class ResendOtpRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class PermissionSchema(BaseModel):
    module: str
    actions: List[str] = Field(default_factory=list)


class CreateAdminRequest(BaseModel):
    """Request schema for owner-created administrators."""

    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=100)
    permissions: List[PermissionSchema] = Field(default_factory=list)


class ActorResponse(BaseModel):
    """Public view of an actor; never carries credentials or OTP state."""

    id: str
    kind: str
    email: str
    name: str
    role: str
    is_verified: bool
    is_active: bool
    profile: Dict[str, Any] = Field(default_factory=dict)
    permissions: List[PermissionSchema] = Field(default_factory=list)
    last_login_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_actor(cls, actor: Actor) -> "ActorResponse":
        return cls(
            id=str(actor.id),
            kind=actor.kind.value,
            email=actor.email,
            name=actor.name,
            role=actor.role,
            is_verified=actor.is_verified,
            is_active=actor.is_active,
            profile=actor.profile,
            permissions=[PermissionSchema(**item) for item in actor.permissions],
            last_login_at=actor.last_login_at,
            last_active_at=actor.last_active_at,
            created_at=actor.created_at,
        )


class AuthResponse(BaseModel):
    actor: ActorResponse
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int


class VerificationRequiredResponse(BaseModel):
    verification_required: bool = True
    email: str
