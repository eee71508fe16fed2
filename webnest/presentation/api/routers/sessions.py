from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.services.auth_service import Principal
from ....application.services.session_service import SessionService
from ....core.dependencies import get_session_service
from ...api.dependencies import require_principal
from ...api.schemas.sessions import SessionResponse

router = APIRouter(prefix="/api/auth/sessions", tags=["sessions"])


@router.get("")
async def list_sessions(
    principal: Principal = Depends(require_principal),
    session_service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    actor = principal.actor
    sessions = await session_service.list_for(actor.kind, str(actor.id))
    return {
        "success": True,
        "data": [SessionResponse.from_session(session, principal.session.id) for session in sessions],
    }


@router.get("/current")
async def current_session(principal: Principal = Depends(require_principal)) -> Dict[str, Any]:
    return {"success": True, "data": SessionResponse.from_session(principal.session, principal.session.id)}


@router.delete("")
async def revoke_other_sessions(
    principal: Principal = Depends(require_principal),
    session_service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    actor = principal.actor
    revoked = await session_service.revoke_others(actor.kind, str(actor.id), principal.session.id)
    return {"success": True, "message": f"Revoked {revoked} other session(s).", "data": {"revoked": revoked}}


@router.delete("/{session_id}")
async def revoke_session(
    session_id: str,
    principal: Principal = Depends(require_principal),
    session_service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    actor = principal.actor
    await session_service.revoke(actor.kind, str(actor.id), session_id, principal.session.id)
    return {"success": True, "message": "Session revoked."}
