from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from ....application.services.admin_service import MODULE_BY_KIND, AdminService
from ....application.services.auth_service import Principal
from ....core.dependencies import get_admin_service
from ....core.errors import NotFound
from ....domain.models import ActorKind
from ...api.dependencies import ensure_admin_permission, require_principal
from ...api.schemas.admin import ActorListResponse
from ...api.schemas.auth import ActorResponse

router = APIRouter(prefix="/api/admin", tags=["admin"])

_KINDS_BY_COLLECTION = {kind.collection: kind for kind in ActorKind}


def _kind_from_path(kind: str) -> ActorKind:
    try:
        return _KINDS_BY_COLLECTION[kind]
    except KeyError:
        raise NotFound(f"Unknown actor collection: {kind}") from None


@router.get("/actors/{kind}")
async def list_actors(
    kind: str,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(require_principal),
    admin_service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    actor_kind = _kind_from_path(kind)
    ensure_admin_permission(principal.actor, MODULE_BY_KIND[actor_kind], "read")
    actors = await admin_service.list_actors(actor_kind, skip=skip, limit=limit)
    return {
        "success": True,
        "data": ActorListResponse(
            kind=actor_kind.value,
            skip=skip,
            limit=limit,
            items=[ActorResponse.from_actor(actor) for actor in actors],
        ),
    }


async def _set_active(
    kind: str, actor_id: str, is_active: bool, principal: Principal, admin_service: AdminService
) -> Dict[str, Any]:
    actor_kind = _kind_from_path(kind)
    ensure_admin_permission(principal.actor, MODULE_BY_KIND[actor_kind], "update")
    actor = await admin_service.set_active(principal.actor, actor_kind, actor_id, is_active)
    return {"success": True, "data": ActorResponse.from_actor(actor)}


@router.patch("/actors/{kind}/{actor_id}/deactivate")
async def deactivate_actor(
    kind: str,
    actor_id: str,
    principal: Principal = Depends(require_principal),
    admin_service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    return await _set_active(kind, actor_id, False, principal, admin_service)


@router.patch("/actors/{kind}/{actor_id}/activate")
async def activate_actor(
    kind: str,
    actor_id: str,
    principal: Principal = Depends(require_principal),
    admin_service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    return await _set_active(kind, actor_id, True, principal, admin_service)
