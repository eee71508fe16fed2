from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ....application.services.auth_service import Principal
from ....application.services.deadline_service import DeadlineService
from ....core.dependencies import get_deadline_service
from ....domain.models import ActorKind
from ...api.dependencies import require_principal
from ...api.schemas.deadlines import DeadlineCreateRequest, DeadlineResponse

router = APIRouter(prefix="/api/deadlines", tags=["deadlines"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deadline(
    payload: DeadlineCreateRequest,
    principal: Principal = Depends(require_principal),
    deadline_service: DeadlineService = Depends(get_deadline_service),
) -> Dict[str, Any]:
    deadline = await deadline_service.create_deadline(
        principal.actor,
        project_id=payload.project_id,
        title=payload.title,
        deadline_date=payload.deadline_date,
        assignee_kind=ActorKind(payload.assignee_kind),
        assignee_id=payload.assignee_id,
        project_title=payload.project_title,
        description=payload.description,
        priority=payload.priority,
    )
    return {"success": True, "data": DeadlineResponse.from_deadline(deadline)}


@router.get("/project/{project_id}")
async def list_project_deadlines(
    project_id: str,
    principal: Principal = Depends(require_principal),
    deadline_service: DeadlineService = Depends(get_deadline_service),
) -> Dict[str, Any]:
    deadlines = await deadline_service.list_for_project(principal.actor, project_id)
    return {"success": True, "data": [DeadlineResponse.from_deadline(item) for item in deadlines]}


@router.patch("/{deadline_id}/complete")
async def complete_deadline(
    deadline_id: str,
    principal: Principal = Depends(require_principal),
    deadline_service: DeadlineService = Depends(get_deadline_service),
) -> Dict[str, Any]:
    deadline = await deadline_service.complete(principal.actor, deadline_id)
    return {"success": True, "data": DeadlineResponse.from_deadline(deadline)}
