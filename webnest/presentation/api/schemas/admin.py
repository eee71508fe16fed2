from typing import List

from pydantic import BaseModel

from .auth import ActorResponse


class ActorListResponse(BaseModel):
    kind: str
    skip: int
    limit: int
    items: List[ActorResponse]
