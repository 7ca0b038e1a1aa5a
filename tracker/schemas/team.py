from typing import Optional

from tracker.schemas.base import CamelModel

class TeamMemberCreate(CamelModel):
    name: Optional[str] = None

class TeamMemberUpdate(CamelModel):
    name: Optional[str] = None

class TeamMemberResponse(CamelModel):
    id: str
    name: str
