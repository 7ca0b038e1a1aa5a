"""团队成员服务模块"""
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.exceptions import TeamMemberNotFoundException
from tracker.core.logging import app_logger
from tracker.core.utils import clean_text, generate_id
from tracker.models import TeamMember
from tracker.schemas.team import TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate

DEFAULT_MEMBER_NAME = "Unnamed Member"


class TeamService:
    """团队成员服务类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_members(self) -> List[TeamMemberResponse]:
        result = await self.db.execute(select(TeamMember).order_by(TeamMember.name.asc(), TeamMember.created_at))
        return [TeamMemberResponse.model_validate(member) for member in result.scalars().all()]

    async def create_member(self, data: TeamMemberCreate) -> TeamMemberResponse:
        member = TeamMember(id=generate_id(), name=clean_text(data.name, DEFAULT_MEMBER_NAME))
        self.db.add(member)
        await self.db.commit()

        app_logger.log_business_event("create", entity_type="team_member", entity_id=member.id)
        return TeamMemberResponse.model_validate(member)

    async def update_member(self, member_id: str, data: TeamMemberUpdate) -> TeamMemberResponse:
        member = await self.db.get(TeamMember, member_id)
        if member is None:
            raise TeamMemberNotFoundException(member_id)

        if "name" in data.model_fields_set:
            member.name = clean_text(data.name, DEFAULT_MEMBER_NAME)
        await self.db.commit()
        return TeamMemberResponse.model_validate(member)

    async def delete_member(self, member_id: str) -> None:
        """删除成员；引用该成员的任务保持原样"""
        result = await self.db.execute(delete(TeamMember).where(TeamMember.id == member_id))
        await self.db.commit()

        if result.rowcount:
            app_logger.log_business_event("delete", entity_type="team_member", entity_id=member_id)
