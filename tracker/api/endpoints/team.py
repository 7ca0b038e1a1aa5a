from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.auth import get_current_user
from tracker.core.database import get_db
from tracker.schemas.team import TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate
from tracker.services.team_service import TeamService

router = APIRouter(dependencies=[Depends(get_current_user)])

@router.get("", response_model=List[TeamMemberResponse])
async def get_team(db: AsyncSession = Depends(get_db)):
    """获取团队成员列表"""
    return await TeamService(db).list_members()

@router.post("", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(member_data: TeamMemberCreate, db: AsyncSession = Depends(get_db)):
    """添加团队成员"""
    return await TeamService(db).create_member(member_data)

@router.put("/{member_id}", response_model=TeamMemberResponse)
async def update_member(member_id: str, member_data: TeamMemberUpdate, db: AsyncSession = Depends(get_db)):
    """修改团队成员"""
    return await TeamService(db).update_member(member_id, member_data)

@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(member_id: str, db: AsyncSession = Depends(get_db)):
    """删除团队成员"""
    await TeamService(db).delete_member(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
