from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.auth import get_current_user
from tracker.core.database import get_db
from tracker.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from tracker.services.project_service import ProjectService

router = APIRouter(dependencies=[Depends(get_current_user)])

@router.get("", response_model=List[ProjectResponse])
async def get_projects(db: AsyncSession = Depends(get_db)):
    """获取项目列表（任务列表为空，按需单独加载）"""
    return await ProjectService(db).list_projects()

@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(project_data: ProjectCreate, db: AsyncSession = Depends(get_db)):
    """创建项目"""
    return await ProjectService(db).create_project(project_data)

@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, db: AsyncSession = Depends(get_db)):
    """获取项目详情"""
    return await ProjectService(db).get_project(project_id)

@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(project_id: str, project_data: ProjectUpdate, db: AsyncSession = Depends(get_db)):
    """更新项目"""
    return await ProjectService(db).update_project(project_id, project_data)

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, db: AsyncSession = Depends(get_db)):
    """删除项目（级联删除任务）"""
    await ProjectService(db).delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
