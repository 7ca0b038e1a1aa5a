from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.auth import get_current_user
from tracker.core.database import get_db
from tracker.schemas.task import CommentCreate, CommentResponse, TaskCreate, TaskResponse, TaskUpdate
from tracker.services.task_service import TaskService

router = APIRouter(dependencies=[Depends(get_current_user)])

@router.get("/{project_id}/tasks", response_model=List[TaskResponse])
async def get_tasks(project_id: str, db: AsyncSession = Depends(get_db)):
    """获取项目任务列表（含评论）"""
    return await TaskService(db).list_tasks(project_id)

@router.post("/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(project_id: str, task_data: TaskCreate, db: AsyncSession = Depends(get_db)):
    """创建任务"""
    return await TaskService(db).create_task(project_id, task_data)

@router.put("/{project_id}/tasks/{task_id}", response_model=TaskResponse)
async def update_task(project_id: str, task_id: str, task_data: TaskUpdate, db: AsyncSession = Depends(get_db)):
    """更新任务"""
    return await TaskService(db).update_task(project_id, task_id, task_data)

@router.delete("/{project_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(project_id: str, task_id: str, db: AsyncSession = Depends(get_db)):
    """删除任务"""
    await TaskService(db).delete_task(project_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post(
    "/{project_id}/tasks/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(project_id: str, task_id: str, comment_data: CommentCreate, db: AsyncSession = Depends(get_db)):
    """添加任务评论"""
    return await TaskService(db).add_comment(project_id, task_id, comment_data)

@router.delete("/{project_id}/tasks/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(project_id: str, task_id: str, comment_id: str, db: AsyncSession = Depends(get_db)):
    """删除任务评论"""
    await TaskService(db).delete_comment(project_id, task_id, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
