"""任务服务模块

包含任务相关的业务逻辑处理。任务写入与所属项目的进度重算在同一事务内提交。
"""
from datetime import datetime, timezone
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.exceptions import ProjectNotFoundException, TaskNotFoundException, ValidationException
from tracker.core.logging import app_logger
from tracker.core.utils import clean_text, dump_json_list, generate_id
from tracker.models import Project, Task
from tracker.schemas.task import (
    DEFAULT_TASK_NAME,
    CommentCreate,
    CommentResponse,
    TaskCreate,
    TaskResponse,
    TaskStatus,
    TaskUpdate,
    decode_comments,
)
from tracker.services.progress_service import recompute_progress_if_auto

# 不可为空的字段：显式传入 null 时忽略
NON_NULLABLE_FIELDS = ("name", "completed", "status")


class TaskService:
    """任务服务类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_task_row(self, project_id: str, task_id: str) -> Task:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.project_id == project_id)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise TaskNotFoundException(task_id)
        return task

    async def list_tasks(self, project_id: str) -> List[TaskResponse]:
        """获取项目下的任务（含评论），未知项目返回空列表"""
        result = await self.db.execute(
            select(Task).where(Task.project_id == project_id).order_by(Task.created_at, Task.id)
        )
        return [TaskResponse.from_row(task) for task in result.scalars().all()]

    async def create_task(self, project_id: str, data: TaskCreate) -> TaskResponse:
        """创建任务并重算项目进度"""
        if await self.db.get(Project, project_id) is None:
            raise ProjectNotFoundException(project_id)

        task = Task(
            id=generate_id(),
            name=clean_text(data.name, DEFAULT_TASK_NAME),
            completed=False,
            project_id=project_id,
            assignee_id=data.assignee_id or None,
            status=(data.status or TaskStatus.ACTIVE).value,
            description=data.description or None,
            comments=dump_json_list([]),
        )
        self.db.add(task)
        await recompute_progress_if_auto(self.db, project_id)
        await self.db.commit()

        app_logger.log_business_event("create", entity_type="task", entity_id=task.id, project_id=project_id)
        return TaskResponse.from_row(task)

    async def update_task(self, project_id: str, task_id: str, data: TaskUpdate) -> TaskResponse:
        """部分更新任务，显式传入 null 的 assigneeId 会清除负责人"""
        task = await self.get_task_row(project_id, task_id)

        update_data = data.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_FIELDS:
            if field in update_data and update_data[field] is None:
                del update_data[field]
        if "name" in update_data:
            update_data["name"] = clean_text(update_data["name"], DEFAULT_TASK_NAME)
        if "status" in update_data:
            update_data["status"] = update_data["status"].value
        if "description" in update_data:
            update_data["description"] = update_data["description"] or None
        if "assignee_id" in update_data:
            update_data["assignee_id"] = update_data["assignee_id"] or None

        for field, value in update_data.items():
            setattr(task, field, value)

        await recompute_progress_if_auto(self.db, project_id)
        await self.db.commit()
        return TaskResponse.from_row(task)

    async def delete_task(self, project_id: str, task_id: str) -> None:
        """删除任务并重算项目进度"""
        result = await self.db.execute(
            delete(Task).where(Task.id == task_id, Task.project_id == project_id)
        )
        await recompute_progress_if_auto(self.db, project_id)
        await self.db.commit()

        if result.rowcount:
            app_logger.log_business_event("delete", entity_type="task", entity_id=task_id, project_id=project_id)

    async def add_comment(self, project_id: str, task_id: str, data: CommentCreate) -> CommentResponse:
        """追加评论（整行读改写，不加行锁）"""
        text = (data.text or "").strip()
        if not text:
            raise ValidationException("Comment text is required", {"text": "required"})

        task = await self.get_task_row(project_id, task_id)
        comments = decode_comments(task.comments)
        comment = CommentResponse(
            id=generate_id(),
            text=text,
            created_at=datetime.now(timezone.utc),
            author_id=data.author_id or None,
        )
        comments.append(comment)
        task.comments = self._encode_comments(comments)
        await self.db.commit()
        return comment

    async def delete_comment(self, project_id: str, task_id: str, comment_id: str) -> None:
        """按ID删除评论，其余评论保持原有顺序"""
        task = await self.get_task_row(project_id, task_id)
        comments = [c for c in decode_comments(task.comments) if c.id != comment_id]
        task.comments = self._encode_comments(comments)
        await self.db.commit()

    @staticmethod
    def _encode_comments(comments: List[CommentResponse]) -> str:
        return dump_json_list([c.model_dump(mode="json", by_alias=True) for c in comments])
