"""项目服务模块

包含项目的增删改查以及自动进度重算
"""
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.exceptions import ProjectNotFoundException
from tracker.core.logging import app_logger
from tracker.core.utils import clean_text, dump_json_list, generate_id
from tracker.models import Project, Task
from tracker.schemas.project import (
    DEFAULT_PROJECT_NAME,
    ProjectCreate,
    ProjectPriority,
    ProjectResponse,
    ProjectUpdate,
)
from tracker.services.progress_service import recompute_progress_if_auto

# 不可为空的字段：显式传入 null 时忽略
NON_NULLABLE_FIELDS = ("name", "progress", "auto_progress", "priority")


class ProjectService:
    """项目服务类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_project_row(self, project_id: str) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundException(project_id)
        return project

    async def list_tasks_rows(self, project_id: str) -> List[Task]:
        result = await self.db.execute(
            select(Task).where(Task.project_id == project_id).order_by(Task.created_at, Task.id)
        )
        return list(result.scalars().all())

    async def list_projects(self) -> List[ProjectResponse]:
        """获取项目列表（不含任务）"""
        result = await self.db.execute(select(Project).order_by(Project.name.asc(), Project.created_at))
        return [ProjectResponse.from_row(project) for project in result.scalars().all()]

    async def get_project(self, project_id: str) -> ProjectResponse:
        """获取项目详情（含任务）"""
        project = await self.get_project_row(project_id)
        tasks = await self.list_tasks_rows(project_id)
        return ProjectResponse.from_row(project, tasks)

    async def create_project(self, data: ProjectCreate) -> ProjectResponse:
        """创建项目，新项目默认开启自动进度"""
        project = Project(
            id=generate_id(),
            name=clean_text(data.name, DEFAULT_PROJECT_NAME),
            progress=0,
            auto_progress=True,
            tags=dump_json_list(data.tags) if data.tags is not None else None,
            priority=(data.priority or ProjectPriority.MEDIUM).value,
            deadline=data.deadline,
        )
        self.db.add(project)
        await self.db.commit()

        app_logger.log_business_event("create", entity_type="project", entity_id=project.id)
        return ProjectResponse.from_row(project)

    async def update_project(self, project_id: str, data: ProjectUpdate) -> ProjectResponse:
        """部分更新项目，提交前按需重算自动进度"""
        project = await self.get_project_row(project_id)

        update_data = data.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_FIELDS:
            if field in update_data and update_data[field] is None:
                del update_data[field]
        if "name" in update_data:
            update_data["name"] = clean_text(update_data["name"], DEFAULT_PROJECT_NAME)
        if "tags" in update_data:
            tags = update_data["tags"]
            update_data["tags"] = dump_json_list(tags) if tags is not None else None
        if "priority" in update_data:
            update_data["priority"] = update_data["priority"].value

        for field, value in update_data.items():
            setattr(project, field, value)

        await recompute_progress_if_auto(self.db, project_id)
        await self.db.commit()

        tasks = await self.list_tasks_rows(project_id)
        return ProjectResponse.from_row(project, tasks)

    async def delete_project(self, project_id: str) -> None:
        """删除项目及其全部任务"""
        await self.db.execute(delete(Task).where(Task.project_id == project_id))
        result = await self.db.execute(delete(Project).where(Project.id == project_id))
        await self.db.commit()

        if result.rowcount:
            app_logger.log_business_event("delete", entity_type="project", entity_id=project_id)
