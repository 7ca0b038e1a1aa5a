"""自动进度重算

调用方负责在同一事务内完成任务写入与进度重算后统一提交。
"""
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.progress import compute_progress
from tracker.models import Project, Task


async def count_tasks(db: AsyncSession, project_id: str) -> tuple[int, int]:
    """返回 (已完成数, 总数)"""
    result = await db.execute(
        select(
            func.count(Task.id),
            func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
        ).where(Task.project_id == project_id)
    )
    total, completed = result.one()
    return int(completed or 0), int(total or 0)


async def recompute_progress_if_auto(db: AsyncSession, project_id: str) -> Optional[int]:
    """项目开启自动进度时按任务完成率重算进度，返回新进度；未开启时返回 None"""
    project = await db.get(Project, project_id)
    if project is None or not project.auto_progress:
        return None

    # 先把本事务内未刷新的任务变更写入，保证统计可见
    await db.flush()
    completed, total = await count_tasks(db, project_id)
    project.progress = compute_progress(completed, total)
    return project.progress
