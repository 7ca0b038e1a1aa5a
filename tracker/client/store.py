"""客户端状态缓存

乐观更新：先修改本地状态，再发起网络请求；请求失败时回滚到修改前的快照。
部分写操作（进度、新建任务、分配负责人）按key去抖合并。
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence

import httpx

from tracker.client.api import APIError, TrackerAPI
from tracker.client.debounce import Debouncer
from tracker.client.models import AppState, Comment, Project, Task, TeamMember
from tracker.core.config import settings
from tracker.core.progress import ProjectStatus, clamp_progress, progress_from_flags
from tracker.core.utils import clean_text
from tracker.schemas.task import DEFAULT_TASK_NAME, TaskStatus, coerce_task_status

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (httpx.HTTPError, APIError)

Listener = Callable[[AppState], None]

def _sorted_projects(projects: Iterable[Project]) -> tuple:
    return tuple(sorted(projects, key=lambda p: p.name))

def with_tasks(project: Project, tasks: Sequence[Task]) -> Project:
    """替换任务列表，自动进度模式下同时重算进度"""
    tasks = tuple(tasks)
    update = {"tasks": tasks}
    if project.auto_progress:
        update["progress"] = progress_from_flags(task.completed for task in tasks)
    return project.model_copy(update=update)

class TrackerStore:
    """项目、任务和团队成员的内存缓存"""

    def __init__(
        self,
        api: TrackerAPI,
        *,
        progress_delay: Optional[float] = None,
        create_task_delay: Optional[float] = None,
        assign_delay: Optional[float] = None,
    ):
        self.api = api
        self.progress_delay = settings.PROGRESS_DEBOUNCE_SECONDS if progress_delay is None else progress_delay
        self.create_task_delay = (
            settings.TASK_CREATE_DEBOUNCE_SECONDS if create_task_delay is None else create_task_delay
        )
        self.assign_delay = settings.ASSIGN_DEBOUNCE_SECONDS if assign_delay is None else assign_delay

        self._state = AppState()
        self._in_flight = 0
        self._initial_load = False
        self._error: Optional[str] = None
        self._listeners: List[Listener] = []
        self._tasks_loading: set = set()
        # 创建请求已发出、但本地已删除的临时任务
        self._deleted_placeholders: set = set()
        self._debouncer = Debouncer()

    # 只读访问
    @property
    def state(self) -> AppState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def initial_load(self) -> bool:
        return self._initial_load

    @property
    def error(self) -> Optional[str]:
        return self._error

    def get_project(self, project_id: str) -> Optional[Project]:
        for project in self._state.projects:
            if project.id == project_id:
                return project
        return None

    def get_task(self, project_id: str, task_id: str) -> Optional[Task]:
        project = self.get_project(project_id)
        if project is None:
            return None
        for task in project.tasks:
            if task.id == task_id:
                return task
        return None

    def project_status(self, project_id: str) -> Optional[ProjectStatus]:
        project = self.get_project(project_id)
        return project.status if project is not None else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """注册状态监听器，返回取消注册的函数。

        状态替换和加载计数变化后都会通知监听器。
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # 内部状态替换
    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    def _set_state(self, state: AppState) -> None:
        self._state = state
        self._notify()

    def _set_projects(self, projects: Iterable[Project]) -> None:
        self._set_state(self._state.model_copy(update={"projects": tuple(projects)}))

    def _replace_project(self, project_id: str, fn: Callable[[Project], Project]) -> None:
        if self.get_project(project_id) is None:
            return
        self._set_projects(fn(p) if p.id == project_id else p for p in self._state.projects)

    def _replace_task(
        self,
        project_id: str,
        task_id: str,
        fn: Callable[[Task], Task],
        recompute: bool = False,
    ) -> None:
        def apply(project: Project) -> Project:
            tasks = tuple(fn(t) if t.id == task_id else t for t in project.tasks)
            if recompute:
                return with_tasks(project, tasks)
            return project.model_copy(update={"tasks": tasks})

        self._replace_project(project_id, apply)

    def _remove_task(self, project_id: str, task_id: str) -> None:
        self._replace_project(
            project_id,
            lambda p: with_tasks(p, (t for t in p.tasks if t.id != task_id)),
        )

    def _restore_project(self, snapshot: Project) -> None:
        self._replace_project(snapshot.id, lambda p: snapshot)

    @asynccontextmanager
    async def _track(self):
        """统计进行中的网络请求"""
        self._in_flight += 1
        self._notify()
        try:
            yield
        finally:
            self._in_flight -= 1
            self._notify()

    @asynccontextmanager
    async def _optimistic(self, label: str, rollback: Optional[Callable[[], None]] = None):
        """进入时保存快照；块内网络请求失败时回滚并记录日志。

        未提供 rollback 时恢复整个状态快照。
        """
        snapshot = self._state
        try:
            yield
        except NETWORK_ERRORS as exc:
            logger.warning("%s failed, rolling back: %s", label, exc)
            if rollback is None:
                self._set_state(snapshot)
            else:
                rollback()

    # 加载
    async def load_all(self) -> None:
        """并发加载项目和团队成员，替换整个缓存"""
        try:
            async with self._track():
                projects, team = await asyncio.gather(self.api.list_projects(), self.api.list_team())
        except NETWORK_ERRORS as exc:
            logger.error("Failed to load data: %s", exc)
            self._error = str(exc)
            self._initial_load = True
            self._set_state(AppState())
            return

        self._error = None
        self._initial_load = True
        self._set_state(AppState(projects=_sorted_projects(projects), team=tuple(team)))

    async def load_project_tasks(self, project_id: str) -> None:
        self._tasks_loading.add(project_id)
        try:
            async with self._track():
                tasks = await self.api.list_tasks(project_id)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to load tasks for project %s: %s", project_id, exc)
            self._replace_project(
                project_id,
                lambda p: p.model_copy(update={"tasks": (), "tasks_loaded": False}),
            )
            return
        finally:
            self._tasks_loading.discard(project_id)

        self._replace_project(
            project_id,
            lambda p: p.model_copy(update={"tasks": tuple(tasks), "tasks_loaded": True}),
        )

    async def ensure_tasks_loaded(self, project_id: str) -> None:
        """任务列表从未加载过时才请求服务端"""
        project = self.get_project(project_id)
        if project is None or project.tasks_loaded or project_id in self._tasks_loading:
            return
        await self.load_project_tasks(project_id)

    # 项目
    async def add_project(
        self,
        name: str,
        tags: Optional[Sequence[str]] = None,
        priority: Optional[str] = None,
        deadline: Optional[date] = None,
    ) -> Optional[Project]:
        try:
            async with self._track():
                project = await self.api.create_project(name, tags=tags, priority=priority, deadline=deadline)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to create project %r: %s", name, exc)
            return None

        self._set_projects(_sorted_projects(self._state.projects + (project,)))
        return project

    async def delete_project(self, project_id: str) -> None:
        previous = self._state.projects
        self._debouncer.cancel(f"progress:{project_id}")

        async with self._optimistic(
            f"Delete project {project_id}",
            rollback=lambda: self._set_projects(previous),
        ):
            self._set_projects(p for p in previous if p.id != project_id)
            async with self._track():
                await self.api.delete_project(project_id)

    async def set_project_progress(self, project_id: str, value: float) -> None:
        """立即更新本地进度，写请求按项目去抖"""
        project = self.get_project(project_id)
        if project is None:
            return
        try:
            value = clamp_progress(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid progress %r for project %s: %s", value, project_id, exc)
            return
        previous = project.progress

        self._replace_project(project_id, lambda p: p.model_copy(update={"progress": value}))
        self._debouncer.schedule(
            f"progress:{project_id}",
            self.progress_delay,
            lambda: self._write_progress(project_id, value, previous),
        )

    async def _write_progress(self, project_id: str, value: int, previous: int) -> None:
        async with self._optimistic(
            f"Progress write for project {project_id}",
            rollback=lambda: self._replace_project(
                project_id, lambda p: p.model_copy(update={"progress": previous})
            ),
        ):
            async with self._track():
                project = await self.api.update_project(project_id, progress=value)
            self._replace_project(
                project_id,
                lambda p: p.model_copy(update={
                    "progress": project.progress,
                    "auto_progress": project.auto_progress,
                }),
            )

    async def toggle_project_auto(self, project_id: str, auto: bool) -> None:
        project = self.get_project(project_id)
        if project is None:
            return

        async with self._optimistic(
            f"Auto progress toggle for project {project_id}",
            rollback=lambda: self._restore_project(project),
        ):
            self._replace_project(project_id, lambda p: p.model_copy(update={"auto_progress": auto}))
            async with self._track():
                canonical = await self.api.update_project(project_id, auto_progress=auto)
            self._replace_project(project_id, lambda p: canonical)

    # 任务
    async def add_task(
        self,
        project_id: str,
        name: str,
        assignee_id: Optional[str] = None,
        status: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[str]:
        """插入临时任务并去抖创建请求，返回临时任务ID"""
        if self.get_project(project_id) is None:
            return None

        placeholder = Task(
            id=f"temp_{uuid.uuid4().hex}",
            name=clean_text(name, DEFAULT_TASK_NAME),
            completed=False,
            project_id=project_id,
            assignee_id=assignee_id,
            status=coerce_task_status(status) if status else TaskStatus.ACTIVE,
            description=description,
        )
        self._replace_project(project_id, lambda p: with_tasks(p, (placeholder,) + p.tasks))
        self._debouncer.schedule(
            f"create:{placeholder.id}",
            self.create_task_delay,
            lambda: self._create_task(project_id, placeholder),
        )
        return placeholder.id

    async def _create_task(self, project_id: str, placeholder: Task) -> None:
        try:
            async with self._optimistic(
                f"Create task {placeholder.name!r}",
                rollback=lambda: self._remove_task(project_id, placeholder.id),
            ):
                async with self._track():
                    task = await self.api.create_task(
                        project_id,
                        placeholder.name,
                        assignee_id=placeholder.assignee_id,
                        status=placeholder.status,
                        description=placeholder.description,
                    )
                if placeholder.id in self._deleted_placeholders:
                    # 创建期间临时任务已被删除，补删服务端记录
                    async with self._track():
                        await self.api.delete_task(project_id, task.id)
                    return
                self._replace_project(
                    project_id,
                    lambda p: with_tasks(p, (task if t.id == placeholder.id else t for t in p.tasks)),
                )
        finally:
            self._deleted_placeholders.discard(placeholder.id)

    async def toggle_task(self, project_id: str, task_id: str) -> None:
        task = self.get_task(project_id, task_id)
        if task is None:
            # 缓存中没有该任务：直接在服务端标记完成，再刷新任务列表
            try:
                async with self._track():
                    await self.api.update_task(project_id, task_id, completed=True)
            except NETWORK_ERRORS as exc:
                logger.warning("Failed to complete task %s: %s", task_id, exc)
                return
            await self.load_project_tasks(project_id)
            return

        completed = not task.completed
        async with self._optimistic(f"Toggle task {task_id}"):
            self._replace_task(
                project_id, task_id,
                lambda t: t.model_copy(update={"completed": completed}),
                recompute=True,
            )
            async with self._track():
                canonical = await self.api.update_task(project_id, task_id, completed=completed)
            self._replace_task(
                project_id, task_id,
                lambda t: t.model_copy(update={"completed": canonical.completed}),
                recompute=True,
            )

    async def assign_task(self, project_id: str, task_id: str, assignee_id: Optional[str]) -> None:
        """立即更新负责人，写请求按任务去抖；失败时保留本地值"""
        if self.get_task(project_id, task_id) is None:
            return
        self._replace_task(project_id, task_id, lambda t: t.model_copy(update={"assignee_id": assignee_id}))
        self._debouncer.schedule(
            f"assign:{project_id}:{task_id}",
            self.assign_delay,
            lambda: self._write_assignment(project_id, task_id, assignee_id),
        )

    async def _write_assignment(self, project_id: str, task_id: str, assignee_id: Optional[str]) -> None:
        try:
            async with self._track():
                task = await self.api.update_task(project_id, task_id, assignee_id=assignee_id)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to assign task %s, keeping local value: %s", task_id, exc)
            return
        self._replace_task(project_id, task_id, lambda t: t.model_copy(update={"assignee_id": task.assignee_id}))

    async def update_task_details(
        self,
        project_id: str,
        task_id: str,
        status: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Task]:
        """先写服务端，再合并返回的 status 和 description；None 表示不修改"""
        fields = {}
        if status is not None:
            fields["status"] = status
        if description is not None:
            fields["description"] = description
        if not fields:
            return self.get_task(project_id, task_id)

        try:
            async with self._track():
                task = await self.api.update_task(project_id, task_id, **fields)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to update task %s: %s", task_id, exc)
            return None

        self._replace_task(
            project_id, task_id,
            lambda t: t.model_copy(update={"status": task.status, "description": task.description}),
        )
        return self.get_task(project_id, task_id)

    async def delete_task(self, project_id: str, task_id: str) -> None:
        project = self.get_project(project_id)
        if project is None:
            return

        task = self.get_task(project_id, task_id)
        if task is not None and task.is_placeholder:
            # 创建请求尚未发出时直接取消；已发出则等返回后补删
            if not self._debouncer.cancel(f"create:{task_id}"):
                self._deleted_placeholders.add(task_id)
            self._remove_task(project_id, task_id)
            return

        async with self._optimistic(
            f"Delete task {task_id}",
            rollback=lambda: self._restore_project(project),
        ):
            self._remove_task(project_id, task_id)
            async with self._track():
                await self.api.delete_task(project_id, task_id)
            await self.load_project_tasks(project_id)

    # 评论
    async def add_task_comment(self, project_id: str, task_id: str, text: str) -> Optional[Comment]:
        try:
            async with self._track():
                comment = await self.api.add_comment(project_id, task_id, text)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to add comment to task %s: %s", task_id, exc)
            return None

        self._replace_task(
            project_id, task_id,
            lambda t: t.model_copy(update={"comments": t.comments + (comment,)}),
        )
        return comment

    async def delete_task_comment(self, project_id: str, task_id: str, comment_id: str) -> None:
        task = self.get_task(project_id, task_id)
        if task is None:
            return
        previous = task.comments

        async with self._optimistic(
            f"Delete comment {comment_id}",
            rollback=lambda: self._replace_task(
                project_id, task_id, lambda t: t.model_copy(update={"comments": previous})
            ),
        ):
            self._replace_task(
                project_id, task_id,
                lambda t: t.model_copy(update={"comments": tuple(c for c in t.comments if c.id != comment_id)}),
            )
            async with self._track():
                await self.api.delete_comment(project_id, task_id, comment_id)

    # 团队成员
    async def add_team_member(self, name: str) -> Optional[TeamMember]:
        try:
            async with self._track():
                member = await self.api.create_team_member(name)
        except NETWORK_ERRORS as exc:
            logger.warning("Failed to add team member %r: %s", name, exc)
            return None

        self._set_state(self._state.model_copy(update={"team": self._state.team + (member,)}))
        return member

    # 生命周期
    async def drain(self) -> None:
        """等待所有去抖写请求完成"""
        await self._debouncer.drain()

    async def close(self) -> None:
        await self._debouncer.close()
