"""客户端缓存模型

所有模型均为不可变对象，集合字段使用tuple；更新时通过 model_copy 整体替换。
"""
from datetime import date, datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from tracker.core.progress import ProjectStatus, project_status
from tracker.schemas.project import ProjectPriority, coerce_priority
from tracker.schemas.task import TaskStatus, coerce_task_status

class ClientModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

class Comment(ClientModel):
    id: str
    text: str
    created_at: Optional[datetime] = None
    author_id: Optional[str] = None

class Task(ClientModel):
    id: str
    name: str
    completed: bool = False
    project_id: Optional[str] = None
    assignee_id: Optional[str] = None
    status: TaskStatus = TaskStatus.ACTIVE
    description: Optional[str] = None
    comments: Tuple[Comment, ...] = ()

    @field_validator('status', mode='before')
    @classmethod
    def parse_status(cls, v):
        return coerce_task_status(v)

    @field_validator('comments', mode='before')
    @classmethod
    def parse_comments(cls, v):
        return v if isinstance(v, (list, tuple)) else ()

    @property
    def is_placeholder(self) -> bool:
        """尚未被服务端确认的临时任务"""
        return self.id.startswith("temp_")

class Project(ClientModel):
    id: str
    name: str
    progress: int = 0
    auto_progress: bool = True
    tags: Tuple[str, ...] = ()
    priority: ProjectPriority = ProjectPriority.MEDIUM
    deadline: Optional[date] = None
    tasks: Tuple[Task, ...] = ()
    # 任务列表是否已从服务端加载过（区分“未加载”和“已加载但为空”）
    tasks_loaded: bool = False

    @field_validator('priority', mode='before')
    @classmethod
    def parse_priority(cls, v):
        return coerce_priority(v)

    @field_validator('tags', 'tasks', mode='before')
    @classmethod
    def parse_sequence(cls, v):
        return v if isinstance(v, (list, tuple)) else ()

    @property
    def status(self) -> ProjectStatus:
        return project_status(self.progress, len(self.tasks))

class TeamMember(ClientModel):
    id: str
    name: str

class AppState(ClientModel):
    projects: Tuple[Project, ...] = ()
    team: Tuple[TeamMember, ...] = ()
