from datetime import date
from enum import Enum
from typing import Any, List, Optional, Sequence

from pydantic import Field, field_validator

from tracker.core.progress import clamp_progress
from tracker.core.utils import load_json_list
from tracker.schemas.base import CamelModel
from tracker.schemas.task import TaskResponse

DEFAULT_PROJECT_NAME = "Untitled Project"

class ProjectPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

def coerce_priority(value: Any) -> ProjectPriority:
    """非法优先级统一回落为 medium"""
    if isinstance(value, ProjectPriority):
        return value
    try:
        return ProjectPriority(value)
    except ValueError:
        return ProjectPriority.MEDIUM

def _parse_tags(v):
    if not isinstance(v, list):
        return None
    return [str(tag) for tag in v]

def _parse_deadline(v):
    if v is None or v == "":
        return None
    if isinstance(v, str) and len(v) > 10 and v[4] == "-" and v[10] in "T ":
        # 兼容ISO日期时间字符串，只保留日期部分
        return v[:10]
    return v

class ProjectCreate(CamelModel):
    name: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[ProjectPriority] = None
    deadline: Optional[date] = None

    @field_validator('tags', mode='before')
    @classmethod
    def normalize_tags(cls, v):
        return _parse_tags(v)

    @field_validator('priority', mode='before')
    @classmethod
    def normalize_priority(cls, v):
        return coerce_priority(v)

    @field_validator('deadline', mode='before')
    @classmethod
    def normalize_deadline(cls, v):
        return _parse_deadline(v)

class ProjectUpdate(CamelModel):
    """项目部分更新，未提供的字段保持不变"""
    name: Optional[str] = None
    progress: Optional[int] = None
    auto_progress: Optional[bool] = None
    tags: Optional[List[str]] = None
    priority: Optional[ProjectPriority] = None
    deadline: Optional[date] = None

    @field_validator('progress', mode='before')
    @classmethod
    def normalize_progress(cls, v):
        if v is None:
            return None
        if isinstance(v, bool):
            raise ValueError('progress must be a number')
        try:
            return clamp_progress(v)
        except (TypeError, ValueError, OverflowError):
            raise ValueError('progress must be a finite number')

    @field_validator('tags', mode='before')
    @classmethod
    def normalize_tags(cls, v):
        return _parse_tags(v)

    @field_validator('priority', mode='before')
    @classmethod
    def normalize_priority(cls, v):
        return None if v is None else coerce_priority(v)

    @field_validator('deadline', mode='before')
    @classmethod
    def normalize_deadline(cls, v):
        return _parse_deadline(v)

class ProjectResponse(CamelModel):
    id: str
    name: str
    progress: int = 0
    auto_progress: bool = True
    tags: List[str] = Field(default_factory=list)
    priority: ProjectPriority = ProjectPriority.MEDIUM
    deadline: Optional[date] = None
    tasks: List[TaskResponse] = Field(default_factory=list)

    @field_validator('tags', mode='before')
    @classmethod
    def parse_tags(cls, v):
        """解析tags字段，支持JSON字符串转换为列表"""
        return [str(tag) for tag in load_json_list(v)]

    @field_validator('priority', mode='before')
    @classmethod
    def parse_priority(cls, v):
        return coerce_priority(v)

    @classmethod
    def from_row(cls, project, tasks: Sequence[Any] = ()) -> "ProjectResponse":
        """ORM行映射为接口模型"""
        return cls(
            id=project.id,
            name=project.name,
            progress=int(project.progress or 0),
            auto_progress=bool(project.auto_progress),
            tags=project.tags,
            priority=project.priority,
            deadline=project.deadline,
            tasks=[TaskResponse.from_row(task) for task in tasks],
        )
