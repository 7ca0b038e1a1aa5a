from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, ValidationError, field_validator

from tracker.core.utils import load_json_list
from tracker.schemas.base import CamelModel

DEFAULT_TASK_NAME = "Untitled Task"

class TaskStatus(str, Enum):
    DRAFT = "draft"
    VERSION = "version"
    ACTIVE = "active"

def coerce_task_status(value: Any) -> TaskStatus:
    """非法状态统一回落为 active"""
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        return TaskStatus.ACTIVE

# 评论相关模式
class CommentCreate(CamelModel):
    text: Optional[str] = None
    author_id: Optional[str] = None

class CommentResponse(CamelModel):
    id: str
    text: str
    created_at: datetime
    author_id: Optional[str] = None

def decode_comments(raw: Any) -> List[CommentResponse]:
    """解析评论JSON列，跳过格式错误的条目"""
    comments = []
    for item in load_json_list(raw):
        if isinstance(item, CommentResponse):
            comments.append(item)
            continue
        try:
            comments.append(CommentResponse.model_validate(item))
        except ValidationError:
            continue
    return comments

# 任务相关模式
class TaskCreate(CamelModel):
    name: Optional[str] = None
    assignee_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    description: Optional[str] = None

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, v):
        if v is None or v == "":
            return None
        return coerce_task_status(v)

class TaskUpdate(CamelModel):
    """任务部分更新，未提供的字段保持不变"""
    name: Optional[str] = None
    completed: Optional[bool] = None
    assignee_id: Optional[str] = None
    status: Optional[TaskStatus] = None
    description: Optional[str] = None

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, v):
        return None if v is None else coerce_task_status(v)

class TaskResponse(CamelModel):
    id: str
    name: str
    completed: bool = False
    project_id: str
    assignee_id: Optional[str] = None
    status: TaskStatus = TaskStatus.ACTIVE
    description: Optional[str] = None
    comments: List[CommentResponse] = Field(default_factory=list)

    @field_validator('status', mode='before')
    @classmethod
    def parse_status(cls, v):
        return coerce_task_status(v)

    @field_validator('comments', mode='before')
    @classmethod
    def parse_comments(cls, v):
        """解析comments字段，支持JSON字符串转换为列表"""
        return decode_comments(v)

    @classmethod
    def from_row(cls, task) -> "TaskResponse":
        """ORM行映射为接口模型"""
        return cls(
            id=task.id,
            name=task.name,
            completed=bool(task.completed),
            project_id=task.project_id,
            assignee_id=task.assignee_id,
            status=task.status,
            description=task.description or None,
            comments=task.comments,
        )
