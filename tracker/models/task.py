from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Boolean
from tracker.core.utils import utcnow
from tracker.core.database import Base

class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    project_id = Column(String, ForeignKey('projects.id', ondelete="CASCADE"), index=True, nullable=False)
    # 弱引用团队成员，不设外键，成员删除后保留原ID
    assignee_id = Column(String, nullable=True)
    status = Column(String, default="active", nullable=False) # draft, version, active
    description = Column(Text, nullable=True)
    comments = Column(Text, nullable=True) # JSON数组文本，按插入顺序
    # 微秒精度，保证同一秒内创建的任务顺序稳定
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
