from sqlalchemy import Column, String, DateTime, Date, Integer, Boolean, Text
from tracker.core.utils import utcnow
from tracker.core.database import Base

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    progress = Column(Integer, default=0, nullable=False) # 0-100
    auto_progress = Column(Boolean, default=True, nullable=False) # 进度是否由任务完成率推导
    tags = Column(Text, nullable=True) # JSON数组文本
    priority = Column(String, default="medium", nullable=False) # low, medium, high, urgent
    deadline = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
