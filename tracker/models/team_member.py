from sqlalchemy import Column, String, DateTime
from tracker.core.utils import utcnow
from tracker.core.database import Base

class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
