"""数据模型"""
from tracker.models.user import User
from tracker.models.project import Project
from tracker.models.task import Task
from tracker.models.team_member import TeamMember

__all__ = ["User", "Project", "Task", "TeamMember"]
