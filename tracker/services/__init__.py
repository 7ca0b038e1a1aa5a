"""服务模块

包含认证、项目、任务和团队成员相关的业务逻辑处理
"""
from tracker.services.auth_service import AuthService
from tracker.services.project_service import ProjectService
from tracker.services.task_service import TaskService
from tracker.services.team_service import TeamService

__all__ = ["AuthService", "ProjectService", "TaskService", "TeamService"]
