from fastapi import APIRouter

from tracker.api.endpoints import auth, projects, tasks, team

api_router = APIRouter()

# 认证相关路由
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# 项目管理路由
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])

# 任务与评论路由（挂在项目下）
api_router.include_router(tasks.router, prefix="/projects", tags=["tasks"])

# 团队成员路由
api_router.include_router(team.router, prefix="/team", tags=["team"])
