from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.auth import get_current_user
from tracker.core.database import get_db
from tracker.models import User
from tracker.schemas.user import AuthResponse, CurrentUserResponse, UserLogin, UserRegister, UserResponse
from tracker.services.auth_service import AuthService

router = APIRouter()

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: AsyncSession = Depends(get_db)):
    """用户注册"""
    return await AuthService(db).register(user_data)

@router.post("/login", response_model=AuthResponse)
async def login(user_credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    """用户登录"""
    return await AuthService(db).login(user_credentials)

@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """获取当前用户信息"""
    return CurrentUserResponse(user=UserResponse.model_validate(current_user))
