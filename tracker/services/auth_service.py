"""认证服务模块

负责用户注册、登录校验和令牌签发
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.config import settings
from tracker.core.exceptions import (
    EmailAlreadyExistsException,
    InvalidCredentialsException,
    UserNotFoundException,
    ValidationException,
)
from tracker.core.logging import app_logger
from tracker.core.security import create_access_token, get_password_hash, validate_email, verify_password
from tracker.core.utils import generate_id
from tracker.models import User
from tracker.schemas.user import AuthResponse, UserLogin, UserRegister, UserResponse


class AuthService:
    """认证服务类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, data: UserRegister) -> AuthResponse:
        """注册新用户并签发令牌"""
        email = (data.email or "").strip()
        name = (data.name or "").strip()
        password = data.password or ""

        if not email or not password or not name:
            raise ValidationException("Email, password, and name are required")
        if not validate_email(email):
            raise ValidationException("Invalid email format", {"email": "invalid format"})
        if len(password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationException(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
                {"password": "too short"}
            )

        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.first() is not None:
            raise EmailAlreadyExistsException(email)

        user = User(
            id=generate_id(),
            email=email,
            name=name,
            password_hash=get_password_hash(password),
        )
        self.db.add(user)
        await self.db.commit()

        app_logger.log_business_event("register", entity_type="user", entity_id=user.id)
        return AuthResponse(token=create_access_token(user.id), user=UserResponse.model_validate(user))

    async def login(self, data: UserLogin) -> AuthResponse:
        """校验邮箱和密码并签发令牌"""
        email = (data.email or "").strip()
        password = data.password or ""
        if not email or not password:
            raise ValidationException("Email and password are required")

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            app_logger.log_login_attempt(email, success=False)
            raise InvalidCredentialsException()

        app_logger.log_login_attempt(email, success=True)
        return AuthResponse(token=create_access_token(user.id), user=UserResponse.model_validate(user))

    async def get_user(self, user_id: str) -> User:
        """根据ID获取用户"""
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundException(user_id)
        return user
