from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.database import get_db
from tracker.core.exceptions import AuthenticationException
from tracker.core.security import decode_access_token
from tracker.models import User
from tracker.services.auth_service import AuthService

# 缺少令牌时由我们自己返回401，而不是HTTPBearer默认的403
security = HTTPBearer(auto_error=False)

async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """验证JWT令牌"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException(message="Unauthorized")
    return decode_access_token(credentials.credentials)

async def get_current_user(
    token_data: Dict[str, Any] = Depends(verify_token),
    db: AsyncSession = Depends(get_db)
) -> User:
    """获取当前用户"""
    return await AuthService(db).get_user(token_data["userId"])
