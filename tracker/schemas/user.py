from typing import Optional

from pydantic import BaseModel

from tracker.schemas.base import CamelModel

class UserRegister(BaseModel):
    # 字段完整性由服务层校验，统一返回400
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class UserResponse(CamelModel):
    id: str
    email: str
    name: str

class AuthResponse(BaseModel):
    token: str
    user: UserResponse

class CurrentUserResponse(BaseModel):
    user: UserResponse
