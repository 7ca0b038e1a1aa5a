from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, NoResultFound
from typing import Any, Dict, Optional
from enum import Enum

from tracker.core.config import settings
from tracker.core.logging import app_logger

class ErrorCode(str, Enum):
    """错误代码枚举"""

    # 通用错误
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"

    # 认证相关错误
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"

    # 业务逻辑错误
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"

    # 资源不存在错误
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TEAM_MEMBER_NOT_FOUND = "TEAM_MEMBER_NOT_FOUND"

    # 数据库相关错误
    DATABASE_ERROR = "DATABASE_ERROR"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"

class BaseAPIException(HTTPException):
    """基础API异常类"""

    def __init__(
        self,
        status_code: int,
        error_code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code.value,
                "message": message,
                "details": self.details
            },
            headers=headers
        )

# 认证相关异常
class AuthenticationException(BaseAPIException):
    """认证异常"""

    def __init__(self, error_code: ErrorCode = ErrorCode.UNAUTHORIZED, message: str = "Authentication required"):
        super().__init__(401, error_code, message, headers={"WWW-Authenticate": "Bearer"})

class InvalidCredentialsException(AuthenticationException):
    """无效凭据异常"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(ErrorCode.INVALID_CREDENTIALS, message)

class TokenExpiredException(AuthenticationException):
    """令牌过期异常"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(ErrorCode.TOKEN_EXPIRED, message)

class TokenInvalidException(AuthenticationException):
    """无效令牌异常"""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(ErrorCode.TOKEN_INVALID, message)

# 资源不存在异常
class ResourceNotFoundException(BaseAPIException):
    """资源不存在异常"""

    def __init__(self, error_code: ErrorCode, resource_type: str, resource_id: str = None, message: str = None):
        if not message:
            if resource_id:
                message = f"{resource_type} with ID {resource_id} not found"
            else:
                message = f"{resource_type} not found"

        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(404, error_code, message, details)

class UserNotFoundException(ResourceNotFoundException):
    """用户不存在异常"""

    def __init__(self, user_id: str = None):
        super().__init__(ErrorCode.USER_NOT_FOUND, "User", user_id)

class ProjectNotFoundException(ResourceNotFoundException):
    """项目不存在异常"""

    def __init__(self, project_id: str = None):
        super().__init__(ErrorCode.PROJECT_NOT_FOUND, "Project", project_id)

class TaskNotFoundException(ResourceNotFoundException):
    """任务不存在异常"""

    def __init__(self, task_id: str = None):
        super().__init__(ErrorCode.TASK_NOT_FOUND, "Task", task_id)

class TeamMemberNotFoundException(ResourceNotFoundException):
    """团队成员不存在异常"""

    def __init__(self, member_id: str = None):
        super().__init__(ErrorCode.TEAM_MEMBER_NOT_FOUND, "Team member", member_id)

# 冲突异常
class ConflictException(BaseAPIException):
    """冲突异常"""

    def __init__(self, error_code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(409, error_code, message, details)

class EmailAlreadyExistsException(ConflictException):
    """邮箱已存在异常"""

    def __init__(self, email: str):
        super().__init__(ErrorCode.EMAIL_ALREADY_EXISTS, "Email already registered", {"email": email})

# 验证异常
class ValidationException(BaseAPIException):
    """验证异常"""

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        details = {"field_errors": field_errors} if field_errors else None
        super().__init__(400, ErrorCode.VALIDATION_ERROR, message, details)

# 全局异常处理器
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTP异常处理器"""

    request_id = getattr(request.state, "request_id", "unknown")

    app_logger.api_logger.warning(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        request_id=request_id,
        status_code=exc.status_code,
        url=str(request.url),
        method=request.method
    )

    if isinstance(exc, BaseAPIException):
        content = dict(exc.detail)
    else:
        content = {
            "error_code": "HTTP_EXCEPTION",
            "message": str(exc.detail),
            "details": {}
        }

    content["request_id"] = request_id

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None)
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """验证异常处理器"""

    request_id = getattr(request.state, "request_id", "unknown")

    # 提取字段错误
    field_errors = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"][1:])  # 跳过'body'
        field_errors[field_path or "body"] = error["msg"]

    app_logger.api_logger.warning(
        f"Validation error: {field_errors}",
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    content = {
        "error_code": ErrorCode.VALIDATION_ERROR.value,
        "message": "Validation failed",
        "details": {
            "field_errors": field_errors
        },
        "request_id": request_id
    }

    return JSONResponse(status_code=400, content=content)

async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """SQLAlchemy异常处理器"""

    request_id = getattr(request.state, "request_id", "unknown")

    app_logger.db_logger.error(
        f"Database error: {str(exc)}",
        request_id=request_id,
        error_type=type(exc).__name__,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    if isinstance(exc, IntegrityError):
        error_code = ErrorCode.CONSTRAINT_VIOLATION
        message = "Data integrity constraint violation"
        status_code = 409
    elif isinstance(exc, NoResultFound):
        error_code = ErrorCode.NOT_FOUND
        message = "Requested resource not found"
        status_code = 404
    else:
        error_code = ErrorCode.DATABASE_ERROR
        message = "Database operation failed"
        status_code = 500

    content = {
        "error_code": error_code.value,
        "message": message,
        "details": {},
        "request_id": request_id
    }

    # 在开发环境中包含详细错误信息
    if settings.is_development:
        content["details"]["database_error"] = str(exc)

    return JSONResponse(status_code=status_code, content=content)

async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理器"""

    request_id = getattr(request.state, "request_id", "unknown")

    app_logger.api_logger.error(
        f"Unhandled exception: {str(exc)}",
        request_id=request_id,
        error_type=type(exc).__name__,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    content = {
        "error_code": ErrorCode.INTERNAL_SERVER_ERROR.value,
        "message": "An unexpected error occurred",
        "details": {},
        "request_id": request_id
    }

    if settings.is_development:
        content["details"]["exception"] = str(exc)
        content["details"]["exception_type"] = type(exc).__name__

    return JSONResponse(status_code=500, content=content)

def setup_exception_handlers(app):
    """设置异常处理器"""

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
