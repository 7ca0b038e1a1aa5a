from pydantic_settings import BaseSettings
from typing import Optional
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # 应用配置
    APP_NAME: str = "Project Tracker"
    APP_DESCRIPTION: str = "Project and task tracker API with auto-progress"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    INIT_DB_ON_STARTUP: bool = True

    # 服务器配置
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8000

    # 数据库配置
    DATABASE_URL: str = "sqlite+aiosqlite:///./tracker.db"
    DATABASE_ECHO: bool = False # 是否显示SQLAlchemy的SQL日志

    # JWT配置
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60
    PASSWORD_MIN_LENGTH: int = 6

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_MAX_SIZE: int = 10 * 1024 * 1024  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    SLOW_REQUEST_THRESHOLD: float = 2.0

    # CORS配置
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # 客户端配置
    API_URL: str = "http://localhost:8000"
    PROGRESS_DEBOUNCE_SECONDS: float = 0.5
    TASK_CREATE_DEBOUNCE_SECONDS: float = 0.4
    ASSIGN_DEBOUNCE_SECONDS: float = 0.5

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# 创建全局设置实例
settings = Settings()
