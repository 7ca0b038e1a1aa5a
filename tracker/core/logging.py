import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from tracker.core.config import settings
import json
from datetime import datetime, timezone

class JSONFormatter(logging.Formatter):
    """JSON格式的日志格式化器"""

    EXTRA_FIELDS = (
        "user_id", "request_id", "ip_address", "endpoint", "method",
        "status_code", "response_time", "entity_type", "entity_id",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # 添加异常信息
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # 添加额外字段
        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, ensure_ascii=False, default=str)

class ColoredFormatter(logging.Formatter):
    """带颜色的控制台日志格式化器"""

    # ANSI颜色代码
    COLORS = {
        'DEBUG': '\033[36m',      # 青色
        'INFO': '\033[32m',       # 绿色
        'WARNING': '\033[33m',    # 黄色
        'ERROR': '\033[31m',      # 红色
        'CRITICAL': '\033[35m',   # 紫色
        'RESET': '\033[0m'        # 重置
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        record.asctime = self.formatTime(record, self.datefmt)

        log_message = (
            f"{color}[{record.asctime}] "
            f"{record.levelname:8} "
            f"{record.name}:{record.lineno} - "
            f"{record.getMessage()}{reset}"
        )

        if record.exc_info:
            log_message += "\n" + self.formatException(record.exc_info)

        return log_message

class SensitiveDataFilter(logging.Filter):
    """敏感数据过滤器"""

    SENSITIVE_FIELDS = ('password', 'token', 'secret', 'authorization')

    def filter(self, record: logging.LogRecord) -> bool:
        # 结构化字段中的敏感值直接掩码
        for field in self.SENSITIVE_FIELDS:
            if hasattr(record, field):
                setattr(record, field, "***MASKED***")
        return True

def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_json: bool = False,
    enable_colors: bool = True
) -> None:
    """设置日志配置"""

    log_level = (log_level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))

    # 清除现有的处理器
    root_logger.handlers.clear()

    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level))

    if enable_colors and sys.stdout.isatty():
        console_formatter = ColoredFormatter(datefmt='%Y-%m-%d %H:%M:%S')
    else:
        console_formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)-8s %(name)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    # 文件处理器
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings.LOG_MAX_SIZE,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setLevel(getattr(logging, log_level))

        if enable_json:
            file_formatter = JSONFormatter()
        else:
            file_formatter = logging.Formatter(
                '[%(asctime)s] %(levelname)-8s %(name)s:%(lineno)d - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        file_handler.setFormatter(file_formatter)
        file_handler.addFilter(SensitiveDataFilter())
        root_logger.addHandler(file_handler)

    # 设置第三方库的日志级别
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    if settings.is_development and settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

def get_logger(name: str) -> logging.Logger:
    """获取日志记录器"""
    return logging.getLogger(name)

class StructuredLogger:
    """结构化日志记录器"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs):
        exc_info = kwargs.pop("exc_info", False)
        self.logger.log(level, message, extra=kwargs, exc_info=exc_info)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """记录异常日志"""
        kwargs['exc_info'] = True
        self._log(logging.ERROR, message, **kwargs)

# 应用程序特定的日志记录器
class AppLogger:
    """应用程序日志记录器"""

    def __init__(self):
        self.auth_logger = StructuredLogger("tracker.auth")
        self.api_logger = StructuredLogger("tracker.api")
        self.db_logger = StructuredLogger("tracker.database")
        self.business_logger = StructuredLogger("tracker.business")

    def log_login_attempt(self, email: str, success: bool, **kwargs):
        """记录登录尝试"""
        message = f"Login {'successful' if success else 'failed'} for user: {email}"
        level = logging.INFO if success else logging.WARNING

        self.auth_logger._log(level, message, email=email, success=success, **kwargs)

    def log_business_event(self, event_type: str, entity_type: str = None,
                           entity_id: str = None, user_id: str = None, **kwargs):
        """记录业务事件"""
        message = f"Business event: {event_type} {entity_type or ''} {entity_id or ''}".rstrip()

        self.business_logger._log(
            logging.INFO, message,
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            **kwargs
        )

# 全局应用程序日志记录器实例
app_logger = AppLogger()

# 性能监控日志
class PerformanceLogger:
    """性能监控日志记录器"""

    def __init__(self):
        self.logger = StructuredLogger("tracker.performance")

    def log_response_time(self, endpoint: str, response_time: float, threshold: float = 2.0):
        """记录响应时间"""
        if response_time > threshold:
            self.logger.warning(
                f"Slow response: {endpoint} took {response_time:.3f}s",
                endpoint=endpoint,
                response_time=response_time,
                threshold=threshold
            )

performance_logger = PerformanceLogger()

def init_logging():
    """初始化日志系统"""
    setup_logging(
        log_level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        enable_json=settings.is_production,
        enable_colors=settings.is_development
    )

    logger = get_logger(__name__)
    logger.info(f"Logging initialized - Level: {settings.LOG_LEVEL}, Environment: {settings.ENVIRONMENT}")
