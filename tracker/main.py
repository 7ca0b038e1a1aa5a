from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from tracker.core import database
from tracker.core.config import settings
from tracker.core.logging import get_logger, init_logging
from tracker.core.middleware import setup_middleware
from tracker.core.exceptions import setup_exception_handlers

# 导入API路由
from tracker.api.api import api_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用程序生命周期管理"""
    # 启动时执行
    init_logging()
    logger.info("Starting application...")

    try:
        database.init_db_connection()
        logger.info("Database engine initialized")

        if settings.INIT_DB_ON_STARTUP:
            logger.info("Creating database tables...")
            await database.create_tables()

        logger.info("Application startup completed")

        yield

    except Exception as e:
        logger.error(f"Application startup failed: {str(e)}", exc_info=True)
        raise

    finally:
        # 关闭时执行
        logger.info("Shutting down application...")
        await database.dispose_engine()
        logger.info("Application shutdown completed")

# 创建FastAPI应用实例
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.VERSION,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan
)

# 设置中间件
setup_middleware(app)

# 设置异常处理器
setup_exception_handlers(app)

# 健康检查端点
@app.get("/health")
async def health_check():
    """健康检查端点（会探测数据库连接）"""
    try:
        if database.AsyncSessionLocal is None:
            raise RuntimeError("Database connection not initialized")
        async with database.AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}", exc_info=True)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    return {
        "ok": True,
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.VERSION
    }

# 包含API路由
app.include_router(api_router)
