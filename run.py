#!/usr/bin/env python3
"""
项目启动脚本
"""

import uvicorn

from tracker.core.config import settings

def main():
    """启动FastAPI应用"""
    host = settings.SERVER_HOST
    port = settings.SERVER_PORT
    debug = settings.DEBUG

    print(f"启动服务器...")
    print(f"地址: http://{host}:{port}")
    print(f"调试模式: {debug}")
    print(f"API文档: http://{host}:{port}/docs")

    # 启动服务器
    uvicorn.run(
        "tracker.main:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info" if not debug else "debug"
    )

if __name__ == "__main__":
    main()
