"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 异常映射 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from tasklane.core.config import load_store_config
from tasklane.core.store import create_store_group

from .errors import register_error_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.scope_mw import ScopeMiddleware
from .routes import health, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时打开数据库，关闭时释放连接"""
    config = load_store_config()
    store_group = await create_store_group(config.db_path, config.busy_timeout_ms)
    app.state.store_group = store_group
    log.info("store_group_initialized", db_path=config.db_path)

    yield

    if getattr(app.state, "store_group", None) is not None:
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="tasklane Gateway",
        version="0.1.0",
        description="多租户任务管理 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Scope 后 Logging，Logging 位于最外层）
    app.add_middleware(ScopeMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    log_settings = setup_logging()
    setup_logfire(app, log_settings)

    register_error_handlers(app)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
