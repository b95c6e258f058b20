"""FastAPI 应用主文件

app 创建 + lifespan 管理：
启动时初始化 DB、IngestionCoordinator、每日 rollup 调度器；
关闭时停止调度器并关闭数据库连接。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from eventpulse.core.config import (
    get_db_path,
    get_idempotency_ttl_hours,
    get_ip_hash_salt,
    load_scheduler_config,
)
from eventpulse.core.ingestion import IngestionCoordinator
from eventpulse.core.scheduler import DailyRollupScheduler
from eventpulse.core.store import create_store_group
from fastapi import FastAPI

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import analytics, events, health

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    # 启动：初始化 Store
    store_group = await create_store_group(
        get_db_path(),
        idempotency_ttl=timedelta(hours=get_idempotency_ttl_hours()),
    )
    app.state.store_group = store_group

    salt = get_ip_hash_salt()
    if not salt:
        log.warning("ip_hash_salt_missing", message="EVENTPULSE_IP_HASH_SALT 未设置")
    app.state.ingestion = IngestionCoordinator(store_group, ip_hash_salt=salt)

    # 每日 rollup 调度器（进程生命周期内的后台任务）
    scheduler_config = load_scheduler_config()
    if scheduler_config.enabled:
        scheduler = DailyRollupScheduler(store_group, run_at=scheduler_config.run_at)
        scheduler.start()
        app.state.scheduler = scheduler
    else:
        app.state.scheduler = None
        log.info("rollup_scheduler_disabled")

    yield

    # 关闭：停止调度器，清理数据库连接
    if app.state.scheduler is not None:
        await app.state.scheduler.stop()
    await store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="EventPulse Gateway",
        version="0.1.0",
        description="行为事件幂等写入 + 每日汇总查询 API",
        lifespan=lifespan,
    )

    # 注册中间件
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(events.router, tags=["events"])
    app.include_router(analytics.router, tags=["analytics"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
