"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / 服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from eventpulse.core.ingestion import IngestionCoordinator
from eventpulse.core.store import StoreGroup
from fastapi import Request


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_ingestion(request: Request) -> IngestionCoordinator:
    """从 app.state 获取 IngestionCoordinator 实例"""
    return request.app.state.ingestion


def get_scheduler(request: Request):
    """从 app.state 获取 DailyRollupScheduler（未启用时为 None）"""
    return getattr(request.app.state, "scheduler", None)
