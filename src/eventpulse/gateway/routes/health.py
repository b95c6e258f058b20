"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式和 rollup 调度器状态。
"""

import structlog
from eventpulse.core.store.sqlite_init import verify_wal_mode
from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from ..deps import get_scheduler, get_store_group

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    store_group=Depends(get_store_group),
    scheduler=Depends(get_scheduler),
):
    """Readiness 检查

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: WAL 是否生效（不影响就绪状态）
    3. rollup_scheduler: running / stopped / disabled，附最近一次运行结果
    """
    checks: dict = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("ready_check_sqlite_error", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. WAL 模式
    if all_ok:
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "off"

    # 3. 调度器状态
    if scheduler is None:
        checks["rollup_scheduler"] = "disabled"
    else:
        checks["rollup_scheduler"] = "running" if scheduler.running else "stopped"
        if scheduler.last_run_day is not None:
            checks["last_rollup"] = {
                "day": scheduler.last_run_day.isoformat(),
                "ok": scheduler.last_run_ok,
            }

    status_code = 200 if all_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
