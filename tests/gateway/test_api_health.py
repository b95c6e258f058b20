"""健康检查测试

测试内容：
1. GET /health 返回 200 + ok
2. GET /ready 正常时返回 200 + checks 结构
3. GET /ready 调度器状态
4. GET /ready SQLite 不可用时返回 503
"""

from datetime import date

from eventpulse.core.scheduler import DailyRollupScheduler
from httpx import AsyncClient


class TestHealthCheck:
    """健康检查"""

    async def test_health_returns_200(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready_returns_200(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["checks"]["sqlite"] == "ok"
        assert data["checks"]["wal_mode"] == "ok"
        assert data["checks"]["rollup_scheduler"] == "disabled"

    async def test_ready_reports_scheduler(self, client: AsyncClient, test_app, clock):
        scheduler = DailyRollupScheduler(test_app.state.store_group, clock=clock)
        test_app.state.scheduler = scheduler
        await scheduler.run_now()

        resp = await client.get("/ready")
        checks = resp.json()["checks"]
        assert checks["rollup_scheduler"] == "stopped"
        assert checks["last_rollup"] == {"day": date(2026, 3, 9).isoformat(), "ok": True}

        scheduler.start()
        try:
            resp = await client.get("/ready")
            assert resp.json()["checks"]["rollup_scheduler"] == "running"
        finally:
            await scheduler.stop()

    async def test_ready_sqlite_failure(self, client: AsyncClient, test_app):
        await test_app.state.store_group.conn.close()

        resp = await client.get("/ready")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["sqlite"].startswith("error")
        assert "wal_mode" not in data["checks"]
