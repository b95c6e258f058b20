"""gateway 测试配置 -- 手动初始化 app.state + httpx AsyncClient"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from eventpulse.core.ingestion import IngestionCoordinator
from eventpulse.core.store import create_store_group
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, monkeypatch):
    """创建测试用 FastAPI app 实例（绕过 lifespan，不启动调度器）"""
    monkeypatch.setenv("EVENTPULSE_DB_PATH", str(tmp_path / "sqlite" / "test.db"))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from eventpulse.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    app.state.store_group = store_group
    app.state.ingestion = IngestionCoordinator(store_group, ip_hash_salt="test-salt")
    app.state.scheduler = None

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
