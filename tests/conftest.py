"""全局 pytest 配置 -- 临时 SQLite 数据库 + 可拨动时钟 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from eventpulse.core.store import StoreGroup, create_store_group


class FakeClock:
    """可手动推进的 UTC 时钟"""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    """起始于 2026-03-10 10:00 UTC 的时钟"""
    return FakeClock(datetime(2026, 3, 10, 10, 0, tzinfo=UTC))


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供已初始化的 StoreGroup"""
    sg = await create_store_group(str(tmp_db_path))
    yield sg
    await sg.conn.close()
