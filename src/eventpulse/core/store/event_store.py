"""EventStore SQLite 实现

事件表 append-only：只允许插入，不允许更新或删除。
时间戳统一存储为 UTC ISO-8601（微秒精度），保证字符串比较即时间比较。
"""

from collections.abc import AsyncIterator, Iterable, Sequence
from datetime import UTC, datetime

import aiosqlite

from ..models.enums import EventType
from ..models.event import Event, EventMetadata
from ..models.metrics import SearchTermCount

# 单次 fetchmany 的行数（流式读取一天的事件）
_FETCH_BATCH_SIZE = 500


def format_ts(ts: datetime) -> str:
    """datetime -> 存储格式（UTC，固定微秒精度）

    naive datetime 视为 UTC。
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat(timespec="microseconds")


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_events(self, events: Sequence[Event]) -> None:
        """批量追加事件（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.executemany(
            """
            INSERT INTO events (event_id, type, user_id, post_id, session_id, ts, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    event.event_id,
                    event.type.value,
                    event.user_id,
                    event.post_id,
                    event.session_id,
                    format_ts(event.ts),
                    event.metadata.model_dump_json(exclude_none=True),
                )
                for event in events
            ],
        )

    async def iter_events_between(
        self,
        start: datetime,
        end: datetime,
    ) -> AsyncIterator[Event]:
        """流式读取 [start, end) 内的事件，按 ts 正序

        分批 fetchmany，避免一次性加载整段历史。
        """
        cursor = await self._conn.execute(
            "SELECT * FROM events WHERE ts >= ? AND ts < ? ORDER BY ts ASC, event_id ASC",
            (format_ts(start), format_ts(end)),
        )
        try:
            while True:
                rows = await cursor.fetchmany(_FETCH_BATCH_SIZE)
                if not rows:
                    break
                for row in rows:
                    yield self._row_to_event(row)
        finally:
            await cursor.close()

    async def get_events_between(self, start: datetime, end: datetime) -> list[Event]:
        """查询 [start, end) 内的所有事件"""
        return [event async for event in self.iter_events_between(start, end)]

    async def count_events(self) -> int:
        """事件总数"""
        cursor = await self._conn.execute("SELECT COUNT(*) FROM events")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def users_registered_between(self, start: datetime, end: datetime) -> list[str]:
        """[start, end) 内发生过 user_register 的去重 user_id"""
        cursor = await self._conn.execute(
            """
            SELECT DISTINCT user_id FROM events
            WHERE type = ? AND ts >= ? AND ts < ? AND user_id IS NOT NULL
            ORDER BY user_id
            """,
            (EventType.USER_REGISTER.value, format_ts(start), format_ts(end)),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def count_activity_events(
        self,
        user_ids: Sequence[str],
        event_types: Iterable[EventType],
        start: datetime,
        end: datetime,
    ) -> int:
        """统计指定用户在 [start, end) 内指定类型事件的条数"""
        return await self._count_for_users("COUNT(*)", user_ids, event_types, start, end)

    async def count_active_users(
        self,
        user_ids: Sequence[str],
        event_types: Iterable[EventType],
        start: datetime,
        end: datetime,
    ) -> int:
        """统计指定用户中在 [start, end) 内至少有一条指定类型事件的人数"""
        return await self._count_for_users(
            "COUNT(DISTINCT user_id)", user_ids, event_types, start, end
        )

    async def trending_searches(
        self,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[SearchTermCount]:
        """[start, end) 内搜索词计数（不区分大小写），按次数倒序"""
        cursor = await self._conn.execute(
            """
            SELECT lower(json_extract(metadata, '$.query')) AS term, COUNT(*) AS cnt
            FROM events
            WHERE type = ? AND ts >= ? AND ts < ?
              AND json_extract(metadata, '$.query') IS NOT NULL
              AND json_extract(metadata, '$.query') != ''
            GROUP BY term
            ORDER BY cnt DESC, term ASC
            LIMIT ?
            """,
            (EventType.SEARCH_PERFORMED.value, format_ts(start), format_ts(end), limit),
        )
        rows = await cursor.fetchall()
        return [SearchTermCount(term=row[0], count=row[1]) for row in rows]

    async def _count_for_users(
        self,
        select_expr: str,
        user_ids: Sequence[str],
        event_types: Iterable[EventType],
        start: datetime,
        end: datetime,
    ) -> int:
        types = [t.value for t in event_types]
        if not user_ids or not types:
            return 0
        cursor = await self._conn.execute(
            f"""
            SELECT {select_expr} FROM events
            WHERE user_id IN ({_placeholders(len(user_ids))})
              AND type IN ({_placeholders(len(types))})
              AND ts >= ? AND ts < ?
            """,
            (*user_ids, *types, format_ts(start), format_ts(end)),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        return Event(
            event_id=row[0],
            type=EventType(row[1]),
            user_id=row[2],
            post_id=row[3],
            session_id=row[4],
            ts=datetime.fromisoformat(row[5]),
            metadata=EventMetadata.model_validate_json(row[6]) if row[6] else EventMetadata(),
        )
