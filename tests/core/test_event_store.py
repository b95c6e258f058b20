"""EventStore 测试

测试内容：
1. 批量追加 + 时间窗口读取（左闭右开）
2. 注册用户查询去重
3. 活跃事件计数 vs 活跃人数
4. 热门搜索词大小写归并
"""

from datetime import UTC, datetime, timedelta

import pytest
from eventpulse.core.models import Event, EventMetadata, EventType
from eventpulse.core.store.event_store import format_ts
from ulid import ULID

DAY = datetime(2026, 3, 9, tzinfo=UTC)


def make_event(
    event_type: EventType,
    ts: datetime,
    user_id: str | None = None,
    post_id: str | None = None,
    query: str | None = None,
) -> Event:
    return Event(
        event_id=str(ULID()),
        type=event_type,
        user_id=user_id,
        post_id=post_id,
        session_id="sess",
        ts=ts,
        metadata=EventMetadata(query=query),
    )


async def append(store_group, events):
    await store_group.event_store.append_events(events)
    await store_group.conn.commit()


class TestFormatTs:
    """时间戳存储格式"""

    def test_naive_treated_as_utc(self):
        assert format_ts(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000000+00:00"

    def test_converted_to_utc(self):
        from datetime import timezone

        tz = timezone(timedelta(hours=8))
        assert format_ts(datetime(2026, 1, 1, 8, tzinfo=tz)) == "2026-01-01T00:00:00.000000+00:00"


class TestAppendAndRead:
    """写入与窗口读取"""

    async def test_round_trip_fields(self, store_group):
        event = Event(
            event_id=str(ULID()),
            type=EventType.SEARCH_PERFORMED,
            user_id="u1",
            session_id="s1",
            ts=DAY + timedelta(hours=3),
            metadata=EventMetadata(query="sqlite", device="mobile", ip_hash="abc"),
        )
        await append(store_group, [event])

        events = await store_group.event_store.get_events_between(DAY, DAY + timedelta(days=1))
        assert events == [event]

    async def test_window_is_half_open(self, store_group):
        """[start, end)：end 时刻的事件不包含在内"""
        await append(
            store_group,
            [
                make_event(EventType.USER_LOGIN, DAY - timedelta(microseconds=1), "before"),
                make_event(EventType.USER_LOGIN, DAY, "start"),
                make_event(EventType.USER_LOGIN, DAY + timedelta(hours=23, minutes=59), "late"),
                make_event(EventType.USER_LOGIN, DAY + timedelta(days=1), "next"),
            ],
        )
        events = await store_group.event_store.get_events_between(DAY, DAY + timedelta(days=1))
        assert [e.user_id for e in events] == ["start", "late"]

    async def test_iter_streams_all_rows(self, store_group):
        """超过单批 fetch 大小的事件全部读出"""
        events = [
            make_event(EventType.POST_VIEW, DAY + timedelta(seconds=i), "u1", "p1")
            for i in range(1203)
        ]
        await append(store_group, events)

        count = 0
        async for _ in store_group.event_store.iter_events_between(
            DAY, DAY + timedelta(days=1)
        ):
            count += 1
        assert count == 1203
        assert await store_group.event_store.count_events() == 1203

    async def test_duplicate_event_id_rejected(self, store_group):
        import aiosqlite

        event = make_event(EventType.USER_LOGIN, DAY, "u1")
        with pytest.raises(aiosqlite.IntegrityError):
            await store_group.event_store.append_events([event, event])
        await store_group.conn.rollback()


class TestCohortQueries:
    """注册与活跃查询"""

    async def test_users_registered_distinct(self, store_group):
        await append(
            store_group,
            [
                make_event(EventType.USER_REGISTER, DAY + timedelta(hours=1), "u1"),
                make_event(EventType.USER_REGISTER, DAY + timedelta(hours=2), "u1"),
                make_event(EventType.USER_REGISTER, DAY + timedelta(hours=3), "u2"),
                make_event(EventType.USER_LOGIN, DAY + timedelta(hours=3), "u3"),
                make_event(EventType.USER_REGISTER, DAY + timedelta(days=1), "u4"),
            ],
        )
        users = await store_group.event_store.users_registered_between(
            DAY, DAY + timedelta(days=1)
        )
        assert users == ["u1", "u2"]

    async def test_activity_events_vs_active_users(self, store_group):
        """事件条数可以大于人数；人数按 user_id 去重"""
        window = DAY + timedelta(days=1)
        await append(
            store_group,
            [
                make_event(EventType.USER_LOGIN, window + timedelta(hours=1), "u1"),
                make_event(EventType.POST_VIEW, window + timedelta(hours=2), "u1", "p1"),
                make_event(EventType.POST_CREATE, window + timedelta(hours=3), "u2", "p2"),
                # 非活跃类型不计
                make_event(EventType.POST_LIKE, window + timedelta(hours=4), "u3", "p1"),
                # cohort 之外的用户不计
                make_event(EventType.USER_LOGIN, window + timedelta(hours=5), "u9"),
            ],
        )
        types = [EventType.USER_LOGIN, EventType.POST_VIEW, EventType.POST_CREATE]
        store = store_group.event_store
        end = window + timedelta(days=1)

        assert await store.count_activity_events(["u1", "u2", "u3"], types, window, end) == 3
        assert await store.count_active_users(["u1", "u2", "u3"], types, window, end) == 2

    async def test_empty_user_list_counts_zero(self, store_group):
        count = await store_group.event_store.count_active_users(
            [], [EventType.USER_LOGIN], DAY, DAY + timedelta(days=1)
        )
        assert count == 0


class TestTrendingSearches:
    """热门搜索词"""

    async def test_case_insensitive_grouping(self, store_group):
        await append(
            store_group,
            [
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(hours=1), query="React"),
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(hours=2), query="react"),
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(hours=3), query="docker"),
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(hours=4), query=""),
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(hours=5)),
            ],
        )
        items = await store_group.event_store.trending_searches(
            DAY, DAY + timedelta(days=1), limit=10
        )
        assert [(i.term, i.count) for i in items] == [("react", 2), ("docker", 1)]

    async def test_limit_applied(self, store_group):
        await append(
            store_group,
            [
                make_event(EventType.SEARCH_PERFORMED, DAY + timedelta(minutes=i), query=f"t{i}")
                for i in range(5)
            ],
        )
        items = await store_group.event_store.trending_searches(
            DAY, DAY + timedelta(days=1), limit=3
        )
        assert len(items) == 3
