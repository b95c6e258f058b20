"""合成历史数据 -- 本地演示/压测用

直接写入 events 表（携带历史时间戳，绕过幂等写入路径），
随后对每个生成日逐日执行 rollup。
"""

import random
from datetime import UTC, date, datetime, timedelta

import structlog
from ulid import ULID

from .models.enums import POST_SCOPED_EVENT_TYPES, EventType
from .models.event import Event, EventMetadata
from .rollup import backfill
from .store import StoreGroup
from .store.transaction import rollback

log = structlog.get_logger()

_SEARCH_TERMS = [
    "express tutorial",
    "react hooks",
    "sqlite performance",
    "docker compose",
    "next.js vs react",
]

_DAILY_EVENT_TYPES = [
    EventType.USER_LOGIN,
    EventType.POST_VIEW,
    EventType.POST_CREATE,
    EventType.POST_LIKE,
    EventType.COMMENT_CREATE,
    EventType.SEARCH_PERFORMED,
]

_DEVICES = ["mobile", "desktop", "tablet"]


def generate_events(
    days: int,
    today: date,
    rng: random.Random,
    user_count: int = 50,
    post_count: int = 20,
    min_daily: int = 100,
    max_daily: int = 500,
) -> list[Event]:
    """生成 [today-days, today] 内的合成事件

    每 5 天新增一个注册用户（user_register 事件），其余为随机行为事件。
    """
    users = [f"user_{i:04d}" for i in range(user_count)]
    posts = [f"post_{ULID().hex[:10]}" for _ in range(post_count)]
    events: list[Event] = []

    for offset in range(days, -1, -1):
        day = today - timedelta(days=offset)
        day_start = datetime(day.year, day.month, day.day, tzinfo=UTC)

        if offset % 5 == 0:
            new_user = f"user_{len(users):04d}"
            users.append(new_user)
            events.append(
                Event(
                    event_id=str(ULID()),
                    type=EventType.USER_REGISTER,
                    user_id=new_user,
                    session_id=str(ULID()),
                    ts=day_start + timedelta(seconds=rng.randrange(86400)),
                    metadata=EventMetadata(device="desktop", path="/register"),
                )
            )

        for _ in range(rng.randint(min_daily, max_daily)):
            event_type = rng.choice(_DAILY_EVENT_TYPES)
            post_id = rng.choice(posts)
            query = (
                rng.choice(_SEARCH_TERMS) if event_type == EventType.SEARCH_PERFORMED else None
            )
            events.append(
                Event(
                    event_id=str(ULID()),
                    type=event_type,
                    user_id=rng.choice(users),
                    post_id=post_id if event_type in POST_SCOPED_EVENT_TYPES else None,
                    session_id=str(ULID()),
                    ts=day_start + timedelta(seconds=rng.randrange(86400)),
                    metadata=EventMetadata(
                        device=rng.choice(_DEVICES),
                        path=f"/posts/{post_id}",
                        query=query,
                    ),
                )
            )

    return events


async def seed(store_group: StoreGroup, days: int, today: date | None = None) -> int:
    """写入合成事件并逐日回补 rollup

    Returns:
        写入的事件数
    """
    today = today or datetime.now(UTC).date()
    events = generate_events(days, today, random.Random())

    async with store_group.write_lock:
        try:
            await store_group.event_store.append_events(events)
            await store_group.conn.commit()
        except BaseException:
            await rollback(store_group.conn)
            raise
    await log.ainfo("seed_events_written", event_count=len(events), days=days)

    # 今天的数据尚不完整，只回补到昨天
    await backfill(store_group, today - timedelta(days=days), today - timedelta(days=1))
    return len(events)
