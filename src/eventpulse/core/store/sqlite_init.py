"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# events 表 DDL（append-only）
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS events (
    event_id    TEXT PRIMARY KEY,
    type        TEXT NOT NULL,
    user_id     TEXT,
    post_id     TEXT,
    session_id  TEXT NOT NULL,
    ts          TEXT NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}'
);
"""

_EVENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);",
    "CREATE INDEX IF NOT EXISTS idx_events_type_ts ON events(type, ts DESC);",
    "CREATE INDEX IF NOT EXISTS idx_events_post_ts ON events(post_id, ts DESC);",
    "CREATE INDEX IF NOT EXISTS idx_events_user_id ON events(user_id);",
]

# idempotency_keys 表 DDL（过期判断由 created_at + 保留窗口决定）
_IDEMPOTENCY_DDL = """
CREATE TABLE IF NOT EXISTS idempotency_keys (
    token       TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL
);
"""

_IDEMPOTENCY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_idempotency_created_at ON idempotency_keys(created_at);",
]

# daily_metrics 表 DDL（每天一行）
_DAILY_METRICS_DDL = """
CREATE TABLE IF NOT EXISTS daily_metrics (
    day           TEXT PRIMARY KEY,
    active_users  INTEGER NOT NULL DEFAULT 0,
    views         INTEGER NOT NULL DEFAULT 0,
    likes         INTEGER NOT NULL DEFAULT 0,
    comments      INTEGER NOT NULL DEFAULT 0,
    generated_at  TEXT NOT NULL
);
"""

# post_daily_metrics 表 DDL（(post_id, day) 唯一）
_POST_DAILY_METRICS_DDL = """
CREATE TABLE IF NOT EXISTS post_daily_metrics (
    day       TEXT NOT NULL,
    post_id   TEXT NOT NULL,
    views     INTEGER NOT NULL DEFAULT 0,
    likes     INTEGER NOT NULL DEFAULT 0,
    comments  INTEGER NOT NULL DEFAULT 0,

    PRIMARY KEY (post_id, day)
);
"""

_POST_DAILY_METRICS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_post_daily_metrics_day ON post_daily_metrics(day);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_EVENTS_DDL)
    await conn.execute(_IDEMPOTENCY_DDL)
    await conn.execute(_DAILY_METRICS_DDL)
    await conn.execute(_POST_DAILY_METRICS_DDL)

    # 创建索引
    for idx_sql in _EVENTS_INDEXES + _IDEMPOTENCY_INDEXES + _POST_DAILY_METRICS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
