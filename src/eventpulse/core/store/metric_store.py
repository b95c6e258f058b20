"""MetricStore SQLite 实现

daily_metrics / post_daily_metrics 只由 rollup 写入。
写入均为 upsert 整体覆盖（不是累加），同一天重跑结果一致。
"""

from datetime import date, datetime

import aiosqlite

from ..models.enums import PostMetric
from ..models.metrics import GlobalDailyMetric, MetricTotals, PostDailyMetric, PostMetricSum
from .event_store import format_ts


class SqliteMetricStore:
    """MetricStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_post_metric(self, metric: PostDailyMetric) -> None:
        """按 (post_id, day) upsert 帖子日指标，三项计数整体覆盖

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO post_daily_metrics (day, post_id, views, likes, comments)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(post_id, day) DO UPDATE SET
                views = excluded.views,
                likes = excluded.likes,
                comments = excluded.comments
            """,
            (
                metric.day.isoformat(),
                metric.post_id,
                metric.views,
                metric.likes,
                metric.comments,
            ),
        )

    async def upsert_daily_metric(self, metric: GlobalDailyMetric) -> None:
        """按 day upsert 全局日指标，所有数值字段整体覆盖

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO daily_metrics (day, active_users, views, likes, comments, generated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(day) DO UPDATE SET
                active_users = excluded.active_users,
                views = excluded.views,
                likes = excluded.likes,
                comments = excluded.comments,
                generated_at = excluded.generated_at
            """,
            (
                metric.day.isoformat(),
                metric.active_users,
                metric.totals.views,
                metric.totals.likes,
                metric.totals.comments,
                format_ts(metric.generated_at),
            ),
        )

    async def get_daily_metric(self, day: date) -> GlobalDailyMetric | None:
        """查询某天的全局日指标"""
        cursor = await self._conn.execute(
            "SELECT * FROM daily_metrics WHERE day = ?",
            (day.isoformat(),),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_daily_metric(row)

    async def list_daily_metrics(self, from_day: date, to_day: date) -> list[GlobalDailyMetric]:
        """查询 [from_day, to_day] 内的全局日指标，按日期正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM daily_metrics WHERE day >= ? AND day <= ? ORDER BY day ASC",
            (from_day.isoformat(), to_day.isoformat()),
        )
        rows = await cursor.fetchall()
        return [self._row_to_daily_metric(row) for row in rows]

    async def list_post_metrics(self, post_id: str) -> list[PostDailyMetric]:
        """查询某帖子的所有日指标，按日期正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM post_daily_metrics WHERE post_id = ? ORDER BY day ASC",
            (post_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_post_metric(row) for row in rows]

    async def list_post_metrics_for_day(self, day: date) -> list[PostDailyMetric]:
        """查询某天所有帖子的日指标，按 post_id 排序"""
        cursor = await self._conn.execute(
            "SELECT * FROM post_daily_metrics WHERE day = ? ORDER BY post_id ASC",
            (day.isoformat(),),
        )
        rows = await cursor.fetchall()
        return [self._row_to_post_metric(row) for row in rows]

    async def top_posts(
        self,
        from_day: date,
        to_day: date,
        metric: PostMetric,
        limit: int,
    ) -> list[PostMetricSum]:
        """[from_day, to_day] 内按帖子汇总单项指标，倒序取前 limit 个"""
        # metric 来自 PostMetric 枚举，列名可安全拼接
        column = PostMetric(metric).value
        cursor = await self._conn.execute(
            f"""
            SELECT post_id, SUM({column}) AS total
            FROM post_daily_metrics
            WHERE day >= ? AND day <= ?
            GROUP BY post_id
            ORDER BY total DESC, post_id ASC
            LIMIT ?
            """,
            (from_day.isoformat(), to_day.isoformat(), limit),
        )
        rows = await cursor.fetchall()
        return [PostMetricSum(post_id=row[0], value=row[1]) for row in rows]

    @staticmethod
    def _row_to_daily_metric(row: aiosqlite.Row) -> GlobalDailyMetric:
        """将数据库行转换为 GlobalDailyMetric 模型"""
        return GlobalDailyMetric(
            day=date.fromisoformat(row[0]),
            active_users=row[1],
            totals=MetricTotals(views=row[2], likes=row[3], comments=row[4]),
            generated_at=datetime.fromisoformat(row[5]),
        )

    @staticmethod
    def _row_to_post_metric(row: aiosqlite.Row) -> PostDailyMetric:
        """将数据库行转换为 PostDailyMetric 模型"""
        return PostDailyMetric(
            day=date.fromisoformat(row[0]),
            post_id=row[1],
            views=row[2],
            likes=row[3],
            comments=row[4],
        )
