"""DailyRollupScheduler -- 每日定时触发 rollup 的后台任务

生命周期：start（应用启动）-> 每日 run_at 触发 -> stop（应用关闭）。
单进程单调度器假设，不做分布式锁。
rollup 失败只记录日志，调度循环继续。
"""

import asyncio
import contextlib
from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta

import structlog

from .models.metrics import DailyRollup
from .rollup import previous_day, run_daily_rollup_safely
from .store import StoreGroup

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DailyRollupScheduler:
    """每日 rollup 调度器"""

    def __init__(
        self,
        store_group: StoreGroup,
        run_at: time = time(1, 5),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._stores = store_group
        self._run_at = run_at
        self._clock = clock
        self._task: asyncio.Task | None = None
        self.last_run_day: date | None = None
        self.last_run_ok: bool | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def seconds_until_next_run(self, now: datetime) -> float:
        """距下一次 run_at（UTC）的秒数；恰好在 run_at 时返回一整天"""
        now = now.astimezone(UTC)
        next_run = datetime.combine(now.date(), self._run_at, tzinfo=UTC)
        if next_run <= now:
            next_run += timedelta(days=1)
        return (next_run - now).total_seconds()

    def start(self) -> None:
        """启动后台调度任务（重复调用无副作用）"""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="daily-rollup-scheduler")
        log.info("rollup_scheduler_started", run_at=self._run_at.isoformat())

    async def stop(self) -> None:
        """取消后台任务并等待退出"""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        await log.ainfo("rollup_scheduler_stopped")

    async def run_now(self, day: date | None = None) -> DailyRollup | None:
        """立即执行一次 rollup（默认前一天），失败返回 None"""
        target_day = day or previous_day(self._clock())
        rollup = await run_daily_rollup_safely(self._stores, target_day, self._clock)
        self.last_run_day = target_day
        self.last_run_ok = rollup is not None
        return rollup

    async def _loop(self) -> None:
        while True:
            delay = self.seconds_until_next_run(self._clock())
            await log.adebug("rollup_scheduler_sleeping", seconds=delay)
            await asyncio.sleep(delay)
            try:
                await self.run_now()
            except Exception:
                # 非存储类异常同样不能终止调度循环
                await log.aexception("rollup_scheduler_run_error")
                self.last_run_ok = False
