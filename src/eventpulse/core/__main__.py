"""CLI 入口模块 -- python -m eventpulse.core <command>

支持的命令：
  rollup [YYYY-MM-DD]            对指定日期（默认昨天）执行 rollup
  backfill <from> <to>           逐日回补 [from, to] 的 rollup
  purge-idempotency              删除过期的幂等键记录
  seed [days]                    写入合成历史事件并逐日 rollup
"""

import asyncio
import sys
from datetime import UTC, date, datetime, timedelta

from .config import SEED_DEFAULT_DAYS, get_db_path, get_idempotency_ttl_hours

_USAGE = """用法: python -m eventpulse.core <command>
命令:
  rollup [YYYY-MM-DD]     对指定日期（默认昨天）执行 rollup
  backfill <from> <to>    逐日回补 [from, to]（YYYY-MM-DD）
  purge-idempotency       删除过期的幂等键记录
  seed [days]             写入合成历史事件并逐日 rollup"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]

    try:
        if command == "rollup":
            day = date.fromisoformat(args[0]) if args else None
            ok = asyncio.run(rollup(day))
        elif command == "backfill" and len(args) == 2:
            start_day, end_day = date.fromisoformat(args[0]), date.fromisoformat(args[1])
            ok = asyncio.run(run_backfill(start_day, end_day))
        elif command == "purge-idempotency":
            ok = asyncio.run(purge_idempotency())
        elif command == "seed":
            ok = asyncio.run(run_seed(int(args[0]) if args else SEED_DEFAULT_DAYS))
        else:
            print(f"未知命令或参数不完整: {command}")
            print(_USAGE)
            sys.exit(1)
    except ValueError as e:
        print(f"参数错误: {e}")
        sys.exit(1)

    sys.exit(0 if ok else 1)


async def _open_store_group():
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    return await create_store_group(
        db_path,
        idempotency_ttl=timedelta(hours=get_idempotency_ttl_hours()),
    )


async def rollup(day: date | None) -> bool:
    """执行单日 rollup"""
    from .rollup import run_daily_rollup_safely

    store_group = await _open_store_group()
    try:
        result = await run_daily_rollup_safely(store_group, day)
        if result is None:
            print("rollup 失败，详见日志")
            return False
        print(
            f"rollup 完成: {result.day.isoformat()} "
            f"events={result.event_count} posts={len(result.posts)} "
            f"active_users={result.summary.active_users}"
        )
        return True
    finally:
        await store_group.conn.close()


async def run_backfill(start_day: date, end_day: date) -> bool:
    """逐日回补"""
    from .rollup import backfill

    if start_day > end_day:
        raise ValueError("from 日期不能晚于 to 日期")

    store_group = await _open_store_group()
    try:
        completed = await backfill(store_group, start_day, end_day)
        total = (end_day - start_day).days + 1
        print(f"回补完成 {len(completed)}/{total} 天")
        return len(completed) == total
    finally:
        await store_group.conn.close()


async def purge_idempotency() -> bool:
    """删除过期幂等键"""
    store_group = await _open_store_group()
    try:
        deleted = await store_group.idempotency_ledger.purge_expired(datetime.now(UTC))
        print(f"已删除 {deleted} 条过期幂等键")
        return True
    finally:
        await store_group.conn.close()


async def run_seed(days: int) -> bool:
    """写入合成数据"""
    from .seed import seed

    store_group = await _open_store_group()
    try:
        count = await seed(store_group, days)
        print(f"已写入 {count} 条合成事件，并完成 {days} 天 rollup")
        return True
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
