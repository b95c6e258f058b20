"""CLI 入口测试 -- python -m eventpulse.core"""

import sys

import pytest
from eventpulse.core.__main__ import main


@pytest.fixture
def cli_db(monkeypatch, tmp_path):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("EVENTPULSE_DB_PATH", str(db_path))
    return db_path


def run_cli(monkeypatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["eventpulse.core", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


class TestCli:
    """命令分发与退出码"""

    def test_no_command_prints_usage(self, monkeypatch, capsys):
        assert run_cli(monkeypatch) == 1
        assert "用法" in capsys.readouterr().out

    def test_unknown_command(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "explode") == 1
        assert "未知命令" in capsys.readouterr().out

    def test_rollup_specific_day(self, monkeypatch, capsys, cli_db):
        assert run_cli(monkeypatch, "rollup", "2026-03-09") == 0
        assert "rollup 完成: 2026-03-09" in capsys.readouterr().out
        assert cli_db.exists()

    def test_rollup_bad_date(self, monkeypatch, capsys, cli_db):
        assert run_cli(monkeypatch, "rollup", "yesterday") == 1
        assert "参数错误" in capsys.readouterr().out

    def test_backfill(self, monkeypatch, capsys, cli_db):
        assert run_cli(monkeypatch, "backfill", "2026-03-01", "2026-03-03") == 0
        assert "回补完成 3/3 天" in capsys.readouterr().out

    def test_backfill_reversed_range(self, monkeypatch, capsys, cli_db):
        assert run_cli(monkeypatch, "backfill", "2026-03-03", "2026-03-01") == 1
        assert "参数错误" in capsys.readouterr().out

    def test_purge_idempotency(self, monkeypatch, capsys, cli_db):
        assert run_cli(monkeypatch, "purge-idempotency") == 0
        assert "已删除 0 条过期幂等键" in capsys.readouterr().out
