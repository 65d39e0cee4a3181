"""Tests for treesync CLI helpers."""
import json
import logging
import os
from unittest.mock import AsyncMock

import pytest

from treesync import cli
from treesync.cli import _setup_logging, run_cli
from treesync.config import ENV_VARS, load_env_file
from treesync.errors import ConfigError


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in an empty directory with no TREESYNC_* variables set."""
    monkeypatch.chdir(tmp_path)
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    yield tmp_path
    logging.disable(logging.NOTSET)


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "TREESYNC_ENDPOINT=http://localhost:9000",
                "TREESYNC_BUCKET='media'",
                "export TREESYNC_ACCESS_KEY_ID=abc",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )
    for var in ("TREESYNC_ENDPOINT", "TREESYNC_BUCKET", "TREESYNC_ACCESS_KEY_ID"):
        monkeypatch.delenv(var, raising=False)

    load_env_file(env_path)

    assert os.environ["TREESYNC_ENDPOINT"] == "http://localhost:9000"
    assert os.environ["TREESYNC_BUCKET"] == "media"
    assert os.environ["TREESYNC_ACCESS_KEY_ID"] == "abc"


def test_load_env_file_keeps_existing(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("TREESYNC_BUCKET=from-file\n", encoding="utf-8")
    monkeypatch.setenv("TREESYNC_BUCKET", "from-shell")

    load_env_file(env_path)

    assert os.environ["TREESYNC_BUCKET"] == "from-shell"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(ConfigError):
        load_env_file(tmp_path / "missing.env")


def test_setup_logging_silent():
    mode = _setup_logging(debug=False, silent=True, log_level="DEBUG")
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.CRITICAL) is False
    logging.disable(logging.NOTSET)


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level="ERROR")
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_defaults_to_warning():
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "WARNING"
    assert not logging.getLogger().isEnabledFor(logging.INFO)


def test_no_command_prints_help(workdir, capsys):
    assert run_cli([]) == 0
    assert "usage: treesync" in capsys.readouterr().out


def test_sync_without_endpoint_fails(workdir, capsys):
    source = workdir / "src"
    source.mkdir()

    assert run_cli(["sync", str(source), "--silent"]) == 1
    assert "endpoint" in capsys.readouterr().err


def test_sync_missing_source_fails(workdir, capsys):
    code = run_cli(["sync", str(workdir / "nope"), "--endpoint", "http://store.test", "--silent"])
    assert code == 1
    assert "not a directory" in capsys.readouterr().err


def test_sync_runs_and_saves_config(workdir, monkeypatch):
    source = workdir / "src"
    source.mkdir()
    run_sync = AsyncMock(return_value=0)
    monkeypatch.setattr(cli, "_run_sync", run_sync)
    monkeypatch.setenv("TREESYNC_ACCESS_KEY_SECRET", "secret")

    code = run_cli([
        "sync", str(source), "assets/2026",
        "--endpoint", "http://store.test",
        "-j", "4",
        "--silent",
    ])

    assert code == 0
    config, store_config = run_sync.await_args[0]
    assert config.concurrency_limit == 4
    assert config.target_prefix == "assets/2026"
    assert store_config.access_key_secret == "secret"

    saved = json.loads((workdir / ".treesync" / "config.json").read_text(encoding="utf-8"))
    assert saved["concurrency"] == 4
    assert "access_key_secret" not in saved


def test_sync_reuses_saved_config(workdir, monkeypatch):
    source = workdir / "src"
    source.mkdir()
    run_sync = AsyncMock(return_value=1)
    monkeypatch.setattr(cli, "_run_sync", run_sync)

    assert run_cli(["sync", str(source), "--endpoint", "http://store.test", "-r", "5", "--silent"]) == 1
    assert run_cli(["sync", "--silent"]) == 1

    config, store_config = run_sync.await_args[0]
    assert config.source_dir.name == "src"
    assert config.retry_policy.max_attempts == 5
    assert store_config.endpoint == "http://store.test"


def test_env_file_flag(workdir, monkeypatch):
    source = workdir / "src"
    source.mkdir()
    env_file = workdir / "custom.env"
    env_file.write_text("TREESYNC_ENDPOINT=http://env.test\n", encoding="utf-8")
    run_sync = AsyncMock(return_value=0)
    monkeypatch.setattr(cli, "_run_sync", run_sync)

    assert run_cli(["sync", str(source), "--env-file", str(env_file), "--silent"]) == 0
    assert run_sync.await_args[0][1].endpoint == "http://env.test"


def test_clear_ledger(workdir, capsys):
    ledger = workdir / "ledger.json"
    ledger.write_text(json.dumps([["a", "b"], ["c", "d"]]), encoding="utf-8")

    assert run_cli(["clear-ledger", "--ledger", str(ledger), "--silent"]) == 0
    assert not ledger.exists()
    assert "Cleared 2 ledger entries" in capsys.readouterr().out


def test_keyboard_interrupt_exit_code(workdir, monkeypatch):
    def interrupted(args):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, "_cmd_sync", interrupted)
    assert run_cli(["sync", "--silent"]) == 130


def test_record_failures_does_not_stick_between_runs(workdir, monkeypatch):
    source = workdir / "src"
    source.mkdir()
    run_sync = AsyncMock(return_value=0)
    monkeypatch.setattr(cli, "_run_sync", run_sync)

    assert run_cli(["sync", str(source), "--endpoint", "http://store.test", "--record-failures", "--silent"]) == 0
    assert run_sync.await_args[0][0].record_failures is True

    assert run_cli(["sync", "--silent"]) == 0
    assert run_sync.await_args[0][0].record_failures is False


def test_boolean_flags_have_negative_forms(workdir, monkeypatch):
    source = workdir / "src"
    source.mkdir()
    run_sync = AsyncMock(return_value=0)
    monkeypatch.setattr(cli, "_run_sync", run_sync)
    monkeypatch.setenv("TREESYNC_ENDPOINT", "http://store.test")

    assert run_cli(["sync", str(source), "--no-record-failures", "--no-checksum", "--silent"]) == 0
    config, store_config = run_sync.await_args[0]
    assert config.record_failures is False
    assert store_config.send_checksum is False

    assert run_cli(["sync", str(source), "--checksum", "--silent"]) == 0
    assert run_sync.await_args[0][1].send_checksum is True
