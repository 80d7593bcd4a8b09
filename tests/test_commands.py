"""
Tests for the betterdoit command entry points.
"""
import json
import os
from unittest.mock import patch

import pytest

from betterdoit.__main__ import build_parser, list_commands, main
from betterdoit.config import get_settings


@pytest.fixture
def command_env(monkeypatch, temp_db_path):
    """Point the cached settings at a temp database."""
    monkeypatch.setenv("BETTERDOIT_DB_PATH", temp_db_path)
    monkeypatch.setenv("DB_TYPE", "sqlite")
    monkeypatch.setenv("CRON_SECRET_TOKEN", "cron-secret")
    monkeypatch.setenv("SMS_BACKEND", "log")
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    yield temp_db_path
    get_settings.cache_clear()


def test_builtin_commands_are_registered():
    build_parser()
    assert {"server", "init", "remind", "rebalance"} <= set(list_commands())


def test_no_command_prints_help(capsys):
    assert main([]) == 1


def test_init_creates_and_validates_schema(command_env):
    assert main(["init"]) == 0
    assert os.path.exists(command_env)
    assert main(["init", "--validate-only"]) == 0


def test_validate_only_on_missing_database(command_env):
    assert main(["init", "--validate-only"]) == 1


def test_remind_requires_secret(command_env):
    assert main(["remind", "--secret", "wrong"]) == 2


def test_remind_runs(command_env, capsys):
    assert main(["remind", "--secret", "cron-secret"]) == 0
    assert json.loads(capsys.readouterr().out) == {"sent": 0, "results": []}


def test_rebalance_empty_user(command_env, capsys):
    assert main(["rebalance", "user-1"]) == 0
    assert json.loads(capsys.readouterr().out) == {"activeTasksFixed": 0, "masterTasksFixed": 0}


def test_rebalance_if_needed(command_env):
    assert main(["rebalance", "user-1", "--if-needed"]) == 0


class TestServerCommand:
    """Startup checks for the server command."""

    def test_check_passes_with_log_backend(self, command_env, capsys):
        assert main(["server", "--check"]) == 0
        assert "SESSION_SECRET is not set" in capsys.readouterr().err

    def test_twilio_without_credentials_refuses_to_start(self, command_env, monkeypatch):
        monkeypatch.setenv("SMS_BACKEND", "twilio")
        for name in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER"):
            monkeypatch.delenv(name, raising=False)
        get_settings.cache_clear()

        with patch("betterdoit.commands.server.uvicorn.Server") as server:
            assert main(["server"]) == 1
        server.assert_not_called()

    def test_dry_run_sms_overrides_backend(self, command_env, monkeypatch):
        monkeypatch.setenv("SMS_BACKEND", "twilio")
        get_settings.cache_clear()
        assert main(["server", "--check", "--dry-run-sms"]) == 0

    def test_serves_app_with_checked_settings(self, command_env, monkeypatch):
        monkeypatch.setenv("SESSION_SECRET", "session-secret")
        get_settings.cache_clear()

        with patch("betterdoit.commands.server.uvicorn.Server") as server:
            assert main(["server", "--port", "9123", "--dry-run-sms"]) == 0

        config = server.call_args.args[0]
        assert config.port == 9123
        assert config.app.state.container.settings.sms_backend == "log"
        server.return_value.run.assert_called_once()
