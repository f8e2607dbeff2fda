"""Tests for the command line entry point."""

import json
import logging
import sys
from unittest.mock import AsyncMock, patch

import pytest

from buildprompt.config import Settings
from buildprompt.main import JsonFormatter, build_parser, main
from buildprompt.metering import UsageRepository
from buildprompt.ratelimit import SubscriptionTier


def make_record(msg, *args, exc_info=None):
    return logging.LogRecord("buildprompt.test", logging.INFO, __file__, 1, msg, args, exc_info)


class TestJsonFormatter:
    """Tests for the JSON log formatter."""

    def test_message_with_quotes_is_valid_json(self):
        data = json.loads(JsonFormatter().format(make_record('said "%s"', "hi")))

        assert data["message"] == 'said "hi"'
        assert data["level"] == "INFO"
        assert data["logger"] == "buildprompt.test"

    def test_extra_fields_included(self):
        """Test fields passed with extra= show up as keys."""
        record = make_record("Starting")
        record.usage_backend = "memory"
        record.port = 8000

        data = json.loads(JsonFormatter().format(record))

        assert data["usage_backend"] == "memory"
        assert data["port"] == 8000
        assert "args" not in data
        assert "levelno" not in data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record("failed", exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


class TestParser:
    """Tests for argument parsing."""

    def test_serve_overrides(self):
        args = build_parser().parse_args(["serve", "--host", "127.0.0.1", "--port", "9000", "--reload"])

        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 9000
        assert args.reload is True

    def test_unknown_tier_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["set-tier", "user-1", "gold"])


class TestMain:
    """Tests for subcommand dispatch."""

    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("buildprompt.main.setup_logging"):
            yield

    def test_no_command_serves(self):
        """Test running without a subcommand starts the server."""
        with patch("buildprompt.main.serve") as serve:
            main([])

        serve.assert_called_once()
        assert serve.call_args.kwargs == {"host": None, "port": None, "reload": False}

    def test_serve_runs_uvicorn(self, test_settings):
        """Test overrides reach uvicorn and telemetry is shut down."""
        with (
            patch("buildprompt.main.get_settings", return_value=test_settings),
            patch("buildprompt.main.uvicorn.run") as run,
            patch("buildprompt.telemetry.setup_telemetry"),
            patch("buildprompt.telemetry.shutdown_telemetry") as shutdown,
        ):
            main(["serve", "--port", "9001"])

        assert run.call_args.kwargs["port"] == 9001
        assert run.call_args.kwargs["host"] == test_settings.host
        shutdown.assert_called_once()

    def test_reload_uses_app_factory(self, test_settings):
        with (
            patch("buildprompt.main.get_settings", return_value=test_settings),
            patch("buildprompt.main.uvicorn.run") as run,
            patch("buildprompt.telemetry.setup_telemetry"),
            patch("buildprompt.telemetry.shutdown_telemetry"),
        ):
            main(["serve", "--reload"])

        assert run.call_args.args == ("buildprompt.api.app:create_app",)
        assert run.call_args.kwargs["factory"] is True
        assert run.call_args.kwargs["reload"] is True

    def test_set_tier(self, capsys):
        """Test set-tier changes the tier in the usage repository."""
        repo = UsageRepository()
        with (
            patch("buildprompt.main.get_settings", return_value=Settings(usage_backend="database")),
            patch("buildprompt.db.init_database", new=AsyncMock()),
            patch("buildprompt.db.close_database", new=AsyncMock()) as close,
            patch("buildprompt.metering.create_usage_repository", return_value=repo),
        ):
            main(["set-tier", "user-1", "pro"])

        assert repo._users["user-1"].subscription_tier == SubscriptionTier.PRO
        assert capsys.readouterr().out.strip() == "user-1: pro"
        close.assert_awaited_once()

    def test_set_tier_needs_database(self):
        with patch("buildprompt.main.get_settings", return_value=Settings(usage_backend="memory")):
            with pytest.raises(SystemExit):
                main(["set-tier", "user-1", "pro"])

    def test_init_db(self):
        with (
            patch("buildprompt.db.init_database", new=AsyncMock()) as init,
            patch("buildprompt.db.close_database", new=AsyncMock()) as close,
        ):
            main(["init-db"])

        init.assert_awaited_once()
        close.assert_awaited_once()
