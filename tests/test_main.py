"""Tests for main.py startup: logging configuration and the stale-lock sweep."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

from prioritymatrix.main import app, lifespan


def startup_settings(vault_path, log_level="INFO"):
    s = MagicMock()
    s.vault_path = vault_path
    s.log_level = log_level
    s.lock_timeout = 300.0
    return s


class TestStartupLogging:
    async def test_logs_vault_and_config_path(self, tmp_path, caplog):
        s = startup_settings(tmp_path)
        s.config_path = tmp_path / "PriorityMatrix" / "priority_matrix_data.json"
        with (
            caplog.at_level(logging.INFO, logger="prioritymatrix.main"),
            patch("prioritymatrix.main.get_settings", return_value=s),
        ):
            async with lifespan(app):
                pass

        assert "PriorityMatrix starting" in caplog.text
        assert "priority_matrix_data.json" in caplog.text

    async def test_configures_requested_log_level(self, tmp_path):
        with (
            patch("prioritymatrix.main.get_settings", return_value=startup_settings(tmp_path, "debug")),
            patch("prioritymatrix.main.configure_logging") as configure,
        ):
            async with lifespan(app):
                pass

        configure.assert_called_once_with("debug")

    async def test_missing_vault_logs_error_and_skips_sweep(self, tmp_path, caplog):
        with (
            caplog.at_level(logging.ERROR, logger="prioritymatrix.main"),
            patch("prioritymatrix.main.get_settings", return_value=startup_settings(tmp_path / "missing")),
            patch("prioritymatrix.main.get_gateway") as get_gateway,
        ):
            async with lifespan(app):
                pass

        assert "VAULT PATH NOT CONFIGURED" in caplog.text
        get_gateway.assert_not_called()


class TestLockSweep:
    async def test_sweep_runs_for_configured_vault(self, tmp_path):
        gateway = MagicMock()
        gateway.lock.sweep = AsyncMock()
        with (
            patch("prioritymatrix.main.get_settings", return_value=startup_settings(tmp_path)),
            patch("prioritymatrix.main.get_gateway", return_value=gateway),
        ):
            async with lifespan(app):
                pass

        gateway.lock.sweep.assert_called_once_with()

    async def test_sweep_cancelled_on_shutdown(self, tmp_path):
        with patch("prioritymatrix.main.get_settings", return_value=startup_settings(tmp_path)):
            async with lifespan(app):
                pass

        running = [t for t in asyncio.all_tasks() if t.get_coro().__qualname__ == "KeyedLock.sweep"]
        assert running == []
