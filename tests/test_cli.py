"""Tests for imessage_archiver.cli using click's CliRunner.

The Archiver is replaced with a mock so the commands never reach ssh,
rsync or imessage-exporter.
"""

from __future__ import annotations

import logging
import signal
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from imessage_archiver.cli import cli, install_signal_handlers, render_agent_plist, restore_signal_handlers
from imessage_archiver.core.cancellation import CancellationToken
from imessage_archiver.core.exceptions import (
    DateProcessingError,
    ExportPermissionError,
    RunInterrupted,
)
from imessage_archiver.core.models import DateResult, ExportOutcome, RunResult, RunState


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    key = tmp_path / "id_ed25519"
    key.write_text("key", encoding="utf-8")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "remote_user": "backup",
        "remote_host": "nas.local",
        "ssh_private_key_path": str(key),
        "remote_archive_path": "/backups/imessages",
    }), encoding="utf-8")
    return str(path)


@pytest.fixture
def mock_archiver():
    with patch("imessage_archiver.cli.Archiver") as archiver_class:
        archiver = MagicMock()
        archiver_class.from_config.return_value = archiver
        yield archiver


class TestRun:
    """Exit codes: 0 on success or nothing to do, 1 on failure, 130 on interrupt."""

    def test_success(self, config_path, mock_archiver):
        mock_archiver.run.return_value = RunResult(
            missing_dates=[date(2024, 6, 8), date(2024, 6, 7)],
            date_results=[
                DateResult(date(2024, 6, 8), ExportOutcome.RETAINED, "/tmp/x/2024/06/08"),
                DateResult(date(2024, 6, 7), ExportOutcome.DISCARDED_EMPTY, "/tmp/x/2024/06/07"),
            ],
            synced=True,
            state=RunState.DONE,
        )

        result = CliRunner().invoke(cli, ["--config", config_path, "run"])

        assert result.exit_code == 0
        assert "Archived: 2024-06-08" in result.output
        assert "Empty (skipped): 2024-06-07" in result.output
        assert "Synced to remote: yes" in result.output

    def test_nothing_to_do(self, config_path, mock_archiver):
        mock_archiver.run.return_value = RunResult(state=RunState.DONE)

        result = CliRunner().invoke(cli, ["--config", config_path, "run"])

        assert result.exit_code == 0
        assert "Synced to remote: no" in result.output

    def test_failure(self, config_path, mock_archiver):
        cause = ExportPermissionError("imessage-exporter failed with exit status 1",
                                      "Operation not permitted")
        mock_archiver.run.side_effect = DateProcessingError(date(2024, 6, 8), "export", cause)

        result = CliRunner().invoke(cli, ["--config", config_path, "run"])

        assert result.exit_code == 1
        assert "2024-06-08" in result.output
        assert "Operation not permitted" in result.output

    def test_interrupted(self, config_path, mock_archiver):
        mock_archiver.run.side_effect = RunInterrupted("received SIGTERM")

        result = CliRunner().invoke(cli, ["--config", config_path, "run"])

        assert result.exit_code == 130
        mock_archiver.cleanup.assert_called_once()

    def test_bad_config(self, tmp_path, mock_archiver):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "run"])

        assert result.exit_code == 1
        mock_archiver.run.assert_not_called()


class TestOtherCommands:
    def test_plan(self, config_path, mock_archiver):
        mock_archiver.plan.return_value = [date(2024, 6, 8)]
        mock_archiver.gap_analyzer.probe_failed = False

        result = CliRunner().invoke(cli, ["--config", config_path, "plan"])

        assert result.exit_code == 0
        assert "1 dates to archive" in result.output
        assert "2024-06-08" in result.output
        mock_archiver.run.assert_not_called()

    def test_validate_config(self, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "validate-config"])

        assert result.exit_code == 0
        assert "backup@nas.local:/backups/imessages" in result.output

    def test_validate_config_failure(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("remote_user: backup\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(path), "validate-config"])

        assert result.exit_code == 1

    def test_install_agent_writes_plist(self, config_path, tmp_path):
        dest = tmp_path / "agents" / "com.imessagearchiver.plist"

        result = CliRunner().invoke(cli, [
            "--config", config_path, "install-agent",
            "--executable", "/usr/local/bin/imessage-archiver",
            "--hour", "3", "--minute", "15", "--output", str(dest),
        ])

        assert result.exit_code == 0
        content = dest.read_text(encoding="utf-8")
        assert "<string>/usr/local/bin/imessage-archiver</string>" in content
        assert f"<string>{config_path}</string>" in content
        assert "<integer>3</integer>" in content
        assert "<integer>15</integer>" in content


class TestPlist:
    def test_paths_are_escaped(self):
        plist = render_agent_plist("/Apps/A&B/imessage-archiver", "/cfg.yaml", 2, 0, "/logs")
        assert "/Apps/A&amp;B/imessage-archiver" in plist


class TestSignalHandlers:
    """The first signal cancels and raises; later signals only cancel."""

    def test_handler_cancels_token(self):
        token = CancellationToken()
        previous = install_signal_handlers(token)
        try:
            handler = signal.getsignal(signal.SIGTERM)
            with pytest.raises(RunInterrupted):
                handler(signal.SIGTERM, None)
            assert token.cancelled
            assert token.reason == "received SIGTERM"

            # second signal during cleanup does not raise
            handler(signal.SIGINT, None)
            assert token.reason == "received SIGTERM"
        finally:
            restore_signal_handlers(previous)

        assert signal.getsignal(signal.SIGTERM) == previous[signal.SIGTERM]

    def test_shielded_signal_only_cancels(self):
        token = CancellationToken()
        previous = install_signal_handlers(token)
        try:
            handler = signal.getsignal(signal.SIGINT)
            with token.shield():
                assert token.shielded
                handler(signal.SIGINT, None)
            assert not token.shielded
            assert token.cancelled
            assert token.reason == "received SIGINT"
            with pytest.raises(RunInterrupted):
                token.raise_if_cancelled()
        finally:
            restore_signal_handlers(previous)
