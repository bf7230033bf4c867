"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
import time
from pathlib import Path

import pytest

from fluency.adaptive.models import ItemStats
from fluency.delivery.state_store import StateStore

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(
    command: str,
    db_path: Path,
    timeout: int = 30,
    stdin: str = "",
) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m fluency')
        db_path: State database for this run
        timeout: Maximum time to wait
        stdin: Text fed to the process

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f"{sys.executable} -m fluency {command}"
    env = {
        **os.environ,
        "FLUENCY_STATE_DB_PATH": str(db_path),
        "COLUMNS": "200",
    }

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        env=env,
        input=stdin,
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "state.db"


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, db_path):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help", db_path)

        assert code == 0, f"Help failed: {stderr}"
        assert "fluency" in stdout.lower()
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["simulate", "stats", "calibrate", "reset"])
    def test_command_help(self, db_path, command):
        code, stdout, stderr = run_cli_command(f"{command} --help", db_path)

        assert code == 0, f"{command} help failed: {stderr}"


class TestCLISimulate:
    """Test simulate command."""

    def test_simulate_runs(self, db_path):
        code, stdout, stderr = run_cli_command("simulate", db_path)

        assert code == 0, f"Simulate failed: {stderr}"
        assert "Recall decay" in stdout
        assert "Stability trajectory" in stdout
        assert "Unseen" in stdout

    def test_simulate_with_overrides(self, db_path):
        code, stdout, stderr = run_cli_command("simulate --initial-stability 8 --sessions 3", db_path)

        assert code == 0, f"Simulate failed: {stderr}"
        assert "#3" in stdout
        assert "#4" not in stdout


class TestCLIStats:
    """Test stats command."""

    def test_stats_empty_database(self, db_path):
        code, stdout, stderr = run_cli_command("stats", db_path)

        assert code == 0, f"Stats failed: {stderr}"
        assert "No items recorded yet" in stdout
        assert "not calibrated" in stdout

    def test_stats_lists_recorded_items(self, db_path):
        store = StateStore("notes", db_path)
        store.save_stats(
            "F#",
            ItemStats(ewma=2500.0, recent_times=[2500.0], sample_count=1, last_seen=0),
        )
        store.save_baseline("button", 800)
        store.close()

        code, stdout, stderr = run_cli_command("stats --namespace notes", db_path)

        assert code == 0, f"Stats failed: {stderr}"
        assert "F#" in stdout
        assert "800ms" in stdout
        assert "Automatic: 0 / 1" in stdout
        assert "All items retained" not in stdout

    def test_stats_reports_retention(self, db_path):
        now = time.time() * 1000
        store = StateStore("notes", db_path)
        store.save_stats(
            "C",
            ItemStats(
                ewma=4000.0,
                recent_times=[4000.0],
                sample_count=1,
                last_seen=now,
                stability=100.0,
                last_correct_at=now,
            ),
        )
        store.close()

        code, stdout, stderr = run_cli_command("stats --namespace notes", db_path)

        assert code == 0, f"Stats failed: {stderr}"
        assert "All items retained" in stdout
        assert "Automatic: 0 / 1" in stdout


class TestCLICalibrate:
    """Test calibrate command."""

    def test_abandoned_calibration_exits_nonzero(self, db_path):
        code, stdout, stderr = run_cli_command("calibrate", db_path, stdin="")

        assert code == 1
        assert "abandoned" in stdout

        store = StateStore("default", db_path)
        assert store.get_baseline("button") is None
        store.close()


class TestCLIReset:
    """Test reset command."""

    def test_reset_clears_namespace(self, db_path):
        store = StateStore("notes", db_path)
        store.save_stats("C", ItemStats(ewma=1200.0, recent_times=[1200.0], sample_count=1, last_seen=0))
        store.close()

        code, stdout, stderr = run_cli_command("reset --namespace notes --yes", db_path)

        assert code == 0, f"Reset failed: {stderr}"
        assert "has been reset" in stdout

        store = StateStore("notes", db_path)
        assert store.get_item_ids() == []
        store.close()

    def test_reset_declined(self, db_path):
        code, stdout, stderr = run_cli_command("reset", db_path, stdin="n\n")

        assert code == 0
        assert "has been reset" not in stdout
