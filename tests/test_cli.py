"""
Tests for the Typer command-line front end.
"""

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cabinbook import __version__
from cabinbook.cli.app import app

runner = CliRunner()

CONFIG = """
timezone: Asia/Seoul
resources:
  - id: cabin-a
    name: Cabin A
  - id: cabin-b
    name: Cabin B
store:
  path: reservations.json
logging:
  level: WARNING
"""


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def _reserve(config_path: Path, start: str = "13:30", end: str = "14:30", purpose: str = "Design review"):
    return _invoke(
        "reserve", "cabin-a",
        "--date", "2099-01-05",
        "--start", start,
        "--end", end,
        "--purpose", purpose,
        "-c", str(config_path),
    )


def _stored(config_path: Path):
    return json.loads((config_path.parent / "reservations.json").read_text(encoding="utf-8"))


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self):
        result = _invoke("version")

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_resources(self, config_path):
        result = _invoke("resources", "-c", str(config_path))

        assert result.exit_code == 0
        assert "cabin-a" in result.output
        assert "Cabin B" in result.output

    def test_missing_config(self, tmp_path):
        result = _invoke("resources", "-c", str(tmp_path / "nope.yaml"))

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_reserve_writes_store(self, config_path):
        result = _reserve(config_path)

        assert result.exit_code == 0, result.output
        assert "Reserved" in result.output
        rows = _stored(config_path)
        assert len(rows) == 1
        assert rows[0]["resource_id"] == "cabin-a"
        assert rows[0]["start"] == "2099-01-05T04:30:00Z"

    def test_reserve_overlap_exits_with_error(self, config_path):
        _reserve(config_path)

        result = _reserve(config_path, start="14:00", end="15:00", purpose="Standup")

        assert result.exit_code == 1
        assert "overlap" in result.output
        assert len(_stored(config_path)) == 1

    def test_reserve_past_date(self, config_path):
        result = _invoke(
            "reserve", "cabin-a", "--date", "2000-01-01", "--start", "10:00", "--end", "11:00",
            "--purpose", "Too late", "-c", str(config_path),
        )

        assert result.exit_code == 1
        assert "past_time" in result.output

    def test_reserve_bad_time(self, config_path):
        result = _reserve(config_path, start="1:3x")

        assert result.exit_code == 1
        assert "HH:mm" in result.output

    def test_reserve_unknown_resource(self, config_path):
        result = _invoke(
            "reserve", "cabin-z", "--date", "2099-01-05", "--start", "10:00", "--end", "11:00",
            "--purpose", "x", "-c", str(config_path),
        )

        assert result.exit_code == 1
        assert "Unknown resource" in result.output

    def test_update_and_delete(self, config_path):
        _reserve(config_path)
        reservation_id = _stored(config_path)[0]["id"]

        updated = _invoke(
            "update", reservation_id, "--date", "2099-01-05", "--start", "15:00", "--end", "16:00",
            "--purpose", "Moved", "-c", str(config_path),
        )

        assert updated.exit_code == 0, updated.output
        assert _stored(config_path)[0]["purpose"] == "Moved"

        deleted = _invoke("delete", reservation_id, "-c", str(config_path))

        assert deleted.exit_code == 0
        assert _stored(config_path) == []

    def test_delete_missing(self, config_path):
        result = _invoke("delete", "nope", "-c", str(config_path))

        assert result.exit_code == 1
        assert "Reservation not found" in result.output

    def test_status(self, config_path):
        result = _invoke("status", "-c", str(config_path))

        assert result.exit_code == 0
        assert "Cabin A" in result.output
        assert "free" in result.output

    def test_timetable(self, config_path):
        _reserve(config_path)

        result = _invoke("timetable", "cabin-a", "--date", "2099-01-05", "-c", str(config_path))

        assert result.exit_code == 0, result.output
        assert "13:30-14:00" in result.output
        assert "reserved" in result.output

    def test_month(self, config_path):
        _reserve(config_path)

        result = _invoke("month", "cabin-a", "--month", "2099-01", "-c", str(config_path))

        assert result.exit_code == 0, result.output
        assert "booked" in result.output

    def test_month_bad_format(self, config_path):
        result = _invoke("month", "cabin-a", "--month", "January", "-c", str(config_path))

        assert result.exit_code == 1

    def test_timezones(self):
        result = _invoke("timezones")

        assert result.exit_code == 0
        assert "Asia/Seoul" in result.output

    def test_cancel_keeps_row_and_frees_range(self, config_path):
        _reserve(config_path)
        reservation_id = _stored(config_path)[0]["id"]

        result = _invoke("cancel", reservation_id, "-c", str(config_path))

        assert result.exit_code == 0, result.output
        assert "Cancelled" in result.output
        assert _stored(config_path)[0]["status"] == "cancelled"
        assert _reserve(config_path, purpose="Rebooked").exit_code == 0

    def test_cancel_missing(self, config_path):
        result = _invoke("cancel", "nope", "-c", str(config_path))

        assert result.exit_code == 1
        assert "Reservation not found" in result.output


class TestRemovedResource:
    """Reservations whose resource was dropped from the config file."""

    @pytest.fixture
    def orphan_id(self, config_path) -> str:
        _reserve(config_path)
        config_path.write_text(CONFIG.replace("  - id: cabin-a\n    name: Cabin A\n", ""), encoding="utf-8")
        return _stored(config_path)[0]["id"]

    def test_update_reports_unknown_resource(self, config_path, orphan_id):
        result = _invoke(
            "update", orphan_id, "--date", "2099-01-05", "--start", "15:00", "--end", "16:00",
            "--purpose", "Moved", "-c", str(config_path),
        )

        assert result.exit_code == 1
        assert "Unknown resource" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_delete_still_removes_the_row(self, config_path, orphan_id):
        result = _invoke("delete", orphan_id, "-c", str(config_path))

        assert result.exit_code == 0, result.output
        assert "Deleted" in result.output
        assert _stored(config_path) == []

    def test_cancel_still_cancels_the_row(self, config_path, orphan_id):
        result = _invoke("cancel", orphan_id, "-c", str(config_path))

        assert result.exit_code == 0, result.output
        assert _stored(config_path)[0]["status"] == "cancelled"
