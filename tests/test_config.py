"""
Tests for YAML configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cabinbook.config import AppConfig, DefaultsConfig, ResourceConfig
from cabinbook.domain.zone_calendar import WeekStart


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_full_config(self, tmp_path):
        path = _write(
            tmp_path,
            """
timezone: Asia/Seoul
defaults:
  interval_minutes: 15
  week_start: sun
  lookahead_days: 14
resources:
  - id: cabin-a
    name: Cabin A
  - id: nyc
    timezone: America/New_York
    interval_minutes: 60
store:
  path: data/reservations.json
notifications:
  slack_webhook_url: https://hooks.slack.com/services/T/B/X
logging:
  level: debug
""",
        )

        config = AppConfig.load_from_yaml(path)

        assert config.defaults.interval_minutes == 15
        assert config.defaults.week_start == WeekStart.SUNDAY
        assert config.notifications.enabled
        assert config.logging.level == "DEBUG"
        assert config.store_path(path) == tmp_path / "data" / "reservations.json"

        cabin_a, nyc = config.resource_settings()
        assert cabin_a.name == "Cabin A"
        assert cabin_a.timezone == "Asia/Seoul"
        assert cabin_a.interval_minutes == 15
        assert cabin_a.week_start == WeekStart.SUNDAY
        assert nyc.name == "nyc"
        assert nyc.timezone == "America/New_York"
        assert nyc.interval_minutes == 60

    def test_defaults(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, ""))

        assert config.timezone == "Asia/Seoul"
        assert config.defaults.interval_minutes == 30
        assert config.defaults.week_start == WeekStart.MONDAY
        assert config.resources == []
        assert not config.notifications.enabled

    def test_absolute_store_path(self, tmp_path):
        target = tmp_path / "elsewhere" / "r.json"
        path = _write(tmp_path, f"store:\n  path: {target}\n")

        config = AppConfig.load_from_yaml(path)

        assert config.store_path(path) == target

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(_write(tmp_path, "resources: [unclosed"))

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(_write(tmp_path, "- just\n- a list\n"))

    def test_unknown_timezone(self, tmp_path):
        with pytest.raises(ValidationError):
            AppConfig.load_from_yaml(_write(tmp_path, "timezone: Mars/Base\n"))

    def test_unknown_resource_timezone(self):
        with pytest.raises(ValidationError):
            ResourceConfig(id="x", timezone="Mars/Base")

    def test_interval_must_divide_day(self):
        with pytest.raises(ValidationError):
            DefaultsConfig(interval_minutes=7)
        with pytest.raises(ValidationError):
            ResourceConfig(id="x", interval_minutes=0)

    def test_lookahead_must_be_positive(self):
        with pytest.raises(ValidationError):
            DefaultsConfig(lookahead_days=0)

    def test_duplicate_resource_ids(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            AppConfig(resources=[{"id": "cabin-a"}, {"id": "cabin-a"}])

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            AppConfig(logging={"level": "LOUD"})
