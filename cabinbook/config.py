"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.slot_grid import validate_interval
from .domain.zone_calendar import WeekStart, resolve_timezone
from .services.reservation_service import ResourceSettings


class DefaultsConfig(BaseModel):
    """Defaults applied to every resource."""
    interval_minutes: int = 30
    week_start: WeekStart = WeekStart.MONDAY
    lookahead_days: int = 30

    @field_validator("interval_minutes")
    @classmethod
    def validate_interval_minutes(cls, value: int) -> int:
        """Slots must tile a day exactly."""
        return validate_interval(value)

    @field_validator("lookahead_days")
    @classmethod
    def validate_lookahead(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("lookahead_days must be greater than zero")
        return value


class ResourceConfig(BaseModel):
    """A bookable cabin or room."""
    id: str
    name: str = ""
    timezone: Optional[str] = None  # Falls back to AppConfig.timezone
    interval_minutes: Optional[int] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Resource id must not be empty")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            resolve_timezone(value)
        return value

    @field_validator("interval_minutes")
    @classmethod
    def validate_interval_minutes(cls, value: Optional[int]) -> Optional[int]:
        if value is not None:
            validate_interval(value)
        return value

    def display_name(self) -> str:
        return self.name or self.id


class StoreConfig(BaseModel):
    """Reservation file location; relative paths resolve against the config file."""
    path: str = "reservations.json"


class NotificationsConfig(BaseModel):
    slack_webhook_url: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    site_url: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.slack_webhook_url or self.discord_webhook_url)


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Accept any standard logging level name, case-insensitively."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Asia/Seoul"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    resources: List[ResourceConfig] = Field(default_factory=list)
    store: StoreConfig = Field(default_factory=StoreConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, value: List[ResourceConfig]) -> List[ResourceConfig]:
        """Ensure resource ids are unique."""
        seen: set[str] = set()
        for resource in value:
            if resource.id in seen:
                raise ValueError(f"Duplicate resource id detected: {resource.id}")
            seen.add(resource.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def resource_settings(self) -> List[ResourceSettings]:
        """Resolve per-resource settings, applying global defaults."""
        return [
            ResourceSettings(
                id=resource.id,
                name=resource.display_name(),
                timezone=resource.timezone or self.timezone,
                interval_minutes=resource.interval_minutes or self.defaults.interval_minutes,
                week_start=self.defaults.week_start,
            )
            for resource in self.resources
        ]

    def store_path(self, config_path: Path) -> Path:
        """Reservation file path, resolved relative to the config file."""
        path = Path(self.store.path).expanduser()
        if not path.is_absolute():
            path = config_path.parent / path
        return path


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of cabinbook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
