"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.availability import AvailabilityEngine
from .domain.models import WorkingHours
from .domain.projector import MONDAY, SUNDAY, CalendarProjector


class WorkingHoursConfig(BaseModel):
    """Shop opening hours and slot length."""
    start_hour: int = 9
    end_hour: int = 17
    slot_minutes: int = 60

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Ensure slot length is positive."""
        if value <= 0:
            raise ValueError("slot_minutes must be greater than zero")
        return value

    @field_validator("start_hour", "end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the shop opens before it closes."""
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be later than start_hour")
        return self

    def get_start_time(self) -> time:
        """Get start time as time object."""
        return time(hour=self.start_hour, minute=0)

    def get_end_time(self) -> time:
        """Get end time as time object."""
        return time(hour=self.end_hour, minute=0)


class CalendarConfig(BaseModel):
    """Visible hours of the week/day views and the month grid layout."""
    week_start_hour: int = 9
    week_end_hour: int = 18
    day_start_hour: int = 9
    day_end_hour: int = 20
    month_week_start: Literal["sunday", "monday"] = "sunday"

    @field_validator("week_start_hour", "week_end_hour", "day_start_hour", "day_end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @model_validator(mode="after")
    def validate_windows(self) -> "CalendarConfig":
        if self.week_end_hour < self.week_start_hour:
            raise ValueError("week_end_hour must not be earlier than week_start_hour")
        if self.day_end_hour < self.day_start_hour:
            raise ValueError("day_end_hour must not be earlier than day_start_hour")
        return self

    def week_hours(self) -> List[int]:
        return list(range(self.week_start_hour, self.week_end_hour + 1))

    def day_hours(self) -> List[int]:
        return list(range(self.day_start_hour, self.day_end_hour + 1))


class DefaultsConfig(BaseModel):
    """Defaults for new bookings."""
    duration_minutes: int = 60
    reminder_hours: int = 24

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure appointment duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("reminder_hours")
    @classmethod
    def validate_reminder(cls, value: int) -> int:
        if value < 0:
            raise ValueError("reminder_hours must not be negative")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    exclude_days: List[int] = Field(default_factory=lambda: [5, 6])  # Saturday, Sunday
    tailor_id: str = "tailor1"
    data_file: Optional[Path] = None
    log_level: str = "WARNING"

    @field_validator("exclude_days")
    @classmethod
    def validate_exclude_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"exclude_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

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

        config = cls(**data)

        # Relative data files are resolved against the config file location
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = (config_path.parent / config.data_file).resolve()

        return config

    def build_working_hours(self) -> WorkingHours:
        return WorkingHours(
            start_time=self.working_hours.get_start_time(),
            end_time=self.working_hours.get_end_time(),
            exclude_weekdays=list(self.exclude_days),
            timezone=self.timezone,
        )

    def build_engine(self) -> AvailabilityEngine:
        return AvailabilityEngine(
            working_hours=self.build_working_hours(),
            slot_minutes=self.working_hours.slot_minutes,
        )

    def build_projector(self) -> CalendarProjector:
        return CalendarProjector(
            timezone=self.timezone,
            week_hours=self.calendar.week_hours(),
            day_hours=self.calendar.day_hours(),
            month_week_start=SUNDAY if self.calendar.month_week_start == "sunday" else MONDAY,
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load an explicit config file, or the default one when it exists.

    Without an explicit path and without a default file the built-in
    defaults are used.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)

    return AppConfig()
