"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import ParseError
from .domain.models import TimeOfDay
from .domain.time_window import TimeWindowPolicy


class ApiConfig(BaseModel):
    """Storefront REST backend settings."""
    base_url: str = "https://backend-r9v8.onrender.com/api"
    timeout_seconds: float = 30.0

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) URL and strip any trailing slash."""
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got {value!r}")
        return value.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the request timeout is positive."""
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class WindowConfig(BaseModel):
    """Bookable window of the business day."""
    open_time: str = "09:00"
    close_time: str = "19:00"
    slot_minutes: int = 30

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Validate HH:MM format."""
        try:
            return str(TimeOfDay.parse(value))
        except ParseError as exc:
            raise ValueError(exc.user_message) from exc

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Ensure the slot step is positive."""
        if value <= 0:
            raise ValueError("slot_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_window_order(self) -> "WindowConfig":
        """Ensure the window opens before it closes and the step divides it."""
        opening = TimeOfDay.parse(self.open_time)
        closing = TimeOfDay.parse(self.close_time)
        if closing <= opening:
            raise ValueError("close_time must be later than open_time")
        if (closing.minute_of_day - opening.minute_of_day) % self.slot_minutes:
            raise ValueError("slot_minutes must evenly divide the booking window")
        return self

    def to_policy(self) -> TimeWindowPolicy:
        """Build the domain policy for this window."""
        return TimeWindowPolicy(
            open_time=TimeOfDay.parse(self.open_time),
            close_time=TimeOfDay.parse(self.close_time),
            slot_minutes=self.slot_minutes,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    api: ApiConfig = Field(default_factory=ApiConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    timezone: str = "Asia/Manila"
    currency: str = "PHP"
    session_file: Path = Field(default_factory=lambda: Path.home() / ".homebook_session.json")
    viewed_notifications_file: Path = Field(
        default_factory=lambda: Path.home() / ".homebook_viewed_notifications.json"
    )
    log_level: str = "WARNING"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the business zone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("session_file", "viewed_notifications_file")
    @classmethod
    def expand_user(cls, value: Path) -> Path:
        """Allow ``~`` in configured paths."""
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if value.upper() not in levels:
            raise ValueError(f"log_level must be one of {sorted(levels)}, got {value!r}")
        return value.upper()

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

    @classmethod
    def load_or_default(cls, config_path: Path) -> "AppConfig":
        """Load the YAML file if it exists, otherwise use built-in defaults."""
        if config_path.exists():
            return cls.load_from_yaml(config_path)
        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of homebook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
