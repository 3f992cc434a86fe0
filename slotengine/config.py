"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .domain.exceptions import ConfigError
from .domain.intervals import validate_timezone

CONFIG_FILE_NAME = "slotengine.yaml"


class GoogleSettings(BaseModel):
    """OAuth client used to refresh Google Calendar tokens."""
    client_id: str = ""
    client_secret: str = ""
    token_url: str = "https://oauth2.googleapis.com/token"
    api_url: str = "https://www.googleapis.com/calendar/v3"

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class MicrosoftSettings(BaseModel):
    """Azure AD application used to refresh Microsoft Graph tokens."""
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = "common"
    scopes: List[str] = Field(default_factory=lambda: ["Calendars.Read"])

    def get_authority_url(self) -> str:
        """Get the formatted authority URL."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class EngineSettings(BaseModel):
    """Engine configuration."""
    default_timezone: str = "UTC"
    provider_timeout_seconds: Optional[float] = 10.0
    token_refresh_margin_minutes: int = 5
    round_robin_lookback_days: int = 30
    log_level: str = "INFO"
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    microsoft: MicrosoftSettings = Field(default_factory=MicrosoftSettings)

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        return validate_timezone(value)

    @field_validator("provider_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: Optional[float]) -> Optional[float]:
        """A missing timeout means wait for every provider."""
        if value is not None and value <= 0:
            raise ValueError("provider_timeout_seconds must be greater than zero")
        return value

    @field_validator("token_refresh_margin_minutes")
    @classmethod
    def validate_margin(cls, value: int) -> int:
        if value < 0:
            raise ValueError("token_refresh_margin_minutes cannot be negative")
        return value

    @field_validator("round_robin_lookback_days")
    @classmethod
    def validate_lookback(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("round_robin_lookback_days must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineSettings":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineSettings instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping at the root level.")

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for the config in current directory
    config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILE_NAME

    return config_path


def load_settings(config_path: Optional[Path] = None) -> EngineSettings:
    """
    Load settings from ``config_path``, or from the default location.

    An explicit path must exist; a missing default file yields the built-in
    defaults.
    """
    if config_path is not None:
        return EngineSettings.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return EngineSettings.load_from_yaml(default_path)

    return EngineSettings()
