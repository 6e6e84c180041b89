"""Runtime configuration for the dashboard."""

from pathlib import Path

import typer
from pydantic import BaseModel, Field, ValidationError, field_validator

from cluster_monitor.exceptions import ConfigurationError

APP_NAME = "cluster-monitor"
DEFAULT_URL = "http://localhost:8080"
DEFAULT_REFRESH_INTERVAL = 5
DEFAULT_REQUEST_TIMEOUT = 10.0


def default_token_file() -> Path:
    """Per-user token file in the platform's conventional config directory."""
    return Path(typer.get_app_dir(APP_NAME)) / "tokens.json"


class MonitorConfig(BaseModel):
    """Dashboard configuration."""

    url: str = DEFAULT_URL
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    debug: bool = False
    token_file: Path = Field(default_factory=default_token_file)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the API URL and strip trailing slashes."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url '{v}' must start with http:// or https://")
        v = v.rstrip("/")
        if v in ("http:/", "https:/", "http:", "https:"):
            raise ValueError("url must include a host")
        return v

    @field_validator("refresh_interval")
    @classmethod
    def validate_refresh_interval(cls, v: int) -> int:
        """Validate refresh interval is not negative (0 disables polling)."""
        if v < 0:
            raise ValueError("refresh interval cannot be negative")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        """Validate request timeout is positive."""
        if v <= 0:
            raise ValueError("request timeout must be positive")
        return v

    @classmethod
    def build(cls, **values) -> "MonitorConfig":
        """Create a configuration, converting validation errors to ConfigurationError."""
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as e:
            problems = "; ".join(err["msg"] for err in e.errors())
            raise ConfigurationError("Invalid configuration", problems) from e
