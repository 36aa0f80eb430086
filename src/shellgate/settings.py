"""Process-level settings for the command gateway.

Settings are loaded from (in order of precedence):
    1. Constructor arguments
    2. Environment variables (SHELLGATE_* prefix)
    3. .env file
    4. Default values

These settings only control the process (logging, which shells are loaded,
where the server configuration file lives). Security settings live in the
server configuration, see ``shellgate.config``.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Settings for the gateway process."""

    model_config = SettingsConfigDict(
        env_prefix="SHELLGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        title="Log Level",
        description="Logging verbosity level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        title="Log Format",
        description="Log output format (console for dev, json for production)",
    )

    config_path: Path | None = Field(
        default=None,
        title="Config Path",
        description="Server configuration file (JSON or YAML)",
    )

    # Shell loading
    shell_preset: str | None = Field(
        default=None,
        title="Shell Preset",
        description="Named set of shells to load (full, windows, unix, ...)",
    )
    included_shells: str | None = Field(
        default=None,
        title="Included Shells",
        description="Comma-separated shell identifiers to load",
    )

    @field_validator("config_path", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        """Expand ~ in the configuration path."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @property
    def included_shell_list(self) -> list[str]:
        """Shell identifiers from ``included_shells``, empty when unset."""
        if not self.included_shells:
            return []
        return [s.strip() for s in self.included_shells.split(",") if s.strip()]
