"""Configuration models for the command gateway.

The on-disk format uses camelCase keys (``maxCommandLength``,
``blockedCommands``, ``wslConfig``); Python code uses snake_case. All models
are frozen: configuration is built once at startup and never mutated, new
layers are produced with ``model_copy``.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ShellKind(str, Enum):
    """Path dialect and invocation style of a shell."""

    WINDOWS = "windows"  # cmd.exe, PowerShell
    MIXED = "mixed"  # Git Bash: /c/... and C:\... both accepted
    POSIX = "posix"  # native bash
    WSL = "wsl"  # Linux with Windows drives under a mount point


DEFAULT_MOUNT_POINT = "/mnt/"

DEFAULT_BLOCKED_COMMANDS = [
    "format",
    "shutdown",
    "restart",
    "reg",
    "regedit",
    "net",
    "netsh",
    "takeown",
    "icacls",
]

DEFAULT_BLOCKED_ARGUMENTS = [
    "--exec",
    "-e",
    "/c",
    "-enc",
    "-encodedcommand",
    "-command",
    "--interactive",
    "-i",
    "--login",
    "--system",
]

DEFAULT_BLOCKED_OPERATORS = ["&", "|", ";", "`"]

DEFAULT_TRUNCATION_MESSAGE = (
    "[Output truncated: Showing last {returnedLines} of {totalLines} lines]"
)


class ConfigModel(BaseModel):
    """Base for all configuration models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class SecurityConfig(ConfigModel):
    max_command_length: int = 2000
    command_timeout: int = 30
    enable_injection_protection: bool = True
    restrict_working_directory: bool = True
    allow_command_chaining: bool = True


class SecurityOverrides(ConfigModel):
    """Partial security settings; ``None`` means "not overridden"."""

    max_command_length: int | None = None
    command_timeout: int | None = None
    enable_injection_protection: bool | None = None
    restrict_working_directory: bool | None = None
    allow_command_chaining: bool | None = None


class RestrictionsConfig(ConfigModel):
    blocked_commands: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS))
    blocked_arguments: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_ARGUMENTS))
    blocked_operators: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_OPERATORS))


class RestrictionsOverrides(ConfigModel):
    """Partial restrictions.

    ``None`` leaves the lower layer untouched; an empty list clears it.
    """

    blocked_commands: list[str] | None = None
    blocked_arguments: list[str] | None = None
    blocked_operators: list[str] | None = None


class PathsConfig(ConfigModel):
    allowed_paths: list[str] = Field(default_factory=list)
    initial_dir: str | None = None


class PathsOverrides(ConfigModel):
    allowed_paths: list[str] | None = None
    initial_dir: str | None = None


class LoggingConfig(ConfigModel):
    """Output handling for executed commands."""

    max_output_lines: int = 20
    enable_truncation: bool = True
    truncation_message: str = DEFAULT_TRUNCATION_MESSAGE


class GlobalConfig(ConfigModel):
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    restrictions: RestrictionsConfig = Field(default_factory=RestrictionsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ShellOverrides(ConfigModel):
    security: SecurityOverrides | None = None
    restrictions: RestrictionsOverrides | None = None
    paths: PathsOverrides | None = None

    @property
    def is_empty(self) -> bool:
        return self.security is None and self.restrictions is None and self.paths is None


class ExecutableConfig(ConfigModel):
    """Program plus the fixed arguments placed before the command."""

    command: str = ""
    args: list[str] = Field(default_factory=list)


class MountConfig(ConfigModel):
    """Where a WSL-style shell exposes Windows drives."""

    mount_point: str = DEFAULT_MOUNT_POINT
    inherit_global_paths: bool = True

    @field_validator("mount_point")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        if not v:
            return DEFAULT_MOUNT_POINT
        return v if v.endswith("/") else v + "/"


class ShellConfig(ConfigModel):
    """Configuration entry for one shell identifier.

    ``kind`` may be omitted for built-in shells (their personality declares
    it) but is required for custom shells.
    """

    kind: ShellKind | None = None
    enabled: bool = True
    executable: ExecutableConfig | None = None
    overrides: ShellOverrides | None = None
    mount_config: MountConfig | None = Field(
        default=None,
        validation_alias=AliasChoices("mountConfig", "wslConfig", "mount_config"),
    )
    # Legacy, recognized and ignored
    include_default_wsl: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("includeDefaultWSL", "include_default_wsl"),
        exclude=True,
    )


class ServerConfig(ConfigModel):
    """Complete server configuration: global defaults plus per-shell entries."""

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    shells: dict[str, ShellConfig] = Field(default_factory=dict)
    include_default_wsl: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("includeDefaultWSL", "include_default_wsl"),
        exclude=True,
    )

    def with_shell(self, name: str, shell: ShellConfig) -> "ServerConfig":
        """Return a copy with one shell entry replaced."""
        return self.model_copy(update={"shells": {**self.shells, name: shell}})

    def with_global(self, global_config: GlobalConfig) -> "ServerConfig":
        """Return a copy with the global section replaced."""
        return self.model_copy(update={"global_": global_config})


class ResolvedRestrictions(ConfigModel):
    blocked_commands: list[str] = Field(default_factory=list)
    blocked_arguments: list[str] = Field(default_factory=list)
    blocked_operators: list[str] = Field(default_factory=list)


class ResolvedShellConfig(ConfigModel):
    """Final, merged settings for one enabled shell.

    This is the only configuration object consulted while handling a
    request. It is plain data: path validators live in code, keyed by
    ``kind``.
    """

    name: str
    kind: ShellKind
    enabled: bool = True
    executable: ExecutableConfig
    security: SecurityConfig
    restrictions: ResolvedRestrictions
    paths: PathsConfig
    mount_config: MountConfig | None = None

    @property
    def mount_point(self) -> str:
        if self.mount_config is None:
            return DEFAULT_MOUNT_POINT
        return self.mount_config.mount_point

    def to_summary(self) -> dict[str, Any]:
        """Serializable snapshot for callers."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
