"""Server configuration: models, command-line overrides and resolution.

``shellgate.config.loader`` and ``shellgate.config.defaults`` depend on the
shell registry and are imported from their modules directly.
"""

from shellgate.config.cli import CliOverrides, apply_cli_overrides, build_cli_layer
from shellgate.config.models import (
    DEFAULT_MOUNT_POINT,
    ExecutableConfig,
    GlobalConfig,
    LoggingConfig,
    MountConfig,
    PathsConfig,
    PathsOverrides,
    ResolvedRestrictions,
    ResolvedShellConfig,
    RestrictionsConfig,
    RestrictionsOverrides,
    SecurityConfig,
    SecurityOverrides,
    ServerConfig,
    ShellConfig,
    ShellKind,
    ShellOverrides,
)

__all__ = [
    "CliOverrides",
    "apply_cli_overrides",
    "build_cli_layer",
    "DEFAULT_MOUNT_POINT",
    "ExecutableConfig",
    "GlobalConfig",
    "LoggingConfig",
    "MountConfig",
    "PathsConfig",
    "PathsOverrides",
    "ResolvedRestrictions",
    "ResolvedShellConfig",
    "RestrictionsConfig",
    "RestrictionsOverrides",
    "SecurityConfig",
    "SecurityOverrides",
    "ServerConfig",
    "ShellConfig",
    "ShellKind",
    "ShellOverrides",
]
