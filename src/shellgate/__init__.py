"""shellgate - validated command execution across Windows, POSIX, WSL and Git Bash shells.

This package decides whether a requested command may run in a given shell,
rewrites it into that shell's invocation shape and runs it under a timeout:

- Shell personalities (cmd, PowerShell, Git Bash, bash, WSL) and a registry
- Layered configuration: global defaults, per-shell overrides, CLI overrides
- Command validation: blocked commands, arguments and operators
- Cross-shell path normalization and allowed-path checks
- Async execution with timeout, output capture and truncation

Typical use:

    gateway = CommandGateway.from_file("shellgate.yaml")
    result = await gateway.execute_command("bash", "ls -la", "/home/me/project")
"""

from shellgate.config import (
    CliOverrides,
    GlobalConfig,
    ResolvedShellConfig,
    ServerConfig,
    ShellConfig,
    ShellKind,
)
from shellgate.errors import (
    ArgumentBlockedError,
    CommandBlockedError,
    CommandTooLongError,
    ConfigError,
    ErrorCode,
    GatewayError,
    InvalidArgumentError,
    InvalidPathFormatError,
    OperatorBlockedError,
    PathConversionError,
    PathNotAllowedError,
    ProcessError,
    ShellNotFoundError,
    SpawnError,
    ValidationError,
    WorkingDirectoryUndefinedError,
)
from shellgate.execution import (
    ExecutionEngine,
    ExecutionResult,
    ExecutionState,
    InMemoryLogStore,
    LogStore,
)
from shellgate.gateway import CommandGateway
from shellgate.logging import configure_logging, get_logger
from shellgate.settings import GatewaySettings
from shellgate.shells import BaseShell, ShellRegistry, create_default_registry

__version__ = "0.1.0"

__all__ = [
    "CommandGateway",
    "GatewaySettings",
    "configure_logging",
    "get_logger",
    # Configuration
    "CliOverrides",
    "GlobalConfig",
    "ResolvedShellConfig",
    "ServerConfig",
    "ShellConfig",
    "ShellKind",
    # Shells
    "BaseShell",
    "ShellRegistry",
    "create_default_registry",
    # Execution
    "ExecutionEngine",
    "ExecutionResult",
    "ExecutionState",
    "InMemoryLogStore",
    "LogStore",
    # Errors
    "ErrorCode",
    "GatewayError",
    "ConfigError",
    "ShellNotFoundError",
    "ValidationError",
    "InvalidArgumentError",
    "CommandTooLongError",
    "CommandBlockedError",
    "ArgumentBlockedError",
    "OperatorBlockedError",
    "InvalidPathFormatError",
    "PathConversionError",
    "PathNotAllowedError",
    "WorkingDirectoryUndefinedError",
    "SpawnError",
    "ProcessError",
]
