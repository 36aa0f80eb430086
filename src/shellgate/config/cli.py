"""Command-line overrides.

Argument parsing belongs to the caller; this module only applies the
parsed values. Structural flags (which shell is enabled, allowed
directories, initial directory, mount point, output limits) are written
into the server configuration. Security numbers and blocklists become a
final override layer applied to every shell by the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass

from shellgate.config.models import (
    RestrictionsOverrides,
    SecurityOverrides,
    ServerConfig,
    ShellOverrides,
)
from shellgate.errors import ConfigError
from shellgate.logging import Loggers

logger = Loggers.config()


@dataclass
class CliOverrides:
    """Values parsed from the command line; None means "not given"."""

    shell: str | None = None
    allowed_dirs: list[str] | None = None
    initial_dir: str | None = None
    max_command_length: int | None = None
    command_timeout: int | None = None
    wsl_mount_point: str | None = None
    blocked_commands: list[str] | None = None
    blocked_arguments: list[str] | None = None
    blocked_operators: list[str] | None = None
    allow_all_dirs: bool = False
    yolo: bool = False
    unsafe: bool = False
    max_output_lines: int | None = None
    enable_truncation: bool | None = None

    def check(self) -> None:
        """Raises ConfigError for mutually exclusive flags."""
        if self.yolo and self.unsafe:
            raise ConfigError("--yolo and --unsafe cannot be used together")


def _positive(name: str, value: int | None) -> int | None:
    if value is None:
        return None
    if value <= 0:
        logger.warning("cli_value_ignored", option=name, value=value)
        return None
    return value


def apply_cli_overrides(config: ServerConfig, cli: CliOverrides | None) -> ServerConfig:
    """Write structural command-line values into the configuration.

    Args:
        config: Configuration loaded from defaults and file.
        cli: Parsed command-line values.

    Returns:
        New configuration; ``config`` is not modified.

    Raises:
        ConfigError: ``--shell`` names an unknown shell, or conflicting flags.
    """
    if cli is None:
        return config
    cli.check()

    shells = dict(config.shells)
    if cli.shell:
        if cli.shell not in shells:
            raise ConfigError(f"Unknown shell '{cli.shell}'", details={"shell": cli.shell})
        shells = {
            name: entry.model_copy(update={"enabled": name == cli.shell})
            for name, entry in shells.items()
        }

    if cli.wsl_mount_point:
        for name, entry in shells.items():
            if entry.mount_config is not None:
                mount = entry.mount_config.model_copy(
                    update={"mount_point": _with_trailing_slash(cli.wsl_mount_point)}
                )
                shells[name] = entry.model_copy(update={"mount_config": mount})

    global_config = config.global_
    paths = global_config.paths
    security = global_config.security
    logging_config = global_config.logging

    if cli.allowed_dirs:
        paths = paths.model_copy(update={"allowed_paths": list(cli.allowed_dirs)})
        security = security.model_copy(update={"restrict_working_directory": True})
    if cli.initial_dir:
        paths = paths.model_copy(update={"initial_dir": cli.initial_dir})

    max_lines = _positive("max_output_lines", cli.max_output_lines)
    if max_lines is not None:
        logging_config = logging_config.model_copy(update={"max_output_lines": max_lines})
    if cli.enable_truncation is not None:
        logging_config = logging_config.model_copy(
            update={"enable_truncation": cli.enable_truncation}
        )

    global_config = global_config.model_copy(
        update={"paths": paths, "security": security, "logging": logging_config}
    )
    return config.model_copy(update={"global_": global_config, "shells": shells})


def _with_trailing_slash(mount_point: str) -> str:
    return mount_point if mount_point.endswith("/") else mount_point + "/"


def build_cli_layer(cli: CliOverrides | None, config: ServerConfig | None = None) -> ShellOverrides | None:
    """Final override layer for security values and blocklists.

    ``yolo`` clears every blocklist and disables injection protection;
    ``unsafe`` additionally disables directory restriction.
    ``allow_all_dirs`` disables directory restriction only when ``config``
    has neither allowed paths nor an initial directory.
    """
    if cli is None:
        return None
    cli.check()

    security: dict[str, object] = {}
    length = _positive("max_command_length", cli.max_command_length)
    if length is not None:
        security["max_command_length"] = length
    timeout = _positive("command_timeout", cli.command_timeout)
    if timeout is not None:
        security["command_timeout"] = timeout
    if cli.allowed_dirs:
        security["restrict_working_directory"] = True

    restrictions = RestrictionsOverrides(
        blocked_commands=cli.blocked_commands,
        blocked_arguments=cli.blocked_arguments,
        blocked_operators=cli.blocked_operators,
    )

    if cli.allow_all_dirs and config is not None:
        paths = config.global_.paths
        if not paths.allowed_paths and not paths.initial_dir:
            security["restrict_working_directory"] = False
        else:
            logger.warning("allow_all_dirs_ignored", reason="allowed paths or initial dir configured")

    if cli.yolo or cli.unsafe:
        restrictions = RestrictionsOverrides(
            blocked_commands=[],
            blocked_arguments=[],
            blocked_operators=[],
        )
        security["enable_injection_protection"] = False
        logger.warning("safety_restrictions_disabled", mode="unsafe" if cli.unsafe else "yolo")
    if cli.unsafe:
        security["restrict_working_directory"] = False

    has_restrictions = any(
        v is not None
        for v in (
            restrictions.blocked_commands,
            restrictions.blocked_arguments,
            restrictions.blocked_operators,
        )
    )
    if not security and not has_restrictions:
        return None
    return ShellOverrides(
        security=SecurityOverrides(**security) if security else None,
        restrictions=restrictions if has_restrictions else None,
    )
