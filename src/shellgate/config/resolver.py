"""Configuration resolution.

Folds the configuration layers for each shell into one
:class:`ResolvedShellConfig`:

    global -> shell overrides -> CLI layer

Merge rules per field:

- security: a layer's value wins when set
- blocked commands / arguments: appended to the lower layer; an explicit
  empty list clears it
- blocked operators, allowed paths, initial directory: replaced when set
- mount config: carried through; WSL shells may inherit converted global
  paths
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from shellgate.config.models import (
    GlobalConfig,
    MountConfig,
    PathsConfig,
    PathsOverrides,
    ResolvedRestrictions,
    ResolvedShellConfig,
    RestrictionsOverrides,
    SecurityConfig,
    SecurityOverrides,
    ServerConfig,
    ShellConfig,
    ShellKind,
    ShellOverrides,
)
from shellgate.errors import ConfigError
from shellgate.logging import Loggers
from shellgate.validation.paths import resolve_allowed_paths

if TYPE_CHECKING:
    from shellgate.shells.base import BaseShell
    from shellgate.shells.registry import ShellRegistry

logger = Loggers.config()


def dedupe(items: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping first occurrences."""
    seen: set[str] = set()
    result = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def merge_appended(base: list[str], override: list[str] | None) -> list[str]:
    """Append ``override`` to ``base``; None keeps ``base``, ``[]`` clears it."""
    if override is None:
        return list(base)
    if not override:
        return []
    return dedupe([*base, *override])


def merge_security(base: SecurityConfig, override: SecurityOverrides | None) -> SecurityConfig:
    if override is None:
        return base
    return base.model_copy(update=override.model_dump(exclude_none=True))


def merge_restrictions(
    base: ResolvedRestrictions,
    override: RestrictionsOverrides | None,
) -> ResolvedRestrictions:
    if override is None:
        return base
    operators = base.blocked_operators
    if override.blocked_operators is not None:
        operators = list(override.blocked_operators)
    return ResolvedRestrictions(
        blocked_commands=merge_appended(base.blocked_commands, override.blocked_commands),
        blocked_arguments=merge_appended(base.blocked_arguments, override.blocked_arguments),
        blocked_operators=operators,
    )


def merge_paths(base: PathsConfig, override: PathsOverrides | None) -> PathsConfig:
    if override is None:
        return base
    update = override.model_dump(exclude_none=True)
    return base.model_copy(update=update) if update else base



def check_security(name: str, security: SecurityConfig) -> None:
    """Reject security values that make a shell unusable.

    Raises:
        ConfigError: Non-positive command length or timeout below one second.
    """
    if security.max_command_length <= 0:
        raise ConfigError(
            f"maxCommandLength must be positive for {name}",
            details={"shell": name, "max_command_length": security.max_command_length},
        )
    if security.command_timeout < 1:
        raise ConfigError(
            f"commandTimeout must be at least 1 second for {name}",
            details={"shell": name, "command_timeout": security.command_timeout},
        )


def resolve_shell_config(
    name: str,
    shell_config: ShellConfig,
    global_config: GlobalConfig,
    personality: BaseShell | None = None,
    cli_layer: ShellOverrides | None = None,
) -> ResolvedShellConfig:
    """Merge the layers for one shell.

    Args:
        name: Shell identifier.
        shell_config: The shell's configuration entry.
        global_config: Global section.
        personality: Registered personality; supplies kind and executable
            when the entry omits them.
        cli_layer: Final override layer built from command-line flags.

    Returns:
        Resolved configuration.

    Raises:
        ConfigError: Missing kind or executable, or invalid security values.
    """
    kind = shell_config.kind or (personality.kind if personality else None)
    if kind is None:
        raise ConfigError(f"Shell '{name}' has no kind", details={"shell": name})

    executable = shell_config.executable
    if executable is None and personality is not None:
        executable = personality.executable
    if shell_config.enabled and (executable is None or not executable.command):
        raise ConfigError(
            f"Shell '{name}' has no executable command",
            details={"shell": name},
        )

    security = global_config.security
    restrictions = ResolvedRestrictions(**global_config.restrictions.model_dump())
    paths = global_config.paths
    shell_paths: list[str] | None = None

    for layer in (shell_config.overrides, cli_layer):
        if layer is None:
            continue
        security = merge_security(security, layer.security)
        restrictions = merge_restrictions(restrictions, layer.restrictions)
        paths = merge_paths(paths, layer.paths)
        if layer.paths is not None and layer.paths.allowed_paths is not None:
            shell_paths = layer.paths.allowed_paths

    check_security(name, security)

    mount_config: MountConfig | None = None
    if kind is ShellKind.WSL:
        mount_config = shell_config.mount_config
        if mount_config is None and personality is not None:
            mount_config = personality.default_mount_config()
        mount_config = mount_config or MountConfig()

    allowed = resolve_allowed_paths(
        global_config.paths.allowed_paths,
        shell_paths,
        mount_config,
        kind,
    )
    paths = paths.model_copy(update={"allowed_paths": allowed})

    return ResolvedShellConfig(
        name=name,
        kind=kind,
        enabled=shell_config.enabled,
        executable=executable,
        security=security,
        restrictions=restrictions,
        paths=paths,
        mount_config=mount_config,
    )


def resolve_all(
    config: ServerConfig,
    registry: ShellRegistry,
    cli_layer: ShellOverrides | None = None,
) -> dict[str, ResolvedShellConfig]:
    """Resolve every enabled shell.

    Registered shells without a configuration entry use their personality's
    default entry. Configured shells missing from the registry are
    registered with a generic personality for their declared kind.

    Returns:
        Resolved configuration per enabled shell identifier.

    Raises:
        ConfigError: On the first defective shell.
    """
    from shellgate.shells.base import generic_shell

    entries: dict[str, ShellConfig] = {
        shell.name: shell.default_config() for shell in registry if shell.name not in config.shells
    }
    entries.update(config.shells)

    resolved: dict[str, ResolvedShellConfig] = {}
    for name, shell_config in entries.items():
        if not shell_config.enabled:
            continue

        personality = registry.get(name)
        if personality is None:
            if shell_config.kind is None:
                logger.warning("shell_not_available", shell=name)
                continue
            personality = generic_shell(name, shell_config.kind, shell_config.executable)
            registry.register(personality)

        resolved[name] = resolve_shell_config(
            name,
            shell_config,
            config.global_,
            personality=personality,
            cli_layer=cli_layer,
        )
        logger.debug(
            "shell_resolved",
            shell=name,
            kind=resolved[name].kind.value,
            allowed_paths=resolved[name].paths.allowed_paths,
        )

    return resolved
