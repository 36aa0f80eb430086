"""Built-in default server configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shellgate.config.models import GlobalConfig, ServerConfig

if TYPE_CHECKING:
    from shellgate.shells.registry import ShellRegistry


def default_server_config(registry: ShellRegistry | None = None) -> ServerConfig:
    """Default configuration with one entry per registered shell.

    Args:
        registry: Shells to include; None includes every built-in shell.
    """
    if registry is None:
        from shellgate.shells.registry import create_default_registry

        registry = create_default_registry()

    return ServerConfig(
        global_=GlobalConfig(),
        shells={shell.name: shell.default_config() for shell in registry},
    )
