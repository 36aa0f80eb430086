"""Per-request validation context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping

from shellgate.config.models import ResolvedShellConfig, ShellKind
from shellgate.errors import ShellNotFoundError

if TYPE_CHECKING:
    from shellgate.shells.base import BaseShell
    from shellgate.shells.registry import ShellRegistry


@dataclass(frozen=True)
class ValidationContext:
    """Shell, kind and resolved configuration for one request.

    Later stages inspect the kind flags exposed here, never the shell name.
    """

    shell_name: str
    kind: ShellKind
    config: ResolvedShellConfig
    personality: BaseShell

    @property
    def is_windows(self) -> bool:
        return self.kind is ShellKind.WINDOWS

    @property
    def is_unix(self) -> bool:
        return self.kind is not ShellKind.WINDOWS

    @property
    def is_wsl(self) -> bool:
        return self.kind is ShellKind.WSL

    @property
    def mount_point(self) -> str:
        return self.config.mount_point


def build_validation_context(
    shell_name: str,
    registry: ShellRegistry,
    resolved: Mapping[str, ResolvedShellConfig],
) -> ValidationContext:
    """Build the context for ``shell_name``.

    Raises:
        ShellNotFoundError: Shell is not registered or not enabled.
    """
    personality = registry.get(shell_name)
    config = resolved.get(shell_name)
    if personality is None or config is None or not config.enabled:
        raise ShellNotFoundError(shell_name)
    return ValidationContext(
        shell_name=shell_name,
        kind=config.kind,
        config=config,
        personality=personality,
    )
