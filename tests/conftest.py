"""Shared test fixtures and utilities for shellgate tests.

Provides:
- Configuration builders for global and per-shell settings
- Validation context helpers for each shell kind
- A bash-only gateway rooted in a temporary directory
"""

import os
import shutil
from pathlib import Path

import pytest

from shellgate.config.models import (
    GlobalConfig,
    PathsConfig,
    RestrictionsConfig,
    SecurityConfig,
    ServerConfig,
    ShellConfig,
    ShellOverrides,
)
from shellgate.config.resolver import resolve_shell_config
from shellgate.execution.log_store import InMemoryLogStore
from shellgate.gateway import CommandGateway
from shellgate.shells import BashShell, ShellRegistry
from shellgate.shells.base import BaseShell
from shellgate.shells.builtin import BUILTIN_SHELLS
from shellgate.validation.context import ValidationContext

requires_bash = pytest.mark.skipif(
    os.name == "nt" or shutil.which("bash") is None,
    reason="requires a POSIX host with bash",
)


def make_global(
    allowed_paths: list[str] | None = None,
    restrict: bool = True,
    **security,
) -> GlobalConfig:
    """Global section with the given allowed paths and security values."""
    return GlobalConfig(
        security=SecurityConfig(restrict_working_directory=restrict, **security),
        restrictions=RestrictionsConfig(),
        paths=PathsConfig(allowed_paths=allowed_paths or []),
    )


def make_context(
    shell: str | BaseShell = "bash",
    global_config: GlobalConfig | None = None,
    shell_config: ShellConfig | None = None,
    overrides: ShellOverrides | None = None,
) -> ValidationContext:
    """Resolve one shell and wrap it in a validation context."""
    personality = BUILTIN_SHELLS[shell]() if isinstance(shell, str) else shell
    if shell_config is None:
        shell_config = ShellConfig(overrides=overrides)
    resolved = resolve_shell_config(
        personality.name,
        shell_config,
        global_config or make_global(),
        personality=personality,
    )
    return ValidationContext(
        shell_name=personality.name,
        kind=resolved.kind,
        config=resolved,
        personality=personality,
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Temporary directory used as the only allowed path."""
    root = tmp_path / "workspace"
    (root / "sub").mkdir(parents=True)
    return root


@pytest.fixture
def bash_registry() -> ShellRegistry:
    return ShellRegistry([BashShell()])


@pytest.fixture
def log_store() -> InMemoryLogStore:
    return InMemoryLogStore()


@pytest.fixture
def bash_gateway(workspace: Path, bash_registry: ShellRegistry, log_store: InMemoryLogStore) -> CommandGateway:
    """Gateway with only bash enabled, restricted to ``workspace``."""
    config = ServerConfig(
        global_=GlobalConfig(
            paths=PathsConfig(allowed_paths=[str(workspace)], initial_dir=str(workspace)),
        ),
        shells={"bash": ShellConfig(executable=BashShell().executable)},
    )
    return CommandGateway(config, registry=bash_registry, log_store=log_store)
