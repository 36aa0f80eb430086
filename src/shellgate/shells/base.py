"""Shell personalities.

A personality describes how one shell behaves: its path dialect, how a
command line is turned into an argv, which commands it blocks by default
and which directory it is spawned in. There is one strategy class per
:class:`ShellKind`; concrete shells only fill in names, executables and
blocklists.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from shellgate.config.models import (
    DEFAULT_MOUNT_POINT,
    ExecutableConfig,
    MountConfig,
    ResolvedShellConfig,
    RestrictionsOverrides,
    SecurityOverrides,
    ShellConfig,
    ShellKind,
    ShellOverrides,
)
from shellgate.execution.models import Invocation
from shellgate.validation.commands import CommandValidator
from shellgate.validation.paths import (
    is_mixed_drive_path,
    is_valid_path_shape,
    mixed_to_windows_form,
    mounted_to_windows_form,
)
from shellgate.validation.tokenizer import find_operators, tokenize

if TYPE_CHECKING:
    from shellgate.validation.context import ValidationContext

# Runs the positional parameters as an argv without re-parsing them.
EXEC_ARGV_SCRIPT = 'exec "$0" "$@"'


def host_is_windows() -> bool:
    return os.name == "nt"


class BaseShell(ABC):
    """Behaviour shared by every shell personality.

    Args:
        name: Shell identifier; defaults to the class's ``default_name``.
        display_name: Human-readable name.
        executable: Program and fixed arguments.
    """

    kind: ShellKind
    default_name = ""
    default_display_name = ""
    default_executable = ExecutableConfig()

    def __init__(
        self,
        name: str | None = None,
        display_name: str | None = None,
        executable: ExecutableConfig | None = None,
    ):
        self.name = name or self.default_name
        self.display_name = display_name or self.default_display_name or self.name
        self.executable = executable or self.default_executable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, kind={self.kind.value!r})"

    # Defaults

    def blocked_commands(self) -> list[str]:
        """Commands this shell blocks out of the box."""
        return []

    def default_security(self) -> SecurityOverrides | None:
        return None

    def default_mount_config(self) -> MountConfig | None:
        return None

    def default_overrides(self) -> ShellOverrides | None:
        """Personality defaults expressed as a shell override layer."""
        security = self.default_security()
        blocked = self.blocked_commands()
        restrictions = RestrictionsOverrides(blocked_commands=blocked) if blocked else None
        if security is None and restrictions is None:
            return None
        return ShellOverrides(security=security, restrictions=restrictions)

    def default_config(self) -> ShellConfig:
        """Configuration entry used when the user does not configure this shell."""
        return ShellConfig(
            kind=self.kind,
            enabled=True,
            executable=self.executable,
            overrides=self.default_overrides(),
            mount_config=self.default_mount_config(),
        )

    # Validation

    def validate_path(self, path: str, mount_point: str = DEFAULT_MOUNT_POINT) -> bool:
        """Check that ``path`` is written in this shell's dialect."""
        return is_valid_path_shape(path, self.kind, mount_point)

    def validate_command(
        self,
        command_line: str,
        context: ValidationContext,
        working_dir: str | None = None,
        base_dir: str | None = None,
    ) -> str | None:
        """Run every command check; returns the canonical working directory."""
        return CommandValidator(context).validate(command_line, working_dir, base_dir)

    # Invocation

    @abstractmethod
    def command_arguments(self, command_line: str) -> list[str]:
        """Arguments appended after the executable's fixed arguments."""

    def spawn_directory(self, working_dir: str | None, config: ResolvedShellConfig) -> str | None:
        """Host directory the process is started in (None: inherit)."""
        return working_dir

    def environment(self, working_dir: str | None) -> dict[str, str]:
        return {}

    def build_invocation(
        self,
        command_line: str,
        working_dir: str | None,
        config: ResolvedShellConfig,
    ) -> Invocation:
        """Turn a validated command line into a spawnable invocation.

        Args:
            command_line: Validated command line.
            working_dir: Canonical working directory in the shell's dialect.
            config: Resolved configuration of this shell.
        """
        executable = config.executable
        return Invocation(
            program=executable.command,
            args=[*executable.args, *self.command_arguments(command_line)],
            cwd=self.spawn_directory(working_dir, config),
            env=self.environment(working_dir),
        )


class WindowsShell(BaseShell):
    """cmd.exe and PowerShell: the whole line goes to the shell as one argument."""

    kind = ShellKind.WINDOWS

    def command_arguments(self, command_line: str) -> list[str]:
        return [command_line]


class MixedShell(BaseShell):
    """Git Bash: whole line to ``-c``; ``/c/...`` directories map to ``C:\\...``."""

    kind = ShellKind.MIXED

    def command_arguments(self, command_line: str) -> list[str]:
        return [command_line]

    def spawn_directory(self, working_dir: str | None, config: ResolvedShellConfig) -> str | None:
        if working_dir and host_is_windows() and is_mixed_drive_path(working_dir):
            return mixed_to_windows_form(working_dir)
        return working_dir


class PosixShell(BaseShell):
    """Native bash: the command is split into an argv.

    Plain commands run as ``bash -c 'exec "$0" "$@"' cmd arg...`` so argument
    boundaries come from the tokenizer and a timeout kill reaches the real
    process. Lines that contain operators which passed validation are
    handed to ``-c`` whole so the shell can interpret them.

    Plain commands therefore get no shell expansion: ``echo $HOME`` prints
    ``$HOME`` and ``ls *.py`` receives the literal pattern. Variables, globs
    and tilde only expand in lines that go to ``-c`` whole.
    """

    kind = ShellKind.POSIX

    def command_arguments(self, command_line: str) -> list[str]:
        if find_operators(command_line):
            return [command_line]
        return [EXEC_ARGV_SCRIPT, *tokenize(command_line)]


class WslShellBase(BaseShell):
    """Linux behind ``wsl.exe -e``.

    Plain commands are passed as an argv; lines with operators run through
    ``bash -c``. The requested directory is exported as
    ``WSL_ORIGINAL_PATH``.
    """

    kind = ShellKind.WSL

    def default_mount_config(self) -> MountConfig | None:
        return MountConfig()

    def command_arguments(self, command_line: str) -> list[str]:
        if find_operators(command_line):
            return ["bash", "-c", command_line]
        return tokenize(command_line)

    def spawn_directory(self, working_dir: str | None, config: ResolvedShellConfig) -> str | None:
        if not working_dir or not host_is_windows():
            return working_dir
        # Pure Linux paths have no host equivalent; spawn in the host cwd
        return mounted_to_windows_form(working_dir, config.mount_point)

    def environment(self, working_dir: str | None) -> dict[str, str]:
        if not working_dir:
            return {}
        return {"WSL_ORIGINAL_PATH": working_dir}


_STRATEGIES: dict[ShellKind, type[BaseShell]] = {
    ShellKind.WINDOWS: WindowsShell,
    ShellKind.MIXED: MixedShell,
    ShellKind.POSIX: PosixShell,
    ShellKind.WSL: WslShellBase,
}


def strategy_for_kind(kind: ShellKind) -> type[BaseShell]:
    """Personality class implementing ``kind``."""
    return _STRATEGIES[kind]


def generic_shell(name: str, kind: ShellKind, executable: ExecutableConfig | None = None) -> BaseShell:
    """Personality for a shell declared purely in configuration."""
    return strategy_for_kind(kind)(name=name, executable=executable)
