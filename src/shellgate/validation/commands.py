"""Command validation.

Checks run in a fixed order and the first failure wins:

1. command length
2. shell operators
3. blocked commands (every chained segment)
4. blocked arguments (every chained segment)
5. request working directory
6. ``cd``/``chdir``/``pushd`` targets inside the chain
"""

from __future__ import annotations

from typing import Iterable

from shellgate.errors import (
    ArgumentBlockedError,
    CommandBlockedError,
    CommandTooLongError,
    OperatorBlockedError,
)
from shellgate.logging import Loggers
from shellgate.validation.context import ValidationContext
from shellgate.validation.paths import validate_working_directory
from shellgate.validation.tokenizer import (
    CHAINING_OPERATORS,
    extract_executable_name,
    find_operators,
    parse_command,
    split_command_chain,
    tokenize,
)

logger = Loggers.validation()

DIRECTORY_CHANGE_COMMANDS = frozenset({"cd", "chdir", "pushd", "set-location", "sl"})


def find_blocked_command(command_line: str, blocked_commands: Iterable[str]) -> str | None:
    """Return the blocklist entry matching ``command_line``, if any.

    An entry matches when the trimmed command line equals it or starts with
    it followed by a space. Single-word entries also match the bare
    executable name, so ``format`` blocks ``C:\\Windows\\format.com /q``.
    Comparison is case-insensitive.
    """
    line = command_line.strip().lower()
    if not line:
        return None

    tokens = tokenize(line)
    name = extract_executable_name(tokens[0]) if tokens else ""

    for entry in blocked_commands:
        pattern = entry.strip().lower()
        if not pattern:
            continue
        if line == pattern or line.startswith(pattern + " "):
            return entry
        if " " not in pattern and name and name == extract_executable_name(pattern):
            return entry
    return None


def is_command_blocked(command_line: str, blocked_commands: Iterable[str]) -> bool:
    return find_blocked_command(command_line, blocked_commands) is not None


def find_blocked_argument(args: Iterable[str], blocked_arguments: Iterable[str]) -> str | None:
    """Return the first argument that exactly matches a blocked entry."""
    blocked = {a.lower() for a in blocked_arguments if a}
    for arg in args:
        if arg.lower() in blocked:
            return arg
    return None


def is_argument_blocked(args: Iterable[str], blocked_arguments: Iterable[str]) -> bool:
    return find_blocked_argument(args, blocked_arguments) is not None


def validate_shell_operators(
    command_line: str,
    blocked_operators: Iterable[str],
    allow_chaining: bool = True,
    shell: str = "shell",
) -> None:
    """Reject operators found outside quotes.

    An operator is rejected when it, or its first character, is in
    ``blocked_operators`` (``&`` also blocks ``&&``). With chaining
    disabled, ``; & && | ||`` are rejected regardless of the list.

    Raises:
        OperatorBlockedError: On the first offending operator.
    """
    blocked = {op.strip() for op in blocked_operators if op.strip()}
    for op in find_operators(command_line):
        if not allow_chaining and op in CHAINING_OPERATORS:
            raise OperatorBlockedError(op, shell, reason="command chaining is disabled")
        if op in blocked or op[0] in blocked:
            raise OperatorBlockedError(op, shell)


def _directory_change_target(args: list[str]) -> str | None:
    for arg in args:
        # cmd's "cd /d X:\dir" drive switch
        if arg.lower() == "/d":
            continue
        if arg == "-":
            return None
        return arg
    return None


class CommandValidator:
    """Runs every command check for one shell.

    Args:
        context: Validation context of the target shell.
    """

    def __init__(self, context: ValidationContext):
        self.context = context
        self.config = context.config

    def validate(
        self,
        command_line: str,
        working_dir: str | None = None,
        base_dir: str | None = None,
    ) -> str | None:
        """Validate a command line and its working directory.

        Args:
            command_line: Raw command line.
            working_dir: Directory the command runs in, if known.
            base_dir: Directory a relative ``working_dir`` is resolved against.

        Returns:
            The canonical working directory, or None when none was given.

        Raises:
            ValidationError: The first failing check.
        """
        self.check_length(command_line)
        self.check_operators(command_line)

        segments = split_command_chain(command_line) or [command_line]
        for segment in segments:
            self.check_command(segment)
        for segment in segments:
            self.check_arguments(segment)

        canonical_dir = None
        if working_dir is not None:
            canonical_dir = validate_working_directory(working_dir, self.context, base_dir=base_dir)

        self.check_directory_changes(segments, canonical_dir)
        return canonical_dir

    def check_length(self, command_line: str) -> None:
        limit = self.config.security.max_command_length
        if len(command_line) > limit:
            raise CommandTooLongError(len(command_line), limit, self.context.shell_name)

    def check_operators(self, command_line: str) -> None:
        security = self.config.security
        blocked = self.config.restrictions.blocked_operators if security.enable_injection_protection else []
        validate_shell_operators(
            command_line,
            blocked,
            allow_chaining=security.allow_command_chaining,
            shell=self.context.shell_name,
        )

    def check_command(self, segment: str) -> None:
        entry = find_blocked_command(segment, self.config.restrictions.blocked_commands)
        if entry is not None:
            logger.info("command_blocked", shell=self.context.shell_name, entry=entry)
            raise CommandBlockedError(segment.strip(), self.context.shell_name)

    def check_arguments(self, segment: str) -> None:
        parsed = parse_command(segment)
        arg = find_blocked_argument(parsed.args, self.config.restrictions.blocked_arguments)
        if arg is not None:
            logger.info("argument_blocked", shell=self.context.shell_name, argument=arg)
            raise ArgumentBlockedError(arg, self.context.shell_name)

    def check_directory_changes(self, segments: list[str], start_dir: str | None) -> None:
        """Follow ``cd`` targets through the chain and validate each one.

        Relative targets are resolved against the directory the previous
        segment left the chain in. Only applies while working-directory
        restriction is enabled.
        """
        if not self.config.security.restrict_working_directory:
            return

        current = start_dir
        for segment in segments:
            parsed = parse_command(segment)
            if parsed.executable_name not in DIRECTORY_CHANGE_COMMANDS:
                continue
            target = _directory_change_target(parsed.args)
            if target is None:
                continue
            current = validate_working_directory(target, self.context, base_dir=current)
