"""Request validation: tokenizing, command checks and path rules."""

from shellgate.validation.commands import (
    CommandValidator,
    find_blocked_argument,
    find_blocked_command,
    is_argument_blocked,
    is_command_blocked,
    validate_shell_operators,
)
from shellgate.validation.context import ValidationContext, build_validation_context
from shellgate.validation.paths import (
    is_path_allowed,
    mixed_to_windows_form,
    mounted_to_windows_form,
    normalize_to_canonical_form,
    resolve_allowed_paths,
    validate_working_directory,
    windows_to_mixed_form,
    windows_to_mounted_form,
)
from shellgate.validation.tokenizer import (
    ParsedCommand,
    extract_executable_name,
    find_operators,
    parse_command,
    split_command_chain,
    tokenize,
)

__all__ = [
    "CommandValidator",
    "find_blocked_argument",
    "find_blocked_command",
    "is_argument_blocked",
    "is_command_blocked",
    "validate_shell_operators",
    "ValidationContext",
    "build_validation_context",
    "is_path_allowed",
    "mixed_to_windows_form",
    "mounted_to_windows_form",
    "normalize_to_canonical_form",
    "resolve_allowed_paths",
    "validate_working_directory",
    "windows_to_mixed_form",
    "windows_to_mounted_form",
    "ParsedCommand",
    "extract_executable_name",
    "find_operators",
    "parse_command",
    "split_command_chain",
    "tokenize",
]
