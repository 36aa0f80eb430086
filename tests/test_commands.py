"""Tests for command, argument and operator validation."""

import pytest

from shellgate.config.models import RestrictionsOverrides, SecurityOverrides, ShellOverrides
from shellgate.errors import (
    ArgumentBlockedError,
    CommandBlockedError,
    CommandTooLongError,
    ErrorCode,
    InvalidPathFormatError,
    OperatorBlockedError,
    PathNotAllowedError,
)
from shellgate.shells.builtin import CmdShell
from shellgate.validation.commands import (
    CommandValidator,
    find_blocked_argument,
    find_blocked_command,
    is_argument_blocked,
    is_command_blocked,
    validate_shell_operators,
)

from tests.conftest import make_context, make_global

NO_OPERATORS = ShellOverrides(restrictions=RestrictionsOverrides(blocked_operators=[]))


def bash_validator(allowed=("/home/user",), overrides=None, restrict=True, **security) -> CommandValidator:
    context = make_context("bash", make_global(list(allowed), restrict=restrict, **security), overrides=overrides)
    return CommandValidator(context)


class TestIsCommandBlocked:
    """Tests for blocklist matching."""

    def test_prefix_requires_trailing_space(self):
        assert not is_command_blocked("RM -rf /tmp", ["rm -rf /"])

    def test_prefix_followed_by_more_words(self):
        assert is_command_blocked("rm -rf / now", ["rm -rf /"])

    def test_exact_match_case_insensitive(self):
        assert is_command_blocked("  RM -RF /  ", ["rm -rf /"])

    def test_bare_executable_name(self):
        assert is_command_blocked("FORMAT c: /q", ["format"])
        assert is_command_blocked("C:\\Windows\\System32\\format.com /q", ["format"])

    def test_similar_name_not_blocked(self):
        assert not is_command_blocked("formatter src", ["format"])
        assert not is_command_blocked("rmdir x", ["rm"])

    def test_returns_matching_entry(self):
        assert find_blocked_command("shutdown /s", ["reg", "shutdown"]) == "shutdown"
        assert find_blocked_command("ls", ["reg", "shutdown"]) is None

    def test_blank_line_and_entries(self):
        assert not is_command_blocked("", ["rm"])
        assert not is_command_blocked("ls", ["", "  "])


class TestIsArgumentBlocked:
    def test_exact_token_match(self):
        assert is_argument_blocked(["-la", "-i"], ["-i"])
        assert not is_argument_blocked(["-il"], ["-i"])

    def test_case_insensitive(self):
        assert find_blocked_argument(["-EncodedCommand", "abc"], ["-encodedcommand"]) == "-EncodedCommand"


class TestValidateShellOperators:
    """Tests for operator rejection."""

    def test_blocked_operator(self):
        with pytest.raises(OperatorBlockedError) as exc_info:
            validate_shell_operators("ls | wc -l", ["|"])
        assert exc_info.value.operator == "|"
        assert exc_info.value.error_code == ErrorCode.OPERATOR_BLOCKED

    def test_first_character_blocks_compound_operator(self):
        with pytest.raises(OperatorBlockedError):
            validate_shell_operators("make && make install", ["&"])

    def test_unlisted_operator_allowed(self):
        validate_shell_operators("ls > out.txt", ["&", "|", ";"])

    def test_chaining_disabled(self):
        with pytest.raises(OperatorBlockedError, match="chaining is disabled"):
            validate_shell_operators("ls; pwd", [], allow_chaining=False)

    def test_redirection_allowed_without_chaining(self):
        validate_shell_operators("ls > out.txt", [], allow_chaining=False)

    def test_quoted_operator_allowed(self):
        validate_shell_operators("echo 'a | b'", ["|"])


class TestCommandValidator:
    """Tests for the full validation pipeline."""

    def test_plain_command_passes(self):
        validator = bash_validator()
        assert validator.validate("ls -la", working_dir="/home/user") == "/home/user"

    def test_no_working_directory(self):
        assert bash_validator().validate("ls -la") is None

    def test_too_long(self):
        with pytest.raises(CommandTooLongError):
            bash_validator(max_command_length=10).validate("echo hello world")

    def test_length_checked_before_blocklist(self):
        with pytest.raises(CommandTooLongError):
            bash_validator(max_command_length=5).validate("shutdown now")

    def test_chaining_disabled_fails_before_directory_check(self):
        overrides = ShellOverrides(
            security=SecurityOverrides(allow_command_chaining=False),
            restrictions=RestrictionsOverrides(blocked_operators=[]),
        )
        validator = bash_validator(overrides=overrides)
        with pytest.raises(OperatorBlockedError, match="chaining is disabled"):
            validator.validate("cd /tmp && rm -rf /", working_dir="/home/user")

    def test_default_operators_blocked(self):
        with pytest.raises(OperatorBlockedError):
            bash_validator().validate("ls | wc -l")

    def test_injection_protection_off_ignores_operator_list(self):
        overrides = ShellOverrides(security=SecurityOverrides(enable_injection_protection=False))
        assert bash_validator(overrides=overrides).validate("ls | wc -l") is None

    def test_blocked_command_in_later_segment(self):
        with pytest.raises(CommandBlockedError) as exc_info:
            bash_validator(overrides=NO_OPERATORS).validate("ls && shutdown now")
        assert exc_info.value.command == "shutdown now"

    def test_command_checked_before_arguments(self):
        with pytest.raises(CommandBlockedError):
            bash_validator().validate("shutdown -i")

    def test_blocked_argument(self):
        with pytest.raises(ArgumentBlockedError) as exc_info:
            bash_validator().validate("python -i")
        assert exc_info.value.argument == "-i"

    def test_working_directory_outside_allowed(self):
        with pytest.raises(PathNotAllowedError):
            bash_validator().validate("ls", working_dir="/etc")

    def test_working_directory_wrong_dialect(self):
        with pytest.raises(InvalidPathFormatError):
            bash_validator().validate("ls", working_dir="C:\\Users")


class TestDirectoryChanges:
    """Tests for cd targets inside command chains."""

    def test_cd_outside_allowed(self):
        validator = bash_validator(overrides=NO_OPERATORS)
        with pytest.raises(PathNotAllowedError):
            validator.validate("cd /etc && cat passwd", working_dir="/home/user")

    def test_relative_cd_chain_escapes(self):
        validator = bash_validator(overrides=NO_OPERATORS)
        with pytest.raises(PathNotAllowedError):
            validator.validate("cd sub && cd .. && cd ..", working_dir="/home/user")

    def test_relative_cd_inside_allowed(self):
        validator = bash_validator(overrides=NO_OPERATORS)
        assert validator.validate("cd sub && ls", working_dir="/home/user") == "/home/user"

    def test_cd_dash_skipped(self):
        validator = bash_validator(overrides=NO_OPERATORS)
        assert validator.validate("cd - && ls", working_dir="/home/user") == "/home/user"

    def test_unrestricted_skips_cd_check(self):
        validator = bash_validator(allowed=(), overrides=NO_OPERATORS, restrict=False)
        assert validator.validate("cd /etc && ls", working_dir="/home/user") == "/home/user"

    def test_gitbash_cd_traversal_to_other_drive(self):
        """``..`` is resolved in Git Bash terms before the drive is mapped."""
        context = make_context("gitbash", make_global(["/c"]), overrides=NO_OPERATORS)
        validator = CommandValidator(context)
        with pytest.raises(PathNotAllowedError):
            validator.validate("cd /c/../d/secret && ls", working_dir="/c/work")
        with pytest.raises(PathNotAllowedError):
            validator.validate("cd ../../d/secret && ls", working_dir="/c/work")

    def test_gitbash_cd_within_drive(self):
        context = make_context("gitbash", make_global(["/c"]), overrides=NO_OPERATORS)
        assert CommandValidator(context).validate("cd ../other && ls", working_dir="/c/work") == "C:\\work"

    def test_cmd_drive_switch(self):
        context = make_context("cmd", make_global(["C:\\work"]))
        with pytest.raises(PathNotAllowedError):
            CommandValidator(context).validate("cd /d D:\\other", working_dir="C:\\work")


class TestPersonalityDefaults:
    def test_cmd_blocks_chaining(self):
        shell = CmdShell()
        context = make_context(shell, make_global(["C:\\work"]), shell_config=shell.default_config())
        with pytest.raises(OperatorBlockedError, match="chaining is disabled"):
            shell.validate_command("dir & dir", context)

    def test_cmd_blocks_del(self):
        shell = CmdShell()
        context = make_context(shell, make_global(["C:\\work"]), shell_config=shell.default_config())
        with pytest.raises(CommandBlockedError):
            shell.validate_command("DEL /q file.txt", context)

    def test_validate_command_returns_directory(self):
        shell = CmdShell()
        context = make_context(shell, make_global(["C:\\work"]), shell_config=shell.default_config())
        assert shell.validate_command("dir", context, working_dir="c:/work/x") == "C:\\work\\x"
