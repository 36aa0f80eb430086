"""Command-line tokenizer.

Splits command lines into tokens, finds shell operators outside quotes and
breaks chained command lines into their segments.
"""

import re
import shlex
from dataclasses import dataclass, field

# Extensions stripped before comparing an executable with the blocklist
EXECUTABLE_EXTENSIONS = (".exe", ".cmd", ".bat", ".com", ".ps1", ".sh")

# Operators that run another command after (or alongside) the first one
CHAINING_OPERATORS = frozenset({";", "&", "&&", "|", "||"})

_TWO_CHAR_OPERATORS = ("&&", "||", ">>", "$(")
_ONE_CHAR_OPERATORS = (";", "&", "|", ">", "<", "`")


@dataclass
class ParsedCommand:
    """First token of a command line and the tokens after it."""

    command: str
    args: list[str] = field(default_factory=list)
    raw_command: str = ""

    @property
    def executable_name(self) -> str:
        return extract_executable_name(self.command)


def tokenize(command_line: str) -> list[str]:
    """Split a command line on whitespace, honouring quotes.

    Quoted sections become a single token with the quotes removed, so an
    executable path containing spaces must be quoted. Backslashes are kept
    as literal characters so Windows paths survive intact.

    Args:
        command_line: Raw command line.

    Returns:
        Tokens; empty for blank input.
    """
    command_line = command_line.strip()
    if not command_line:
        return []

    lexer = shlex.shlex(command_line, posix=True)
    lexer.whitespace_split = True
    lexer.escape = ""
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError:
        # Unbalanced quotes
        return command_line.split()


def parse_command(command_line: str) -> ParsedCommand:
    """Tokenize and split into command and arguments."""
    tokens = tokenize(command_line)
    if not tokens:
        return ParsedCommand(command="", args=[], raw_command=command_line)
    return ParsedCommand(command=tokens[0], args=tokens[1:], raw_command=command_line)


def extract_executable_name(token: str) -> str:
    """Reduce an executable token to a lower-cased bare name.

    ``C:\\Windows\\System32\\Format.COM`` and ``/usr/bin/format`` both
    become ``format``.
    """
    name = re.split(r"[\\/]", token.strip())[-1].lower()
    for ext in EXECUTABLE_EXTENSIONS:
        if name.endswith(ext) and len(name) > len(ext):
            return name[: -len(ext)]
    return name


def _scan(command_line: str):
    """Yield ``(index, operator)`` for every operator outside single quotes.

    Command substitution (``$(`` and backticks) is reported inside double
    quotes as well since the shell still expands it there. Newlines count
    as ``;``.
    """
    quote = ""
    i = 0
    length = len(command_line)

    while i < length:
        char = command_line[i]

        if char in ('"', "'") and (i == 0 or command_line[i - 1] != "\\"):
            if not quote:
                quote = char
            elif char == quote:
                quote = ""
            i += 1
            continue

        if quote == "'":
            i += 1
            continue

        if quote == '"':
            if command_line.startswith("$(", i):
                yield i, "$("
                i += 2
                continue
            if char == "`":
                yield i, "`"
            i += 1
            continue

        if char == "\n":
            yield i, ";"
            i += 1
            continue

        pair = command_line[i : i + 2]
        if pair in _TWO_CHAR_OPERATORS:
            yield i, pair
            i += 2
            continue

        if char in _ONE_CHAR_OPERATORS:
            yield i, char
        i += 1


def find_operators(command_line: str) -> list[str]:
    """Operators present in the command line, in order of appearance."""
    return [op for _, op in _scan(command_line)]


def split_command_chain(command_line: str) -> list[str]:
    """Split a command line into the segments joined by chaining operators.

    ``cd /tmp && ls | wc -l`` gives ``["cd /tmp", "ls", "wc -l"]``.
    Empty segments are dropped.
    """
    segments: list[str] = []
    start = 0
    for index, op in _scan(command_line):
        if op in CHAINING_OPERATORS:
            segments.append(command_line[start:index])
            start = index + len(op)
    segments.append(command_line[start:])
    return [s.strip() for s in segments if s.strip()]
