"""Output truncation.

Keeps the last ``max_lines`` lines of a command's output and builds a
notice pointing at the full output in the log store.
"""

from dataclasses import dataclass

from shellgate.config.models import DEFAULT_TRUNCATION_MESSAGE

LOG_URI_TEMPLATE = "logs://commands/{execution_id}"


@dataclass
class TruncatedOutput:
    output: str
    was_truncated: bool
    total_lines: int
    returned_lines: int
    message: str | None = None


def build_truncation_message(
    omitted_lines: int,
    total_lines: int,
    returned_lines: int,
    execution_id: str | None = None,
    template: str | None = None,
) -> str:
    """Fill the template and append the omitted-lines and access lines."""
    message = (
        (template or DEFAULT_TRUNCATION_MESSAGE)
        .replace("{omittedLines}", str(omitted_lines))
        .replace("{totalLines}", str(total_lines))
        .replace("{returnedLines}", str(returned_lines))
    )
    parts = [message, f"[{omitted_lines} lines omitted]"]
    if execution_id:
        parts.append(f"[Access full output: {LOG_URI_TEMPLATE.format(execution_id=execution_id)}]")
    return "\n".join(parts)


def truncate_output(
    output: str,
    max_lines: int,
    execution_id: str | None = None,
    template: str | None = None,
    enabled: bool = True,
) -> TruncatedOutput:
    """Keep the last ``max_lines`` lines of ``output``.

    Args:
        output: Full output.
        max_lines: Lines to keep.
        execution_id: Log store entry holding the full output.
        template: Notice template with ``{omittedLines}``, ``{totalLines}``
            and ``{returnedLines}`` placeholders.
        enabled: False returns the output untouched.

    Returns:
        Truncation result; ``message`` is set only when lines were dropped.
    """
    if not output:
        return TruncatedOutput(output="", was_truncated=False, total_lines=0, returned_lines=0)

    lines = output.split("\n")
    total = len(lines)
    if not enabled or total <= max_lines:
        return TruncatedOutput(
            output=output,
            was_truncated=False,
            total_lines=total,
            returned_lines=total,
        )

    kept = lines[-max_lines:]
    return TruncatedOutput(
        output="\n".join(kept),
        was_truncated=True,
        total_lines=total,
        returned_lines=max_lines,
        message=build_truncation_message(total - max_lines, total, max_lines, execution_id, template),
    )


def format_truncated_output(truncated: TruncatedOutput) -> str:
    """Output text for the caller, prefixed with the notice when truncated."""
    if not truncated.was_truncated or not truncated.message:
        return truncated.output
    return f"{truncated.message}\n\n{truncated.output}"
