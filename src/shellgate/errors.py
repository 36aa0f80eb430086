"""Error taxonomy for the command gateway.

Provides structured errors that the protocol layer can serialize and hand
back to callers:

- ConfigError: fatal, raised only while resolving configuration at startup
- ShellNotFoundError: unknown or disabled shell identifier
- ValidationError and subclasses: per-request rejections, raised before spawn
- SpawnError: the shell executable could not be launched
- ProcessError: the process failed after it was launched

Timeouts are not errors; they are reported as completed results with
``was_timed_out=True``.
"""

from typing import Any


class ErrorCode:
    """Machine-readable error codes."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SHELL_NOT_FOUND = "SHELL_NOT_FOUND"

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    COMMAND_TOO_LONG = "COMMAND_TOO_LONG"
    COMMAND_BLOCKED = "COMMAND_BLOCKED"
    ARGUMENT_BLOCKED = "ARGUMENT_BLOCKED"
    OPERATOR_BLOCKED = "OPERATOR_BLOCKED"
    INVALID_PATH_FORMAT = "INVALID_PATH_FORMAT"
    PATH_NOT_ALLOWED = "PATH_NOT_ALLOWED"
    WORKING_DIRECTORY_UNDEFINED = "WORKING_DIRECTORY_UNDEFINED"

    # Execution
    SPAWN_FAILED = "SPAWN_FAILED"
    PROCESS_ERROR = "PROCESS_ERROR"


class GatewayError(Exception):
    """Base error for the command gateway.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Offending values and other context
    """

    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": False,
            "error": {
                "message": self.message,
                "code": self.error_code,
                "details": self.details,
            },
        }


class ConfigError(GatewayError):
    """Invalid configuration detected at startup."""

    default_code = ErrorCode.CONFIGURATION_ERROR


class ShellNotFoundError(GatewayError):
    """Shell identifier is not registered or not enabled."""

    default_code = ErrorCode.SHELL_NOT_FOUND

    def __init__(self, shell: str):
        super().__init__(
            f"Shell '{shell}' is not configured or enabled",
            details={"shell": shell},
        )
        self.shell = shell


class ValidationError(GatewayError):
    """A request was rejected before any process was spawned."""

    default_code = ErrorCode.VALIDATION_FAILED


class InvalidArgumentError(ValidationError):
    """A request parameter is out of range."""

    default_code = ErrorCode.INVALID_ARGUMENT


class CommandTooLongError(ValidationError):
    default_code = ErrorCode.COMMAND_TOO_LONG

    def __init__(self, length: int, limit: int, shell: str):
        super().__init__(
            f"Command exceeds maximum length of {limit} for {shell}",
            details={"length": length, "max_command_length": limit, "shell": shell},
        )


class CommandBlockedError(ValidationError):
    default_code = ErrorCode.COMMAND_BLOCKED

    def __init__(self, command: str, shell: str):
        super().__init__(
            f'Command is blocked for {shell}: "{command}"',
            details={"command": command, "shell": shell},
        )
        self.command = command


class ArgumentBlockedError(ValidationError):
    default_code = ErrorCode.ARGUMENT_BLOCKED

    def __init__(self, argument: str, shell: str):
        super().__init__(
            f'Argument is blocked for {shell}: "{argument}"',
            details={"argument": argument, "shell": shell},
        )
        self.argument = argument


class OperatorBlockedError(ValidationError):
    default_code = ErrorCode.OPERATOR_BLOCKED

    def __init__(self, operator: str, shell: str, reason: str | None = None):
        message = f"Shell operator '{operator}' is not allowed for {shell}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, details={"operator": operator, "shell": shell})
        self.operator = operator


class InvalidPathFormatError(ValidationError):
    default_code = ErrorCode.INVALID_PATH_FORMAT

    def __init__(self, path: str, expected: str, message: str | None = None):
        super().__init__(
            message or f"Invalid {expected} path format: {path}",
            details={"path": path, "expected_format": expected},
        )
        self.path = path


class PathConversionError(InvalidPathFormatError):
    """Path cannot be converted between dialects (e.g. UNC to a WSL mount)."""

    def __init__(self, path: str, target: str):
        super().__init__(
            path,
            target,
            message=f"Cannot convert path to {target} form: {path}",
        )


class PathNotAllowedError(ValidationError):
    default_code = ErrorCode.PATH_NOT_ALLOWED

    def __init__(self, path: str, allowed_paths: list[str], message: str | None = None):
        if message is None:
            message = (
                f"Directory '{path}' is outside the allowed paths: "
                f"{', '.join(allowed_paths)}"
            )
        super().__init__(
            message,
            details={"path": path, "allowed_paths": list(allowed_paths)},
        )
        self.path = path


class WorkingDirectoryUndefinedError(ValidationError):
    default_code = ErrorCode.WORKING_DIRECTORY_UNDEFINED

    def __init__(self, shell: str):
        super().__init__(
            "No working directory given and the active working directory is not set. "
            "Set a valid working directory before running commands without one.",
            details={"shell": shell},
        )


class SpawnError(GatewayError):
    """The shell process could not be started."""

    default_code = ErrorCode.SPAWN_FAILED

    def __init__(self, shell: str, executable: str, os_error: OSError):
        super().__init__(
            f"Failed to start {shell} process: {os_error}",
            details={"shell": shell, "executable": executable, "os_error": str(os_error)},
        )


class ProcessError(GatewayError):
    """The process failed after it was spawned."""

    default_code = ErrorCode.PROCESS_ERROR

    def __init__(self, shell: str, reason: str):
        super().__init__(
            f"{shell} process error: {reason}",
            details={"shell": shell, "reason": reason},
        )
