"""Data models for command execution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ExecutionState(Enum):
    """Lifecycle of one execution request."""

    RECEIVED = "received"
    VALIDATED = "validated"
    NORMALIZED = "normalized"  # working directory canonicalized
    SPAWNED = "spawned"
    RUNNING = "running"
    COMPLETED = "completed"  # any exit code, including non-zero
    TIMED_OUT = "timed_out"
    SPAWN_FAILED = "spawn_failed"
    PROCESS_ERROR = "process_error"
    FINALIZED = "finalized"


@dataclass
class Invocation:
    """Program, argv and environment for one spawn."""

    program: str
    args: list[str] = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)  # added to the inherited env

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


@dataclass
class ProcessOutcome:
    """What the engine observed while the process ran."""

    exit_code: int
    stdout: str
    stderr: str
    combined_output: str
    was_timed_out: bool
    state: ExecutionState
    duration_ms: int = 0


@dataclass
class ExecutionRequest:
    """One inbound request to run a command."""

    shell: str
    command: str
    working_directory: str | None = None
    max_output_lines: int | None = None
    timeout: int | None = None  # seconds, overrides security.command_timeout


@dataclass
class ExecutionResult:
    """Outcome of a command that ran (normally or until its timeout)."""

    shell: str
    exit_code: int
    stdout: str
    stderr: str
    combined_output: str  # stdout+stderr in arrival order
    was_timed_out: bool
    working_directory_used: str | None
    execution_id: str | None = None
    output: str = ""  # combined_output after truncation
    was_truncated: bool = False
    total_lines: int = 0
    returned_lines: int = 0
    state: ExecutionState = ExecutionState.FINALIZED
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.was_timed_out

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["state"] = self.state.value
        data["success"] = self.success
        return data
