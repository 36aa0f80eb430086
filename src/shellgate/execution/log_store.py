"""Log store interface.

The gateway hands every execution's combined output to a log store and
references the returned identifier in truncation notices. Retention and
lookup policies belong to the store.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol


class LogStore(Protocol):
    def store(self, combined_output: str, metadata: dict[str, Any]) -> str:
        """Store output and return its execution identifier."""
        ...


@dataclass
class LogEntry:
    execution_id: str
    combined_output: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class InMemoryLogStore:
    """Thread-safe in-process log store."""

    def __init__(self) -> None:
        self._entries: dict[str, LogEntry] = {}
        self._lock = threading.Lock()

    def store(self, combined_output: str, metadata: dict[str, Any]) -> str:
        execution_id = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        entry = LogEntry(
            execution_id=execution_id,
            combined_output=combined_output.replace("\r\n", "\n"),
            metadata=dict(metadata),
        )
        with self._lock:
            self._entries[execution_id] = entry
        return execution_id

    def get(self, execution_id: str) -> LogEntry | None:
        with self._lock:
            return self._entries.get(execution_id)

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
