"""Async process execution.

Spawns one process per invocation and races its exit against the timeout.
stdout and stderr are read concurrently into one arrival-ordered list so
the combined output interleaves the way the process wrote it.
"""

from __future__ import annotations

import asyncio
import codecs
import os
import signal
import time

from shellgate.errors import ProcessError, SpawnError
from shellgate.execution.models import ExecutionState, Invocation, ProcessOutcome
from shellgate.logging import Loggers

logger = Loggers.execution()

# Seconds to wait for the pipes to drain once the process is gone
DRAIN_TIMEOUT = 2.0

_READ_SIZE = 65536


class ExecutionEngine:
    """Runs invocations under a timeout.

    Args:
        drain_timeout: Grace period for reading remaining output after the
            process exits or is killed.
    """

    def __init__(self, drain_timeout: float = DRAIN_TIMEOUT):
        self.drain_timeout = drain_timeout

    async def run(self, invocation: Invocation, timeout: float, shell: str = "shell") -> ProcessOutcome:
        """Spawn the invocation and wait for it, killing it on timeout.

        A non-zero exit code is a normal outcome. A timeout is reported
        through ``was_timed_out`` with the output captured so far.

        Args:
            invocation: Program, arguments, directory and environment.
            timeout: Seconds before the process is killed.
            shell: Shell identifier for errors and logs.

        Returns:
            The process outcome.

        Raises:
            SpawnError: The executable could not be started.
            ProcessError: Reading from or waiting on the process failed.
        """
        env = {**os.environ, **invocation.env} if invocation.env else None
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                invocation.program,
                *invocation.args,
                cwd=invocation.cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name != "nt",
            )
        except OSError as e:
            logger.error(
                "spawn_failed",
                shell=shell,
                program=invocation.program,
                cwd=invocation.cwd,
                error=str(e),
            )
            raise SpawnError(shell, invocation.program, e) from e

        logger.debug("process_spawned", shell=shell, pid=process.pid, argv=invocation.argv)

        chunks: list[tuple[str, str]] = []
        readers = [
            asyncio.create_task(_pump(process.stdout, "stdout", chunks)),
            asyncio.create_task(_pump(process.stderr, "stderr", chunks)),
        ]
        waiter = asyncio.create_task(process.wait())

        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
            timed_out = waiter not in done
            if timed_out:
                logger.warning("process_timed_out", shell=shell, pid=process.pid, timeout=timeout)
                _kill(process)
                await waiter
            await self._drain(readers)
        except asyncio.CancelledError:
            _kill(process)
            raise
        except OSError as e:
            _kill(process)
            logger.error("process_error", shell=shell, pid=process.pid, error=str(e))
            raise ProcessError(shell, str(e)) from e
        finally:
            for task in (*readers, waiter):
                if not task.done():
                    task.cancel()

        exit_code = process.returncode if process.returncode is not None else -1
        if timed_out and exit_code == 0:
            exit_code = -1

        stdout = "".join(text for stream, text in chunks if stream == "stdout")
        stderr = "".join(text for stream, text in chunks if stream == "stderr")
        duration_ms = int((time.monotonic() - started) * 1000)

        logger.debug(
            "process_finished",
            shell=shell,
            exit_code=exit_code,
            timed_out=timed_out,
            duration_ms=duration_ms,
        )
        return ProcessOutcome(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            combined_output="".join(text for _, text in chunks),
            was_timed_out=timed_out,
            state=ExecutionState.TIMED_OUT if timed_out else ExecutionState.COMPLETED,
            duration_ms=duration_ms,
        )

    async def _drain(self, readers: list[asyncio.Task]) -> None:
        # Grandchildren can keep the pipes open after the process exits
        done, pending = await asyncio.wait(readers, timeout=self.drain_timeout)
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error is not None:
                raise error


async def _pump(stream: asyncio.StreamReader | None, name: str, chunks: list[tuple[str, str]]) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(_READ_SIZE)
        if not data:
            break
        text = decoder.decode(data)
        if text:
            chunks.append((name, text))
    tail = decoder.decode(b"", final=True)
    if tail:
        chunks.append((name, tail))


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        if os.name != "nt":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        # Exited between the check and the kill
        pass
