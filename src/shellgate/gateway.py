"""Command gateway.

Ties configuration, validation and execution together behind the three
operations the protocol layer calls:

- execute_command: validate, spawn under a timeout, store and truncate output
- validate_directories: check paths against a shell's (or the global) rules
- get_resolved_config: plain-data snapshot of every enabled shell
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any

from shellgate.config.cli import CliOverrides, apply_cli_overrides, build_cli_layer
from shellgate.config.defaults import default_server_config
from shellgate.config.loader import apply_initial_dir, load_config
from shellgate.config.models import ResolvedShellConfig, ServerConfig
from shellgate.config.resolver import resolve_all
from shellgate.errors import (
    ConfigError,
    GatewayError,
    InvalidArgumentError,
    PathNotAllowedError,
    ProcessError,
    SpawnError,
    ValidationError,
    WorkingDirectoryUndefinedError,
)
from shellgate.execution.engine import ExecutionEngine
from shellgate.execution.log_store import InMemoryLogStore, LogStore
from shellgate.execution.models import ExecutionRequest, ExecutionResult, ExecutionState
from shellgate.execution.truncation import format_truncated_output, truncate_output
from shellgate.logging import Loggers, log_context
from shellgate.settings import GatewaySettings
from shellgate.shells.registry import ShellRegistry, create_default_registry
from shellgate.validation.context import build_validation_context
from shellgate.validation.paths import (
    is_path_allowed,
    normalize_to_canonical_form,
    validate_working_directory,
)

logger = Loggers.gateway()

MAX_OUTPUT_LINES_LIMIT = 10000
MAX_TIMEOUT_SECONDS = 3600


class CommandGateway:
    """Validates and runs commands for a set of configured shells.

    Every enabled shell's configuration is resolved once, at construction.

    Args:
        config: Server configuration; defaults for ``registry`` when None.
        registry: Shell personalities; built-in shells when None.
        log_store: Receives every execution's combined output.
        cli_overrides: Parsed command-line overrides.
        engine: Process runner.
        settings: Process settings used to build the default registry.

    Raises:
        ConfigError: A shell's configuration is invalid or no shell is enabled.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        registry: ShellRegistry | None = None,
        log_store: LogStore | None = None,
        cli_overrides: CliOverrides | None = None,
        engine: ExecutionEngine | None = None,
        settings: GatewaySettings | None = None,
    ):
        self.registry = registry if registry is not None else create_default_registry(settings)
        if config is None:
            config = default_server_config(self.registry)

        config = apply_cli_overrides(config, cli_overrides)
        config = apply_initial_dir(config)
        self.config = config

        self.resolved: dict[str, ResolvedShellConfig] = resolve_all(
            config,
            self.registry,
            build_cli_layer(cli_overrides, config),
        )
        if not self.resolved:
            raise ConfigError("No shells are enabled")

        self.log_store = log_store if log_store is not None else InMemoryLogStore()
        self.engine = engine or ExecutionEngine()

        self._cwd_lock = threading.Lock()
        self._current_directory = self._initial_directory()

        logger.info(
            "gateway_ready",
            shells=list(self.resolved),
            current_directory=self._current_directory,
        )

    @classmethod
    def from_file(
        cls,
        path: str | Path | None = None,
        settings: GatewaySettings | None = None,
        **kwargs: Any,
    ) -> "CommandGateway":
        """Build a gateway from a configuration file.

        Args:
            path: Configuration file; falls back to ``settings.config_path``
                and then to the default search locations.
            settings: Process settings.
            **kwargs: Passed to the constructor.
        """
        registry = kwargs.pop("registry", None) or create_default_registry(settings)
        if path is None and settings is not None:
            path = settings.config_path
        config = load_config(path, registry)
        return cls(config, registry=registry, settings=settings, **kwargs)

    @property
    def shells(self) -> list[str]:
        """Enabled shell identifiers."""
        return list(self.resolved)

    def get_shell_config(self, shell: str) -> ResolvedShellConfig | None:
        return self.resolved.get(shell)

    # Working directory state

    def _initial_directory(self) -> str | None:
        global_config = self.config.global_
        candidate = normalize_to_canonical_form(global_config.paths.initial_dir or os.getcwd())
        if global_config.security.restrict_working_directory and not is_path_allowed(
            candidate, global_config.paths.allowed_paths
        ):
            logger.warning("initial_directory_not_allowed", directory=candidate)
            return None
        return candidate

    def get_current_directory(self) -> str | None:
        """Directory used when a request gives none; None when unset."""
        with self._cwd_lock:
            return self._current_directory

    def set_current_directory(self, path: str) -> str:
        """Change the directory used when a request gives none.

        Args:
            path: Existing directory.

        Returns:
            The normalized directory.

        Raises:
            InvalidArgumentError: Directory does not exist.
            PathNotAllowedError: Directory is outside the global allowed paths.
        """
        directory = normalize_to_canonical_form(path)
        global_config = self.config.global_
        if global_config.security.restrict_working_directory and not is_path_allowed(
            directory, global_config.paths.allowed_paths
        ):
            raise PathNotAllowedError(directory, list(global_config.paths.allowed_paths))
        if not Path(directory).is_dir():
            raise InvalidArgumentError(
                f"Directory does not exist: {directory}",
                details={"path": directory},
            )

        with self._cwd_lock:
            self._current_directory = directory
        logger.info("current_directory_changed", directory=directory)
        return directory

    # Operations

    async def execute_command(
        self,
        shell: str,
        command: str,
        working_directory: str | None = None,
        max_output_lines: int | None = None,
        timeout: int | None = None,
    ) -> ExecutionResult:
        """Validate and run one command.

        Args:
            shell: Shell identifier.
            command: Command line.
            working_directory: Directory to run in; the current directory
                when None. Relative paths resolve against the current
                directory.
            max_output_lines: Lines of output returned (1-10000).
            timeout: Seconds before the process is killed (1-3600).

        Returns:
            Execution result; non-zero exits and timeouts are results, not
            errors.

        Raises:
            ShellNotFoundError: Unknown or disabled shell.
            ValidationError: The request was rejected before spawning.
            SpawnError: The shell could not be started.
            ProcessError: The process failed after it started.
        """
        with log_context(shell=shell):
            return await self._execute(shell, command, working_directory, max_output_lines, timeout)

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run an inbound request; same contract as :meth:`execute_command`."""
        return await self.execute_command(
            request.shell,
            request.command,
            working_directory=request.working_directory,
            max_output_lines=request.max_output_lines,
            timeout=request.timeout,
        )

    async def _execute(
        self,
        shell: str,
        command: str,
        working_directory: str | None,
        max_output_lines: int | None,
        timeout: int | None,
    ) -> ExecutionResult:
        context = build_validation_context(shell, self.registry, self.resolved)
        config = context.config

        try:
            self._check_request(command, max_output_lines, timeout)
            current = self.get_current_directory()
            requested = working_directory if working_directory is not None else current
            working_dir = context.personality.validate_command(
                command,
                context,
                working_dir=requested,
                base_dir=current,
            )
            if working_dir is None:
                raise WorkingDirectoryUndefinedError(shell)
        except ValidationError as e:
            logger.info("command_rejected", code=e.error_code, reason=e.message)
            self._record_failure(shell, command, working_directory, e, ExecutionState.RECEIVED)
            raise

        invocation = context.personality.build_invocation(command, working_dir, config)
        run_timeout = timeout or config.security.command_timeout

        logger.debug("execution_state", state=ExecutionState.NORMALIZED.value, working_dir=working_dir)

        try:
            outcome = await self.engine.run(invocation, run_timeout, shell=shell)
        except SpawnError as e:
            self._record_failure(shell, command, working_dir, e, ExecutionState.SPAWN_FAILED)
            raise
        except ProcessError as e:
            self._record_failure(shell, command, working_dir, e, ExecutionState.PROCESS_ERROR)
            raise

        execution_id = self.log_store.store(
            outcome.combined_output,
            {
                "command": command,
                "shell": shell,
                "working_directory": working_dir,
                "exit_code": outcome.exit_code,
                "timed_out": outcome.was_timed_out,
            },
        )

        logging_config = self.config.global_.logging
        truncated = truncate_output(
            outcome.combined_output,
            max_output_lines or logging_config.max_output_lines,
            execution_id=execution_id,
            template=logging_config.truncation_message,
            enabled=logging_config.enable_truncation,
        )

        logger.info(
            "command_finished",
            execution_id=execution_id,
            exit_code=outcome.exit_code,
            timed_out=outcome.was_timed_out,
            duration_ms=outcome.duration_ms,
        )
        return ExecutionResult(
            shell=shell,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            combined_output=outcome.combined_output,
            was_timed_out=outcome.was_timed_out,
            working_directory_used=working_dir,
            execution_id=execution_id,
            output=format_truncated_output(truncated),
            was_truncated=truncated.was_truncated,
            total_lines=truncated.total_lines,
            returned_lines=truncated.returned_lines,
            state=ExecutionState.FINALIZED,
            duration_ms=outcome.duration_ms,
        )

    def _check_request(self, command: str, max_output_lines: int | None, timeout: int | None) -> None:
        if not command or not command.strip():
            raise InvalidArgumentError("Command must not be empty")
        if max_output_lines is not None and not 1 <= max_output_lines <= MAX_OUTPUT_LINES_LIMIT:
            raise InvalidArgumentError(
                f"maxOutputLines must be between 1 and {MAX_OUTPUT_LINES_LIMIT}",
                details={"max_output_lines": max_output_lines},
            )
        if timeout is not None and not 1 <= timeout <= MAX_TIMEOUT_SECONDS:
            raise InvalidArgumentError(
                f"timeout must be between 1 and {MAX_TIMEOUT_SECONDS} seconds",
                details={"timeout": timeout},
            )

    def _record_failure(
        self,
        shell: str,
        command: str,
        working_directory: str | None,
        error: GatewayError,
        state: ExecutionState,
    ) -> None:
        self.log_store.store(
            "",
            {
                "state": state.value,
                "command": command,
                "shell": shell,
                "working_directory": working_directory,
                "exit_code": -1,
                "error": f"Validation error: {error.message}"
                if isinstance(error, ValidationError)
                else error.message,
                "error_code": error.error_code,
            },
        )

    def validate_directories(self, paths: list[str], shell: str | None = None) -> dict[str, list[str]]:
        """Split ``paths`` into valid and invalid working directories.

        Args:
            paths: Directories to check.
            shell: Check against this shell's dialect and allowed paths;
                without it, the global allowed paths are used.

        Raises:
            ShellNotFoundError: ``shell`` is unknown or disabled.
        """
        valid: list[str] = []
        invalid: list[str] = []

        if shell is not None:
            context = build_validation_context(shell, self.registry, self.resolved)
            for path in paths:
                try:
                    validate_working_directory(path, context)
                except ValidationError:
                    invalid.append(path)
                else:
                    valid.append(path)
            return {"valid": valid, "invalid": invalid}

        global_config = self.config.global_
        for path in paths:
            allowed = not global_config.security.restrict_working_directory or is_path_allowed(
                path, global_config.paths.allowed_paths
            )
            (valid if allowed else invalid).append(path)
        return {"valid": valid, "invalid": invalid}

    def get_resolved_config(self) -> dict[str, Any]:
        """Serializable snapshot of the global section and every enabled shell."""
        return {
            "global": self.config.global_.model_dump(mode="json", by_alias=True),
            "shells": {name: resolved.to_summary() for name, resolved in self.resolved.items()},
        }
