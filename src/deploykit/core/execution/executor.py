"""
Tool executor: the entry point for running Skaffold and kubectl.

An executor owns one tool and is given its collaborators explicitly:

- an ExecutableLocator supplying argv[0] (read fresh on every invocation)
- a CommandBuilder
- a ProcessLauncher
- an EventReporter
- an AvailabilityProber (built from the above if not given)

Two ways of running a tool:

- ``start()`` launches the process and hands the live ToolProcess back to the
  caller (long-running ``skaffold dev``/``run``/``debug``). The invocation is
  finished once the process exists.
- ``run_to_completion()`` waits for the process to exit and returns its
  standard output. This blocks for as long as the tool runs; callers that
  must stay responsive have to call it from a background thread.

Each call is an independent Invocation that moves through
IDLE → VALIDATING → RESOLVING → BUILDING → LAUNCHED →
{COMPLETED | FAILED | SPAWN_ERROR} → REPORTED and is reported exactly once.

Usage:
    from deploykit.core.execution import (
        KUBECTL, ExecutableResolver, ExecutionSettings, KubectlMode, ToolExecutor,
    )

    resolver = ExecutableResolver()
    executor = ToolExecutor(KUBECTL, resolver.locator("kubectl"))
    output = executor.run_to_completion(
        ExecutionSettings(KubectlMode.GET, extra_flags=("pods", "-o", "name"))
    )
"""

import logging
import os
import re
from collections.abc import Iterator
from contextlib import contextmanager

from .command import CommandBuilder
from .events import (
    METADATA_ERROR_CATEGORY_KEY,
    METADATA_MODE_KEY,
    METADATA_TOOL_KEY,
    EventReporter,
    NullEventReporter,
)
from .exceptions import (
    ExecutionError,
    InvalidConfigurationError,
    IOFailureError,
    NonZeroExitError,
    SpawnFailureError,
    ToolNotAvailableError,
)
from .launcher import DEFAULT_KILL_GRACE_SECONDS, ProcessLauncher, ToolProcess
from .models import (
    ExecutionSettings,
    Invocation,
    InvocationState,
    ToolSpec,
)
from .probe import DEFAULT_PROBE_TIMEOUT_SECONDS, AvailabilityProber
from .resolver import ExecutableLocator

logger = logging.getLogger(__name__)

# Line ends recognised in tool output; other control characters are kept
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def read_output(process: ToolProcess, tool: str = "") -> str:
    """
    Read a process's stdout to EOF.

    Lines are joined with the platform line separator, with no separator
    after the last line.

    Raises:
        IOFailureError: If the stream is missing or cannot be read
    """
    stream = process.stdout
    if stream is None:
        raise IOFailureError(tool, "Process has no stdout stream")
    try:
        data = stream.read()
    except (OSError, ValueError) as e:
        raise IOFailureError(tool, f"Failed to read process output: {e}") from e
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return os.linesep.join(lines)


class ToolExecutor:
    """
    Runs one external tool.

    Attributes:
        tool: Tool spec (binary name, modes)
        locate: Strategy returning argv[0]
        builder: Command builder
        launcher: Process launcher
        reporter: Usage event reporter
        prober: Availability prober
        inherit_shell_env: Default for merging the login-shell environment
        kill_grace_seconds: Grace period between SIGTERM and SIGKILL
    """

    def __init__(
        self,
        tool: ToolSpec,
        locate: ExecutableLocator,
        builder: CommandBuilder | None = None,
        launcher: ProcessLauncher | None = None,
        reporter: EventReporter | None = None,
        prober: AvailabilityProber | None = None,
        probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        inherit_shell_env: bool = False,
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    ) -> None:
        self.tool = tool
        self.locate = locate
        self.builder = builder or CommandBuilder()
        self.launcher = launcher or ProcessLauncher()
        self.reporter = reporter or NullEventReporter()
        self.prober = prober or AvailabilityProber(
            tool,
            locate,
            builder=self.builder,
            launcher=self.launcher,
            timeout_seconds=probe_timeout_seconds,
        )
        self.inherit_shell_env = inherit_shell_env
        self.kill_grace_seconds = kill_grace_seconds

    def is_available(self) -> bool:
        """Check whether the tool can be invoked (bounded by the probe timeout)."""
        return self.prober.is_available()

    def start(
        self,
        settings: ExecutionSettings,
        inherit_shell_env: bool | None = None,
    ) -> ToolProcess:
        """
        Launch the tool and return the running process.

        stderr is merged into stdout so the caller can stream everything the
        tool prints. The caller owns the returned handle and must kill() it
        (or use it as a context manager) to stop the tool.

        Args:
            settings: Execution settings
            inherit_shell_env: Override the executor default for this launch

        Returns:
            ToolProcess with the live process and its command line

        Raises:
            InvalidConfigurationError: If the settings are rejected
            SpawnFailureError: If the process cannot be started
        """
        inherit = self.inherit_shell_env if inherit_shell_env is None else inherit_shell_env

        with self._invocation(settings) as invocation:
            self.builder.validate(settings)
            invocation.advance(InvocationState.RESOLVING)
            executable = self.locate()
            invocation.advance(InvocationState.BUILDING)
            command = self.builder.build(settings, executable)
            process = self._launch(invocation, command.argv, settings, inherit, merge_stderr=True)
            invocation.advance(InvocationState.COMPLETED)
            logger.info(f"Started {command.command_line} (pid {process.pid})")
            return process

    def run_to_completion(self, settings: ExecutionSettings) -> str:
        """
        Run the tool, wait for it to exit and return its standard output.

        Settings are validated before anything is spawned, then availability
        is probed, then the command runs. The wait for exit is unbounded.
        Standard error is not captured.

        Args:
            settings: Execution settings

        Returns:
            Captured stdout, lines joined by os.linesep without a trailing one

        Raises:
            InvalidConfigurationError: If the settings are rejected
            ToolNotAvailableError: If the availability probe fails
            SpawnFailureError: If the process cannot be started
            NonZeroExitError: If the process exits with a non-zero code
            IOFailureError: If stdout cannot be read to completion
        """
        with self._invocation(settings) as invocation:
            self.builder.validate(settings)
            invocation.advance(InvocationState.RESOLVING)

            if not self.prober.is_available():
                raise ToolNotAvailableError(
                    self.tool.name,
                    f"{self.tool.name} is not available. Install it or set its executable path.",
                )

            executable = self.locate()
            invocation.advance(InvocationState.BUILDING)
            command = self.builder.build(settings, executable)
            process = self._launch(
                invocation, command.argv, settings, self.inherit_shell_env, merge_stderr=False
            )

            # Read before waiting so a full pipe cannot stall the child
            try:
                output = read_output(process, self.tool.name)
                exit_code = process.wait()
            finally:
                process.kill(grace_seconds=self.kill_grace_seconds)
                process.close()

            if exit_code != 0:
                raise NonZeroExitError(
                    self.tool.name,
                    exit_code,
                    f"{command.command_line} exited with code {exit_code}",
                )

            invocation.advance(InvocationState.COMPLETED)
            return output

    def _launch(
        self,
        invocation: Invocation,
        argv: tuple[str, ...],
        settings: ExecutionSettings,
        inherit_shell_env: bool,
        merge_stderr: bool,
    ) -> ToolProcess:
        try:
            process = self.launcher.launch(
                argv,
                working_directory=settings.working_directory,
                inherit_shell_env=inherit_shell_env,
                merge_stderr=merge_stderr,
            )
        except SpawnFailureError as e:
            invocation.advance(InvocationState.SPAWN_ERROR)
            invocation.error_category = e.category
            raise SpawnFailureError(self.tool.name, e.message, **e.context) from e
        invocation.advance(InvocationState.LAUNCHED)
        return process

    @contextmanager
    def _invocation(self, settings: ExecutionSettings) -> Iterator[Invocation]:
        """
        Track one invocation and report it exactly once.

        Any ExecutionError escaping the block moves the invocation to its
        failure state before the event is reported and the error re-raised.
        """
        invocation = Invocation(tool=self.tool.name, mode=settings.mode)
        invocation.advance(InvocationState.VALIDATING)
        try:
            if settings.tool != self.tool:
                raise InvalidConfigurationError(
                    self.tool.name,
                    f"Mode '{settings.mode.value}' belongs to {settings.tool.name}, "
                    f"not {self.tool.name}",
                )
            yield invocation
        except ExecutionError as e:
            if not invocation.state.is_terminal:
                invocation.advance(InvocationState.FAILED)
                invocation.error_category = e.category
            logger.debug(f"{invocation.event_name} failed: {e.category}")
            raise
        finally:
            self._report(invocation)

    def _report(self, invocation: Invocation) -> None:
        if not invocation.state.is_terminal:
            # Non-execution exception escaped; nothing meaningful to report
            return

        metadata = {
            METADATA_TOOL_KEY: invocation.tool,
            METADATA_MODE_KEY: invocation.mode.value,
        }
        if invocation.error_category is not None:
            metadata[METADATA_ERROR_CATEGORY_KEY] = invocation.error_category

        try:
            self.reporter.report(invocation.event_name, invocation.succeeded, metadata)
        except Exception as e:
            logger.warning(f"Event reporter failed for {invocation.event_name}: {e}")
        invocation.advance(InvocationState.REPORTED)
