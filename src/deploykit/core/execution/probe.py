"""
Availability probing for external tools.

A probe runs ``<tool> version`` and decides whether the tool is usable. The
policy is strict: the probe must exit with code 0 within the time budget.
A probe still running at the deadline is killed and counts as unavailable,
so callers on interactive paths are never blocked beyond the budget.
"""

import logging

from .command import CommandBuilder
from .launcher import ProcessLauncher
from .models import ExecutionSettings, ToolSpec
from .resolver import ExecutableLocator

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_SECONDS = 2.0
PROBE_KILL_GRACE_SECONDS = 0.5


class AvailabilityProber:
    """
    Decides whether a tool can be invoked.

    Attributes:
        tool: Tool to probe
        locate: Strategy returning argv[0] for the tool
        builder: Command builder
        launcher: Process launcher
        timeout_seconds: Maximum time to wait for the probe to exit
    """

    def __init__(
        self,
        tool: ToolSpec,
        locate: ExecutableLocator,
        builder: CommandBuilder | None = None,
        launcher: ProcessLauncher | None = None,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        self.tool = tool
        self.locate = locate
        self.builder = builder or CommandBuilder()
        self.launcher = launcher or ProcessLauncher()
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        """
        Run the version probe.

        Returns:
            True only if the probe exited with code 0 within the budget
        """
        settings = ExecutionSettings(mode=self.tool.version_mode)
        try:
            command = self.builder.build(settings, self.locate())
            process = self.launcher.launch(command.argv)
        except Exception as e:
            logger.debug(f"{self.tool.name} probe could not start: {e}")
            return False

        try:
            if not process.wait_for(self.timeout_seconds):
                logger.debug(
                    f"{self.tool.name} probe still running after {self.timeout_seconds}s"
                )
                return False
            exit_code = process.returncode
            logger.debug(f"{self.tool.name} probe exited with code {exit_code}")
            return exit_code == 0
        finally:
            process.kill(grace_seconds=PROBE_KILL_GRACE_SECONDS)
            process.close()
