"""
External tool execution for deploykit.

This package resolves, builds, launches and supervises Skaffold and kubectl
processes.

Components:
- ExecutableResolver: override > PATH > bare name
- CommandBuilder: deterministic argument vectors from ExecutionSettings
- ProcessLauncher / ToolProcess: spawning and graceful-then-forceful kill
- AvailabilityProber: bounded ``version`` probe
- ToolExecutor: start() and run_to_completion(), reported via EventReporter

Example:
    from deploykit.core.execution import (
        SKAFFOLD,
        ExecutableResolver,
        ExecutionSettings,
        SkaffoldMode,
        ToolExecutor,
    )

    resolver = ExecutableResolver()
    executor = ToolExecutor(SKAFFOLD, resolver.locator("skaffold"))

    process = executor.start(
        ExecutionSettings(SkaffoldMode.DEV, config_file_path="skaffold.yaml")
    )
    print(process.command_line)
"""

from .command import CommandBuilder, flag_token
from .events import (
    METADATA_ERROR_CATEGORY_KEY,
    METADATA_MODE_KEY,
    METADATA_TOOL_KEY,
    EventReporter,
    LoggingEventReporter,
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
from .executor import ToolExecutor, read_output
from .launcher import (
    ProcessLauncher,
    ShellEnvironmentError,
    ToolProcess,
    read_shell_environment,
)
from .models import (
    KUBECTL,
    SKAFFOLD,
    BuiltCommand,
    ExecutionMode,
    ExecutionSettings,
    Invocation,
    InvocationState,
    KubectlMode,
    SkaffoldMode,
    ToolSpec,
    tool_for_mode,
)
from .probe import AvailabilityProber
from .resolver import ExecutableLocator, ExecutableResolver, is_executable_file

__all__ = [
    # Models
    "KUBECTL",
    "SKAFFOLD",
    "BuiltCommand",
    "ExecutionMode",
    "ExecutionSettings",
    "Invocation",
    "InvocationState",
    "KubectlMode",
    "SkaffoldMode",
    "ToolSpec",
    "tool_for_mode",
    # Components
    "AvailabilityProber",
    "CommandBuilder",
    "ExecutableLocator",
    "ExecutableResolver",
    "ProcessLauncher",
    "ToolExecutor",
    "ToolProcess",
    "flag_token",
    "is_executable_file",
    "read_output",
    "read_shell_environment",
    # Events
    "EventReporter",
    "LoggingEventReporter",
    "NullEventReporter",
    "METADATA_ERROR_CATEGORY_KEY",
    "METADATA_MODE_KEY",
    "METADATA_TOOL_KEY",
    # Exceptions
    "ExecutionError",
    "InvalidConfigurationError",
    "IOFailureError",
    "NonZeroExitError",
    "ShellEnvironmentError",
    "SpawnFailureError",
    "ToolNotAvailableError",
]
