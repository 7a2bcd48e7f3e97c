"""
Exceptions for external tool execution.

Every failure of an invocation surfaces as one of these typed errors. Each
class carries a stable ``category`` used as telemetry metadata, so reporters
never need to look at the (possibly path-bearing) message.

Exception Hierarchy:
    ExecutionError (base)
    ├── InvalidConfigurationError (settings rejected before any spawn)
    ├── ToolNotAvailableError (availability probe failed)
    ├── SpawnFailureError (OS could not create the process)
    ├── NonZeroExitError (process ran and returned a failure code)
    └── IOFailureError (stdout could not be read to completion)

Example:
    >>> from deploykit.core.execution.exceptions import NonZeroExitError
    >>> try:
    ...     raise NonZeroExitError("kubectl", 1, "kubectl get pods exited with 1")
    ... except NonZeroExitError as e:
    ...     print(e.category, e.exit_code)
    NonZeroExit 1
"""


class ExecutionError(Exception):
    """
    Base exception for all tool execution errors.

    Attributes:
        tool: Name of the external tool involved (e.g. "skaffold")
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    category = "ExecutionError"

    def __init__(self, tool: str, message: str, **context: object) -> None:
        """
        Initialize an execution error.

        Args:
            tool: The tool the invocation targeted
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.tool = tool
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class InvalidConfigurationError(ExecutionError):
    """
    Raised when settings are inconsistent with the execution mode.

    Detected statically, before any process (including a probe) exists:
    mutually exclusive init flags, a kubectl flag outside the mode's
    allow-list, or options that the target tool does not understand.
    """

    category = "InvalidConfiguration"


class ToolNotAvailableError(ExecutionError):
    """Raised when the availability probe reports the tool as unusable."""

    category = "ToolNotAvailable"


class SpawnFailureError(ExecutionError):
    """
    Raised when the OS cannot create the process.

    Typical causes are a missing binary, a file without the executable bit,
    permission denied or a working directory that does not exist.
    """

    category = "SpawnFailure"


class NonZeroExitError(ExecutionError):
    """
    Raised when the process exits with a non-zero code.

    No attempt is made to classify why the tool failed.

    Attributes:
        exit_code: The process exit code
    """

    category = "NonZeroExit"

    def __init__(self, tool: str, exit_code: int, message: str, **context: object) -> None:
        super().__init__(tool, message, exit_code=exit_code, **context)
        self.exit_code = exit_code


class IOFailureError(ExecutionError):
    """Raised when the stdout stream cannot be fully read."""

    category = "IOFailure"


__all__ = [
    "ExecutionError",
    "InvalidConfigurationError",
    "ToolNotAvailableError",
    "SpawnFailureError",
    "NonZeroExitError",
    "IOFailureError",
]
