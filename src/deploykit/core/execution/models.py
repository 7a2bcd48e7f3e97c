"""
Execution data models for deploykit.

Defines the execution modes of the supported tools (Skaffold and kubectl),
the immutable settings value a caller hands to the executor, and the small
value types produced along an invocation (built command, invocation state).
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union


class SkaffoldMode(str, Enum):
    """
    Skaffold subcommands supported by the executor.

    The enum value is the canonical subcommand token placed right after the
    executable on the command line.
    """

    SINGLE_RUN = "run"
    DEV = "dev"
    DEBUG = "debug"
    INIT = "init"
    VERSION = "version"

    @property
    def flag(self) -> str:
        """Subcommand token for this mode."""
        return self.value


class KubectlMode(str, Enum):
    """
    kubectl subcommands supported by the executor.

    Unlike Skaffold, kubectl settings carry free-form flags, so every mode
    owns an allow-list of flag tokens that are legal under it.
    """

    CONFIG = "config"
    CREATE = "create"
    GET = "get"
    PATCH = "patch"
    ROLLOUT = "rollout"
    SCALE = "scale"
    DELETE = "delete"
    RUN = "run"
    VERSION = "version"

    @property
    def flag(self) -> str:
        """Subcommand token for this mode."""
        return self.value

    @property
    def allowed_flags(self) -> frozenset[str]:
        """Flag tokens accepted under this mode."""
        return KUBECTL_ALLOWED_FLAGS[self]


ExecutionMode = Union[SkaffoldMode, KubectlMode]

_KUBECTL_COMMON = frozenset({"-n", "--namespace", "--context", "--kubeconfig"})
_KUBECTL_OUTPUT = frozenset({"-o", "--output"})
_KUBECTL_FILES = frozenset({"-f", "--filename"})

KUBECTL_ALLOWED_FLAGS: dict[KubectlMode, frozenset[str]] = {
    KubectlMode.CONFIG: _KUBECTL_COMMON
    | _KUBECTL_OUTPUT
    | {"--cluster", "--user", "--current", "--minify", "--raw", "--flatten"},
    KubectlMode.CREATE: _KUBECTL_COMMON
    | _KUBECTL_OUTPUT
    | _KUBECTL_FILES
    | {
        "-k",
        "--kustomize",
        "-R",
        "--recursive",
        "--dry-run",
        "--edit",
        "--save-config",
        "--validate",
    },
    KubectlMode.GET: _KUBECTL_COMMON
    | _KUBECTL_OUTPUT
    | _KUBECTL_FILES
    | {"-l", "--selector", "-A", "--all-namespaces", "-w", "--watch", "--show-labels"},
    KubectlMode.PATCH: _KUBECTL_COMMON
    | _KUBECTL_OUTPUT
    | _KUBECTL_FILES
    | {"-p", "--patch", "--type", "--dry-run"},
    KubectlMode.ROLLOUT: _KUBECTL_COMMON
    | _KUBECTL_FILES
    | {"-w", "--watch", "--revision", "--timeout"},
    KubectlMode.SCALE: _KUBECTL_COMMON
    | _KUBECTL_FILES
    | {"--replicas", "--current-replicas", "--timeout"},
    KubectlMode.DELETE: _KUBECTL_COMMON
    | _KUBECTL_FILES
    | {"-l", "--selector", "--all", "--force", "--grace-period", "--wait", "--now"},
    KubectlMode.RUN: _KUBECTL_COMMON
    | _KUBECTL_OUTPUT
    | {
        "--image",
        "--port",
        "--env",
        "--labels",
        "--restart",
        "--rm",
        "-i",
        "--stdin",
        "-t",
        "--tty",
        "--command",
        "--dry-run",
    },
    KubectlMode.VERSION: _KUBECTL_OUTPUT | {"--client", "--context", "--kubeconfig"},
}


@dataclass(frozen=True)
class ToolSpec:
    """
    Static description of an external tool.

    Attributes:
        name: Binary name looked up on PATH (e.g. "skaffold")
        modes: Enum of the subcommands the tool supports
        version_mode: Lightweight mode used by the availability probe
        accepts_extra_flags: Whether free-form flags are part of its grammar
    """

    name: str
    modes: type[Enum]
    version_mode: ExecutionMode
    accepts_extra_flags: bool = False


SKAFFOLD = ToolSpec(name="skaffold", modes=SkaffoldMode, version_mode=SkaffoldMode.VERSION)
KUBECTL = ToolSpec(
    name="kubectl",
    modes=KubectlMode,
    version_mode=KubectlMode.VERSION,
    accepts_extra_flags=True,
)


def tool_for_mode(mode: ExecutionMode) -> ToolSpec:
    """Return the tool whose grammar the given mode belongs to."""
    if isinstance(mode, KubectlMode):
        return KUBECTL
    if isinstance(mode, SkaffoldMode):
        return SKAFFOLD
    raise TypeError(f"Unknown execution mode: {mode!r}")


def _normalize_labels(
    labels: Mapping[str, str] | Iterable[tuple[str, str]] | None,
) -> tuple[tuple[str, str], ...]:
    if labels is None:
        return ()
    if isinstance(labels, Mapping):
        return tuple((str(k), str(v)) for k, v in labels.items())
    return tuple((str(k), str(v)) for k, v in labels)


@dataclass(frozen=True)
class ExecutionSettings:
    """
    Immutable description of one tool invocation.

    Owned by the caller and read-only to the executor. Labels keep their
    insertion order and are emitted verbatim; a dict or any iterable of
    pairs is accepted and frozen into a tuple.

    Mutual exclusion of ``analyze_on_init`` and ``force_init`` is not checked
    here but by the command builder, which reports it as an
    InvalidConfigurationError before anything is spawned.

    Example:
        >>> settings = ExecutionSettings(
        ...     SkaffoldMode.DEV,
        ...     config_file_path="skaffold.yaml",
        ...     labels=[("ide", "deploykit")],
        ...     tail_logs_after_deploy=True,
        ... )
        >>> settings.labels
        (('ide', 'deploykit'),)
    """

    mode: ExecutionMode
    config_file_path: str | None = None
    profile: str | None = None
    working_directory: Path | None = None
    labels: tuple[tuple[str, str], ...] = ()
    tail_logs_after_deploy: bool | None = None
    default_image_repo: str | None = None
    analyze_on_init: bool = False
    force_init: bool = False
    extra_flags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _normalize_labels(self.labels))
        object.__setattr__(self, "extra_flags", tuple(str(f) for f in self.extra_flags))
        if self.working_directory is not None and not isinstance(self.working_directory, Path):
            object.__setattr__(self, "working_directory", Path(self.working_directory))

    @property
    def tool(self) -> ToolSpec:
        """Tool targeted by this settings value."""
        return tool_for_mode(self.mode)

    def uses_skaffold_options(self) -> bool:
        """Whether any Skaffold-only option is set."""
        return any(
            (
                self.config_file_path is not None,
                self.profile is not None,
                bool(self.labels),
                self.tail_logs_after_deploy is not None,
                self.default_image_repo is not None,
                self.analyze_on_init,
                self.force_init,
            )
        )


@dataclass(frozen=True)
class BuiltCommand:
    """
    Argument vector produced by the command builder.

    ``command_line`` is for logs, tests and display only; it is never handed
    to a shell.
    """

    argv: tuple[str, ...]

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)

    @property
    def executable(self) -> str:
        return self.argv[0]


class InvocationState(str, Enum):
    """States of a single invocation, in the order they are entered."""

    IDLE = "idle"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    BUILDING = "building"
    LAUNCHED = "launched"
    COMPLETED = "completed"
    FAILED = "failed"
    SPAWN_ERROR = "spawn_error"
    REPORTED = "reported"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {InvocationState.COMPLETED, InvocationState.FAILED, InvocationState.SPAWN_ERROR}
)
_STATE_ORDER = {state: index for index, state in enumerate(InvocationState)}
# The three terminal states are alternatives, not a sequence.
for _state in _TERMINAL_STATES:
    _STATE_ORDER[_state] = _STATE_ORDER[InvocationState.COMPLETED]


@dataclass
class Invocation:
    """
    Record of one end-to-end attempt to resolve, build and launch a tool.

    States only move forward; re-entering a state or moving backwards
    raises RuntimeError.
    """

    tool: str
    mode: ExecutionMode
    state: InvocationState = InvocationState.IDLE
    history: list[InvocationState] = field(default_factory=list)
    error_category: str | None = None

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    def advance(self, state: InvocationState) -> None:
        """Move to ``state``, enforcing forward-only transitions."""
        if state in self.history or _STATE_ORDER[state] <= _STATE_ORDER[self.state]:
            raise RuntimeError(
                f"Invalid invocation transition {self.state.value} -> {state.value}"
            )
        if self.state.is_terminal and state is not InvocationState.REPORTED:
            raise RuntimeError(f"Invocation already finished in state {self.state.value}")
        if state is InvocationState.REPORTED and not self.state.is_terminal:
            raise RuntimeError(f"Invocation still in flight in state {self.state.value}")
        self.state = state
        self.history.append(state)

    @property
    def succeeded(self) -> bool:
        return InvocationState.COMPLETED in self.history

    @property
    def event_name(self) -> str:
        return f"{self.tool}.{self.mode.value}"
