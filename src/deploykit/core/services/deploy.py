"""
Deploy service: clean API over the tool executors.

Wires a ToolExecutor per tool from DeployKitConfig so that interfaces (CLI,
editor integrations) never assemble resolvers, launchers and reporters
themselves.

Usage:
    >>> from deploykit.core.services import DeployService
    >>> service = DeployService.from_config()
    >>>
    >>> # Long-running Skaffold dev loop
    >>> process = service.start_skaffold(SkaffoldMode.DEV, config_file_path="skaffold.yaml")
    >>>
    >>> # Blocking kubectl call
    >>> print(service.run_kubectl(KubectlMode.GET, ["pods", "-o", "name"]))
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from functools import partial
from pathlib import Path

from pydantic import BaseModel

from deploykit.core.config.loader import load_config
from deploykit.core.config.models import DeployKitConfig
from deploykit.core.execution import (
    KUBECTL,
    SKAFFOLD,
    CommandBuilder,
    EventReporter,
    ExecutableResolver,
    ExecutionSettings,
    KubectlMode,
    LoggingEventReporter,
    NullEventReporter,
    ProcessLauncher,
    SkaffoldMode,
    ToolExecutor,
    ToolProcess,
    ToolSpec,
    read_shell_environment,
)

logger = logging.getLogger(__name__)

_DEPLOYING_MODES = (SkaffoldMode.SINGLE_RUN, SkaffoldMode.DEV, SkaffoldMode.DEBUG)


class ToolStatus(BaseModel):
    """Availability of one tool as seen by the service."""

    name: str
    """Tool binary name."""

    invocation: str
    """Path or name that would be used as argv[0]."""

    overridden: bool
    """Whether the invocation comes from an explicit executable path."""

    available: bool
    """Whether the version probe succeeded."""


class DeployService:
    """
    Runs Skaffold and kubectl according to configuration.

    Each call builds fresh ExecutionSettings; the executable override is read
    from the configuration source on every invocation.

    Example:
        >>> service = DeployService(config, project_dir=Path.cwd())
        >>> for status in service.check_tools():
        ...     print(status.name, status.available)
    """

    def __init__(
        self,
        config: DeployKitConfig,
        project_dir: Path,
        reporter: EventReporter | None = None,
        resolver: ExecutableResolver | None = None,
        launcher: ProcessLauncher | None = None,
        config_source: Callable[[], DeployKitConfig] | None = None,
    ) -> None:
        """
        Initialize service with dependencies.

        Args:
            config: Configuration used for launch and probe behavior
            project_dir: Working directory for launched tools
            reporter: Usage event reporter (derived from config if omitted)
            resolver: Executable resolver
            launcher: Process launcher (derived from config if omitted)
            config_source: Re-reads configuration for executable overrides;
                defaults to the given config
        """
        self._config = config
        self._project_dir = project_dir
        self._config_source = config_source or (lambda: self._config)
        self._resolver = resolver or ExecutableResolver()
        self._builder = CommandBuilder()

        if reporter is None:
            reporter = LoggingEventReporter() if config.telemetry.enabled else NullEventReporter()
        self._reporter = reporter

        self._launcher = launcher or ProcessLauncher(
            shell_env_reader=partial(
                read_shell_environment,
                timeout=config.launch.shell_env_timeout_seconds,
            )
        )

        self.skaffold = self._create_executor(SKAFFOLD)
        self.kubectl = self._create_executor(KUBECTL)

    @classmethod
    def from_config(
        cls,
        project_dir: Path | None = None,
        reporter: EventReporter | None = None,
    ) -> DeployService:
        """
        Create a service from the layered configuration of a project.

        Args:
            project_dir: Project root (defaults to cwd)
            reporter: Optional event reporter

        Returns:
            Configured DeployService
        """
        project_dir = project_dir or Path.cwd()
        config = load_config(project_dir)
        return cls(
            config,
            project_dir,
            reporter=reporter,
            config_source=partial(load_config, project_dir),
        )

    def _override_for(self, tool: ToolSpec) -> str:
        tools = self._config_source().tools
        return getattr(tools, tool.name).executable_path

    def _create_executor(self, tool: ToolSpec) -> ToolExecutor:
        locate = self._resolver.locator(
            tool.name,
            override_source=partial(self._override_for, tool),
            path_source=lambda: os.environ.get("PATH"),
        )
        return ToolExecutor(
            tool,
            locate,
            builder=self._builder,
            launcher=self._launcher,
            reporter=self._reporter,
            probe_timeout_seconds=self._config.probe.timeout_seconds,
            inherit_shell_env=self._config.launch.inherit_shell_env,
            kill_grace_seconds=self._config.launch.kill_grace_seconds,
        )

    def executor_for(self, tool: ToolSpec) -> ToolExecutor:
        return self.kubectl if tool == KUBECTL else self.skaffold

    def skaffold_settings(
        self,
        mode: SkaffoldMode,
        *,
        config_file_path: str | None = None,
        profile: str | None = None,
        labels: Sequence[tuple[str, str]] = (),
        tail_logs_after_deploy: bool | None = None,
        default_image_repo: str | None = None,
        analyze_on_init: bool = False,
        force_init: bool = False,
        working_directory: Path | None = None,
    ) -> ExecutionSettings:
        """
        Build Skaffold settings with the configured default labels.

        For deploying modes (run, dev, debug) the configured labels come
        first, followed by ``labels`` in order. Logs are never tailed
        explicitly in dev/debug mode since Skaffold streams them there anyway.
        """
        if mode in (SkaffoldMode.DEV, SkaffoldMode.DEBUG):
            tail_logs_after_deploy = False

        all_labels = list(labels)
        if mode in _DEPLOYING_MODES:
            all_labels = list(self._config.labels.items()) + all_labels
        return ExecutionSettings(
            mode,
            config_file_path=config_file_path,
            profile=profile,
            working_directory=working_directory or self._project_dir,
            labels=tuple(all_labels),
            tail_logs_after_deploy=tail_logs_after_deploy,
            default_image_repo=default_image_repo,
            analyze_on_init=analyze_on_init,
            force_init=force_init,
        )

    def start_skaffold(self, mode: SkaffoldMode, **options: object) -> ToolProcess:
        """Launch a long-running Skaffold process (run, dev, debug)."""
        settings = self.skaffold_settings(mode, **options)  # type: ignore[arg-type]
        return self.skaffold.start(settings)

    def run_skaffold(self, mode: SkaffoldMode, **options: object) -> str:
        """Run Skaffold to completion and return its output (init, version)."""
        settings = self.skaffold_settings(mode, **options)  # type: ignore[arg-type]
        return self.skaffold.run_to_completion(settings)

    def run_kubectl(
        self,
        mode: KubectlMode,
        flags: Sequence[str] = (),
        working_directory: Path | None = None,
    ) -> str:
        """Run kubectl to completion and return its output."""
        settings = ExecutionSettings(
            mode,
            working_directory=working_directory or self._project_dir,
            extra_flags=tuple(flags),
        )
        return self.kubectl.run_to_completion(settings)

    def check_tools(self) -> list[ToolStatus]:
        """Probe every supported tool."""
        statuses = []
        for tool in (SKAFFOLD, KUBECTL):
            executor = self.executor_for(tool)
            statuses.append(
                ToolStatus(
                    name=tool.name,
                    invocation=executor.locate(),
                    overridden=bool(self._override_for(tool).strip()),
                    available=executor.is_available(),
                )
            )
        return statuses
