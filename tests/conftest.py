"""
Pytest configuration and shared fixtures.

Provides test doubles for process launching and event reporting, plus a
factory for small executable shell scripts standing in for real tools.
"""

import io
import os
import stat
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from deploykit.core.execution import SpawnFailureError, ToolProcess

# ==============================================================================
# Process Doubles
# ==============================================================================


class FakePopen:
    """Minimal stand-in for subprocess.Popen that has already exited."""

    def __init__(self, stdout: bytes | Any = b"", returncode: int = 0, pid: int = 4242) -> None:
        self.stdout = io.BytesIO(stdout) if isinstance(stdout, bytes) else stdout
        self.returncode = returncode
        self.pid = pid
        self.terminated = False
        self.killed = False

    def poll(self) -> int | None:
        return self.returncode

    def wait(self, timeout: float | None = None) -> int:
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True

    def kill(self) -> None:
        self.killed = True


class FakeLauncher:
    """
    Launcher double recording every launch.

    ``results`` maps the mode token (argv[1]) to a FakePopen factory; a
    SpawnFailureError instance is raised instead of launching.
    """

    def __init__(self, results: Mapping[str, Any] | None = None) -> None:
        self.results = dict(results or {})
        self.calls: list[dict[str, Any]] = []

    def launch(
        self,
        argv: Sequence[str],
        working_directory: Path | str | None = None,
        inherit_shell_env: bool = False,
        merge_stderr: bool = False,
    ) -> ToolProcess:
        self.calls.append(
            {
                "argv": tuple(argv),
                "working_directory": working_directory,
                "inherit_shell_env": inherit_shell_env,
                "merge_stderr": merge_stderr,
            }
        )
        result = self.results.get(argv[1], lambda: FakePopen())
        if isinstance(result, SpawnFailureError):
            raise result
        return ToolProcess(result(), " ".join(argv))  # type: ignore[arg-type]

    @property
    def argvs(self) -> list[tuple[str, ...]]:
        return [call["argv"] for call in self.calls]


class RecordingReporter:
    """EventReporter double keeping every report."""

    def __init__(self) -> None:
        self.events: list[tuple[str, bool, dict[str, str]]] = []

    def report(self, event_name: str, succeeded: bool, metadata: Mapping[str, str]) -> None:
        self.events.append((event_name, succeeded, dict(metadata)))


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    """Launcher double where every process exits 0 with no output."""
    return FakeLauncher()


@pytest.fixture
def reporter() -> RecordingReporter:
    """Reporter double."""
    return RecordingReporter()


# ==============================================================================
# Fake Tools
# ==============================================================================


@pytest.fixture
def make_tool(tmp_path: Path) -> Callable[..., str]:
    """
    Factory writing an executable /bin/sh script.

    Usage:
        path = make_tool("kubectl", 'echo "$1"')
    """

    def _make(name: str, body: str, directory: Path | None = None) -> str:
        target_dir = directory or tmp_path / "bin"
        target_dir.mkdir(parents=True, exist_ok=True)
        script = target_dir / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Point user config at an empty directory and clear DEPLOYKIT_* variables.

    Returns the project directory to load from.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in list(os.environ):
        if key.startswith("DEPLOYKIT_"):
            monkeypatch.delenv(key)
    project = tmp_path / "project"
    project.mkdir()
    return project
