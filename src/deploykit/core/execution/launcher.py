"""
Process launching and supervision for external tools.

This module provides:
- ProcessLauncher: spawns a tool from an explicit argument vector (never
  through a shell), with an optional working directory and an optional
  login-shell environment
- ToolProcess: handle over the live process with bounded and blocking waits
  and escalating termination (SIGTERM to the process group, then SIGKILL)
- read_shell_environment: best-effort capture of the user's login-shell
  environment, so tools installed by shell profiles (e.g. gcloud, asdf) are
  visible when the caller was not started from a terminal
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import IO, Any

from .exceptions import SpawnFailureError

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_UNIX = not IS_WINDOWS

DEFAULT_KILL_GRACE_SECONDS = 2.0
DEFAULT_SHELL_ENV_TIMEOUT_SECONDS = 5.0

ShellEnvironmentReader = Callable[[], dict[str, str]]


class ShellEnvironmentError(Exception):
    """Raised when the login-shell environment cannot be read."""


def read_shell_environment(
    shell: str | None = None,
    timeout: float = DEFAULT_SHELL_ENV_TIMEOUT_SECONDS,
) -> dict[str, str]:
    """
    Read the environment of the user's login shell.

    Runs ``$SHELL -l -c "env -0"`` and parses the NUL-separated output.

    Args:
        shell: Shell executable (defaults to $SHELL)
        timeout: Seconds to wait for the shell to print its environment

    Returns:
        Mapping of environment variables

    Raises:
        ShellEnvironmentError: If there is no shell or it fails to run
    """
    if IS_WINDOWS:
        raise ShellEnvironmentError("Login-shell environment is not supported on Windows")

    shell = shell or os.environ.get("SHELL")
    if not shell:
        raise ShellEnvironmentError("SHELL is not set")

    try:
        result = subprocess.run(
            [shell, "-l", "-c", "env -0"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        raise ShellEnvironmentError(f"Failed to run {shell}: {e}") from e

    if result.returncode != 0:
        raise ShellEnvironmentError(f"{shell} exited with code {result.returncode}")

    env: dict[str, str] = {}
    for entry in result.stdout.decode("utf-8", errors="replace").split("\0"):
        key, sep, value = entry.partition("=")
        if sep and key:
            env[key] = value

    if not env:
        raise ShellEnvironmentError(f"{shell} printed no environment")
    return env


class ToolProcess:
    """
    Handle over a running external tool process.

    The handle is owned by whoever launched it until the process exits or is
    killed. ``command_line`` is the argv joined by spaces, for display only.

    Can be used as a context manager; leaving the block kills a process that
    is still running.

    Example:
        >>> with launcher.launch(["kubectl", "version"]) as process:
        ...     if not process.wait_for(2.0):
        ...         print("still running")
    """

    def __init__(self, popen: subprocess.Popen[bytes], command_line: str) -> None:
        self.popen = popen
        self.command_line = command_line

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def stdout(self) -> IO[bytes] | None:
        """Readable byte stream of the process standard output."""
        return self.popen.stdout

    @property
    def returncode(self) -> int | None:
        """Exit code, or None while the process is running."""
        return self.popen.poll()

    def is_running(self) -> bool:
        return self.popen.poll() is None

    def wait_for(self, timeout: float) -> bool:
        """
        Wait at most ``timeout`` seconds for the process to exit.

        Returns:
            True if the process has exited, False if it is still running
        """
        try:
            self.popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def wait(self) -> int:
        """Block until the process exits and return its exit code."""
        return self.popen.wait()

    def kill(self, grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS) -> None:
        """
        Terminate the process, escalating from graceful to forceful.

        1. SIGTERM (to the whole process group on Unix)
        2. Wait up to ``grace_seconds``
        3. SIGKILL if still running
        """
        if self.popen.poll() is not None:
            return

        logger.debug(f"Terminating process {self.pid} gracefully")
        self._signal(signal.SIGTERM)
        if self.wait_for(grace_seconds):
            logger.debug(f"Process {self.pid} terminated gracefully")
            return

        logger.debug(f"Process {self.pid} did not terminate gracefully, force killing")
        self._signal(signal.SIGKILL if IS_UNIX else signal.SIGTERM, force=True)
        self.wait_for(grace_seconds)

    def _signal(self, sig: int, force: bool = False) -> None:
        try:
            if IS_UNIX:
                # Same as pid since the process was started in a new session
                os.killpg(os.getpgid(self.pid), sig)
            elif force:
                self.popen.kill()
            else:
                self.popen.terminate()
        except (ProcessLookupError, PermissionError, OSError) as e:
            # Process may have already terminated
            logger.debug(f"Signal {sig} to process {self.pid} failed: {e}")

    def close(self) -> None:
        """Close the stdout pipe."""
        if self.popen.stdout is not None:
            self.popen.stdout.close()

    def __enter__(self) -> ToolProcess:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.kill()
        self.close()

    def __repr__(self) -> str:
        return f"ToolProcess(pid={self.pid}, command_line={self.command_line!r})"


class ProcessLauncher:
    """
    Spawns external tool processes.

    Attributes:
        shell_env_reader: Callable returning the login-shell environment,
            used only when a launch asks to inherit it
    """

    def __init__(self, shell_env_reader: ShellEnvironmentReader | None = None) -> None:
        self.shell_env_reader = shell_env_reader or read_shell_environment

    def launch(
        self,
        argv: Sequence[str],
        working_directory: Path | str | None = None,
        inherit_shell_env: bool = False,
        merge_stderr: bool = False,
    ) -> ToolProcess:
        """
        Start a process and return once it exists.

        Args:
            argv: Argument vector; argv[0] is the executable
            working_directory: Optional working directory for the child
            inherit_shell_env: Merge the login-shell environment into the
                child's environment (failure to read it is not fatal)
            merge_stderr: Redirect stderr into stdout instead of discarding it

        Returns:
            ToolProcess handle for the running process

        Raises:
            SpawnFailureError: If the OS cannot create the process
        """
        command = list(argv)
        command_line = " ".join(command)

        kwargs: dict[str, Any] = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
            "cwd": str(working_directory) if working_directory is not None else None,
            "env": self._build_env(inherit_shell_env),
        }

        # Own process group so kill() reaches children of the tool too
        if IS_UNIX:
            kwargs["start_new_session"] = True

        logger.debug(f"Launching: {command_line}")
        try:
            popen = subprocess.Popen(command, **kwargs)
        except OSError as e:
            logger.debug(f"Failed to launch {command[0]}: {e}")
            raise SpawnFailureError(
                Path(command[0]).name,
                f"Failed to start {command[0]}: {e.strerror or e}",
                errno=e.errno,
            ) from e

        return ToolProcess(popen, command_line)

    def _build_env(self, inherit_shell_env: bool) -> dict[str, str] | None:
        """
        Build the child environment.

        Returns None (inherit this process's environment) unless the shell
        environment was requested and could be read.
        """
        if not inherit_shell_env:
            return None

        try:
            shell_env = self.shell_env_reader()
        except Exception as e:
            logger.warning(
                f"Could not read login shell environment, using default environment: {e}"
            )
            return None

        env = os.environ.copy()
        env.update(shell_env)
        return env
