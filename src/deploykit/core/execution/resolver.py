"""
Executable resolution for external tools.

Turns a user override and the OS ``PATH`` into the string used as argv[0]:

1. A non-blank override always wins (trimmed).
2. Otherwise the first ``PATH`` directory holding an executable file named
   after the tool.
3. Otherwise the bare tool name, leaving the lookup to the OS at spawn time.
   That lookup may fail there; it is not an error at resolve time.

Filesystem checks and the path-list separator are injectable so resolution
can be tested without touching the real filesystem.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

ExecutableLocator = Callable[[], str]
"""Zero-argument strategy returning the resolved invocation for one tool."""


def is_executable_file(path: str) -> bool:
    """Return True if ``path`` exists, is a regular file and is executable."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


class ExecutableResolver:
    """
    Resolves the invocation path of a tool binary.

    Attributes:
        is_executable: Predicate deciding whether a candidate path is usable
        pathsep: Separator between entries of the PATH string

    Example:
        >>> resolver = ExecutableResolver(is_executable=lambda p: p == "/a/foo")
        >>> resolver.resolve("", "foo", "/a:/b")
        '/a/foo'
        >>> resolver.resolve("/custom/foo", "foo", "/a:/b")
        '/custom/foo'
    """

    def __init__(
        self,
        is_executable: Callable[[str], bool] = is_executable_file,
        pathsep: str = os.pathsep,
    ) -> None:
        self.is_executable = is_executable
        self.pathsep = pathsep

    def resolve(self, override: str | None, tool_name: str, path_env: str | None) -> str:
        """
        Resolve the invocation for ``tool_name``.

        Args:
            override: User-supplied executable path, may be None or blank
            tool_name: Binary name to search for (e.g. "skaffold")
            path_env: Contents of the PATH variable

        Returns:
            The trimmed override, the first executable match on PATH, or the
            bare tool name
        """
        if override is not None and override.strip():
            return override.strip()

        for directory in self.candidate_directories(path_env):
            candidate = str(Path(directory) / tool_name)
            if self.is_executable(candidate):
                logger.debug(f"Resolved {tool_name} on PATH: {candidate}")
                return candidate

        logger.debug(f"{tool_name} not found on PATH, falling back to bare name")
        return tool_name

    def candidate_directories(self, path_env: str | None) -> list[str]:
        """Split a PATH string into its non-empty directories, in order."""
        if not path_env:
            return []
        return [entry for entry in path_env.split(self.pathsep) if entry]

    def locator(
        self,
        tool_name: str,
        override_source: Callable[[], str | None] | None = None,
        path_source: Callable[[], str | None] | None = None,
    ) -> ExecutableLocator:
        """
        Build a locator closure for one tool.

        The override and PATH are read through their sources on every call,
        so a changed setting is picked up by the next invocation.

        Args:
            tool_name: Binary name to resolve
            override_source: Returns the current override (defaults to none)
            path_source: Returns the current PATH (defaults to os.environ)

        Returns:
            Callable returning the resolved invocation
        """

        def read_path() -> str | None:
            return os.environ.get("PATH")

        read_override = override_source or (lambda: None)
        read_path_env = path_source or read_path

        def locate() -> str:
            return self.resolve(read_override(), tool_name, read_path_env())

        return locate
