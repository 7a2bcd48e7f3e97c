"""Environment loading helpers.

deploykit reads tool overrides (DEPLOYKIT_*) and anything the tools
themselves need (KUBECONFIG, SKAFFOLD_DEFAULT_REPO, ...) from the
environment, optionally seeded from .env files.

Values from .env files never replace variables that are already present in
the process environment (e.g. exported in the shell). Within one layer, later
files win (.env.local over .env).

Precedence implemented here:
  os.environ (pre-existing) > project .env > user .env
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_xdg_config_home


def _read_env(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    return {
        str(key): str(value)
        for key, value in dotenv_values(path).items()
        if key is not None and value is not None
    }


def _apply(paths: Iterable[Path], replaceable: set[str]) -> set[str]:
    """Set variables from ``paths`` unless the process already defines them."""
    applied: set[str] = set()
    for path in paths:
        for key, value in _read_env(Path(path)).items():
            if key in os.environ and key not in replaceable and key not in applied:
                continue
            os.environ[key] = value
            applied.add(key)
    return applied


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """Load environment variables from user and project .env files.

    Args:
        project_dir: Base directory for the default project files (defaults to cwd)
        user_env_paths: Explicit user env files (defaults to
            $XDG_CONFIG_HOME/deploykit/.env)
        project_env_paths: Explicit project env files (defaults to .env and
            .env.local in ``project_dir``)

    Returns:
        Names of the variables that were set from .env files
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [get_xdg_config_home() / "deploykit" / ".env"]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    # Project files may replace what user files set, never the shell's own values
    from_user = _apply(user_env_paths, replaceable=set())
    from_project = _apply(project_env_paths, replaceable=from_user)
    return from_user | from_project
