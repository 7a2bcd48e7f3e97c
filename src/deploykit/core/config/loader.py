"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

Configuration is read from disk on every call. The executable overrides in
it must never go stale between invocations, so there is no cache.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import DeployKitConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".deploykit.json"


def get_xdg_config_home() -> Path:
    """$XDG_CONFIG_HOME, or ~/.config when unset."""
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """User-level settings shared by every project."""
    return get_xdg_config_home() / "deploykit" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Project settings file inside ``cwd`` (defaults to the current directory)."""
    return (cwd or Path.cwd()) / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value in ``override``
    replaces the one in ``base``.

    Example:
        >>> deep_merge({"tools": {"skaffold": "a"}}, {"tools": {"kubectl": "b"}})
        {'tools': {'skaffold': 'a', 'kubectl': 'b'}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Read one config layer.

    Missing files are skipped silently. Unreadable or malformed files are
    skipped with a warning so a broken user config never blocks a launch.

    Returns:
        The parsed object, or None
    """
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config at {path}: top level is not an object")
        return None
    return data


def _env_flag(value: str) -> bool:
    return value.strip().lower() not in ("false", "0", "no", "off", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        DEPLOYKIT_SKAFFOLD_PATH - overrides tools.skaffold.executable_path
        DEPLOYKIT_KUBECTL_PATH - overrides tools.kubectl.executable_path
        DEPLOYKIT_PROBE_TIMEOUT - overrides probe.timeout_seconds
        DEPLOYKIT_INHERIT_SHELL_ENV - overrides launch.inherit_shell_env
        DEPLOYKIT_TELEMETRY - overrides telemetry.enabled

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    for tool in ("skaffold", "kubectl"):
        if path := os.environ.get(f"DEPLOYKIT_{tool.upper()}_PATH"):
            tools = dict(result.get("tools") or {})
            tools[tool] = {"executable_path": path}
            result["tools"] = tools

    if timeout_str := os.environ.get("DEPLOYKIT_PROBE_TIMEOUT"):
        try:
            timeout = float(timeout_str)
            result["probe"] = {**(result.get("probe") or {}), "timeout_seconds": timeout}
        except ValueError:
            logger.warning(f"Invalid DEPLOYKIT_PROBE_TIMEOUT value '{timeout_str}', ignoring")

    if inherit_str := os.environ.get("DEPLOYKIT_INHERIT_SHELL_ENV"):
        result["launch"] = {
            **(result.get("launch") or {}),
            "inherit_shell_env": _env_flag(inherit_str),
        }

    if telemetry_str := os.environ.get("DEPLOYKIT_TELEMETRY"):
        result["telemetry"] = {
            **(result.get("telemetry") or {}),
            "enabled": _env_flag(telemetry_str),
        }

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "tools": {
            "skaffold": {"executable_path": ""},
            "kubectl": {"executable_path": ""},
        },
        "probe": {"timeout_seconds": 2.0},
        "labels": {"ide": "deploykit"},
    }


def load_config(project_dir: Path | None = None) -> DeployKitConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (DEPLOYKIT_*)
        2. Project config (.deploykit.json)
        3. User config (~/.config/deploykit/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .deploykit.json from (defaults to cwd)

    Returns:
        Validated DeployKitConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    return DeployKitConfig(**merged)
