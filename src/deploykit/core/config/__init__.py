"""
Configuration models and loading.

This module provides Pydantic models for deploykit configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .env import load_layered_env
from .loader import (
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    DeployKitConfig,
    LaunchConfig,
    ProbeConfig,
    TelemetryConfig,
    ToolConfig,
    ToolsConfig,
)

__all__ = [
    # Models
    "DeployKitConfig",
    "LaunchConfig",
    "ProbeConfig",
    "TelemetryConfig",
    "ToolConfig",
    "ToolsConfig",
    # Loader functions
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
]
