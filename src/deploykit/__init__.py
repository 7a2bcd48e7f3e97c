"""
deploykit - Skaffold and kubectl execution

Resolves, builds, launches and supervises external deployment tool processes.
"""

__version__ = "0.4.0.dev0"

# Re-export core types for convenience
from deploykit.core.config.models import DeployKitConfig
from deploykit.core.execution import (
    ExecutionSettings,
    KubectlMode,
    SkaffoldMode,
    ToolExecutor,
)

__all__ = [
    "DeployKitConfig",
    "ExecutionSettings",
    "KubectlMode",
    "SkaffoldMode",
    "ToolExecutor",
    "__version__",
]
