"""
Configuration data models for deploykit.

These models define the structure of .deploykit.json and
~/.config/deploykit/config.json files, with validation and type safety via
Pydantic.
"""

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolConfig(BaseModel):
    """
    Settings for one external tool.

    An empty executable path means "search PATH".
    """
    executable_path: str = Field(
        default="",
        description="Explicit path to the tool binary; overrides PATH lookup when non-blank"
    )


class ToolsConfig(BaseModel):
    """Per-tool settings."""
    skaffold: ToolConfig = Field(default_factory=ToolConfig)
    kubectl: ToolConfig = Field(default_factory=ToolConfig)

    @field_validator('skaffold', 'kubectl', mode='before')
    @classmethod
    def validate_tool(cls, v: Union[str, dict, ToolConfig]) -> Union[dict, ToolConfig]:
        """Accept a bare string as the executable path."""
        if isinstance(v, str):
            return {"executable_path": v}
        return v


class ProbeConfig(BaseModel):
    """
    Availability probe settings.

    The probe runs `<tool> version` and must exit with code 0 within the
    timeout for the tool to count as available.
    """
    timeout_seconds: float = Field(
        default=2.0,
        ge=0.1,
        le=30.0,
        description="Maximum seconds to wait for the version probe"
    )


class LaunchConfig(BaseModel):
    """Process launch settings."""
    inherit_shell_env: bool = Field(
        default=False,
        description="Merge the login shell environment into launched tools"
    )
    shell_env_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Maximum seconds to wait for the login shell to print its environment"
    )
    kill_grace_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Seconds between SIGTERM and SIGKILL when stopping a tool"
    )


class TelemetryConfig(BaseModel):
    """Usage event settings."""
    enabled: bool = Field(
        default=True,
        description="Emit one usage event per tool invocation"
    )


class DeployKitConfig(BaseModel):
    """
    Top-level deploykit configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = DeployKitConfig(
        ...     tools=ToolsConfig(skaffold="/opt/bin/skaffold"),
        ...     probe=ProbeConfig(timeout_seconds=1.0),
        ... )
        >>> config.tools.skaffold.executable_path
        '/opt/bin/skaffold'
    """
    tools: ToolsConfig = Field(
        default_factory=ToolsConfig,
        description="Executable overrides per tool"
    )
    probe: ProbeConfig = Field(
        default_factory=ProbeConfig,
        description="Availability probe"
    )
    launch: LaunchConfig = Field(
        default_factory=LaunchConfig,
        description="Process launch behavior"
    )
    telemetry: TelemetryConfig = Field(
        default_factory=TelemetryConfig,
        description="Usage events"
    )
    labels: dict[str, str] = Field(
        default_factory=lambda: {"ide": "deploykit"},
        description="Labels added to every Skaffold deployment, in order"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
