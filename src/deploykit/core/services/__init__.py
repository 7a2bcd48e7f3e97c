"""
Service layer for deploykit.

Services compose the execution core into clean API surfaces. Interfaces
(CLI, editor integrations) call service methods instead of wiring resolvers,
launchers and reporters themselves.

Design principles:
- Methods accept typed inputs, return typed outputs, raise typed exceptions.
- No Rich, no sys.exit, no print statements; presentation is the caller's job.
- Services are created via factory methods that accept configuration.
"""

from deploykit.core.services.deploy import DeployService, ToolStatus

__all__ = [
    "DeployService",
    "ToolStatus",
]
