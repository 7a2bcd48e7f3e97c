"""
Usage event reporting for tool invocations.

The executor notifies an EventReporter once per invocation, after its
terminal state is known. Transport and storage belong to the reporter
implementation; the executor only depends on the protocol below.

Event names have the form ``<tool>.<mode>`` (e.g. ``skaffold.dev``). Metadata
carries the tool and mode and, on failure, the error category. Exception
messages are never reported since they can contain local paths.
"""

import logging
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

METADATA_TOOL_KEY = "tool"
METADATA_MODE_KEY = "mode"
METADATA_ERROR_CATEGORY_KEY = "error.category"


@runtime_checkable
class EventReporter(Protocol):
    """Receives one success/failure notification per invocation."""

    def report(self, event_name: str, succeeded: bool, metadata: Mapping[str, str]) -> None:
        """
        Record the outcome of an invocation.

        Args:
            event_name: Event identifier (``<tool>.<mode>``)
            succeeded: Whether the invocation reached a successful terminal state
            metadata: Ordered string metadata; includes the error category on failure
        """
        ...


class NullEventReporter:
    """Reporter that discards every event."""

    def report(self, event_name: str, succeeded: bool, metadata: Mapping[str, str]) -> None:
        return None


class LoggingEventReporter:
    """
    Reporter that emits each event as a log record.

    Records go to the ``deploykit.telemetry`` logger so they can be routed
    or silenced independently of the rest of the application.
    """

    def __init__(self, event_logger: logging.Logger | None = None) -> None:
        self.event_logger = event_logger or logging.getLogger("deploykit.telemetry")

    def report(self, event_name: str, succeeded: bool, metadata: Mapping[str, str]) -> None:
        outcome = "success" if succeeded else "failure"
        details = " ".join(f"{key}={value}" for key, value in metadata.items())
        self.event_logger.info(f"{event_name} {outcome} {details}".rstrip())


__all__ = [
    "EventReporter",
    "LoggingEventReporter",
    "NullEventReporter",
    "METADATA_ERROR_CATEGORY_KEY",
    "METADATA_MODE_KEY",
    "METADATA_TOOL_KEY",
]
