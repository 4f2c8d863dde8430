"""Diagnostics sinks for structural anomalies found while flattening.

The engine never raises on malformed input. Cycles and broken parent links
are recovered from and reported here instead, so callers can observe them
without the engine being coupled to any particular output.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol


logger = logging.getLogger(__name__)

CYCLE = "cycle"
ORPHANS_RECOVERED = "orphans_recovered"
ORPHANS_DROPPED = "orphans_dropped"


@dataclass(frozen=True)
class DiagnosticEvent:
    """A single non-fatal anomaly.

    Attributes:
        kind: One of CYCLE, ORPHANS_RECOVERED, ORPHANS_DROPPED.
        message: Human readable description.
        uuids: Records involved, in the order they were encountered.
    """

    kind: str
    message: str
    uuids: tuple[str, ...] = ()


class DiagnosticsSink(Protocol):
    def report(self, event: DiagnosticEvent) -> None: ...


class NullDiagnostics:
    """Discards every event."""

    def report(self, event: DiagnosticEvent) -> None:  # noqa: ARG002
        return None


class LoggingDiagnostics:
    """Forwards events to the module logger.

    Defaults to DEBUG so that a flatten on every UI update stays quiet unless
    the application opts in.
    """

    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def report(self, event: DiagnosticEvent) -> None:
        logger.log(self.level, "[%s] %s", event.kind, event.message)


@dataclass
class RecordingDiagnostics:
    """Keeps every event in memory, in report order."""

    events: list[DiagnosticEvent] = field(
        default_factory=lambda: []  # type: list[DiagnosticEvent]
    )

    def report(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]
