"""
Audit Sink Interface

DESIGN DECISION: The engine does not know where audit events end up.
A collaborator (telemetry exporter, test harness, persistence layer)
implements AuditSink and hands it to the AuditLogger.
"""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Optional

from splitledger.models.audit import AuditEvent, AuditEventType, AuditSeverity


class AuditSinkError(Exception):
    """Raised by a sink that could not accept an event."""
    pass


class AuditSink(ABC):
    """Destination for audit events."""

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Accept an audit event.

        Returns:
            True if the event was stored

        Raises:
            AuditSinkError: If the sink is unavailable
        """
        pass


class InMemoryAuditSink(AuditSink):
    """
    Keeps events in a list.

    Used by tests and by callers that poll for consistency violations.
    """

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = Lock()

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    @property
    def events(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._events)

    def events_of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def violations(self, min_severity: Optional[AuditSeverity] = None) -> list[AuditEvent]:
        """Events at warning level or above (or at min_severity and above)."""
        order = list(AuditSeverity)
        threshold = order.index(min_severity or AuditSeverity.WARNING)
        return [e for e in self.events if order.index(e.severity) >= threshold]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
