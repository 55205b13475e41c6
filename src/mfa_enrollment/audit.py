"""Audit events for MFA enrollment.

Step bodies record these when an optional audit store is configured.
Events never carry codes or secrets.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .ports import IEnrollmentAuditStore


class EnrollmentEventType(Enum):
    """Types of enrollment audit events.

    Event naming follows the pattern: `mfa.<resource>.<action>`
    """

    MFA_ENABLED = "mfa.enabled"
    MFA_FALLBACK_ENABLED = "mfa.fallback_enabled"
    MFA_FAILED = "mfa.failed"
    RECOVERY_CODES_REGENERATED = "mfa.recovery_codes.regenerated"


@dataclass(frozen=True)
class EnrollmentAuditEvent:
    """Enrollment audit event.

    Attributes:
        event_type: The type of event.
        method: Method tag the event concerns.
        timestamp: When the event occurred (UTC).
        success: Whether the operation succeeded.
        error_message: Human-readable error if it failed.
        metadata: Additional event-specific data.
    """

    event_type: EnrollmentEventType
    method: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to a JSON-serialisable dictionary."""
        return {
            "event_type": self.event_type.value,
            "method": self.method,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "error_message": self.error_message,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════════
# EVENT FACTORY FUNCTIONS
# ═══════════════════════════════════════════════════════════════


def mfa_enabled_event(
    method: str, *, is_fallback: bool = False
) -> EnrollmentAuditEvent:
    """Create a method enrolled event."""
    return EnrollmentAuditEvent(
        event_type=(
            EnrollmentEventType.MFA_FALLBACK_ENABLED
            if is_fallback
            else EnrollmentEventType.MFA_ENABLED
        ),
        method=method,
    )


def mfa_failed_event(
    method: str,
    error_message: str,
    *,
    is_fallback: bool = False,
) -> EnrollmentAuditEvent:
    """Create a failed verification event."""
    return EnrollmentAuditEvent(
        event_type=EnrollmentEventType.MFA_FAILED,
        method=method,
        success=False,
        error_message=error_message,
        metadata={"is_fallback": is_fallback},
    )


def recovery_codes_regenerated_event(count: int) -> EnrollmentAuditEvent:
    """Create a recovery codes regenerated event."""
    return EnrollmentAuditEvent(
        event_type=EnrollmentEventType.RECOVERY_CODES_REGENERATED,
        metadata={"count": count},
    )


class InMemoryEnrollmentAuditStore(IEnrollmentAuditStore):
    """In-memory audit store for testing and development.

    Note:
        Events are lost on restart. Not suitable for production use.
    """

    def __init__(self) -> None:
        self._events: list[EnrollmentAuditEvent] = []
        self._by_type: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: EnrollmentAuditEvent) -> None:
        index = len(self._events)
        self._events.append(event)
        self._by_type[event.event_type.value].append(index)

    def events(
        self,
        event_type: EnrollmentEventType | None = None,
    ) -> list[EnrollmentAuditEvent]:
        """Return recorded events in order, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [self._events[i] for i in self._by_type.get(event_type.value, [])]

    def clear(self) -> None:
        """Clear all stored events."""
        self._events.clear()
        self._by_type.clear()

    def count(self) -> int:
        return len(self._events)


__all__: list[str] = [
    "EnrollmentEventType",
    "EnrollmentAuditEvent",
    "mfa_enabled_event",
    "mfa_failed_event",
    "recovery_codes_regenerated_event",
    "InMemoryEnrollmentAuditStore",
]
