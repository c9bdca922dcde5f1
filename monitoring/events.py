'''
Events emitted by the failover components. Every notification is a single FailoverEvent
tagged with an EventKind, so observers can switch on the kind instead of on class names.
Health events come from the ConnectionStateStore, switch events from the FailoverCoordinator
and lifecycle events from the HealthCheckRunner.
'''

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


class EventKind(str, Enum):
    CONNECTION_HEALTHY = "connection_healthy"
    PRIMARY_DOWN = "primary_down"
    FAILOVER_DOWN = "failover_down"
    PRIMARY_RESTORED = "primary_restored"
    FAILOVER_RESTORED = "failover_restored"
    SWITCHED_TO_PRIMARY = "switched_to_primary"
    SWITCHED_TO_FAILOVER = "switched_to_failover"
    LIMITED_FUNCTIONALITY_ACTIVATED = "limited_functionality_activated"
    EXITED_LIMITED_FUNCTIONALITY = "exited_limited_functionality"
    CACHE_UNAVAILABLE = "cache_unavailable"
    HEALTH_CHECK_STARTED = "health_check_started"
    HEALTH_CHECK_FINISHED = "health_check_finished"


@dataclass(frozen=True)
class FailoverEvent:
    """
    kind        - what happened
    connection  - affected connection (new connection for switch events)
    previous    - previously active connection, switch events only (None on first decision)
    error       - underlying exception, CACHE_UNAVAILABLE only
    connections - connections covered by a health check run
    exit_code   - result of a health check run, HEALTH_CHECK_FINISHED only
    """
    kind: EventKind
    connection: Optional[str] = None
    previous: Optional[str] = None
    error: Optional[BaseException] = None
    connections: Tuple[str, ...] = ()
    exit_code: Optional[int] = None
    occurred_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "connection": self.connection,
            "previous": self.previous,
            "error": str(self.error) if self.error is not None else None,
            "connections": list(self.connections),
            "exit_code": self.exit_code,
            "occurred_at": self.occurred_at.isoformat(),
        }
