'''
FailoverCoordinator decides which connection the application should use right now and
applies the decision to the host connection manager.

Priority: primary if healthy, otherwise failover if healthy, otherwise the blocking
connection so queries fail fast. When nothing was ever probed (both UNKNOWN with zero
failures) it optimistically picks primary.

The coordinator remembers the connection it applied last. That memory is per process and
starts empty; it is what keeps repeated calls from switching again or re-sending events.
It is called from every request and from the scheduler without a lock; both can only apply
the same decision for the same stored state.
'''

import logging
from typing import Optional

from monitoring.connection_status import ConnectionStatus
from monitoring.events import EventKind, FailoverEvent
from monitoring.roles import ConnectionRole, ConnectionRoles
from monitoring.state_store import ConnectionStateStore
from monitoring.subject import Subject

logger = logging.getLogger(__name__)


class FailoverCoordinator:
    def __init__(
        self,
        state_store: ConnectionStateStore,
        connection_manager,
        events: Subject,
        roles: ConnectionRoles,
    ):
        """
        connection_manager must implement:
        - set_active_connection(name)
        - get_active_connection() -> name
        """
        self.state_store = state_store
        self.connection_manager = connection_manager
        self.events = events
        self.roles = roles
        self._current_connection: Optional[str] = None

    def determine_and_set_connection(self) -> str:
        target = self.resolve_active_connection()
        if target == self._current_connection:
            logger.debug(f"[FailoverCoordinator] no change, still using '{target}'")
            return target
        self._apply(target)
        return target

    def resolve_active_connection(self) -> str:
        primary = self.roles.primary
        failover = self.roles.failover

        primary_status = self.state_store.get_connection_status(primary)
        failover_status = self.state_store.get_connection_status(failover)

        if (
            primary_status == ConnectionStatus.UNKNOWN
            and failover_status == ConnectionStatus.UNKNOWN
            and self.state_store.get_failure_count(primary) == 0
            and self.state_store.get_failure_count(failover) == 0
        ):
            # empty or unreadable state is treated optimistically
            logger.warning(
                f"[FailoverCoordinator] no health state recorded yet (or cache unavailable), "
                f"defaulting to primary '{primary}'"
            )
            return primary

        if primary_status == ConnectionStatus.HEALTHY:
            return primary

        if failover_status == ConnectionStatus.HEALTHY:
            logger.info(
                f"[FailoverCoordinator] primary '{primary}' is {primary_status.value}, "
                f"using failover '{failover}'"
            )
            return failover

        logger.error(
            f"[FailoverCoordinator] primary '{primary}' ({primary_status.value}) and failover "
            f"'{failover}' ({failover_status.value}) are unavailable, using blocking connection"
        )
        return self.roles.blocking

    def force_switch_to_primary(self) -> str:
        """Operator override: trust primary again and reset both stored statuses."""
        primary = self.roles.primary
        logger.info(f"[FailoverCoordinator] forcing switch to primary '{primary}', previous: {self._current_connection}")
        self.state_store.set_connection_status(primary, ConnectionStatus.HEALTHY, 0)
        self.state_store.set_connection_status(self.roles.failover, ConnectionStatus.HEALTHY, 0)

        if self._current_connection == primary:
            logger.info("[FailoverCoordinator] already on primary, no forced switch needed")
            return primary
        self._apply(primary)
        return primary

    def force_switch_to_failover(self) -> str:
        """Operator override: prefer failover. Stored health is left untouched."""
        failover = self.roles.failover
        logger.info(f"[FailoverCoordinator] forcing switch to failover '{failover}', previous: {self._current_connection}")

        if self._current_connection == failover:
            logger.info("[FailoverCoordinator] already on failover, no forced switch needed")
            return failover
        self._apply(failover)
        return failover

    def get_current_active_connection_name(self) -> Optional[str]:
        if self._current_connection is not None:
            return self._current_connection
        return self.connection_manager.get_active_connection()

    def _apply(self, target: str):
        previous = self._current_connection
        logger.info(f"[FailoverCoordinator] switching active connection from '{previous}' to '{target}'")

        # may raise; the remembered connection only changes once the host accepted it
        self.connection_manager.set_active_connection(target)
        self._current_connection = target

        role = self.roles.classify(target)
        left_blocking = previous is not None and self.roles.classify(previous) == ConnectionRole.BLOCKING

        if role == ConnectionRole.PRIMARY:
            self.events.notify(FailoverEvent(EventKind.SWITCHED_TO_PRIMARY, connection=target, previous=previous))
        elif role == ConnectionRole.FAILOVER:
            self.events.notify(FailoverEvent(EventKind.SWITCHED_TO_FAILOVER, connection=target, previous=previous))
        elif role == ConnectionRole.BLOCKING:
            if not left_blocking:
                logger.warning(f"[FailoverCoordinator] limited functionality mode activated, using '{target}'")
                self.events.notify(FailoverEvent(EventKind.LIMITED_FUNCTIONALITY_ACTIVATED, connection=target))
            return

        if left_blocking:
            logger.info(f"[FailoverCoordinator] exiting limited functionality mode, now on '{target}'")
            self.events.notify(FailoverEvent(EventKind.EXITED_LIMITED_FUNCTIONALITY, connection=target))
