'''
ConnectionStateStore turns a stream of probe results into a status per connection.
A connection only becomes DOWN after failure_threshold consecutive failed probes and
becomes HEALTHY again on the first successful one. Records live in a CacheStore with a
TTL; an expired record reads back as UNKNOWN with zero failures.

The store is the only place that talks to the cache. Any cache error is turned into a
CACHE_UNAVAILABLE event plus a safe default (UNKNOWN / 0), callers never see it.
The failure count is read, incremented and written back without a lock; two overlapping
probes of the same connection can lose one increment, which delays DOWN by one cycle.
'''

import logging
from typing import Optional

from monitoring.connection_status import ConnectionHealthRecord, ConnectionStatus
from monitoring.errors import ConfigurationError
from monitoring.events import EventKind, FailoverEvent
from monitoring.roles import ConnectionRole, ConnectionRoles
from monitoring.subject import Subject
from storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

DOWN_EVENTS = {
    ConnectionRole.PRIMARY: EventKind.PRIMARY_DOWN,
    ConnectionRole.FAILOVER: EventKind.FAILOVER_DOWN,
}

RESTORED_EVENTS = {
    ConnectionRole.PRIMARY: EventKind.PRIMARY_RESTORED,
    ConnectionRole.FAILOVER: EventKind.FAILOVER_RESTORED,
}


class ConnectionStateStore:
    def __init__(
        self,
        probe,
        cache: CacheStore,
        events: Subject,
        roles: ConnectionRoles,
        failure_threshold: int = 3,
        ttl_seconds: int = 300,
        prefix: str = "dynamic_db_failover_status",
        tag: Optional[str] = "dynamic-db-failover",
    ):
        """
        probe must implement:
        - is_healthy(connection_name) -> bool
        """
        if failure_threshold < 1:
            raise ConfigurationError(f"failure_threshold must be at least 1, got {failure_threshold}")
        if ttl_seconds <= 0:
            raise ConfigurationError(f"ttl_seconds must be positive, got {ttl_seconds}")

        self.probe = probe
        self.cache = cache
        self.events = events
        self.roles = roles
        self.failure_threshold = failure_threshold
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.tag = tag

        if self.tag and not cache.supports_tags:
            logger.warning(
                f"[ConnectionStateStore] {type(cache).__name__} does not support tags, "
                "flush_all_statuses() will not be able to clear stored statuses"
            )
            self.tag = None

    def cache_key(self, connection_name: str) -> str:
        return f"{self.prefix}_conn_status_{connection_name}"

    # ----------------------
    # State machine
    # ----------------------
    def update_connection_status(self, connection_name: str) -> ConnectionHealthRecord:
        """Probe the connection and record the result. Returns the record that was written."""
        is_healthy = self.probe.is_healthy(connection_name)
        previous_status = self.get_connection_status(connection_name)
        role = self.roles.classify(connection_name)

        if is_healthy:
            record = self.set_connection_status(connection_name, ConnectionStatus.HEALTHY, 0)
            self.events.notify(FailoverEvent(EventKind.CONNECTION_HEALTHY, connection=connection_name))

            if previous_status == ConnectionStatus.DOWN and role in RESTORED_EVENTS:
                logger.info(f"[ConnectionStateStore] {role.value} connection '{connection_name}' restored")
                self.events.notify(FailoverEvent(RESTORED_EVENTS[role], connection=connection_name))
            return record

        failures = self.get_failure_count(connection_name) + 1

        if failures < self.failure_threshold:
            logger.debug(
                f"[ConnectionStateStore] '{connection_name}' unhealthy, "
                f"failure {failures}/{self.failure_threshold}"
            )
            return self.set_connection_status(connection_name, ConnectionStatus.UNKNOWN, failures)

        record = self.set_connection_status(connection_name, ConnectionStatus.DOWN, failures)
        if previous_status == ConnectionStatus.DOWN:
            logger.debug(f"[ConnectionStateStore] '{connection_name}' still DOWN after {failures} failures")
            return record

        logger.warning(f"[ConnectionStateStore] '{connection_name}' marked as DOWN after {failures} failures")
        if role in DOWN_EVENTS:
            self.events.notify(FailoverEvent(DOWN_EVENTS[role], connection=connection_name))
        else:
            logger.warning(
                f"[ConnectionStateStore] '{connection_name}' is neither primary nor failover, "
                "no down event dispatched"
            )
        return record

    # ----------------------
    # Reads
    # ----------------------
    def _load(self, connection_name: str) -> Optional[ConnectionHealthRecord]:
        raw = self.cache.get(self.cache_key(connection_name))
        if raw is None:
            return None
        try:
            return ConnectionHealthRecord.deserialize(raw)
        except ValueError as e:
            logger.warning(f"[ConnectionStateStore] ignoring stored state of '{connection_name}': {e}")
            return None

    def get_connection_status(self, connection_name: str) -> ConnectionStatus:
        try:
            record = self._load(connection_name)
        except Exception as e:
            self._cache_unavailable(f"read status of '{connection_name}'", e)
            return ConnectionStatus.UNKNOWN
        return record.status if record is not None else ConnectionStatus.UNKNOWN

    def get_failure_count(self, connection_name: str) -> int:
        try:
            record = self._load(connection_name)
        except Exception as e:
            self._cache_unavailable(f"read failure count of '{connection_name}'", e)
            return 0
        return record.consecutive_failures if record is not None else 0

    def is_connection_healthy(self, connection_name: str) -> bool:
        return self.get_connection_status(connection_name) == ConnectionStatus.HEALTHY

    def is_connection_down(self, connection_name: str) -> bool:
        return self.get_connection_status(connection_name) == ConnectionStatus.DOWN

    def is_connection_unknown(self, connection_name: str) -> bool:
        return self.get_connection_status(connection_name) == ConnectionStatus.UNKNOWN

    # ----------------------
    # Writes
    # ----------------------
    def set_connection_status(
        self,
        connection_name: str,
        status: ConnectionStatus,
        failure_count: Optional[int] = None,
    ) -> ConnectionHealthRecord:
        """
        Overwrite the stored record without dispatching health events.
        HEALTHY always stores 0 failures, DOWN stores at least failure_threshold.
        """
        if failure_count is not None and failure_count < 0:
            raise ValueError(f"failure_count must not be negative, got {failure_count}")

        if status == ConnectionStatus.HEALTHY:
            failures = 0
        elif status == ConnectionStatus.DOWN:
            failures = max(failure_count or 0, self.failure_threshold)
        else:
            failures = failure_count or 0

        record = ConnectionHealthRecord(connection_name, status, failures)
        try:
            self.cache.put(self.cache_key(connection_name), record.serialize(), self.ttl_seconds, tag=self.tag)
        except Exception as e:
            self._cache_unavailable(f"store status of '{connection_name}'", e)
            return record

        logger.debug(f"[ConnectionStateStore] '{connection_name}' stored as {status.value} ({failures} failures)")
        return record

    def flush_all_statuses(self) -> bool:
        if not self.tag:
            logger.warning(
                "[ConnectionStateStore] cache store has no tag support, skipping flush. "
                "Statuses expire on their own after the configured TTL."
            )
            return False
        try:
            self.cache.flush_tag(self.tag)
        except Exception as e:
            self._cache_unavailable("flush stored statuses", e)
            return False
        logger.info(f"[ConnectionStateStore] all statuses flushed using tag '{self.tag}'")
        return True

    def _cache_unavailable(self, action: str, error: Exception):
        logger.critical(f"[ConnectionStateStore] failed to {action}: {error}")
        self.events.notify(FailoverEvent(EventKind.CACHE_UNAVAILABLE, error=error))
