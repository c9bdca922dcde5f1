import logging
from threading import Lock

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Holds the name of the connection the application currently runs its queries on.
    The FailoverCoordinator changes it, the FrontendProxyEngine reads it on every
    connect()/begin().
    """
    def __init__(self, resolver, default_connection: str):
        """
        resolver must implement:
        - resolve(connection_name) -> engine, raising UnknownConnectionError
        """
        self.resolver = resolver
        self._default_connection = default_connection
        self._active_connection = default_connection
        self._lock = Lock()

    def set_active_connection(self, name: str):
        self.resolver.resolve(name)
        with self._lock:
            previous = self._active_connection
            self._active_connection = name
        logger.info(f"[ConnectionManager] active connection '{previous}' -> '{name}'")

    def get_active_connection(self) -> str:
        with self._lock:
            return self._active_connection

    def active_engine(self):
        return self.resolver.resolve(self.get_active_connection())

    def reset(self):
        with self._lock:
            self._active_connection = self._default_connection
