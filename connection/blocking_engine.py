'''
BlockingEngine is the engine registered under the blocking connection name. The
FailoverCoordinator routes to it when neither primary nor failover is usable; every
attempt to run a query or open a transaction on it fails immediately with
AllDatabaseConnectionsUnavailableError instead of hanging on a dead socket.
'''

from types import SimpleNamespace

from monitoring.errors import FailoverError


class AllDatabaseConnectionsUnavailableError(FailoverError):
    def __init__(self, message=None):
        super().__init__(
            message
            or "All configured database connections (primary and failover) are currently "
            "unavailable. Application is in limited functionality mode."
        )


class BlockingConnection:
    dialect = SimpleNamespace(name="blocking")

    def _blocked(self, *args, **kwargs):
        raise AllDatabaseConnectionsUnavailableError()

    execute = _blocked
    exec_driver_sql = _blocked
    scalar = _blocked
    begin = _blocked
    commit = _blocked
    rollback = _blocked

    def invalidate(self):
        pass

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class BlockingEngine:
    driver = "blocking"

    def __init__(self, name: str = "blocking"):
        self.name = name

    def connect(self):
        return BlockingConnection()

    def begin(self):
        raise AllDatabaseConnectionsUnavailableError()

    def dispose(self):
        pass

    def __repr__(self):
        return f"<BlockingEngine {self.name}>"
