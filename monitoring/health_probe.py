'''
HealthProbe checks whether a single named connection answers. It resolves the engine by
name and runs the configured lightweight query (SELECT 1 by default). Whatever goes wrong,
an unknown name, a refused connection, a timeout or a failing query, the answer is False.
The probe never raises, so the ConnectionStateStore can count failures uniformly.

The timeout is applied to the probe query only, through the session statement timeout of
the dialect, and is reverted before the connection goes back to the pool.
'''

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# dialect -> (apply, reset); reset None means the setting is transaction scoped
_TIMEOUT_OVERRIDES = {
    "postgresql": ("SET LOCAL statement_timeout = {milliseconds}", None),
    "mysql": (
        "SET SESSION max_execution_time = {milliseconds}",
        "SET SESSION max_execution_time = DEFAULT",
    ),
    "mariadb": (
        "SET SESSION max_statement_time = {seconds}",
        "SET SESSION max_statement_time = DEFAULT",
    ),
}


def timeout_statements(dialect, timeout_seconds: float) -> Optional[Tuple[str, Optional[str]]]:
    name = dialect.name
    if name == "mysql" and getattr(dialect, "is_mariadb", False):
        name = "mariadb"
    override = _TIMEOUT_OVERRIDES.get(name)
    if override is None or not timeout_seconds:
        return None
    apply_sql, reset_sql = override
    return (
        apply_sql.format(milliseconds=int(timeout_seconds * 1000), seconds=timeout_seconds),
        reset_sql,
    )


class HealthProbe:
    def __init__(self, resolver, query: str = "SELECT 1", timeout_seconds: float = 5):
        """
        resolver must implement:
        - resolve(connection_name) -> Engine
        """
        self.resolver = resolver
        self.query = query
        self.timeout_seconds = timeout_seconds
        self._unbounded_dialects = set()

    def ping(self, engine):
        with engine.connect() as conn:
            override = timeout_statements(conn.dialect, self.timeout_seconds)
            if override is None:
                self._note_unbounded(conn.dialect.name)
            elif not self._apply_timeout(conn, override[0]):
                override = None
            try:
                conn.exec_driver_sql(self.query)
            finally:
                if override is not None:
                    self._restore_timeout(conn, override[1])

    def _note_unbounded(self, dialect_name: str):
        if not self.timeout_seconds or dialect_name in self._unbounded_dialects:
            return
        self._unbounded_dialects.add(dialect_name)
        logger.warning(
            f"[HealthProbe] no statement timeout available for dialect '{dialect_name}', "
            f"probe queries there are not bounded by {self.timeout_seconds}s"
        )

    def _apply_timeout(self, conn, apply_sql: str) -> bool:
        try:
            conn.exec_driver_sql(apply_sql)
        except SQLAlchemyError as e:
            logger.debug(f"[HealthProbe] statement timeout not supported here, probing without it: {e}")
            conn.rollback()
            return False
        return True

    def _restore_timeout(self, conn, reset_sql: Optional[str]):
        try:
            conn.rollback()
            if reset_sql is not None:
                conn.exec_driver_sql(reset_sql)
                conn.commit()
        except Exception as e:
            # the narrowed timeout must not reach the pool
            logger.warning(f"[HealthProbe] could not restore statement timeout, invalidating connection: {e}")
            conn.invalidate()

    def is_healthy(self, connection_name: str) -> bool:
        try:
            engine = self.resolver.resolve(connection_name)
            self.ping(engine)
        except SQLAlchemyError as e:
            logger.warning(f"[HealthProbe] health check for '{connection_name}' failed: {e}")
            return False
        except Exception as e:
            logger.warning(
                f"[HealthProbe] health check for '{connection_name}' failed "
                f"with {type(e).__name__}: {e}",
                exc_info=True,
            )
            return False

        logger.debug(f"[HealthProbe] health check for '{connection_name}' passed")
        return True
