from typing import Any, Dict, List


class SimpleResult:
    """
    Minimal result-like object that provides:
    - fetchall() -> list[dict]
    - first()
    - iterable
    and remembers which connection served the query.
    """
    def __init__(self, rows: List[Dict[str, Any]], served_by: str = None):
        self._rows = rows or []
        self.served_by = served_by

    def fetchall(self):
        return self._rows

    def first(self):
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self._rows)


def _rows(result) -> List[Dict[str, Any]]:
    if not result.returns_rows:
        return []
    return [dict(r) for r in result.mappings().all()]


class ProxyConnection:
    """
    Connection returned by FrontendProxyEngine.connect(). The target engine is picked when
    the connection is opened, so a switch never moves a statement half way.
    """
    def __init__(self, engine, connection_name: str, transactional: bool = False):
        self._connection_name = connection_name
        self._ctx = engine.begin() if transactional else engine.connect()
        self._conn = None

    def __enter__(self):
        self._conn = self._ctx.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb):
        return self._ctx.__exit__(exc_type, exc, tb)

    def execute(self, statement, *multiparams, **params):
        res = self._conn.execute(statement, *multiparams, **params)
        return SimpleResult(_rows(res), served_by=self._connection_name)


class FrontendProxyEngine:
    """
    Engine-like proxy object used by the application as the "frontend engine".
    It exposes minimal engine API: connect() and begin(), both delegated to the engine
    of the connection currently active in the ConnectionManager.
    """
    def __init__(self, connection_manager):
        self.connection_manager = connection_manager

    def _target(self):
        name = self.connection_manager.get_active_connection()
        return self.connection_manager.resolver.resolve(name), name

    def connect(self):
        engine, name = self._target()
        return ProxyConnection(engine, name)

    def begin(self):
        engine, name = self._target()
        return ProxyConnection(engine, name, transactional=True)
