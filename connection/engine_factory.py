import logging
from typing import Dict, Iterable

from sqlalchemy import create_engine

from config.settings import DatabaseConfig
from connection.blocking_engine import BlockingEngine
from monitoring.errors import UnknownConnectionError

logger = logging.getLogger(__name__)


class EngineFactory:
    """
    Creates one SQLAlchemy engine per configured database and resolves connection
    names to engines for the HealthProbe and the ConnectionManager.
    """
    def __init__(self, databases: Iterable[DatabaseConfig], blocking_name: str = "blocking"):
        self.databases = list(databases)
        self.blocking_name = blocking_name
        self.engines: Dict[str, object] = {}

    def create_engines(self) -> Dict[str, object]:
        for db_cfg in self.databases:
            engine = create_engine(db_cfg.url, echo=False, connect_args=dict(db_cfg.connect_args))
            self.engines[db_cfg.name] = engine
            logger.info(f"[EngineFactory] created engine '{db_cfg.name}' ({engine.dialect.name})")

        if self.blocking_name in self.engines:
            logger.warning(
                f"[EngineFactory] database '{self.blocking_name}' shadows the blocking connection name, "
                "limited functionality mode will route to it"
            )
        else:
            self.engines[self.blocking_name] = BlockingEngine(self.blocking_name)
        return self.engines

    def register(self, name: str, engine):
        self.engines[name] = engine

    def resolve(self, connection_name: str):
        try:
            return self.engines[connection_name]
        except KeyError:
            raise UnknownConnectionError(connection_name) from None

    def names(self):
        return list(self.engines.keys())

    def dispose_all(self):
        for engine in self.engines.values():
            engine.dispose()
