'''
SQLCacheStore keeps the failover state in a database table, so every application process
pointed at the same database shares one view of connection health. It should live on a
database that is independent from the monitored primary and failover connections.
Expired rows are ignored on read; purge_expired() deletes them and runs when the store is
created at startup.

Several processes write the same keys, so put() is a single upsert statement of the
dialect (ON CONFLICT / ON DUPLICATE KEY). Dialects without one update first and insert
when no row matched, retrying the update if a concurrent insert won.
'''

import logging
import time
from typing import Callable

from sqlalchemy import Column, Float, MetaData, String, Table, Text, delete, insert, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

metadata = MetaData()

cache_table = Table(
    "failover_cache",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("tag", String(255), nullable=True, index=True),
    Column("expires_at", Float, nullable=False),
)

_UPDATABLE = ("value", "tag", "expires_at")


def upsert_statement(dialect_name: str, values: dict):
    """
    Return an INSERT that overwrites an existing row with the same key, or None when
    the dialect has no native upsert.
    """
    if dialect_name in ("postgresql", "sqlite"):
        module = postgresql if dialect_name == "postgresql" else sqlite
        stmt = module.insert(cache_table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[cache_table.c.key],
            set_={name: stmt.excluded[name] for name in _UPDATABLE},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(cache_table).values(**values)
        return stmt.on_duplicate_key_update(**{name: stmt.inserted[name] for name in _UPDATABLE})
    return None


class SQLCacheStore(CacheStore):
    supports_tags = True

    def __init__(self, engine: Engine, create_schema: bool = True, clock: Callable[[], float] = time.time):
        self.engine = engine
        self._clock = clock
        if create_schema:
            metadata.create_all(engine, tables=[cache_table])

    def get(self, key, default=None):
        query = select(cache_table.c.value).where(
            cache_table.c.key == key,
            cache_table.c.expires_at > self._clock(),
        )
        with self.engine.connect() as conn:
            value = conn.execute(query).scalar()
        return default if value is None else value

    def put(self, key, value, ttl_seconds, tag=None):
        values = {"key": key, "value": value, "tag": tag, "expires_at": self._clock() + ttl_seconds}
        stmt = upsert_statement(self.engine.dialect.name, values)
        if stmt is None:
            self._update_or_insert(values)
            return
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def _update_or_insert(self, values: dict):
        changes = {name: values[name] for name in _UPDATABLE}
        query = update(cache_table).where(cache_table.c.key == values["key"]).values(**changes)
        with self.engine.begin() as conn:
            if conn.execute(query).rowcount:
                return
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(cache_table).values(**values))
        except IntegrityError:
            # another writer inserted the key in between; last write wins
            logger.debug(f"[SQLCacheStore] concurrent insert of '{values['key']}', updating instead")
            with self.engine.begin() as conn:
                conn.execute(query)

    def flush_tag(self, tag):
        with self.engine.begin() as conn:
            conn.execute(delete(cache_table).where(cache_table.c.tag == tag))

    def purge_expired(self) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(delete(cache_table).where(cache_table.c.expires_at <= self._clock()))
        return result.rowcount
