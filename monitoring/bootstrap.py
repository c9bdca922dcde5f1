"""
Wiring of the failover components from a FailoverConfig, shared by the
health-check command and the demo application.
"""

import logging
from typing import Union

from sqlalchemy import create_engine

from config.config_loader import ConfigLoader
from config.settings import FailoverConfig
from connection.connection_manager import ConnectionManager
from connection.engine_factory import EngineFactory
from monitoring.failover_coordinator import FailoverCoordinator
from monitoring.health_check_command import HealthCheckRunner
from monitoring.health_probe import HealthProbe
from monitoring.roles import ConnectionRoles
from monitoring.state_store import ConnectionStateStore
from monitoring.subject import Subject
from storage.memory_store import InMemoryTTLStore
from storage.sql_store import SQLCacheStore

logger = logging.getLogger(__name__)


def create_cache_store(config: FailoverConfig):
    if config.cache.backend == "sql":
        url = config.cache.url or "sqlite:///failover_state.db"
        logger.info(f"[Startup] using shared SQL cache store at {url}")
        store = SQLCacheStore(create_engine(url, echo=False))
        purged = store.purge_expired()
        if purged:
            logger.info(f"[Startup] removed {purged} expired health records")
        return store
    logger.info("[Startup] using in-memory cache store (state is not shared between processes)")
    return InMemoryTTLStore()


def init_components(config: Union[str, FailoverConfig], cache_store=None):
    """
    Build every failover component from a configuration file path or a parsed config.
    Return a dict with created objects.
    """
    if isinstance(config, str):
        config = ConfigLoader(config).load()

    roles = ConnectionRoles.from_names(
        config.connections.primary,
        config.connections.failover,
        config.connections.blocking,
    )

    # create engines for all configured connections (+ the blocking one)
    ef = EngineFactory(config.databases, blocking_name=roles.blocking)
    engines = ef.create_engines()

    events = Subject()
    probe = HealthProbe(ef, query=config.health_check.query, timeout_seconds=config.health_check.timeout_seconds)
    state_store = ConnectionStateStore(
        probe,
        cache_store if cache_store is not None else create_cache_store(config),
        events,
        roles,
        failure_threshold=config.health_check.failure_threshold,
        ttl_seconds=config.cache.ttl_seconds,
        prefix=config.cache.prefix,
        tag=config.cache.tag,
    )
    connection_manager = ConnectionManager(ef, default_connection=roles.primary)
    coordinator = FailoverCoordinator(state_store, connection_manager, events, roles)
    runner = HealthCheckRunner(
        state_store,
        roles,
        events,
        known_connections=engines.keys(),
        dispatch_lifecycle_events=config.dispatch_command_lifecycle_events,
    )

    return {
        "config": config,
        "roles": roles,
        "engine_factory": ef,
        "engines": engines,
        "events": events,
        "health_probe": probe,
        "state_store": state_store,
        "connection_manager": connection_manager,
        "coordinator": coordinator,
        "health_check_runner": runner,
    }
