import pytest

from monitoring.failover_coordinator import FailoverCoordinator
from monitoring.observer import EventRecorder
from monitoring.roles import ConnectionRoles
from monitoring.state_store import ConnectionStateStore
from monitoring.subject import Subject
from storage.cache_store import CacheStore
from storage.memory_store import InMemoryTTLStore


class ScriptedProbe:
    """Probe whose answer per connection is set by the test."""
    def __init__(self, **results):
        self.results = dict(results)
        self.calls = []

    def set(self, name, healthy):
        self.results[name] = healthy

    def is_healthy(self, connection_name):
        self.calls.append(connection_name)
        return self.results.get(connection_name, False)


class FakeConnectionManager:
    def __init__(self, default="primary", known=("primary", "failover", "blocking")):
        self.active = default
        self.known = set(known)
        self.applied = []

    def set_active_connection(self, name):
        if name not in self.known:
            raise KeyError(name)
        self.active = name
        self.applied.append(name)

    def get_active_connection(self):
        return self.active


class BrokenStore(CacheStore):
    supports_tags = True

    def __init__(self):
        self.error = ConnectionError("cache server refused connection")

    def get(self, key, default=None):
        raise self.error

    def put(self, key, value, ttl_seconds, tag=None):
        raise self.error

    def flush_tag(self, tag):
        raise self.error


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def roles():
    return ConnectionRoles("primary", "failover", "blocking")


@pytest.fixture
def events():
    return Subject()


@pytest.fixture
def recorder(events):
    rec = EventRecorder()
    events.add_observer(rec)
    return rec


@pytest.fixture
def probe():
    return ScriptedProbe()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return InMemoryTTLStore(clock=clock)


@pytest.fixture
def make_state_store(probe, memory_cache, events, roles):
    def _make(failure_threshold=3, ttl_seconds=60, store=None, **kwargs):
        return ConnectionStateStore(
            probe,
            store if store is not None else memory_cache,
            events,
            roles,
            failure_threshold=failure_threshold,
            ttl_seconds=ttl_seconds,
            **kwargs,
        )
    return _make


@pytest.fixture
def state_store(make_state_store):
    return make_state_store()


@pytest.fixture
def connection_manager():
    return FakeConnectionManager()


@pytest.fixture
def coordinator(state_store, connection_manager, events, roles):
    return FailoverCoordinator(state_store, connection_manager, events, roles)


@pytest.fixture
def broken_store():
    return BrokenStore()
