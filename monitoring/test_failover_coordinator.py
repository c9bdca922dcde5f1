import pytest

from monitoring.connection_status import ConnectionStatus
from monitoring.events import EventKind, FailoverEvent
from monitoring.failover_coordinator import FailoverCoordinator


def _set(state_store, primary, failover):
    state_store.set_connection_status("primary", primary[0], primary[1])
    state_store.set_connection_status("failover", failover[0], failover[1])


HEALTHY = (ConnectionStatus.HEALTHY, 0)
DOWN = (ConnectionStatus.DOWN, 3)
UNKNOWN_EMPTY = (ConnectionStatus.UNKNOWN, 0)
UNKNOWN_FAILING = (ConnectionStatus.UNKNOWN, 1)


@pytest.mark.parametrize("primary, failover, expected", [
    (HEALTHY, HEALTHY, "primary"),
    (HEALTHY, DOWN, "primary"),
    (DOWN, HEALTHY, "failover"),
    (UNKNOWN_FAILING, HEALTHY, "failover"),
    (DOWN, DOWN, "blocking"),
    (UNKNOWN_FAILING, UNKNOWN_EMPTY, "blocking"),
    (DOWN, UNKNOWN_EMPTY, "blocking"),
    (UNKNOWN_EMPTY, UNKNOWN_EMPTY, "primary"),
])
def test_resolve_active_connection_priority(coordinator, state_store, primary, failover, expected):
    _set(state_store, primary, failover)
    assert coordinator.resolve_active_connection() == expected


def test_empty_state_store_defaults_to_primary(coordinator):
    assert coordinator.resolve_active_connection() == "primary"


def test_first_decision_switches_and_reports_no_previous(coordinator, connection_manager, recorder):
    assert coordinator.determine_and_set_connection() == "primary"
    assert connection_manager.applied == ["primary"]
    assert recorder.events[-1] == FailoverEvent(EventKind.SWITCHED_TO_PRIMARY, connection="primary", previous=None)


def test_unchanged_state_does_not_switch_twice(coordinator, state_store, connection_manager, recorder):
    _set(state_store, DOWN, HEALTHY)
    coordinator.determine_and_set_connection()
    recorder.clear()

    assert coordinator.determine_and_set_connection() == "failover"
    assert connection_manager.applied == ["failover"]
    assert recorder.kinds() == []


def test_limited_functionality_is_announced_once(coordinator, state_store, recorder):
    _set(state_store, DOWN, DOWN)
    for _ in range(3):
        assert coordinator.determine_and_set_connection() == "blocking"

    assert recorder.kinds() == [EventKind.LIMITED_FUNCTIONALITY_ACTIVATED]
    assert recorder.events[0].connection == "blocking"


def test_leaving_blocking_emits_switch_then_exit(coordinator, state_store, recorder):
    _set(state_store, DOWN, DOWN)
    coordinator.determine_and_set_connection()
    recorder.clear()

    _set(state_store, DOWN, HEALTHY)
    assert coordinator.determine_and_set_connection() == "failover"

    assert list(recorder.events) == [
        FailoverEvent(EventKind.SWITCHED_TO_FAILOVER, connection="failover", previous="blocking"),
        FailoverEvent(EventKind.EXITED_LIMITED_FUNCTIONALITY, connection="failover"),
    ]


def test_primary_to_failover_and_back(coordinator, state_store, recorder):
    _set(state_store, HEALTHY, HEALTHY)
    coordinator.determine_and_set_connection()
    _set(state_store, DOWN, HEALTHY)
    coordinator.determine_and_set_connection()
    _set(state_store, HEALTHY, HEALTHY)
    coordinator.determine_and_set_connection()

    assert [(e.kind, e.previous, e.connection) for e in recorder.events] == [
        (EventKind.SWITCHED_TO_PRIMARY, None, "primary"),
        (EventKind.SWITCHED_TO_FAILOVER, "primary", "failover"),
        (EventKind.SWITCHED_TO_PRIMARY, "failover", "primary"),
    ]


def test_force_switch_to_primary_resets_health(coordinator, state_store, connection_manager, recorder):
    _set(state_store, DOWN, DOWN)
    coordinator.determine_and_set_connection()
    recorder.clear()

    assert coordinator.force_switch_to_primary() == "primary"

    assert state_store.is_connection_healthy("primary")
    assert state_store.is_connection_healthy("failover")
    assert connection_manager.active == "primary"
    assert recorder.kinds() == [EventKind.SWITCHED_TO_PRIMARY, EventKind.EXITED_LIMITED_FUNCTIONALITY]


def test_force_switch_to_primary_when_already_there(coordinator, state_store, connection_manager, recorder):
    coordinator.determine_and_set_connection()
    recorder.clear()

    coordinator.force_switch_to_primary()

    assert connection_manager.applied == ["primary"]
    assert recorder.kinds() == []


def test_force_switch_to_failover_keeps_health(coordinator, state_store, connection_manager, recorder):
    _set(state_store, HEALTHY, DOWN)
    coordinator.determine_and_set_connection()
    recorder.clear()

    assert coordinator.force_switch_to_failover() == "failover"
    assert connection_manager.active == "failover"
    assert state_store.is_connection_down("failover")
    assert list(recorder.events) == [
        FailoverEvent(EventKind.SWITCHED_TO_FAILOVER, connection="failover", previous="primary"),
    ]

    coordinator.force_switch_to_failover()
    assert len(recorder.events) == 1


def test_current_connection_falls_back_to_host_default(coordinator, connection_manager, state_store):
    connection_manager.active = "something-configured"
    assert coordinator.get_current_active_connection_name() == "something-configured"

    _set(state_store, DOWN, HEALTHY)
    coordinator.determine_and_set_connection()
    connection_manager.active = "changed-elsewhere"
    assert coordinator.get_current_active_connection_name() == "failover"


def test_fresh_coordinator_starts_without_memory(state_store, connection_manager, events, roles, recorder):
    _set(state_store, DOWN, HEALTHY)
    FailoverCoordinator(state_store, connection_manager, events, roles).determine_and_set_connection()
    FailoverCoordinator(state_store, connection_manager, events, roles).determine_and_set_connection()

    assert recorder.kinds() == [EventKind.SWITCHED_TO_FAILOVER, EventKind.SWITCHED_TO_FAILOVER]
    assert all(e.previous is None for e in recorder.events)


def test_failed_switch_propagates_and_keeps_memory(coordinator, state_store, connection_manager, recorder):
    coordinator.determine_and_set_connection()
    connection_manager.known.discard("failover")
    _set(state_store, DOWN, HEALTHY)

    with pytest.raises(KeyError):
        coordinator.determine_and_set_connection()

    assert coordinator.get_current_active_connection_name() == "primary"
    assert recorder.kinds() == [EventKind.SWITCHED_TO_PRIMARY]


def test_broken_cache_still_resolves_to_primary(make_state_store, broken_store, connection_manager, events, roles, recorder):
    store = make_state_store(store=broken_store)
    coordinator = FailoverCoordinator(store, connection_manager, events, roles)

    assert coordinator.determine_and_set_connection() == "primary"
    assert len(recorder.of_kind(EventKind.CACHE_UNAVAILABLE)) == 4
    assert recorder.of_kind(EventKind.SWITCHED_TO_PRIMARY)
