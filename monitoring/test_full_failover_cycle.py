from monitoring.connection_status import ConnectionStatus
from monitoring.events import EventKind, FailoverEvent
from monitoring.failover_coordinator import FailoverCoordinator


def test_full_failover_cycle(make_state_store, probe, connection_manager, events, roles, recorder):
    state_store = make_state_store(failure_threshold=1, ttl_seconds=60)
    coordinator = FailoverCoordinator(state_store, connection_manager, events, roles)

    # primary goes down
    probe.set("primary", False)
    state_store.update_connection_status("primary")
    assert state_store.get_connection_status("primary") == ConnectionStatus.DOWN
    assert state_store.get_failure_count("primary") == 1
    assert recorder.kinds() == [EventKind.PRIMARY_DOWN]

    probe.set("failover", True)
    state_store.update_connection_status("failover")
    assert state_store.is_connection_healthy("failover")
    recorder.clear()

    assert coordinator.determine_and_set_connection() == "failover"
    assert list(recorder.events) == [
        FailoverEvent(EventKind.SWITCHED_TO_FAILOVER, connection="failover", previous=None),
    ]
    recorder.clear()

    # failover goes down too
    probe.set("failover", False)
    state_store.update_connection_status("failover")
    assert recorder.kinds() == [EventKind.FAILOVER_DOWN]
    recorder.clear()

    assert coordinator.determine_and_set_connection() == "blocking"
    assert list(recorder.events) == [
        FailoverEvent(EventKind.LIMITED_FUNCTIONALITY_ACTIVATED, connection="blocking"),
    ]
    assert coordinator.determine_and_set_connection() == "blocking"
    assert len(recorder.events) == 1
    recorder.clear()

    # primary comes back
    probe.set("primary", True)
    state_store.update_connection_status("primary")
    assert recorder.kinds() == [EventKind.CONNECTION_HEALTHY, EventKind.PRIMARY_RESTORED]

    assert coordinator.determine_and_set_connection() == "primary"
    assert recorder.kinds()[2:] == [
        EventKind.SWITCHED_TO_PRIMARY,
        EventKind.EXITED_LIMITED_FUNCTIONALITY,
    ]
    assert recorder.of_kind(EventKind.SWITCHED_TO_PRIMARY)[0].previous == "blocking"
    assert connection_manager.applied == ["failover", "blocking", "primary"]

    recorder.clear()
    assert coordinator.determine_and_set_connection() == "primary"
    assert recorder.kinds() == []
