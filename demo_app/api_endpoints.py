"""
FastAPI endpoints for the demo application.

- GET  /users                    -> SELECT through the frontend engine (active connection)
- GET  /failover/status          -> active connection, stored health, recent events
- POST /failover/check           -> run the health check now (?connection=name for one)
- POST /failover/force/primary   -> operator override, resets stored health
- POST /failover/force/failover  -> operator override, keeps stored health
- POST /failover/flush           -> clear all stored statuses
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy import text

router = APIRouter()


def _get_app_state(request: Request):
    return request.app.state


def _connection_info(state, name: str) -> dict:
    return {
        "name": name,
        "status": state.state_store.get_connection_status(name).value,
        "failures": state.state_store.get_failure_count(name),
    }


@router.get("/users")
def list_users(request: Request):
    state = _get_app_state(request)
    with state.frontend_engine.connect() as conn:
        result = conn.execute(text("SELECT id, name FROM users ORDER BY id"))
        return {"rows": result.fetchall(), "served_by": result.served_by}


@router.get("/failover/status")
def failover_status(request: Request):
    state = _get_app_state(request)
    roles = state.roles
    return {
        "active_connection": state.coordinator.get_current_active_connection_name(),
        "primary": _connection_info(state, roles.primary),
        "failover": _connection_info(state, roles.failover),
        "blocking": roles.blocking,
        "recent_events": [e.to_dict() for e in state.event_recorder.events],
    }


@router.post("/failover/check")
def run_health_check(request: Request, connection: Optional[str] = None):
    state = _get_app_state(request)
    report = state.health_check_runner.run(connection)
    if report.exit_code != 0:
        raise HTTPException(status_code=404, detail=f"Connection '{connection}' is not configured")
    active = state.coordinator.determine_and_set_connection()
    return {"active_connection": active, **report.to_dict()}


@router.post("/failover/force/primary")
def force_primary(request: Request):
    state = _get_app_state(request)
    return {"active_connection": state.coordinator.force_switch_to_primary()}


@router.post("/failover/force/failover")
def force_failover(request: Request):
    state = _get_app_state(request)
    return {"active_connection": state.coordinator.force_switch_to_failover()}


@router.post("/failover/flush")
def flush_statuses(request: Request):
    state = _get_app_state(request)
    return {"flushed": state.state_store.flush_all_statuses()}
