"""
Demo application main module.
Builds the failover components from the YAML configuration, puts them on app.state,
re-evaluates the active connection on every request (middleware) and probes the
primary and failover connections on a fixed interval (background task).
Queries go through a FrontendProxyEngine, so they always run on the active connection.
"""

import asyncio
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from connection.blocking_engine import AllDatabaseConnectionsUnavailableError
from connection.proxy_engine import FrontendProxyEngine
from monitoring.bootstrap import init_components
from monitoring.observer import EventRecorder, LoggingObserver

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.environ.get("FAILOVER_CONFIG", "config/database_config.yaml")


async def _health_check_loop(runner, interval: float):
    """
    Periodically run health checks.
    Runs in background task created on startup.
    """
    try:
        while True:
            await asyncio.to_thread(runner.run)
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        return


def _prepare_databases(engines: dict, blocking_name: str):
    # create "users" table on every real backend
    for name, eng in engines.items():
        if name == blocking_name:
            continue
        try:
            with eng.begin() as conn:
                conn.execute(text("CREATE TABLE IF NOT EXISTS users (id INTEGER PRIMARY KEY, name VARCHAR(255))"))
        except SQLAlchemyError as e:
            logger.warning(f"[Startup] database {name} is unavailable: {type(e).__name__}")


def create_demo_app(config=DEFAULT_CONFIG_PATH, cache_store=None, run_health_checks: bool = True) -> FastAPI:
    app = FastAPI(title="Dynamic DB Failover Demo App")
    if isinstance(config, str):
        os.makedirs("data", exist_ok=True)

    components = init_components(config, cache_store=cache_store)
    recorder = EventRecorder(maxlen=100)
    components["events"].add_observer(LoggingObserver())
    components["events"].add_observer(recorder)

    # store components on app.state so routers/endpoints can access them
    app.state.config = components["config"]
    app.state.roles = components["roles"]
    app.state.engine_factory = components["engine_factory"]
    app.state.state_store = components["state_store"]
    app.state.connection_manager = components["connection_manager"]
    app.state.coordinator = components["coordinator"]
    app.state.health_check_runner = components["health_check_runner"]
    app.state.event_recorder = recorder
    app.state.frontend_engine = FrontendProxyEngine(components["connection_manager"])

    _prepare_databases(components["engines"], components["roles"].blocking)

    from demo_app.api_endpoints import router as api_router
    app.include_router(api_router)

    @app.middleware("http")
    async def select_active_connection(request: Request, call_next):
        await asyncio.to_thread(request.app.state.coordinator.determine_and_set_connection)
        return await call_next(request)

    @app.on_event("startup")
    async def on_startup():
        if run_health_checks:
            app.state._health_task = asyncio.create_task(
                _health_check_loop(app.state.health_check_runner, app.state.config.health_check.interval_seconds)
            )
        logger.info("[Startup] demo app initialized")

    @app.on_event("shutdown")
    async def on_shutdown():
        task = getattr(app.state, "_health_task", None)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        app.state.engine_factory.dispose_all()
        logger.info("[Shutdown] demo app stopped")

    @app.exception_handler(AllDatabaseConnectionsUnavailableError)
    async def all_connections_unavailable_handler(request, exc):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    _ = create_demo_app(run_health_checks=False)
    print("Components created. Use `uvicorn demo_app.main:create_demo_app --factory` to run the HTTP server.")
