'''
HealthCheckRunner is the single trigger the scheduler, the CLI and the demo app use to
probe connections: "check this connection now" or "check primary and failover now".
For every connection it asks the ConnectionStateStore to probe and record the result and
reports the stored status and failure count afterwards.

Run periodically from cron / a scheduler:
    python -m monitoring.health_check_command --config config/database_config.yaml
or keep it running:
    python -m monitoring.health_check_command --config config/database_config.yaml --watch
'''

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from monitoring.connection_status import ConnectionStatus
from monitoring.events import EventKind, FailoverEvent
from monitoring.roles import ConnectionRoles
from monitoring.state_store import ConnectionStateStore
from monitoring.subject import Subject

logger = logging.getLogger(__name__)

SUCCESS = 0
FAILURE = 1


@dataclass(frozen=True)
class ConnectionCheckResult:
    connection_name: str
    status: ConnectionStatus
    failures: int
    error: Optional[str] = None


@dataclass
class HealthCheckReport:
    results: List[ConnectionCheckResult] = field(default_factory=list)
    exit_code: int = SUCCESS

    @property
    def connections(self) -> List[str]:
        return [r.connection_name for r in self.results]

    def to_dict(self) -> dict:
        return {
            "exit_code": self.exit_code,
            "results": [
                {
                    "connection": r.connection_name,
                    "status": r.status.value,
                    "failures": r.failures,
                    "error": r.error,
                }
                for r in self.results
            ],
        }


class HealthCheckRunner:
    def __init__(
        self,
        state_store: ConnectionStateStore,
        roles: ConnectionRoles,
        events: Subject,
        known_connections: Optional[Iterable[str]] = None,
        dispatch_lifecycle_events: bool = True,
    ):
        self.state_store = state_store
        self.roles = roles
        self.events = events
        self.known_connections = set(known_connections) if known_connections is not None else None
        self.dispatch_lifecycle_events = dispatch_lifecycle_events

    def run(self, connection: Optional[str] = None, dispatch_events: Optional[bool] = None) -> HealthCheckReport:
        dispatch = self.dispatch_lifecycle_events if dispatch_events is None else dispatch_events
        targets = [connection] if connection else [n for n in self.roles.monitored() if n]
        report = HealthCheckReport()

        if dispatch:
            self.events.notify(FailoverEvent(EventKind.HEALTH_CHECK_STARTED, connections=tuple(targets)))
        logger.info(f"[HealthCheck] starting database health checks for {', '.join(targets)}")

        if connection and self.known_connections is not None and connection not in self.known_connections:
            logger.error(f"[HealthCheck] connection '{connection}' is not configured in your database settings")
            report.exit_code = FAILURE
            targets = []

        for name in targets:
            logger.info(f"[HealthCheck] checking health of connection '{name}'")
            try:
                self.state_store.update_connection_status(name)
                result = ConnectionCheckResult(
                    name,
                    self.state_store.get_connection_status(name),
                    self.state_store.get_failure_count(name),
                )
            except Exception as e:
                logger.error(f"[HealthCheck] failed to check health for connection '{name}': {e}", exc_info=True)
                result = ConnectionCheckResult(name, ConnectionStatus.UNKNOWN, 0, error=str(e))
            report.results.append(result)
            logger.info(f"[HealthCheck] connection '{name}' status: {result.status.value}, failures: {result.failures}")

        logger.info("[HealthCheck] database health checks completed")
        if dispatch:
            self.events.notify(FailoverEvent(
                EventKind.HEALTH_CHECK_FINISHED,
                connections=tuple(report.connections),
                exit_code=report.exit_code,
            ))
        return report


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got '{value}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="failover-health-check",
        description="Checks the health of monitored database connections and updates their stored status.",
    )
    parser.add_argument("connection", nargs="?", help="check only this connection (default: primary and failover)")
    parser.add_argument("--config", default="config/database_config.yaml", help="path to the YAML configuration")
    parser.add_argument("--dispatch-events", type=_parse_bool, default=None,
                        help="override config: dispatch lifecycle events (true/false)")
    parser.add_argument("--watch", action="store_true", help="repeat every health_check.interval_seconds")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None) -> int:
    from monitoring.bootstrap import init_components
    from monitoring.observer import LoggingObserver

    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    components = init_components(args.config)
    components["events"].add_observer(LoggingObserver())
    runner: HealthCheckRunner = components["health_check_runner"]

    report = runner.run(args.connection, dispatch_events=args.dispatch_events)
    for result in report.results:
        print(f"{result.connection_name}: {result.status.value} (failures: {result.failures})")

    interval = components["config"].health_check.interval_seconds
    try:
        while args.watch:
            time.sleep(interval)
            report = runner.run(args.connection, dispatch_events=args.dispatch_events)
    except KeyboardInterrupt:
        logger.info("[HealthCheck] stopped")
    finally:
        components["engine_factory"].dispose_all()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
