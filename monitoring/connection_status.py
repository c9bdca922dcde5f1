import json
from dataclasses import dataclass
from enum import Enum


class ConnectionStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN" # never probed, below threshold, or state unreadable


@dataclass(frozen=True)
class ConnectionHealthRecord:
    connection_name: str
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    consecutive_failures: int = 0

    def serialize(self) -> str:
        return json.dumps({
            "connection": self.connection_name,
            "status": self.status.value,
            "failures": self.consecutive_failures,
        })

    @staticmethod
    def deserialize(data: str) -> "ConnectionHealthRecord":
        "Raises ValueError when the stored document is not a health record"
        try:
            payload = json.loads(data)
            failures = int(payload.get("failures", 0))
            record = ConnectionHealthRecord(
                connection_name=payload["connection"],
                status=ConnectionStatus(payload["status"]),
                consecutive_failures=failures,
            )
        except (TypeError, KeyError, AttributeError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed health record: {data!r}") from e
        if failures < 0:
            raise ValueError(f"Negative failure count in health record: {data!r}")
        return record
