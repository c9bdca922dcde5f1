from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class DatabaseConfig(_Frozen):
    name: str
    url: str
    connect_args: Dict[str, Any] = Field(default_factory=dict)


class ConnectionsConfig(_Frozen):
    # blank names are allowed here and replaced by ConnectionRoles.from_names()
    primary: Optional[str] = None
    failover: Optional[str] = None
    blocking: Optional[str] = None


class HealthCheckConfig(_Frozen):
    query: str = "SELECT 1"
    interval_seconds: float = Field(default=60, gt=0)
    timeout_seconds: float = Field(default=5, gt=0)
    failure_threshold: int = Field(default=3, ge=1)


class CacheConfig(_Frozen):
    backend: Literal["memory", "sql"] = "memory"
    url: Optional[str] = None
    prefix: str = "dynamic_db_failover_status"
    tag: Optional[str] = "dynamic-db-failover"
    ttl_seconds: int = Field(default=300, gt=0)


class FailoverConfig(_Frozen):
    databases: List[DatabaseConfig] = Field(default_factory=list)
    connections: ConnectionsConfig = Field(default_factory=ConnectionsConfig)
    health_check: HealthCheckConfig = Field(default_factory=HealthCheckConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    dispatch_command_lifecycle_events: bool = True
