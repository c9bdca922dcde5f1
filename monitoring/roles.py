import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY = "primary"
DEFAULT_FAILOVER = "failover"
DEFAULT_BLOCKING = "blocking"


class ConnectionRole(str, Enum):
    PRIMARY = "primary"
    FAILOVER = "failover"
    BLOCKING = "blocking"
    OTHER = "other"


@dataclass(frozen=True)
class ConnectionRoles:
    """Names the host configured for the primary, failover and blocking connections."""
    primary: str = DEFAULT_PRIMARY
    failover: str = DEFAULT_FAILOVER
    blocking: str = DEFAULT_BLOCKING

    @classmethod
    def from_names(
        cls,
        primary: Optional[str] = None,
        failover: Optional[str] = None,
        blocking: Optional[str] = None,
    ) -> "ConnectionRoles":
        """
        Blank or missing names fall back to the built-in defaults with a warning,
        a misconfigured role never prevents startup.
        """
        resolved = {}
        given = {"primary": primary, "failover": failover, "blocking": blocking}
        defaults = {
            "primary": DEFAULT_PRIMARY,
            "failover": DEFAULT_FAILOVER,
            "blocking": DEFAULT_BLOCKING,
        }
        for role, name in given.items():
            if name is None or not str(name).strip():
                logger.warning(
                    f"[ConnectionRoles] '{role}' connection name is not configured, "
                    f"falling back to '{defaults[role]}'"
                )
                resolved[role] = defaults[role]
            else:
                resolved[role] = str(name).strip()
        return cls(**resolved)

    def classify(self, name: Optional[str]) -> ConnectionRole:
        if name == self.primary:
            return ConnectionRole.PRIMARY
        if name == self.failover:
            return ConnectionRole.FAILOVER
        if name == self.blocking:
            return ConnectionRole.BLOCKING
        return ConnectionRole.OTHER

    def monitored(self):
        """Connections that are health checked, in priority order."""
        return [self.primary, self.failover]
