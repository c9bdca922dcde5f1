class FailoverError(Exception):
    """Base class for errors raised by the failover components."""


class ConfigurationError(FailoverError):
    """Raised when the failover configuration holds values that cannot be used."""


class UnknownConnectionError(FailoverError, KeyError):
    """Raised when a connection name is not registered with the host."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"Connection '{self.name}' is not configured"
