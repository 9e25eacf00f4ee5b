"""
Exceptions raised by the InfluxDB telemetry store.
"""


class InfluxStoreError(Exception):
    """Base class for telemetry store errors."""
    pass


class ConfigError(InfluxStoreError):
    """Raised when connect() is called without a usable configuration."""
    pass


class NotConnectedError(InfluxStoreError):
    """Raised when a query runs before connect() or after disconnect()."""
    pass


class StoreWriteError(InfluxStoreError):
    """Raised when the store rejects any point write of a batch.

    The underlying client error is available as ``__cause__``.
    """

    def __init__(self, message: str, records: int = 0):
        super().__init__(message)
        self.records = records


class StoreQueryError(InfluxStoreError):
    """Raised when an aggregate query fails in the store client."""

    def __init__(self, message: str, query: str = ""):
        super().__init__(message)
        self.query = query
