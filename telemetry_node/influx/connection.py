"""
InfluxDB connection management for the telemetry store.
Holds the client handle and the tachometer sampling interval.
"""
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from influxdb_client_3 import InfluxDBClient3

from telemetry_node import metrics
from telemetry_node.influx.errors import ConfigError, NotConnectedError
from telemetry_node.influx.models import DEFAULT_DATA_INTERVAL, SCHEMA, MeasurementSchema

logger = logging.getLogger(__name__)


class InfluxStore:
    """
    Owner of one InfluxDB client handle.

    connect() replaces any existing handle (last writer wins); no locking is done
    around the handle, callers sharing a store accept that race.
    """

    def __init__(self, client_factory: Callable[..., Any] = InfluxDBClient3):
        """
        Args:
            client_factory: Callable building the client from config keyword arguments
        """
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self.data_interval: int = DEFAULT_DATA_INTERVAL
        self.schema: Dict[str, MeasurementSchema] = dict(SCHEMA)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> Any:
        """The live client handle; raises NotConnectedError when there is none."""
        if self._client is None:
            raise NotConnectedError("InfluxDB store is not connected, call connect() first")
        return self._client

    def connect(self, config: Optional[Mapping[str, Any]], data_interval: int = DEFAULT_DATA_INTERVAL) -> None:
        """
        Open a client handle.

        Args:
            config: Client parameters (host, token, database, org, ...) passed through
            data_interval: Seconds between tracker speed reports

        Raises:
            ConfigError: If config is None (an empty mapping goes to the client as is)
        """
        if config is None:
            raise ConfigError("Unable to use null config for InfluxDB")

        self.data_interval = int(data_interval)
        client = self._client_factory(**dict(config))

        previous = self._client
        self._client = client
        metrics.set_connection_connected(True)
        logger.info(
            f"Connected to InfluxDB: host={config.get('host')}, database={config.get('database')}, "
            f"data_interval={self.data_interval}s"
        )

        if previous is not None and previous is not client:
            logger.debug("Replaced existing InfluxDB client handle")
            self._close(previous)

    def disconnect(self) -> None:
        """Close and clear the client handle. In-flight writes are not drained."""
        client = self._client
        self._client = None
        metrics.set_connection_connected(False)
        if client is not None:
            self._close(client)
            logger.info("Disconnected from InfluxDB")

    @staticmethod
    def _close(client: Any) -> None:
        close = getattr(client, 'close', None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            logger.warning(f"Error closing InfluxDB client: {e}")


_default_store: Optional[InfluxStore] = None


def get_store() -> InfluxStore:
    """Get the process-wide default store (created on first use)."""
    global _default_store
    if _default_store is None:
        _default_store = InfluxStore()
    return _default_store


def connect(config: Optional[Mapping[str, Any]], data_interval: int = DEFAULT_DATA_INTERVAL) -> InfluxStore:
    """Connect the default store and return it."""
    store = get_store()
    store.connect(config, data_interval)
    return store


def disconnect() -> None:
    """Disconnect the default store."""
    get_store().disconnect()
