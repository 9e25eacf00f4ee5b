"""
InfluxDB telemetry store: speed/duration writes and aggregate queries.

The flat functions (connect, write_one, list_units, ...) act on a process-wide
default store; InfluxStore with WriteService/QueryService gives independent handles.
"""
from telemetry_node.influx.connection import InfluxStore, connect, disconnect, get_store
from telemetry_node.influx.errors import (
    ConfigError,
    InfluxStoreError,
    NotConnectedError,
    StoreQueryError,
    StoreWriteError,
)
from telemetry_node.influx.input_validator import is_numeric
from telemetry_node.influx.models import SCHEMA, TrackerRecord
from telemetry_node.influx.queries import QueryService, events_by_group, list_units, total_distance
from telemetry_node.influx.timestamps import derive_timestamp
from telemetry_node.influx.writer import WriteService, write_batch, write_one

__all__ = [
    "ConfigError",
    "InfluxStore",
    "InfluxStoreError",
    "NotConnectedError",
    "QueryService",
    "SCHEMA",
    "StoreQueryError",
    "StoreWriteError",
    "TrackerRecord",
    "WriteService",
    "connect",
    "derive_timestamp",
    "disconnect",
    "events_by_group",
    "get_store",
    "is_numeric",
    "list_units",
    "total_distance",
    "write_batch",
    "write_one",
]
