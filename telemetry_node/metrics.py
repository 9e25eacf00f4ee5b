"""
Prometheus metrics for the telemetry store node.
Exposes /metrics for write throughput, lenient-ingestion paths (dropped records,
timestamp fallbacks), store connection state and query latency.
"""
import logging
from prometheus_client import Counter, Gauge, Histogram, start_http_server, REGISTRY

logger = logging.getLogger(__name__)

# Counters - Writes
store_records_written_total = Counter(
    "telemetry_store_records_written_total",
    "Total tracker records written as speed/duration point pairs",
    registry=REGISTRY,
)
store_write_failures_total = Counter(
    "telemetry_store_write_failures_total",
    "Total point-pair writes rejected by the store",
    ["measurement"],
    registry=REGISTRY,
)
store_write_retries_total = Counter(
    "telemetry_store_write_retries_total",
    "Total point-pair write attempts retried after a transient error",
    registry=REGISTRY,
)

# Counters - Data Quality
store_records_dropped_total = Counter(
    "telemetry_store_records_dropped_total",
    "Total records dropped before writing",
    ["reason"],
    registry=REGISTRY,
)
store_timestamp_fallbacks_total = Counter(
    "telemetry_store_timestamp_fallbacks_total",
    "Total records stamped with the current time instead of their date/time fields",
    ["reason"],
    registry=REGISTRY,
)

# Gauges
store_connection_connected = Gauge(
    "telemetry_store_connection_connected",
    "1 if an InfluxDB client handle is held, 0 otherwise",
    registry=REGISTRY,
)

# Histograms - Query Time
store_query_seconds = Histogram(
    "telemetry_store_query_seconds",
    "Time spent running an aggregate query",
    ["query"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


def start_metrics_server(port: int = 9091) -> None:
    """Start the Prometheus metrics HTTP server in a daemon thread."""
    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info("Metrics server started on port %s", port)
    except OSError as e:
        logger.warning("Could not start metrics server on port %s: %s", port, e)


def record_written(count: int) -> None:
    """Record records written by a successful batch."""
    if count > 0:
        store_records_written_total.inc(count)


def record_dropped(reason: str, count: int = 1) -> None:
    """Record records dropped before writing (e.g. non-numeric speed)."""
    if count > 0:
        store_records_dropped_total.labels(reason=reason).inc(count)


def record_timestamp_fallback(reason: str) -> None:
    """Record a timestamp that fell back to the current time."""
    store_timestamp_fallbacks_total.labels(reason=reason).inc()


def record_write_failure(measurement: str) -> None:
    """Record a point-pair write failure."""
    store_write_failures_total.labels(measurement=measurement).inc()


def record_write_retry() -> None:
    """Record a retried point-pair write."""
    store_write_retries_total.inc()


def set_connection_connected(connected: bool) -> None:
    """Set store connection status (1=connected, 0=disconnected)."""
    store_connection_connected.set(1 if connected else 0)


def observe_query_time(query: str, seconds: float) -> None:
    """Record aggregate query latency."""
    store_query_seconds.labels(query=query).observe(seconds)
