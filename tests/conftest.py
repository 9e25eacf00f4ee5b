"""
Pytest configuration for telemetry node tests
Fake InfluxDB client and connected store fixtures
"""
from unittest.mock import MagicMock

import pytest
from prometheus_client import REGISTRY

from telemetry_node.config import Config
from telemetry_node.influx.connection import InfluxStore


@pytest.fixture
def fake_client():
    """Stand-in for InfluxDBClient3: write() succeeds, query() returns no rows."""
    client = MagicMock(name="InfluxDBClient3")
    client.write.return_value = None
    client.query.return_value = []
    return client


@pytest.fixture
def client_factory(fake_client):
    factory = MagicMock(name="client_factory", return_value=fake_client)
    return factory


@pytest.fixture
def store(client_factory):
    """Store connected to the fake client with a 30 second tick."""
    store = InfluxStore(client_factory=client_factory)
    store.connect({"host": "http://influx:8181", "token": "t", "database": "telemetry"}, 30)
    yield store
    store.disconnect()


@pytest.fixture
def raw_record():
    """A moving tracker report as decoded from the device."""
    return {
        "gs": "5",
        "imei": "356307042441013",
        "lat": "4530.1234",
        "lat_loc": "N",
        "long": "01230.5678",
        "long_loc": "E",
        "utc": "120000",
        "position_utc": "150324",
    }


@pytest.fixture
def reset_config(monkeypatch):
    """Isolate Config class state and INFLUXDB_* overrides between tests."""
    for name in ("INFLUXDB_HOST", "INFLUXDB_TOKEN", "INFLUXDB_DATABASE", "INFLUXDB_ORG", "TELEMETRY_NODE_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    Config._config = None
    Config._config_file = None
    yield
    Config._config = None
    Config._config_file = None


def sample_value(name, labels=None):
    """Current value of a prometheus sample, 0 when not yet observed."""
    return REGISTRY.get_sample_value(name, labels or {}) or 0
