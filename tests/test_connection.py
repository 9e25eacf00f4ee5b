"""
Tests for the InfluxDB connection lifecycle
"""
from unittest.mock import MagicMock

import pytest

from conftest import sample_value
from telemetry_node.influx import connection
from telemetry_node.influx.connection import InfluxStore
from telemetry_node.influx.errors import ConfigError, NotConnectedError

CONFIG = {"host": "http://influx:8181", "token": "secret", "database": "telemetry"}


class TestInfluxStore:
    def test_connect_without_config_raises(self, client_factory):
        store = InfluxStore(client_factory=client_factory)
        with pytest.raises(ConfigError):
            store.connect(None)
        client_factory.assert_not_called()
        assert not store.is_connected

    def test_connect_with_empty_config_uses_client_defaults(self, client_factory, fake_client):
        store = InfluxStore(client_factory=client_factory)
        store.connect({})
        client_factory.assert_called_once_with()
        assert store.client is fake_client

    def test_connect_passes_config_through(self, client_factory, fake_client):
        store = InfluxStore(client_factory=client_factory)
        store.connect(CONFIG, data_interval=45)

        client_factory.assert_called_once_with(**CONFIG)
        assert store.client is fake_client
        assert store.data_interval == 45
        assert store.is_connected
        assert sample_value("telemetry_store_connection_connected") == 1

    def test_default_interval_is_thirty_seconds(self, client_factory):
        store = InfluxStore(client_factory=client_factory)
        store.connect(CONFIG)
        assert store.data_interval == 30

    def test_client_before_connect_raises(self, client_factory):
        store = InfluxStore(client_factory=client_factory)
        with pytest.raises(NotConnectedError):
            store.client

    def test_reconnect_replaces_and_closes_previous(self):
        first, second = MagicMock(name="first"), MagicMock(name="second")
        store = InfluxStore(client_factory=MagicMock(side_effect=[first, second]))

        store.connect(CONFIG)
        store.connect(CONFIG, data_interval=10)

        assert store.client is second
        assert store.data_interval == 10
        first.close.assert_called_once()
        second.close.assert_not_called()

    def test_disconnect_clears_handle(self, store, fake_client):
        store.disconnect()

        fake_client.close.assert_called_once()
        assert not store.is_connected
        assert sample_value("telemetry_store_connection_connected") == 0
        with pytest.raises(NotConnectedError):
            store.client

    def test_disconnect_twice_is_harmless(self, store, fake_client):
        store.disconnect()
        store.disconnect()
        fake_client.close.assert_called_once()

    def test_close_error_does_not_escape(self, client_factory, fake_client):
        fake_client.close.side_effect = RuntimeError("flight channel gone")
        store = InfluxStore(client_factory=client_factory)
        store.connect(CONFIG)
        store.disconnect()
        assert not store.is_connected


class TestDefaultStore:
    def test_module_level_lifecycle(self, monkeypatch, client_factory, fake_client):
        monkeypatch.setattr(connection, "_default_store", InfluxStore(client_factory=client_factory))

        store = connection.connect(CONFIG, 20)
        assert store is connection.get_store()
        assert store.client is fake_client
        assert store.data_interval == 20

        connection.disconnect()
        assert not connection.get_store().is_connected

    def test_get_store_creates_once(self, monkeypatch):
        monkeypatch.setattr(connection, "_default_store", None)
        assert connection.get_store() is connection.get_store()
