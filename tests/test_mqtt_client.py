"""
Tests du client MQTT (paho remplacé par un mock).
"""

from types import SimpleNamespace
from unittest import mock

import pytest

import app.mqtt_client as mqtt_client_module
from app.mqtt_client import MQTTClient, parse_switch_payload


@pytest.fixture
def paho_client(monkeypatch):
    fake = mock.MagicMock()
    fake.publish.return_value = SimpleNamespace(rc=mqtt_client_module.mqtt.MQTT_ERR_SUCCESS)
    monkeypatch.setattr(mqtt_client_module.mqtt, "Client", mock.MagicMock(return_value=fake))
    monkeypatch.setattr(mqtt_client_module, "MQTT_PREFIX", "tic")
    return fake


class TestSwitchPayload:

    @pytest.mark.parametrize("payload", [b"ON", b"on", b"true", b"1", b" ON\n"])
    def test_on(self, payload):
        assert parse_switch_payload(payload) is True

    @pytest.mark.parametrize("payload", [b"OFF", b"false", b"0"])
    def test_off(self, payload):
        assert parse_switch_payload(payload) is False

    @pytest.mark.parametrize("payload", [b"", b"toggle", b"\xff"])
    def test_unknown(self, payload):
        assert parse_switch_payload(payload) is None


class TestMQTTClient:

    def test_publish_prefixes_topic(self, paho_client):
        client = MQTTClient()
        assert client.publish("papp", 460)
        paho_client.publish.assert_called_once_with("tic/papp", payload="460", retain=True)

    def test_publish_same_value_twice(self, paho_client):
        client = MQTTClient()
        assert client.publish("papp", 460)
        assert client.publish("papp", 460)
        assert paho_client.publish.call_count == 2

    def test_publish_failure(self, paho_client):
        paho_client.publish.return_value = SimpleNamespace(rc=4)
        client = MQTTClient()
        assert not client.publish("papp", 460)

    def test_subscribes_on_connect(self, paho_client):
        client = MQTTClient()
        client._on_connect(paho_client, None, {}, 0)
        assert client.connected
        paho_client.subscribe.assert_called_once_with("tic/enabled/set")

    def test_republishes_switch_state_on_reconnect(self, paho_client):
        client = MQTTClient()
        client.publish_switch_state(False)
        paho_client.publish.reset_mock()
        client._on_connect(paho_client, None, {}, 0)
        paho_client.publish.assert_called_once_with("tic/enabled", payload="OFF", retain=True)

    def test_disconnect_callback(self, paho_client):
        client = MQTTClient()
        client._on_connect(paho_client, None, {}, 0)
        client._on_disconnect(paho_client, None, 7)
        assert not client.connected

    def test_switch_command(self, paho_client):
        states = []
        client = MQTTClient(on_switch=states.append)
        client._on_message(paho_client, None, SimpleNamespace(topic="tic/enabled/set", payload=b"OFF"))
        assert states == [False]
        paho_client.publish.assert_called_with("tic/enabled", payload="OFF", retain=True)

    def test_switch_unknown_command_ignored(self, paho_client):
        states = []
        client = MQTTClient(on_switch=states.append)
        client._on_message(paho_client, None, SimpleNamespace(topic="tic/enabled/set", payload=b"maybe"))
        assert states == []
        paho_client.publish.assert_not_called()
