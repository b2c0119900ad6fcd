import json

import pytest

from catcabinet.config import SensorReadings, SystemState
from catcabinet.mqtt import EVENT_CACHE_SIZE, MqttManager, PahoClient

DEVICE = "cabinet-test"


class FakeClient:
    def __init__(self, accept=True):
        self.online = False
        self.accept = accept
        self.fail_publish = False
        self.connects = []
        self.subscriptions = []
        self.published = []
        self.message_handler = None

    def connected(self):
        return self.online

    def connect(self, client_id, username, password):
        self.connects.append((client_id, username, password))
        self.online = self.accept
        return self.accept

    def publish(self, topic, payload):
        if self.fail_publish:
            return False
        self.published.append((topic, json.loads(payload)))
        return True

    def subscribe(self, topic):
        self.subscriptions.append(topic)
        return True


def make(accept=True, state=None, readings=None):
    client = FakeClient(accept)
    manager = MqttManager(
        client,
        DEVICE,
        "token",
        state or SystemState(),
        readings or SensorReadings(),
        clock=lambda: 1000.0,
    )
    return client, manager


def test_reconnect_connects_and_subscribes():
    client, manager = make()
    assert manager.reconnect() is True
    assert client.connects == [(DEVICE, "token", "")]
    assert client.subscriptions == [f"cat-cabinet/{DEVICE}/command"]
    assert manager.reconnect() is True
    assert len(client.connects) == 1


def test_reconnect_failure():
    client, manager = make(accept=False)
    assert manager.reconnect() is False
    assert client.subscriptions == []
    assert manager.publish_status() is False


def test_publish_status_payload():
    state = SystemState(fan_auto_mode=False, main_light=True, current_page=3)
    client, manager = make(state=state)
    assert manager.publish_status() is True
    topic, doc = client.published[-1]
    assert topic == f"cat-cabinet/{DEVICE}/status"
    assert doc["mac"] == DEVICE
    assert doc["timestamp"] == 1000
    assert doc["fan_auto_mode"] is False
    assert doc["main_light"] is True
    assert doc["current_page"] == 3
    assert doc["sign"] == "demo_sign"


def test_publish_data_payload():
    readings = SensorReadings()
    readings.food.weight = 120.5
    readings.environment.air_quality = 42
    readings.system.fan_health = 77
    client, manager = make(readings=readings)
    manager.publish_data()
    topic, doc = client.published[-1]
    assert topic.endswith("/data")
    assert doc["food_weight"] == 120.5
    assert doc["air_quality"] == 42
    assert doc["fan_health"] == 77


def test_event_with_id_merges_data():
    client, manager = make()
    assert manager.publish_event_with_id("litter_event", '{"cat_weight": 4200}', "e1")
    topic, doc = client.published[-1]
    assert topic == f"cat-cabinet/{DEVICE}/events/litter_event"
    assert doc["event_id"] == "e1"
    assert doc["data"] == {"cat_weight": 4200}


def test_event_with_invalid_data_sends_null():
    client, manager = make()
    manager.publish_event_with_id("x", "not json", "e2")
    assert client.published[-1][1]["data"] is None


def test_generate_event_id_shape():
    _, manager = make()
    event_id = manager.generate_event_id()
    assert event_id.startswith(f"{DEVICE}-1000-")
    assert len(event_id) <= 47


def test_failed_publish_is_cached():
    client, manager = make()
    client.fail_publish = True
    assert manager.publish_event("feed", "{}") is False
    assert [e.event_type for e in manager.pending_events] == ["feed"]


def test_cache_drops_oldest():
    _, manager = make(accept=False)
    for i in range(20):
        manager.publish_event_with_id("feed", "{}", f"e{i}")
    ids = [e.event_id for e in manager.pending_events]
    assert len(ids) == EVENT_CACHE_SIZE - 1
    assert ids[-1] == "e19"
    assert "e0" not in ids


def test_retry_sends_cached_events():
    client, manager = make(accept=False)
    manager.publish_event_with_id("feed", "{}", "a")
    manager.publish_event_with_id("drink", "{}", "b")
    client.accept = True
    manager.retry_unsent_events()
    assert [doc["event_id"] for _, doc in client.published] == ["a", "b"]
    assert manager.pending_events == []


def test_yesterday_level_command():
    client, manager = make()
    ok = manager.handle_command(
        {"cmd_id": "c1", "action": "set_yesterday_level", "eat": 1, "drink": 3}
    )
    assert ok is True
    assert manager.ui.level_eat == 1
    assert manager.ui.level_drink == 3
    assert manager.ui.level_toilet == 2
    assert manager.ui.need_update_level_labels is True
    assert manager.ui.need_publish_status is True
    topic, doc = client.published[-1]
    assert topic.endswith("/ack")
    assert doc["cmd_id"] == "c1"
    assert doc["result"] == "ok"
    assert doc["msg"] == "success"


def test_curve_history_command_pads():
    _, manager = make()
    manager.handle_command(
        {"action": "set_curve_history", "eat_curve": [5, 6], "drink_curve": "bad"}
    )
    assert manager.ui.curve_eat[:2] == [5, 6]
    assert manager.ui.curve_eat[2:] == [0] * 8
    assert manager.ui.curve_drink == [0] * 10
    assert manager.ui.need_update_curve is True


def test_unknown_action_acks_failure():
    client, manager = make()
    assert manager.handle_command({"cmd_id": "c2", "action": "fly"}) is False
    doc = client.published[-1][1]
    assert doc["result"] == "fail"
    assert doc["msg"] == "unknown action"


def test_message_handler_dispatches_commands():
    client, manager = make()
    client.message_handler("t", b'{"cmd_id": "c3", "action": "set_main_light", "value": 1}')
    assert client.published[-1][1]["cmd_id"] == "c3"
    assert client.published[-1][1]["result"] == "ok"


def test_bad_json_message_is_ignored():
    client, manager = make()
    manager.on_message("t", b"{broken")
    assert client.published == []
    assert manager.ui.need_publish_status is False


def test_reports_use_their_keys():
    client, manager = make()
    manager.publish_daily_report({"feed": 3})
    manager.publish_curve_history({"eat": [1]})
    manager.publish_device_info({"fw": "x"})
    topics = [t.rsplit("/", 1)[1] for t, _ in client.published]
    assert topics == ["dailyreport", "curve", "deviceinfo"]
    assert client.published[0][1]["report"] == {"feed": 3}
    assert client.published[1][1]["curve"] == {"eat": [1]}
    assert client.published[2][1]["device"] == {"fw": "x"}


def test_paho_client_unconnected():
    client = PahoClient("127.0.0.1", 1883)
    assert client.connected() is False
    assert client.publish("a/b", "x") is False
    assert client.subscribe("a/b") is False