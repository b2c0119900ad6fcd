"""MQTT reporting of readings, state and events, and handling of remote commands."""

from __future__ import annotations

import json
import logging
import random
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import paho.mqtt.client as paho

from catcabinet.config import SensorReadings, SystemState

log = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1883
EVENT_CACHE_SIZE = 16
EVENT_ID_MAX_LEN = 47
CURVE_POINTS = 10
DEFAULT_LEVEL = 2
SIGNATURE = "demo_sign"


class MqttClient(Protocol):
    """The transport a manager publishes through."""

    message_handler: Callable[[str, bytes], None] | None

    def connected(self) -> bool: ...

    def connect(self, client_id: str, username: str, password: str) -> bool: ...

    def publish(self, topic: str, payload: str) -> bool: ...

    def subscribe(self, topic: str) -> bool: ...


def _new_paho_client(client_id: str) -> paho.Client:
    api = getattr(paho, "CallbackAPIVersion", None)
    if api is not None:
        return paho.Client(api.VERSION2, client_id=client_id)
    return paho.Client(client_id=client_id)


class PahoClient:
    """Blocking-connect wrapper around a paho MQTT client with a network thread."""

    connect_timeout: float = 5.0

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self.message_handler: Callable[[str, bytes], None] | None = None
        self._client: paho.Client | None = None
        self._connack = threading.Event()

    def connected(self) -> bool:
        return self._client is not None and self._client.is_connected()

    def connect(self, client_id: str, username: str, password: str) -> bool:
        """Connect and wait for the broker's answer; return whether connected."""
        if self._client is not None:
            self._client.loop_stop()
            self._client = None
        client = _new_paho_client(client_id)
        client.username_pw_set(username, password)
        client.on_connect = lambda *_args: self._connack.set()
        client.on_message = self._dispatch
        self._connack.clear()
        try:
            client.connect(self.host, self.port)
        except OSError as exc:
            log.warning("MQTT connection failed: %s", exc)
            return False
        client.loop_start()
        self._connack.wait(self.connect_timeout)
        if not client.is_connected():
            client.loop_stop()
            log.warning("MQTT broker did not accept the connection")
            return False
        self._client = client
        return True

    def publish(self, topic: str, payload: str) -> bool:
        if self._client is None:
            return False
        info = self._client.publish(topic, payload)
        return info.rc == paho.MQTT_ERR_SUCCESS

    def subscribe(self, topic: str) -> bool:
        if self._client is None:
            return False
        result, _mid = self._client.subscribe(topic)
        return result == paho.MQTT_ERR_SUCCESS

    def _dispatch(self, _client: Any, _userdata: Any, message: Any) -> None:
        if self.message_handler is not None:
            self.message_handler(message.topic, message.payload)


@dataclass
class UiUpdates:
    """Values and flags set by remote commands for the user interface to pick up."""

    need_publish_status: bool = False
    need_update_level_labels: bool = False
    level_eat: int = 0
    level_drink: int = 0
    level_toilet: int = 0
    level_weight: int = 0
    need_update_curve: bool = False
    curve_eat: list[int] = field(default_factory=lambda: [0] * CURVE_POINTS)
    curve_drink: list[int] = field(default_factory=lambda: [0] * CURVE_POINTS)
    curve_toilet: list[int] = field(default_factory=lambda: [0] * CURVE_POINTS)
    curve_weight: list[int] = field(default_factory=lambda: [0] * CURVE_POINTS)


@dataclass
class CachedEvent:
    event_type: str
    data: str
    event_id: str
    timestamp: int
    sent: bool = False


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _curve(values: Any) -> list[int]:
    items = values if isinstance(values, list) else []
    padded = items[:CURVE_POINTS] + [None] * (CURVE_POINTS - len(items[:CURVE_POINTS]))
    return [_int_or(v, 0) for v in padded]


def _dumps(doc: dict[str, Any]) -> str:
    return json.dumps(doc, separators=(",", ":"), ensure_ascii=False)


class MqttManager:
    """Publishes cabinet data over MQTT and answers commands sent to the device."""

    def __init__(
        self,
        client: MqttClient,
        device_id: str,
        auth_token: str,
        state: SystemState,
        readings: SensorReadings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._device_id = device_id
        self._auth_token = auth_token
        self._state = state
        self._readings = readings
        self._clock = clock
        # One slot of the ring is always kept free, as in a head/tail buffer.
        self._cache: deque[CachedEvent] = deque(maxlen=EVENT_CACHE_SIZE - 1)
        self.ui = UiUpdates()
        client.message_handler = self.on_message

    @property
    def connected(self) -> bool:
        return self._client.connected()

    @property
    def pending_events(self) -> list[CachedEvent]:
        """Cached events not yet sent, oldest first."""
        return [event for event in self._cache if not event.sent]

    def _topic(self, suffix: str) -> str:
        return f"cat-cabinet/{self._device_id}/{suffix}"

    def _now(self) -> int:
        return int(self._clock())

    def _header(self) -> dict[str, Any]:
        return {"mac": self._device_id, "timestamp": self._now()}

    def _send(self, suffix: str, doc: dict[str, Any]) -> bool:
        doc["sign"] = SIGNATURE
        return self._client.publish(self._topic(suffix), _dumps(doc))

    def reconnect(self) -> bool:
        """Make sure the client is connected, subscribing to commands on connect."""
        if self._client.connected():
            return True
        log.info("Attempting MQTT connection...")
        if self._client.connect(self._device_id, self._auth_token, ""):
            self._client.subscribe(self._topic("command"))
            log.info("MQTT connected")
            return True
        log.warning("MQTT connection failed, will try again")
        return False

    def publish_data(self) -> bool:
        if not self.reconnect():
            return False
        r = self._readings
        doc = self._header()
        doc.update(
            food_weight=r.food.weight,
            water_weight=r.water.weight,
            litter_weight=r.litter.weight,
            temperature=r.environment.temperature,
            humidity=r.environment.humidity,
            air_quality=r.environment.air_quality,
            pressure=r.environment.pressure,
            uptime=r.system.uptime,
            fan_runtime=r.system.fan_runtime,
            fan_health=r.system.fan_health,
        )
        return self._send("data", doc)

    def publish_status(self) -> bool:
        if not self.reconnect():
            return False
        s = self._state
        doc = self._header()
        doc.update(
            fan_auto_mode=s.fan_auto_mode,
            fan_manual_on=s.fan_manual_on,
            fan_running=s.fan_running,
            ambient_light=s.ambient_light,
            main_light=s.main_light,
            current_page=s.current_page,
        )
        return self._send("status", doc)

    def publish_event(self, event_type: str, data: str) -> bool:
        return self.publish_event_with_id(event_type, data, self.generate_event_id())

    def publish_event_with_id(self, event_type: str, data: str, event_id: str) -> bool:
        """Publish an event; cache it for retry when it cannot be sent."""
        if not self.reconnect():
            self.save_event_for_retry(event_type, data, event_id)
            return False
        try:
            parsed = json.loads(data)
        except (ValueError, TypeError):
            parsed = None
        doc = self._header()
        doc.update(
            event_type=event_type,
            event_id=event_id,
            data=parsed if isinstance(parsed, dict) else None,
        )
        if self._send(f"events/{event_type}", doc):
            return True
        self.save_event_for_retry(event_type, data, event_id)
        return False

    def generate_event_id(self) -> str:
        """An id made of the device id, the time and a random number."""
        event_id = f"{self._device_id}-{self._now()}-{random.getrandbits(32)}"
        return event_id[:EVENT_ID_MAX_LEN]

    def save_event_for_retry(self, event_type: str, data: str, event_id: str) -> bool:
        """Cache an event, dropping the oldest when the cache is full."""
        self._cache.append(CachedEvent(event_type, data, event_id, self._now()))
        log.info("Event cached for retry")
        return True

    def retry_unsent_events(self) -> None:
        if not self.reconnect():
            return
        for event in self.pending_events:
            event.sent = True
            self.publish_event_with_id(event.event_type, event.data, event.event_id)

    def publish_ack(self, cmd_id: str, success: bool, message: str = "") -> bool:
        if not self.reconnect():
            return False
        doc = self._header()
        doc.update(cmd_id=cmd_id, result="ok" if success else "fail", msg=message)
        return self._send("ack", doc)

    def publish_curve_history(self, history: dict[str, Any]) -> bool:
        if not self.reconnect():
            return False
        doc = self._header()
        doc["curve"] = history
        return self._send("curve", doc)

    def publish_daily_report(self, report: dict[str, Any]) -> bool:
        if not self.reconnect():
            return False
        doc = self._header()
        doc["report"] = report
        return self._send("dailyreport", doc)

    def publish_device_info(self, device_info: dict[str, Any]) -> bool:
        if not self.reconnect():
            return False
        doc = self._header()
        doc["device"] = device_info
        return self._send("deviceinfo", doc)

    def on_message(self, topic: str, payload: bytes | str) -> None:
        """Parse an incoming JSON command and handle it."""
        text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        log.info("Message arrived [%s] %s", topic, text)
        try:
            command = json.loads(text)
        except ValueError as exc:
            log.warning("JSON parse failed: %s", exc)
            return
        self.handle_command(command if isinstance(command, dict) else {})

    def handle_command(self, command: dict[str, Any]) -> bool:
        """Apply a command, acknowledge it and return whether it was understood."""
        cmd_id = _str_or(command.get("cmd_id"), "")
        action = _str_or(command.get("action"), "")
        ui = self.ui

        if action in (
            "set_main_light",
            "set_ambient_light",
            "set_fresh_auto",
            "set_fresh_manual",
        ):
            success = True
        elif action == "set_yesterday_level":
            ui.level_eat = _int_or(command.get("eat"), DEFAULT_LEVEL)
            ui.level_drink = _int_or(command.get("drink"), DEFAULT_LEVEL)
            ui.level_toilet = _int_or(command.get("toilet"), DEFAULT_LEVEL)
            ui.level_weight = _int_or(command.get("weight"), DEFAULT_LEVEL)
            ui.need_update_level_labels = True
            success = True
        elif action == "set_curve_history":
            ui.curve_eat = _curve(command.get("eat_curve"))
            ui.curve_drink = _curve(command.get("drink_curve"))
            ui.curve_toilet = _curve(command.get("toilet_curve"))
            ui.curve_weight = _curve(command.get("weight_curve"))
            ui.need_update_curve = True
            success = True
        else:
            success = False

        self.publish_ack(cmd_id, success, "success" if success else "unknown action")
        ui.need_publish_status = True
        return success