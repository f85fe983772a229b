# -*- coding: utf-8 -*-

import logging
import time
from typing import Any, Dict, List, Optional

import paho.mqtt.client as mqtt

from .models import Reading
from .utils import iso_now, json_dumps_compact


class MqttPublisher:
    """
    Persistent MQTT connection with a retained online/offline status topic
    (offline doubles as last will), plus topics for averaged readings and
    poller health.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        keepalive: int,
        base_topic: str,
        master_id: str,
        tz,
        logger: logging.Logger,
        average_suffix: str = "average",
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.keepalive = keepalive
        self.base_topic = (base_topic or "").strip("/")
        self.master_id = (master_id or "").strip("/")
        self.tz = tz
        self.log = logger

        self._connected = False
        self.reconnects = 0

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION1)

        if user:
            self.client.username_pw_set(user, password=password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self.topic_status = f"{self.base_topic}/{self.master_id}/status"
        self.topic_health = f"{self.base_topic}/{self.master_id}/health"
        self.topic_average = f"{self.base_topic}/{self.master_id}/{average_suffix.strip('/')}"

        lwt_payload = json_dumps_compact({
            "state": "offline",
            "ts_local": iso_now(self.tz),
            "reason": "lwt",
        })
        self.client.will_set(self.topic_status, payload=lwt_payload, qos=0, retain=True)

    @property
    def connected(self) -> bool:
        return self._connected

    def _on_connect(self, client, userdata, flags, rc):
        self._connected = (rc == 0)
        self.log.debug("[mqtt] on_connect rc=%s connected=%s", rc, self._connected)

        if self._connected:
            try:
                self.publish_json(self.topic_status, {
                    "state": "online",
                    "ts_local": iso_now(self.tz),
                }, retain=True, qos=0)
            except Exception as ex:
                self.log.warning("[mqtt] failed to publish online status: %s", ex)

    def _on_disconnect(self, client, userdata, rc):
        self._connected = False
        self.log.debug("[mqtt] on_disconnect rc=%s", rc)

    def _wait_connected(self, timeout_s: float = 5.0) -> bool:
        t0 = time.time()
        while not self._connected and (time.time() - t0) < timeout_s:
            time.sleep(0.05)
        return self._connected

    def connect(self):
        self.log.info("[mqtt] connect %s:%s user=%r", self.host, self.port, self.user)
        self.client.connect(self.host, self.port, keepalive=self.keepalive)
        self.client.loop_start()

        if not self._wait_connected():
            raise RuntimeError("MQTT connect timeout (no CONNACK within 5s)")

    def ensure_connected(self):
        if self._connected:
            return
        self.reconnects += 1
        self.log.warning("[mqtt] not connected -> reconnecting… (count=%s)", self.reconnects)

        self.client.reconnect()

        if not self._wait_connected():
            raise RuntimeError("MQTT reconnect timeout")

    def publish(self, topic: str, payload: str, retain: bool, qos: int):
        self.ensure_connected()
        self.log.debug("[mqtt] publish topic=%s retain=%s qos=%s bytes=%s", topic, retain, qos, len(payload))
        info = self.client.publish(topic, payload=payload, qos=qos, retain=retain)
        info.wait_for_publish(timeout=10)

    def publish_json(self, topic: str, obj: Dict[str, Any], retain: bool, qos: int):
        self.publish(topic, json_dumps_compact(obj), retain=retain, qos=qos)

    def publish_health(self, obj: Dict[str, Any], retain: bool = True, qos: int = 0):
        self.publish_json(self.topic_health, obj, retain=retain, qos=qos)

    def publish_average(
        self,
        average: Reading,
        window: List[Reading],
        history: List[Reading],
        retain: bool = False,
        qos: int = 0,
    ):
        self.publish_json(self.topic_average, average_payload(average, window, history, self.tz), retain=retain, qos=qos)

    def close(self):
        if self._connected:
            try:
                self.publish_json(self.topic_status, {
                    "state": "offline",
                    "ts_local": iso_now(self.tz),
                    "reason": "shutdown",
                }, retain=True, qos=0)
            except Exception as ex:
                self.log.debug("[mqtt] offline status not sent: %s", ex)

        self.client.loop_stop()
        self.client.disconnect()
        self._connected = False


def average_payload(average: Reading, window: List[Reading], history: List[Reading], tz=None) -> Dict[str, Any]:
    last = history[-1].timestamp.isoformat() if history else None
    return {
        "ts_local": iso_now(tz),
        "average": average.to_dict(),
        "readings": [r.to_dict() for r in window],
        "history": {
            "count": len(history),
            "last": last,
        },
    }
