import queue
import logging
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .base import SampleSource

logger = logging.getLogger(__name__)


class MqttSource(SampleSource):
    """Subscribes to the station's MQTT topic and hands out each published payload.

    The paho network loop runs in its own thread and pushes payloads onto a
    queue; poll() takes them off one at a time.
    """

    def __init__(self, cfg: Dict[str, Any]) -> None:
        """Initialize the source from the mqtt configuration section.

        Args:
            cfg: host, port, topic_name and optional username, password,
                ca_cert, client_id and keepalive
        """
        self.host = cfg['host']
        self.port = int(cfg.get('port', 1883))
        self.topic = cfg['topic_name']
        self.username = cfg.get('username')
        self.password = cfg.get('password')
        self.ca_cert = cfg.get('ca_cert')
        self.client_id = cfg.get('client_id', 'weather_station')
        self.keepalive = int(cfg.get('keepalive', 50))
        self.exhausted = False
        self.client: Optional[mqtt.Client] = None
        self._messages: "queue.Queue[str]" = queue.Queue()

    def connect(self) -> None:
        """Connect to the broker and start the network loop.

        Raises:
            OSError: If the broker cannot be reached
        """
        logger.info(f"Connecting to MQTT server at {self.host}:{self.port}/{self.topic}")

        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.client_id)
        if self.username:
            client.username_pw_set(self.username, self.password)
        if self.ca_cert:
            client.tls_set(ca_certs=self.ca_cert)
        client.on_connect = self._on_connect
        client.on_message = self._on_message

        client.connect(self.host, self.port, keepalive=self.keepalive)
        client.loop_start()
        self.client = client

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error(f"MQTT connection refused: {reason_code}")
            return
        # Subscribing here renews the subscription after every reconnect
        client.subscribe(self.topic, qos=1)
        logger.info(f"Subscribed to {self.topic}")

    def _on_message(self, client, userdata, message) -> None:
        payload = message.payload.decode('utf-8', errors='replace').strip()
        logger.debug(f"Received message on {message.topic}: {payload}")
        if payload:
            self._messages.put(payload)

    def poll(self, timeout_s: float) -> Optional[str]:
        try:
            return self._messages.get(timeout=timeout_s)
        except queue.Empty:
            return None

    def close(self) -> None:
        if self.client is not None:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None
            logger.info("MqttSource closed.")
