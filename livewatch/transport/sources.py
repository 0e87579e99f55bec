# livewatch/transport/sources.py
"""
Message sources for the transport adapter.

A source yields raw sensor messages (JSON bytes/str or decoded dicts) from one
connection attempt. The iterator ends, or raises, when that connection is lost;
the adapter then waits and calls `receive_messages` again. `on_live` is called
once the source is actually receiving (MQTT SUBACK, first successful poll).
"""
import asyncio
import logging
import ssl
import uuid
from typing import AsyncIterator, Callable, NamedTuple, Optional
from urllib.parse import urlparse

import httpx
import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

logger = logging.getLogger(__name__)

OnLive = Optional[Callable[[], None]]

_CLOSED = object()

DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883, "ws": 80, "wss": 443}


class EventSource:
    # False when the messages already come from the ingestion server's own store
    persist_events = True

    def receive_messages(self, on_live: OnLive = None) -> AsyncIterator:
        raise NotImplementedError


class BrokerAddress(NamedTuple):
    host: str
    port: int
    transport: str  # "tcp" | "websockets"
    tls: bool
    path: str


def parse_broker_url(url: str) -> BrokerAddress:
    parsed = urlparse(url)
    scheme = (parsed.scheme or "mqtt").lower()
    if scheme not in DEFAULT_PORTS:
        raise ValueError(f"unsupported broker scheme: {scheme}")
    websockets = scheme in ("ws", "wss")
    return BrokerAddress(
        host=parsed.hostname or "localhost",
        port=parsed.port or DEFAULT_PORTS[scheme],
        transport="websockets" if websockets else "tcp",
        tls=scheme in ("mqtts", "ssl", "wss"),
        path=(parsed.path or "/mqtt") if websockets else "",
    )


class MqttSource(EventSource):
    """Subscribes to one MQTT topic at QoS 0 (at-most-once, no acknowledgement)."""

    def __init__(self, url: str, topic: str, keepalive: int = 30, client_id: Optional[str] = None):
        self.address = parse_broker_url(url)
        self.topic = topic
        self.keepalive = keepalive
        self.client_id = client_id or f"livewatch-{uuid.uuid4().hex[:8]}"

    def _make_client(self) -> mqtt.Client:
        addr = self.address
        client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            transport=addr.transport,
        )
        if addr.transport == "websockets":
            client.ws_set_options(path=addr.path)
        if addr.tls:
            client.tls_set_context(ssl.create_default_context())
        return client

    async def receive_messages(self, on_live: OnLive = None) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        # paho callbacks run on its network thread
        def handoff(item):
            if not loop.is_closed():
                loop.call_soon_threadsafe(queue.put_nowait, item)

        def on_connect(client, userdata, flags, reason_code, properties):
            if reason_code.is_failure:
                logger.warning("mqtt: connect refused (%s)", reason_code)
                handoff(_CLOSED)
                return
            client.subscribe(self.topic, qos=0)

        def on_subscribe(client, userdata, mid, reason_code_list, properties):
            if on_live is not None and not loop.is_closed():
                loop.call_soon_threadsafe(on_live)

        def on_message(client, userdata, message):
            handoff(message.payload)

        def on_disconnect(client, userdata, disconnect_flags, reason_code, properties):
            logger.info("mqtt: disconnected (%s)", reason_code)
            handoff(_CLOSED)

        def on_connect_fail(client, userdata):
            logger.warning("mqtt: could not reach %s:%s", self.address.host, self.address.port)
            handoff(_CLOSED)

        client = self._make_client()
        client.on_connect = on_connect
        client.on_subscribe = on_subscribe
        client.on_message = on_message
        client.on_disconnect = on_disconnect
        client.on_connect_fail = on_connect_fail

        client.connect_async(self.address.host, self.address.port, keepalive=self.keepalive)
        client.loop_start()
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            # stop paho's own reconnect loop; the adapter owns retry timing.
            # loop_stop joins the network thread, which may sit in a connect attempt
            client.on_disconnect = None
            await asyncio.to_thread(_teardown, client)


def _teardown(client: mqtt.Client) -> None:
    client.disconnect()
    client.loop_stop()


def _latest_from_body(body) -> Optional[dict]:
    if not isinstance(body, dict):
        return None
    if "latest" in body:
        return body["latest"]
    if "history" in body:
        history = body["history"] or []
        return history[0] if history else None
    # legacy read endpoint: the frame itself, flat
    return body


class PollingSource(EventSource):
    """Polls the HTTP read endpoint and yields `latest` whenever its timestamp changes."""

    persist_events = False

    def __init__(self, url: str, interval: float = 2.0, timeout: float = 5.0, client: httpx.AsyncClient = None):
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._client = client

    async def receive_messages(self, on_live: OnLive = None) -> AsyncIterator[dict]:
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        last_ts = None
        live = False
        try:
            while True:
                resp = await client.get(self.url)
                if resp.status_code == 404:
                    latest = None  # legacy servers answer 404 until the first frame
                else:
                    resp.raise_for_status()
                    latest = _latest_from_body(resp.json())
                if not live:
                    live = True
                    if on_live is not None:
                        on_live()
                if latest and latest.get("timestamp") != last_ts:
                    last_ts = latest.get("timestamp")
                    yield latest
                await asyncio.sleep(self.interval)
        finally:
            if self._client is None:
                await client.aclose()
