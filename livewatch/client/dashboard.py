# livewatch/client/dashboard.py
import argparse
import asyncio
import logging
import httpx
from ..config import Settings, settings as default_settings
from ..transport.adapter import LinkState, TransportAdapter
from ..transport.forwarder import IngestionForwarder
from ..transport.sources import EventSource, MqttSource, PollingSource
from .bootstrap import bootstrap_history
from .coalescer import PresentationCoalescer
from .display import LogSink, OpenCVWindow

logger = logging.getLogger(__name__)


def build_source(settings: Settings) -> EventSource:
    if settings.TRANSPORT == "mqtt":
        return MqttSource(settings.MQTT_URL, settings.MQTT_TOPIC, keepalive=settings.MQTT_KEEPALIVE)
    if settings.TRANSPORT == "poll":
        return PollingSource(settings.read_url, interval=settings.POLL_INTERVAL_S, timeout=settings.HTTP_TIMEOUT_S)
    raise ValueError(f"unknown transport: {settings.TRANSPORT}")


def build_coalescer(settings: Settings) -> PresentationCoalescer:
    return PresentationCoalescer(
        drain_interval=1.0 / settings.DRAIN_HZ,
        position_interval=settings.POSITION_INTERVAL_MS / 1000.0,
        history_limit=settings.HISTORY_LIMIT,
        cooldown_ms=settings.COOLDOWN_MS,
    )


async def run_dashboard(settings: Settings, headless: bool = False, stop: asyncio.Event = None):
    coalescer = build_coalescer(settings)
    sink = LogSink() if headless else OpenCVWindow()
    sink.attach(coalescer)

    forwarder = IngestionForwarder(settings.API_BASE_URL, strip_payload=settings.STRIP_PAYLOAD,
                                   timeout=settings.HTTP_TIMEOUT_S)
    adapter = TransportAdapter(
        build_source(settings),
        coalescer.push_event,
        persist=forwarder,
        retry_delay=settings.RECONNECT_DELAY_S,
        default_location=settings.client_default_location,
    )
    adapter.add_listener(coalescer.set_status)
    coalescer.set_status(LinkState.CONNECTING)

    coalescer.start()
    adapter.start()
    stop = stop or asyncio.Event()
    try:
        # races with the first live message; either may populate history first
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_S) as http:
            await bootstrap_history(
                coalescer, http,
                [settings.BOOTSTRAP_PRIMARY_URL, settings.read_url],
                settings.client_default_location,
            )
        await stop.wait()
    finally:
        await adapter.stop()
        await coalescer.stop()
        await forwarder.aclose()
        sink.close()


def main():
    parser = argparse.ArgumentParser(description="Live sensor dashboard")
    parser.add_argument("--transport", choices=["mqtt", "poll"], default=None,
                        help="override TRANSPORT from the environment")
    parser.add_argument("--headless", action="store_true", help="log updates instead of opening a window")
    args = parser.parse_args()

    settings = default_settings
    if args.transport:
        settings = settings.model_copy(update={"TRANSPORT": args.transport})

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run_dashboard(settings, headless=args.headless))
    except KeyboardInterrupt:
        logger.info("dashboard stopped")


if __name__ == "__main__":
    main()
