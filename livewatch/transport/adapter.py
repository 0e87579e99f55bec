# livewatch/transport/adapter.py
import asyncio
import logging
from contextlib import aclosing
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set, Tuple
from ..models import MessageParseError, parse_message
from ..schemas import Event
from .sources import EventSource

logger = logging.getLogger(__name__)


class LinkState(str, Enum):
    CONNECTING = "connecting"
    LIVE = "live"
    DISCONNECTED = "disconnected"


class TransportAdapter:
    """
    Keeps a subscription to an EventSource alive and forwards every message.

    CONNECTING -> LIVE on subscription ack, LIVE -> DISCONNECTED when the source
    ends or fails, then CONNECTING again after `retry_delay` seconds, for as long
    as the adapter runs. Each parsed event goes to `on_event` synchronously and,
    fire-and-forget, to `persist`; persistence failures are dropped.
    """

    def __init__(
        self,
        source: EventSource,
        on_event: Callable[[Event], None],
        persist: Optional[Callable[[Event], Awaitable]] = None,
        retry_delay: float = 1.0,
        default_location: Tuple[float, float] = (0.0, 0.0),
    ):
        self.source = source
        self.on_event = on_event
        self.persist = persist
        self.retry_delay = retry_delay
        self.default_location = default_location
        self.state: Optional[LinkState] = None
        self._listeners: List[Callable[[LinkState], None]] = []
        self._pending: Set[asyncio.Task] = set()
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    def add_listener(self, callback: Callable[[LinkState], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return remove

    def _set_state(self, state: LinkState) -> None:
        if self._stopped or state == self.state:
            return
        self.state = state
        logger.info("transport: %s", state.value)
        for cb in list(self._listeners):
            cb(state)

    def _mark_live(self) -> None:
        self._set_state(LinkState.LIVE)

    def handle_message(self, raw) -> Optional[Event]:
        try:
            event = parse_message(raw, self.default_location)
        except MessageParseError as e:
            logger.warning("transport: dropping malformed message: %s", e)
            return None

        try:
            self.on_event(event)
        except Exception:
            logger.exception("transport: event consumer failed for ts=%s", event.timestamp)
        if self.persist is not None and self.source.persist_events:
            task = asyncio.get_running_loop().create_task(self._persist(event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return event

    async def _persist(self, event: Event) -> None:
        try:
            await self.persist(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("transport: persistence failed for ts=%s: %s", event.timestamp, e)

    async def run(self) -> None:
        while not self._stopped:
            self._set_state(LinkState.CONNECTING)
            try:
                async with aclosing(self.source.receive_messages(on_live=self._mark_live)) as messages:
                    async for raw in messages:
                        self.handle_message(raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("transport: connection lost: %s", e)
            self._set_state(LinkState.DISCONNECTED)
            await asyncio.sleep(self.retry_delay)

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Tear the subscription down; nothing is forwarded or reported afterwards."""
        self._stopped = True
        self._listeners.clear()
        tasks = list(self._pending)
        if self._task is not None:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
