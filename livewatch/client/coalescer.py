# livewatch/client/coalescer.py
"""
Client-side presentation coalescer.

Inbound events can arrive much faster than a display should repaint. Frames go
into a single overwrite slot that a fixed-rate drain loop empties, so whatever
is painted is always the newest frame and nothing queues up behind a slow sink.
Positions are throttled to one update per `position_interval`; the last position
held back by the throttle is applied by the drain loop once the window has
passed. The detection badge and connection status are pushed straight through.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from ..schemas import Event
from ..services.event_store import COOLDOWN_MS, H_MAX, DetectionHistory
from ..transport.adapter import LinkState

logger = logging.getLogger(__name__)

CHANNELS = ("frame", "position", "detections", "history", "throughput", "status")


class PresentationCoalescer:
    def __init__(
        self,
        drain_interval: float = 1 / 60,
        position_interval: float = 0.5,
        throughput_window: float = 1.0,
        history_limit: int = H_MAX,
        cooldown_ms: int = COOLDOWN_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.drain_interval = drain_interval
        self.position_interval = position_interval
        self.throughput_window = throughput_window
        self.clock = clock
        self.history = DetectionHistory(history_limit, cooldown_ms)

        self._listeners: Dict[str, List[Callable]] = {name: [] for name in CHANNELS}
        self._pending_frame: Optional[str] = None
        self._pending_position: Optional[Tuple[float, float]] = None
        self._last_position_at: Optional[float] = None
        self.position: Optional[Tuple[float, float]] = None
        self.detections = 0
        self.status: Optional[LinkState] = None
        self.throughput: Optional[float] = None
        self._painted = 0
        self._window_start = clock()
        self._task: Optional[asyncio.Task] = None

    # -- listeners ---------------------------------------------------------

    def subscribe(
        self,
        on_frame: Callable[[str], None] = None,
        on_position: Callable[[float, float], None] = None,
        on_detections: Callable[[int], None] = None,
        on_history: Callable[[Tuple[Event, ...]], None] = None,
        on_throughput: Callable[[float], None] = None,
        on_status: Callable[[LinkState], None] = None,
    ) -> Callable[[], None]:
        """Register any subset of callbacks; returns a function that removes them all."""
        added = []
        for name, cb in zip(CHANNELS, (on_frame, on_position, on_detections, on_history, on_throughput, on_status)):
            if cb is not None:
                self._listeners[name].append(cb)
                added.append((name, cb))

        def unsubscribe():
            for name, cb in added:
                if cb in self._listeners[name]:
                    self._listeners[name].remove(cb)
        return unsubscribe

    def _emit(self, channel: str, *args) -> None:
        for cb in list(self._listeners[channel]):
            try:
                cb(*args)
            except Exception:
                logger.exception("%s listener failed", channel)

    # -- inputs ------------------------------------------------------------

    def push_frame(self, payload: str) -> None:
        self._pending_frame = payload

    def push_position(self, lat: float, lng: float) -> None:
        now = self.clock()
        if self._last_position_at is None or now - self._last_position_at > self.position_interval:
            self._apply_position((lat, lng), now)
        else:
            self._pending_position = (lat, lng)

    def push_detections(self, count: int) -> None:
        if count != self.detections:
            self.detections = count
            self._emit("detections", count)

    def push_event(self, event: Event) -> None:
        if event.data:
            self.push_frame(event.data)
        self.push_position(event.location.lat, event.location.lng)
        self.push_detections(event.detections)
        if self.history.admit(event):
            self._emit("history", self.history.entries)

    def load_history(self, events: Iterable[Event]) -> None:
        self.history.replace(events)
        self._emit("history", self.history.entries)

    def set_status(self, status: LinkState) -> None:
        if status != self.status:
            self.status = status
            self._emit("status", status)

    # -- drain loop --------------------------------------------------------

    def _apply_position(self, position: Tuple[float, float], now: float) -> None:
        self._pending_position = None
        self._last_position_at = now
        self.position = position
        self._emit("position", *position)

    def drain_once(self) -> bool:
        """One paced tick. Returns True when a frame was painted."""
        now = self.clock()
        if self._pending_position is not None and now - self._last_position_at > self.position_interval:
            self._apply_position(self._pending_position, now)

        painted = False
        if self._pending_frame is not None:
            frame, self._pending_frame = self._pending_frame, None
            self._emit("frame", frame)
            self._painted += 1
            painted = True

        elapsed = now - self._window_start
        if elapsed >= self.throughput_window:
            self.throughput = self._painted / elapsed
            self._emit("throughput", self.throughput)
            self._painted = 0
            self._window_start = now
        return painted

    async def run(self) -> None:
        while True:
            self.drain_once()
            await asyncio.sleep(self.drain_interval)

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
