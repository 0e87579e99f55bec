# livewatch/services/event_store.py
import threading
from typing import Optional, Tuple
from ..schemas import Event, Snapshot

H_MAX = 10
COOLDOWN_MS = 2000


class DetectionHistory:
    """
    Bounded, most-recent-first list of detection events.

    An event is admitted only when it reports at least one detection and is more
    than `cooldown_ms` newer than the current head. Only the head is compared, so a
    burst of positive frames collapses into its first frame while detections that
    are genuinely apart each get a slot.
    """

    def __init__(self, limit: int = H_MAX, cooldown_ms: int = COOLDOWN_MS):
        self.limit = limit
        self.cooldown_ms = cooldown_ms
        self._entries: Tuple[Event, ...] = ()

    @property
    def entries(self) -> Tuple[Event, ...]:
        return self._entries

    @property
    def head(self) -> Optional[Event]:
        return self._entries[0] if self._entries else None

    def qualifies(self, event: Event) -> bool:
        if event.detections <= 0:
            return False
        head = self.head
        return head is None or event.timestamp - head.timestamp > self.cooldown_ms

    def admit(self, event: Event) -> bool:
        if not self.qualifies(event):
            return False
        self._entries = ((event,) + self._entries)[: self.limit]
        return True

    def replace(self, events) -> None:
        # bootstrap path: trust the server's ordering, only re-apply the bound
        self._entries = tuple(events)[: self.limit]

    def __len__(self):
        return len(self._entries)


class EventStore:
    """Latest observation plus bounded detection history, held in process memory."""

    def __init__(self, history_limit: int = H_MAX, cooldown_ms: int = COOLDOWN_MS):
        self._lock = threading.Lock()
        self._latest: Optional[Event] = None
        self._history = DetectionHistory(history_limit, cooldown_ms)

    def record_latest(self, event: Event) -> None:
        self._latest = event

    def maybe_admit_to_history(self, event: Event) -> bool:
        return self._history.admit(event)

    def ingest(self, event: Event) -> bool:
        """Record `event` as latest and evaluate it for history as one step."""
        with self._lock:
            self.record_latest(event)
            if event.detections > 0:
                return self.maybe_admit_to_history(event)
            return False

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(latest=self._latest, history=self._history.entries)
