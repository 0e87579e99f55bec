# livewatch/client/display.py
import base64
import binascii
import logging
from typing import Callable, Optional, Tuple
import cv2
import numpy as np
from ..schemas import Event
from ..transport.adapter import LinkState
from .coalescer import PresentationCoalescer

logger = logging.getLogger(__name__)

STATUS_COLORS = {  # BGR
    LinkState.LIVE: (80, 200, 80),
    LinkState.CONNECTING: (0, 200, 255),
    LinkState.DISCONNECTED: (60, 60, 230),
}
PLACEHOLDER_SIZE = (360, 640)


def decode_frame(payload: Optional[str]) -> Optional[np.ndarray]:
    """
    Decode a base64 frame (bare, or a `data:image/jpeg;base64,...` URL) into a BGR image.
    Returns None for anything that is not a decodable image.
    """
    if not payload:
        return None
    try:
        img_bytes = base64.b64decode(payload.split(",", 1)[-1])
    except (binascii.Error, ValueError):
        return None
    nparr = np.frombuffer(img_bytes, np.uint8)
    if nparr.size == 0:
        return None
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


class OpenCVWindow:
    """
    Paints coalesced frames into an OpenCV window with the live overlays:
    connection status, detection badge, throughput and position.
    Until the first frame arrives an explicit placeholder is shown instead.
    """

    def __init__(self, title: str = "livewatch"):
        self.title = title
        self.frame: Optional[np.ndarray] = None
        self.status: Optional[LinkState] = None
        self.detections = 0
        self.throughput: Optional[float] = None
        self.position: Optional[Tuple[float, float]] = None

    def attach(self, coalescer: PresentationCoalescer) -> Callable[[], None]:
        return coalescer.subscribe(
            on_frame=self.paint,
            on_position=self.on_position,
            on_detections=self.on_detections,
            on_throughput=self.on_throughput,
            on_status=self.on_status,
        )

    def paint(self, payload: str) -> None:
        img = decode_frame(payload)
        if img is None:
            logger.debug("display: skipping undecodable frame")
            return
        self.frame = img
        self.render()

    def on_position(self, lat: float, lng: float) -> None:
        self.position = (lat, lng)

    def on_detections(self, count: int) -> None:
        self.detections = count
        self.render()

    def on_throughput(self, fps: float) -> None:
        self.throughput = fps

    def on_status(self, status: LinkState) -> None:
        self.status = status
        self.render()

    def compose(self) -> np.ndarray:
        if self.frame is None:
            canvas = np.zeros(PLACEHOLDER_SIZE + (3,), np.uint8)
            cv2.putText(canvas, "NO DATA YET", (20, PLACEHOLDER_SIZE[0] // 2),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.0, (200, 200, 200), 2)
        else:
            canvas = self.frame.copy()

        status = self.status or LinkState.CONNECTING
        cv2.putText(canvas, status.value.upper(), (10, 25),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.7, STATUS_COLORS[status], 2)
        if self.detections > 0:
            cv2.putText(canvas, f"Detections: {self.detections}", (10, 55),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2)
        h = canvas.shape[0]
        fps = "-- fps" if self.throughput is None else f"{self.throughput:.1f} fps"
        cv2.putText(canvas, fps, (10, h - 15), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)
        if self.position is not None:
            cv2.putText(canvas, f"{self.position[0]:.6f}, {self.position[1]:.6f}", (160, h - 15),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)
        return canvas

    def render(self) -> None:
        cv2.imshow(self.title, self.compose())
        cv2.waitKey(1)

    def close(self) -> None:
        cv2.destroyWindow(self.title)


class LogSink:
    """Headless sink: logs state changes instead of painting."""

    def __init__(self):
        self.frames = 0

    def attach(self, coalescer: PresentationCoalescer) -> Callable[[], None]:
        return coalescer.subscribe(
            on_frame=self.paint,
            on_detections=lambda n: logger.info("detections: %d", n),
            on_history=self.on_history,
            on_throughput=lambda fps: logger.info("throughput: %.1f fps (%d frames total)", fps, self.frames),
            on_status=lambda s: logger.info("status: %s", s.value.upper()),
        )

    def paint(self, payload: str) -> None:
        self.frames += 1

    def on_history(self, history: Tuple[Event, ...]) -> None:
        if history:
            head = history[0]
            logger.info("history: %d entries, newest ts=%s at %.4f,%.4f",
                        len(history), head.timestamp, head.location.lat, head.location.lng)

    def close(self) -> None:
        pass
