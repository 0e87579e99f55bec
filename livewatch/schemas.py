# livewatch/schemas.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, Tuple


class Location(BaseModel):
    lat: float
    lng: float

    model_config = ConfigDict(frozen=True)


class Event(BaseModel):
    """
    One normalized observation. Wire names are kept as-is:
    `data` is the encoded image (None for metadata-only events),
    `detections` the number of subjects seen in the frame.
    """
    data: Optional[str] = None
    timestamp: int
    detections: int = 0
    location: Location

    model_config = ConfigDict(frozen=True)

    @property
    def is_quiet(self) -> bool:
        return self.detections == 0

    def without_payload(self) -> "Event":
        return self.model_copy(update={"data": None})


class Snapshot(BaseModel):
    latest: Optional[Event] = None
    history: Tuple[Event, ...] = ()

    model_config = ConfigDict(frozen=True)


class HistoryOut(BaseModel):
    history: Tuple[Event, ...] = ()


class IngestOut(BaseModel):
    success: bool = True
    timestamp: int
