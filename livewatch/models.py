# livewatch/models.py
import json
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Tuple, Union
from .schemas import Event, Location
from .utils.clock import to_ms


class MessageParseError(ValueError):
    """Raised when an inbound sensor message cannot be turned into an Event."""


class LocationIn(BaseModel):
    lat: float
    lng: float


class EventIn(BaseModel):
    # sensor builds have used three names for the encoded frame
    frameData: Optional[str] = None
    data: Optional[str] = None
    frame_b64: Optional[str] = None
    timestamp: Optional[float] = Field(default=None, allow_inf_nan=False)  # ms since epoch
    detections: Optional[int] = Field(default=None, ge=0)
    location: Optional[LocationIn] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def payload(self) -> Optional[str]:
        return self.frameData or self.data or self.frame_b64 or None

    def to_event(self, default_location: Tuple[float, float], keep_payload: bool = True) -> Event:
        if self.location is not None:
            location = Location(lat=self.location.lat, lng=self.location.lng)
        else:
            location = Location(lat=default_location[0], lng=default_location[1])
        return Event(
            data=self.payload if keep_payload else None,
            timestamp=to_ms(self.timestamp),
            detections=self.detections or 0,
            location=location,
        )


def parse_message(raw: Union[bytes, str, dict], default_location: Tuple[float, float]) -> Event:
    """
    Decode one push-channel message (JSON bytes/str, or an already decoded dict)
    into a normalized Event.
    """
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        return EventIn.model_validate(raw).to_event(default_location)
    except ValueError as e:  # JSONDecodeError, UnicodeDecodeError, ValidationError
        raise MessageParseError(str(e)) from e
