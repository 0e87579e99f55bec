# livewatch/services/ingestion.py
import logging
from typing import Tuple
from ..models import EventIn
from ..schemas import Event
from .event_store import EventStore

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Base class for events rejected at the write path."""


class MissingPayloadError(IngestionError):
    def __init__(self, message: str = "frameData is required"):
        super().__init__(message)


def ingest_event(
    store: EventStore,
    event_in: EventIn,
    default_location: Tuple[float, float],
    require_payload: bool = True,
) -> Event:
    """
    Single write path into the store.
    - payload-bearing variant: rejects events without frame data, store untouched
    - metadata-only variant: nothing is mandatory and any frame data is dropped
    Returns the normalized event (its timestamp is the effective one).
    """
    if require_payload and not event_in.payload:
        raise MissingPayloadError()

    event = event_in.to_event(default_location, keep_payload=require_payload)
    admitted = store.ingest(event)
    if admitted:
        logger.info("history: admitted detection ts=%s count=%s", event.timestamp, event.detections)
    return event
