# livewatch/routes/frames.py
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from typing import Optional
from ..models import EventIn
from ..schemas import HistoryOut, IngestOut
from ..services.event_store import EventStore
from ..services.ingestion import IngestionError, ingest_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["frames"])


def get_store(request: Request) -> EventStore:
    return request.app.state.store


def _write(request: Request, store: EventStore, event: EventIn, require_payload: bool):
    settings = request.app.state.settings
    try:
        stored = ingest_event(store, event, settings.server_default_location, require_payload=require_payload)
    except IngestionError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception:
        logger.exception("Error processing frame")
        return JSONResponse({"error": "Failed to process frame"}, status_code=500)
    return IngestOut(timestamp=stored.timestamp)


def _read(request: Request, store: EventStore):
    snapshot = store.snapshot()
    if request.app.state.settings.METADATA_ONLY:
        return HistoryOut(history=snapshot.history)
    return snapshot


@router.post("/upload-frame", status_code=201, response_model=IngestOut)
async def upload_frame(event: EventIn, request: Request, store: EventStore = Depends(get_store)):
    """
    Frame upload from the sensor. Requires `frameData` (or `data` / `frame_b64`).
    Always replaces the latest frame; detections are admitted to history
    subject to the cooldown window.
    """
    return _write(request, store, event, require_payload=True)


@router.post("/events", status_code=201, response_model=IngestOut)
async def post_event(request: Request, event: Optional[EventIn] = None, store: EventStore = Depends(get_store)):
    """
    Metadata-only write path used by dashboards relaying what they received.
    No field is mandatory; frame data, if sent, is not stored.
    """
    return _write(request, store, event or EventIn(), require_payload=False)


@router.get("/upload-frame")
async def get_latest(request: Request, store: EventStore = Depends(get_store)):
    """
    Current snapshot: `{latest, history}`; `latest` is null until the first write.
    Metadata-only deployments return `{history}`.
    """
    return _read(request, store)


@router.get("/events")
async def get_events(request: Request, store: EventStore = Depends(get_store)):
    return _read(request, store)
