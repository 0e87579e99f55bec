# livewatch/client/bootstrap.py
import logging
from typing import List, Optional, Sequence, Tuple
import httpx
from ..models import EventIn
from ..schemas import Event
from .coalescer import PresentationCoalescer

logger = logging.getLogger(__name__)


async def fetch_history(
    client: httpx.AsyncClient,
    urls: Sequence[str],
    default_location: Tuple[float, float],
) -> Optional[List[Event]]:
    """
    Try each read endpoint in order (local sensor first, then the server) and
    return the first history obtained. A source that answers but carries no
    history ends the search; only failures fall through to the next one.
    """
    for url in urls:
        try:
            resp = await client.get(url)
            resp.raise_for_status()
            body = resp.json()
            history = body.get("history") if isinstance(body, dict) else None
            if history is None:
                return None
            return [EventIn.model_validate(e).to_event(default_location) for e in history]
        except (httpx.HTTPError, ValueError) as e:
            logger.info("bootstrap: %s unavailable (%s)", url, e)
    return None


async def bootstrap_history(
    coalescer: PresentationCoalescer,
    client: httpx.AsyncClient,
    urls: Sequence[str],
    default_location: Tuple[float, float],
) -> bool:
    history = await fetch_history(client, urls, default_location)
    if history is None:
        logger.warning("bootstrap: no history available, showing live stream only")
        return False
    coalescer.load_history(history)
    logger.info("bootstrap: loaded %d history entries", len(history))
    return True
