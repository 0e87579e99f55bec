# livewatch/transport/forwarder.py
import httpx
from ..schemas import Event


class IngestionForwarder:
    """
    Relays an event to the ingestion endpoint. With `strip_payload` the frame data is
    removed and the metadata-only path is used, which keeps the upload small.
    Raises on transport errors and non-2xx answers; callers decide whether to care.
    """

    def __init__(self, base_url: str, strip_payload: bool = True, timeout: float = 5.0,
                 client: httpx.AsyncClient = None):
        self.base_url = base_url.rstrip("/")
        self.strip_payload = strip_payload
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __call__(self, event: Event) -> int:
        if self.strip_payload or not event.data:
            url = self.base_url + "/api/events"
            event = event.without_payload()
        else:
            url = self.base_url + "/api/upload-frame"
        resp = await self._client.post(url, json=event.model_dump(mode="json", exclude_none=True))
        resp.raise_for_status()
        return resp.json().get("timestamp")

    async def aclose(self):
        await self._client.aclose()
