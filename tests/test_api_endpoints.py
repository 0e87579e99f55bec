"""
API endpoint tests for the ingestion and read routes.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from livewatch.main import create_app
from livewatch.utils import clock as clock_module


FRAME = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


class TestReadEndpoint:
    @pytest.mark.asyncio
    async def test_no_writes_yet(self, client):
        resp = await client.get("/api/upload-frame")
        assert resp.status_code == 200
        assert resp.json() == {"latest": None, "history": []}

    @pytest.mark.asyncio
    async def test_reads_are_identical_without_writes(self, client):
        await client.post("/api/upload-frame", json={"frameData": FRAME, "detections": 1, "timestamp": 1000})
        first = await client.get("/api/upload-frame")
        second = await client.get("/api/upload-frame")
        assert first.json() == second.json()

    @pytest.mark.asyncio
    async def test_events_alias_returns_same_snapshot(self, client):
        await client.post("/api/events", json={"detections": 2, "timestamp": 5000})
        a = (await client.get("/api/upload-frame")).json()
        b = (await client.get("/api/events")).json()
        assert a == b

    @pytest.mark.asyncio
    async def test_metadata_only_deployment_returns_history_only(self, settings):
        app = create_app(settings.model_copy(update={"METADATA_ONLY": True}))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            await ac.post("/api/events", json={"detections": 1, "timestamp": 1000})
            body = (await ac.get("/api/events")).json()
        assert set(body) == {"history"}
        assert [e["timestamp"] for e in body["history"]] == [1000]


class TestUploadFrame:
    @pytest.mark.asyncio
    async def test_scenario_cooldown(self, client):
        r1 = await client.post("/api/upload-frame", json={
            "frameData": FRAME, "detections": 1, "timestamp": 1000, "location": {"lat": 1, "lng": 1},
        })
        r2 = await client.post("/api/upload-frame", json={
            "frameData": FRAME, "detections": 1, "timestamp": 1500, "location": {"lat": 2, "lng": 2},
        })
        assert r1.status_code == 201
        assert r1.json() == {"success": True, "timestamp": 1000}
        assert r2.json() == {"success": True, "timestamp": 1500}

        body = (await client.get("/api/upload-frame")).json()
        assert [e["timestamp"] for e in body["history"]] == [1000]
        assert body["latest"]["timestamp"] == 1500
        assert body["latest"]["location"] == {"lat": 2.0, "lng": 2.0}
        assert body["latest"]["data"] == FRAME

    @pytest.mark.asyncio
    async def test_quiet_frame_only_updates_latest(self, client):
        await client.post("/api/upload-frame", json={"frameData": FRAME, "detections": 0, "timestamp": 1000})
        body = (await client.get("/api/upload-frame")).json()
        assert body["history"] == []
        assert body["latest"]["detections"] == 0

    @pytest.mark.asyncio
    async def test_missing_payload_is_client_error(self, client):
        resp = await client.post("/api/upload-frame", json={"detections": 1, "timestamp": 1000})
        assert resp.status_code == 400
        assert resp.json() == {"error": "frameData is required"}

        resp = await client.post("/api/upload-frame", json={"frameData": "", "detections": 1})
        assert resp.status_code == 400

        body = (await client.get("/api/upload-frame")).json()
        assert body == {"latest": None, "history": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["frameData", "data", "frame_b64"])
    async def test_payload_field_names(self, client, field):
        resp = await client.post("/api/upload-frame", json={field: FRAME, "timestamp": 1000})
        assert resp.status_code == 201
        body = (await client.get("/api/upload-frame")).json()
        assert body["latest"]["data"] == FRAME

    @pytest.mark.asyncio
    async def test_defaults_applied(self, client, monkeypatch):
        monkeypatch.setattr(clock_module, "now_ms", lambda: 1_700_000_000_000)
        resp = await client.post("/api/upload-frame", json={"frameData": FRAME})
        assert resp.json()["timestamp"] == 1_700_000_000_000
        latest = (await client.get("/api/upload-frame")).json()["latest"]
        assert latest["detections"] == 0
        assert latest["location"] == {"lat": 0.0, "lng": 0.0}

    @pytest.mark.asyncio
    async def test_replay_without_timestamp_readmits_after_cooldown(self, client, monkeypatch):
        body = {"frameData": FRAME, "detections": 1}
        monkeypatch.setattr(clock_module, "now_ms", lambda: 10_000)
        await client.post("/api/upload-frame", json=body)
        await client.post("/api/upload-frame", json=body)
        monkeypatch.setattr(clock_module, "now_ms", lambda: 12_500)
        await client.post("/api/upload-frame", json=body)
        history = (await client.get("/api/upload-frame")).json()["history"]
        assert [e["timestamp"] for e in history] == [12_500, 10_000]

    @pytest.mark.asyncio
    async def test_negative_detections_rejected(self, client):
        resp = await client.post("/api/upload-frame", json={"frameData": FRAME, "detections": -1})
        assert resp.status_code == 400
        assert "detections" in resp.json()["error"]

    @pytest.mark.asyncio
    async def test_invalid_json_rejected(self, client):
        resp = await client.post(
            "/api/upload-frame", content=b"{not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert "error" in resp.json()

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_server_error(self, app, client, monkeypatch):
        def boom(event):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(app.state.store, "ingest", boom)
        resp = await client.post("/api/upload-frame", json={"frameData": FRAME})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to process frame"}


class TestMetadataEvents:
    @pytest.mark.asyncio
    async def test_no_mandatory_fields(self, client):
        resp = await client.post("/api/events", json={})
        assert resp.status_code == 201
        assert resp.json()["success"] is True

    @pytest.mark.asyncio
    async def test_empty_body_accepted(self, client):
        resp = await client.post("/api/events")
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_payload_not_stored(self, client):
        await client.post("/api/events", json={"frameData": FRAME, "detections": 1, "timestamp": 1000})
        body = (await client.get("/api/events")).json()
        assert body["latest"]["data"] is None
        assert body["history"][0]["data"] is None


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
