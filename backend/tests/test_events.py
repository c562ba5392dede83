"""
Tests for event endpoints and service-level endpoints (health, metrics).
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient):
    """Creating an event starts with nobody confirmed."""
    starts_at = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    response = await client.post(
        "/api/v1/events/",
        json={
            "title": "Spring Potluck",
            "starts_at": starts_at,
            "capacity": 40,
            "waitlist_enabled": True,
            "waitlist_limit": 10,
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Spring Potluck"
    assert data["capacity"] == 40
    assert data["confirmed_count"] == 0
    assert data["waitlist_enabled"] is True
    assert data["waitlist_limit"] == 10


@pytest.mark.asyncio
async def test_create_unlimited_event(client: AsyncClient):
    """Omitting capacity creates an event without a limit."""
    response = await client.post("/api/v1/events/", json={"title": "Open House"})
    assert response.status_code == 201
    data = response.json()
    assert data["capacity"] is None
    assert data["waitlist_enabled"] is False


@pytest.mark.asyncio
async def test_create_event_negative_capacity(client: AsyncClient):
    response = await client.post("/api/v1/events/", json={"title": "Broken", "capacity": -1})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_missing_title(client: AsyncClient):
    response = await client.post("/api/v1/events/", json={"capacity": 10})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, create_event):
    event = await create_event(capacity=5)

    response = await client.get(f"/api/v1/events/{event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == event.id
    assert data["title"] == "Community Picnic"
    assert data["confirmed_count"] == 0


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    """Non-existent event returns 404 with a structured body."""
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "event_not_found"
    assert body["event_id"] == 99999
    assert body["retryable"] is False


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient, create_event):
    event = await create_event(capacity=5)
    await client.post(f"/api/v1/events/{event.id}/attendees/", json={"subject_id": "alice"})

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "rsvp_admission_requests_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")
