from __future__ import annotations

from datetime import timedelta

import pytest

from src.qr_attendance.qr_attendance.core.exceptions import ValidationError
from src.qr_attendance.qr_attendance.events.model import Event
from src.qr_attendance.qr_attendance.geofence.evaluator import GeoFence
from src.qr_attendance.qr_attendance.sessions.service import (
    SessionIssuer,
    geo_fence_from_request,
    new_session_id,
    render_qr_png,
)

from tests.fakes import EVENT_ID, InMemoryEvents, InMemorySessions


def test_issue_persists_session_with_both_expiry_fields(world):
    payload = world.issue(ttl_seconds=300)

    stored = world.sessions.get_by_id(payload.session_id)
    assert stored is not None
    assert stored.event_id == EVENT_ID
    assert stored.issuer_id == "org-1"
    assert stored.created_at == world.now
    assert stored.expires_at == world.now + timedelta(seconds=300)
    assert stored.expires_at_mirror == stored.expires_at
    assert stored.geo_fence_enabled is False

    assert payload.expires_at == stored.expires_at
    assert payload.to_dict()["geoFenceEnabled"] is False
    assert "geoRadiusMeters" not in payload.to_dict()


def test_issue_does_not_close_other_live_sessions(world):
    first = world.issue()
    second = world.issue()

    assert first.session_id != second.session_id
    live = world.issuer.list_active(EVENT_ID, now=world.now + timedelta(seconds=10))
    assert {s.session_id for s in live} == {first.session_id, second.session_id}


def test_issue_with_geofence_embeds_fence_in_payload(world):
    payload = world.issue(geo_fence=GeoFence(12.97, 77.59, 150.0))

    data = payload.to_dict()
    assert data["geoFenceEnabled"] is True
    assert data["geoLatitude"] == 12.97
    assert data["geoLongitude"] == 77.59
    assert data["geoRadiusMeters"] == 150.0


def test_issue_uses_default_ttl(fixed_now):
    sessions = InMemorySessions()
    issuer = SessionIssuer(
        sessions,
        InMemoryEvents([Event(event_id=EVENT_ID, title="Spring Hackathon")]),
        default_ttl=timedelta(seconds=120),
    )

    payload = issuer.issue(event_id=EVENT_ID, now=fixed_now)
    assert payload.expires_at - fixed_now == timedelta(seconds=120)
    assert sessions.get_by_id(payload.session_id).issuer_id == "system"


@pytest.mark.parametrize("ttl_seconds", [0, -5])
def test_issue_rejects_non_positive_ttl(world, ttl_seconds):
    with pytest.raises(ValidationError):
        world.issue(ttl_seconds=ttl_seconds)
    assert world.sessions.by_id == {}


def test_issue_rejects_unknown_or_inactive_event(world):
    with pytest.raises(ValidationError):
        world.issue(event_id="nope")
    with pytest.raises(ValidationError):
        world.issue(event_id="closed-2025")


def test_issue_rejects_non_positive_radius(world):
    with pytest.raises(ValidationError):
        world.issue(geo_fence=GeoFence(12.97, 77.59, 0.0))


def test_list_active_hides_sessions_from_their_expiry_instant(world):
    payload = world.issue(ttl_seconds=60)
    assert world.issuer.list_active(EVENT_ID, now=payload.expires_at - timedelta(milliseconds=1))
    assert world.issuer.list_active(EVENT_ID, now=payload.expires_at) == []


def test_new_session_id_is_128_bit_hex():
    sid = new_session_id()
    assert len(sid) == 32
    int(sid, 16)
    assert sid != new_session_id()


def test_geo_fence_from_request_applies_default_radius():
    fence = geo_fence_from_request({"latitude": 1.5, "longitude": 2.5}, default_radius_meters=200.0)
    assert fence == GeoFence(1.5, 2.5, 200.0)
    assert geo_fence_from_request(None, default_radius_meters=200.0) is None
    assert geo_fence_from_request({"enabled": False}, default_radius_meters=200.0) is None


@pytest.mark.parametrize(
    "body",
    [
        {"latitude": 91, "longitude": 0},
        {"latitude": 0, "longitude": -181},
        {"latitude": "abc", "longitude": 0},
        {"latitude": 0, "longitude": 0, "radiusMeters": -1},
        "not-an-object",
    ],
)
def test_geo_fence_from_request_rejects_bad_input(body):
    with pytest.raises(ValidationError):
        geo_fence_from_request(body, default_radius_meters=200.0)


def test_render_qr_png_returns_png_bytes(world):
    png = render_qr_png(world.issue())
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
