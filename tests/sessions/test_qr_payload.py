from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from src.qr_attendance.qr_attendance.core.exceptions import ValidationError
from src.qr_attendance.qr_attendance.geofence.evaluator import GeoFence
from src.qr_attendance.qr_attendance.sessions.model import CodeKind, SessionPayload, parse_qr_text

EXPIRES = datetime(2026, 3, 14, 9, 5, 0, tzinfo=timezone.utc)


def test_payload_json_uses_epoch_millis_and_camel_case():
    payload = SessionPayload(session_id="abc", event_id="ev-1", expires_at=EXPIRES)
    data = json.loads(payload.to_json())
    assert data == {
        "sessionId": "abc",
        "eventId": "ev-1",
        "expiresAt": 1773479100000,
        "geoFenceEnabled": False,
    }


def test_parse_session_payload_with_fence():
    payload = SessionPayload(
        session_id="abc",
        event_id="ev-1",
        expires_at=EXPIRES,
        geo_fence_enabled=True,
        geo_fence=GeoFence(10.0, 20.0, 50.0),
    )
    code = parse_qr_text(payload.to_json())

    assert code.kind == CodeKind.SESSION_PAYLOAD
    assert code.session_id == "abc"
    assert code.event_id == "ev-1"
    assert code.expires_at == EXPIRES
    assert code.geo_fence_enabled is True
    assert code.payload.geo_fence == GeoFence(10.0, 20.0, 50.0)


def test_fence_flag_survives_missing_fence_details():
    text = json.dumps({"sessionId": "abc", "eventId": "ev-1", "expiresAt": 1, "geoFenceEnabled": True})
    code = parse_qr_text(text)
    assert code.geo_fence_enabled is True
    assert code.payload.geo_fence is None


def test_non_json_text_falls_back_to_bare_identifier():
    code = parse_qr_text("  4f2a9c0d1e  ")
    assert code.kind == CodeKind.BARE_IDENTIFIER
    assert code.session_id == "4f2a9c0d1e"
    assert code.event_id is None
    assert code.expires_at is None
    assert code.geo_fence_enabled is False


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        None,
        "hello world",
        "[1, 2, 3]",
        "42",
        json.dumps({"eventId": "ev-1", "expiresAt": 1}),
        json.dumps({"sessionId": "abc", "expiresAt": 1}),
        json.dumps({"sessionId": "abc", "eventId": "ev-1"}),
        json.dumps({"sessionId": "abc", "eventId": "ev-1", "expiresAt": "soon"}),
        json.dumps({"sessionId": "abc", "eventId": "ev-1", "expiresAt": True}),
    ],
)
def test_malformed_codes_are_rejected(text):
    with pytest.raises(ValidationError):
        parse_qr_text(text)
