from __future__ import annotations

import io
import json
import math

import pytest

from src.qr_attendance.qr_attendance.container import wire_container
from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.core.exceptions import StorageUnavailableError
from src.qr_attendance.qr_attendance.main import create_app
from src.qr_attendance.qr_attendance.sessions.model import SessionPayload
from src.qr_attendance.qr_attendance.sessions.service import render_qr_png

from tests.fakes import EVENT_ID, TEAM_ID, InMemoryTokens, build_world

VENUE = {"latitude": 18.5, "longitude": 73.8}


@pytest.fixture
def api(monkeypatch, fixed_now):
    monkeypatch.setenv("APP_ENV", "testing")
    world = build_world(fixed_now)
    container = wire_container(
        sessions_repo=world.sessions,
        events_repo=world.events,
        participants_repo=world.participants,
        tokens_repo=InMemoryTokens(),
        attendance_repo=world.attendance,
        teams_repo=world.teams,
    )
    app = create_app(container=container)
    app.testing = True

    def bearer(subject_id, role=Role.PARTICIPANT):
        token = container.identity_service.issue_token(subject_id=subject_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    client = app.test_client()
    client.container = container
    client.bearer = bearer
    client.org = bearer("org-1", Role.ORGANIZER)
    yield client
    container.aggregation_dispatcher.stop(timeout=2)


def _issue(api, body=None):
    resp = api.post(f"/api/organizer/attendance/{EVENT_ID}/sessions", json=body or {}, headers=api.org)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _scan(api, who, body):
    return api.post("/api/participant/attendance/scan", json=body, headers=api.bearer(who))


def test_health(api):
    resp = api.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["workers"]["teamAggregation"] == "running"
    assert body["workers"]["sessionReaper"] == "stopped"


def test_issue_session_returns_payload_and_qr_data(api):
    data = _issue(api)

    assert data["expiresIn"] == 300
    assert data["payload"]["eventId"] == EVENT_ID
    assert data["payload"]["sessionId"] == data["sessionId"]
    assert json.loads(data["qrData"]) == data["payload"]
    assert data["expiresAt"].endswith("Z")


def test_issue_session_with_ttl_and_geofence(api):
    data = _issue(api, {"ttlSeconds": 60, "geoFence": dict(VENUE)})

    assert data["expiresIn"] == 60
    assert data["payload"]["geoFenceEnabled"] is True
    assert data["payload"]["geoRadiusMeters"] == 200.0


@pytest.mark.parametrize(
    "body",
    [
        {"ttlSeconds": 0},
        {"ttlSeconds": "soon"},
        {"geoFence": {"latitude": 123, "longitude": 0}},
    ],
)
def test_issue_session_rejects_bad_input(api, body):
    resp = api.post(f"/api/organizer/attendance/{EVENT_ID}/sessions", json=body, headers=api.org)
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_issue_session_requires_organizer(api):
    url = f"/api/organizer/attendance/{EVENT_ID}/sessions"
    assert api.post(url, json={}).status_code == 401
    assert api.post(url, json={}, headers=api.bearer("P1")).status_code == 403


def test_issue_session_for_unknown_event(api):
    resp = api.post("/api/organizer/attendance/nope/sessions", json={}, headers=api.org)
    assert resp.status_code == 400


def test_list_sessions_and_qr_png(api):
    first = _issue(api)
    second = _issue(api)

    resp = api.get(f"/api/organizer/attendance/{EVENT_ID}/sessions", headers=api.org)
    assert resp.status_code == 200
    ids = {s["sessionId"] for s in resp.get_json()["data"]}
    assert ids == {first["sessionId"], second["sessionId"]}

    png = api.get(f"/api/organizer/attendance/sessions/{first['sessionId']}/qr.png", headers=api.org)
    assert png.status_code == 200
    assert png.mimetype == "image/png"
    assert png.data.startswith(b"\x89PNG")

    missing = api.get("/api/organizer/attendance/sessions/unknown/qr.png", headers=api.org)
    assert missing.status_code == 404


def test_scan_then_rescan(api):
    data = _issue(api)
    body = {"eventId": EVENT_ID, "sessionId": data["sessionId"]}

    first = _scan(api, "P1", body)
    second = _scan(api, "P1", body)

    assert first.status_code == 200
    assert first.get_json()["code"] == "OK"
    assert first.get_json()["data"]["participantName"] == "Ana Lima"
    assert second.status_code == 200
    assert second.get_json()["code"] == "ALREADY_MARKED"
    assert second.get_json()["success"] is True
    assert second.get_json()["data"]["scannedAt"] == first.get_json()["data"]["scannedAt"]


def test_scan_status_codes(api):
    plain = _issue(api)
    fenced = _issue(api, {"geoFence": dict(VENUE)})
    far_lat = VENUE["latitude"] + math.degrees(5000 / 6_371_000.0)

    no_auth = api.post("/api/participant/attendance/scan", json={"sessionId": plain["sessionId"]})
    assert (no_auth.status_code, no_auth.get_json()["code"]) == (401, "NO_IDENTITY")

    unknown = _scan(api, "P1", {"sessionId": "nope"})
    assert (unknown.status_code, unknown.get_json()["code"]) == (400, "INVALID_QR")

    bad_body = api.post("/api/participant/attendance/scan", json=["x"], headers=api.bearer("P1"))
    assert (bad_body.status_code, bad_body.get_json()["code"]) == (400, "INVALID_QR")

    bad_lat = _scan(api, "P1", {"sessionId": plain["sessionId"], "latitude": "north", "longitude": 1})
    assert (bad_lat.status_code, bad_lat.get_json()["code"]) == (400, "INVALID_QR")

    no_gps = _scan(api, "P2", {"sessionId": fenced["sessionId"]})
    assert (no_gps.status_code, no_gps.get_json()["code"]) == (400, "LOCATION_REQUIRED")

    far = _scan(api, "P2", {"sessionId": fenced["sessionId"], "latitude": far_lat, "longitude": VENUE["longitude"]})
    assert (far.status_code, far.get_json()["code"]) == (403, "OUT_OF_RANGE")
    assert far.get_json()["data"]["distanceMeters"] == 5000


def test_storage_outage_is_a_retryable_network_error(api, monkeypatch):
    data = _issue(api)

    def down(session_id):
        raise StorageUnavailableError("connection refused")

    monkeypatch.setattr(api.container.sessions_repo, "get_by_id", down)
    resp = _scan(api, "P1", {"sessionId": data["sessionId"]})

    assert resp.status_code == 503
    assert resp.get_json()["code"] == "NETWORK_ERROR"


def test_scan_updates_team_summary(api):
    data = _issue(api)
    _scan(api, "P1", {"sessionId": data["sessionId"]})
    _scan(api, "P2", {"sessionId": data["sessionId"]})
    api.container.aggregation_dispatcher.wait_idle()

    resp = api.get(f"/api/organizer/teams/{EVENT_ID}/attendance", headers=api.org)

    assert resp.status_code == 200
    [summary] = resp.get_json()["data"]
    assert summary["teamId"] == TEAM_ID
    assert summary["membersPresent"] == 2
    assert summary["membersAbsent"] == 1
    assert summary["attendancePercentage"] == 67


def test_manual_invalidate_log_and_live(api):
    manual = api.post(f"/api/organizer/attendance/{EVENT_ID}/manual/P3", headers=api.org)
    assert manual.status_code == 200
    assert manual.get_json()["code"] == "OK"
    assert api.post(f"/api/organizer/attendance/{EVENT_ID}/manual/P3", headers=api.bearer("P1")).status_code == 403
    assert api.post(f"/api/organizer/attendance/{EVENT_ID}/manual/ghost", headers=api.org).status_code == 400

    log = api.get(f"/api/organizer/attendance/{EVENT_ID}", headers=api.org).get_json()["data"]
    [record] = log["records"]
    assert record["participantName"] == "Chen Wu"
    assert record["markedBy"] == "org-1"
    assert log["stats"] == {"totalRegistered": 4, "totalAttended": 1, "attendanceRate": 25}

    url = f"/api/auditor/attendance/{record['attendanceId']}/invalidate"
    auditor = api.bearer("aud-1", Role.AUDITOR)
    assert api.post(url, json={}, headers=auditor).status_code == 400
    assert api.post(url, json={"reason": "x"}, headers=api.bearer("P1")).status_code == 403

    resp = api.post(url, json={"reason": "Marked by mistake"}, headers=auditor)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["isValid"] is False
    assert api.post(url, json={"reason": "again"}, headers=auditor).status_code == 400

    live = api.get(f"/api/organizer/attendance/{EVENT_ID}/live", headers=api.org)
    assert live.get_json()["data"] == {"attended": 0, "registered": 4, "percentage": 0}


def test_scan_image_upload(api):
    pytest.importorskip("pyzbar.pyzbar")
    pytest.importorskip("cv2")
    data = _issue(api)
    payload = SessionPayload.from_dict(data["payload"])
    png = render_qr_png(payload)

    resp = api.post(
        "/api/participant/attendance/scan/image",
        data={"image": (io.BytesIO(png), "qr.png")},
        content_type="multipart/form-data",
        headers=api.bearer("P1"),
    )

    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()["code"] == "OK"


def test_scan_image_requires_upload(api):
    resp = api.post(
        "/api/participant/attendance/scan/image",
        data={},
        content_type="multipart/form-data",
        headers=api.bearer("P1"),
    )
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_QR"


def test_cli_issue_session_and_token(api, tmp_path):
    runner = api.application.test_cli_runner()

    png_path = tmp_path / "qr.png"
    result = runner.invoke(args=["issue-session", EVENT_ID, "--ttl", "120", "--png", str(png_path)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output.splitlines()[0])
    assert payload["eventId"] == EVENT_ID
    assert png_path.read_bytes().startswith(b"\x89PNG")

    bad = runner.invoke(args=["issue-session", "nope"])
    assert bad.exit_code != 0
    assert "Event not found" in bad.output

    token = runner.invoke(args=["issue-token", "P2"]).output.strip()
    principal = api.container.identity_service.resolve(f"Bearer {token}")
    assert principal.subject_id == "P2"
    assert principal.role == Role.PARTICIPANT


def test_cli_reap_sessions(api):
    runner = api.application.test_cli_runner()
    result = runner.invoke(args=["reap-sessions"])
    assert result.exit_code == 0
    assert "Removed 0 expired session(s)." in result.output
