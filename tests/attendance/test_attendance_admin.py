from __future__ import annotations

from datetime import timedelta

import pytest

from src.qr_attendance.qr_attendance.attendance.model import ScanRequest
from src.qr_attendance.qr_attendance.attendance.service import AttendanceLog
from src.qr_attendance.qr_attendance.core.constants import MANUAL_SESSION_ID
from src.qr_attendance.qr_attendance.core.enums import RegistrationStatus, ResultCode
from src.qr_attendance.qr_attendance.core.exceptions import AuthorizationError, ValidationError
from src.qr_attendance.qr_attendance.participants.model import Participant

from tests.fakes import EVENT_ID, TEAM_ID, auditor, organizer, participant


def _mark(world, who, *, after_seconds=5):
    payload = world.issue()
    return world.service.mark_attendance(
        participant(who),
        ScanRequest(event_id=EVENT_ID, session_id=payload.session_id),
        now=world.now + timedelta(seconds=after_seconds),
    )


def test_manual_mark_records_organizer(world):
    result = world.service.mark_manual(organizer("org-7"), event_id=EVENT_ID, participant_id="P2", now=world.now)

    assert result.code == ResultCode.OK
    record = world.attendance.get_for_participant_and_event("P2", EVENT_ID)
    assert record.session_id == MANUAL_SESSION_ID
    assert record.marked_by == "org-7"
    assert world.trigger.calls == [(EVENT_ID, TEAM_ID)]


def test_manual_mark_is_idempotent_with_qr_marks(world):
    first = _mark(world, "P1")

    result = world.service.mark_manual(organizer(), event_id=EVENT_ID, participant_id="P1", now=world.now)

    assert result.code == ResultCode.ALREADY_MARKED
    assert result.data["scannedAt"] == first.data["scannedAt"]


def test_manual_mark_requires_organizer(world):
    with pytest.raises(AuthorizationError):
        world.service.mark_manual(participant("P1"), event_id=EVENT_ID, participant_id="P1")
    with pytest.raises(AuthorizationError):
        world.service.mark_manual(auditor(), event_id=EVENT_ID, participant_id="P1")


@pytest.mark.parametrize("participant_id", ["P5", "ghost"])
def test_manual_mark_rejects_unknown_or_cancelled(world, participant_id):
    with pytest.raises(ValidationError):
        world.service.mark_manual(organizer(), event_id=EVENT_ID, participant_id=participant_id)


def test_invalidate_soft_deletes_and_retriggers(world):
    _mark(world, "P1")
    record = world.attendance.get_for_participant_and_event("P1", EVENT_ID)
    world.trigger.calls.clear()

    updated = world.service.invalidate(
        auditor("aud-9"),
        attendance_id=record.attendance_id,
        reason="Proxy attendance",
        now=world.now + timedelta(minutes=10),
    )

    assert updated.is_valid is False
    assert updated.invalidated_by == "aud-9"
    assert updated.invalidation_reason == "Proxy attendance"
    assert updated.invalidated_at == world.now + timedelta(minutes=10)
    assert world.trigger.calls == [(EVENT_ID, TEAM_ID)]


def test_invalidated_record_still_blocks_a_new_mark(world):
    first = _mark(world, "P1")
    record = world.attendance.get_for_participant_and_event("P1", EVENT_ID)
    world.service.invalidate(auditor(), attendance_id=record.attendance_id, reason="duplicate device")

    again = _mark(world, "P1", after_seconds=30)

    assert again.code == ResultCode.ALREADY_MARKED
    assert again.data["scannedAt"] == first.data["scannedAt"]
    assert len(world.attendance.all()) == 1


def test_invalidate_checks(world):
    _mark(world, "P1")
    record = world.attendance.get_for_participant_and_event("P1", EVENT_ID)

    with pytest.raises(AuthorizationError):
        world.service.invalidate(participant("P1"), attendance_id=record.attendance_id, reason="x")
    with pytest.raises(ValidationError):
        world.service.invalidate(auditor(), attendance_id=record.attendance_id, reason="  ")
    with pytest.raises(ValidationError):
        world.service.invalidate(auditor(), attendance_id=999, reason="missing")

    world.service.invalidate(auditor(), attendance_id=record.attendance_id, reason="first")
    with pytest.raises(ValidationError):
        world.service.invalidate(auditor(), attendance_id=record.attendance_id, reason="second")


def test_log_and_live_count_only_count_valid_records(world):
    _mark(world, "P1", after_seconds=5)
    _mark(world, "P2", after_seconds=6)
    _mark(world, "P4", after_seconds=7)
    p2 = world.attendance.get_for_participant_and_event("P2", EVENT_ID)
    world.service.invalidate(auditor(), attendance_id=p2.attendance_id, reason="left early")

    log = world.service.attendance_log(EVENT_ID)

    # P5 is cancelled, so four registrations count.
    assert log.total_registered == 4
    assert log.total_attended == 2
    assert log.attendance_rate == 50
    assert [row.record.participant_id for row in log.rows] == ["P4", "P2", "P1"]
    assert log.rows[-1].participant_name == "Ana Lima"
    assert log.rows[-1].to_dict()["participantEmail"] == "ana@example.org"

    assert world.service.live_count(EVENT_ID) == {"attended": 2, "registered": 4, "percentage": 50}


def test_live_count_for_empty_event(world):
    assert world.service.live_count("closed-2025") == {"attended": 0, "registered": 0, "percentage": 0}


def test_percentages_round_halves_up(world):
    for n in range(6, 10):
        world.participants.add(Participant(f"P{n}", EVENT_ID, f"Guest {n}", None, RegistrationStatus.CONFIRMED))
    _mark(world, "P1")

    # 1 of 8 is 12.5%.
    assert world.service.attendance_log(EVENT_ID).attendance_rate == 13
    assert world.service.live_count(EVENT_ID) == {"attended": 1, "registered": 8, "percentage": 13}
    assert AttendanceLog(rows=[], total_registered=8, total_attended=5).attendance_rate == 63
