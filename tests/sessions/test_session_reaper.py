from __future__ import annotations

import threading
import time
from datetime import timedelta

from src.qr_attendance.qr_attendance.attendance.model import ScanRequest
from src.qr_attendance.qr_attendance.core.enums import ResultCode
from src.qr_attendance.qr_attendance.sessions.reaper import SessionReaper

from tests.fakes import EVENT_ID, participant


def test_run_once_deletes_only_expired_sessions(world):
    short = world.issue(ttl_seconds=60)
    long = world.issue(ttl_seconds=600)
    reaper = SessionReaper(world.sessions, interval=60)

    removed = reaper.run_once(now=world.now + timedelta(seconds=60))

    assert removed == 1
    assert world.sessions.get_by_id(short.session_id) is None
    assert world.sessions.get_by_id(long.session_id) is not None


def test_validation_does_not_depend_on_reaping(world):
    payload = world.issue(ttl_seconds=60)
    later = world.now + timedelta(seconds=61)

    # Still physically present: the reaper has not run.
    assert world.sessions.get_by_id(payload.session_id) is not None
    result = world.service.mark_attendance(
        participant("P1"),
        ScanRequest(event_id=EVENT_ID, session_id=payload.session_id),
        now=later,
    )
    assert result.code == ResultCode.EXPIRED_QR


class _CountingSessions:
    def __init__(self, fail_first: bool = False):
        self.calls = 0
        self.fail_first = fail_first
        self.called = threading.Event()

    def delete_expired(self, *, now):
        self.calls += 1
        self.called.set()
        if self.fail_first and self.calls == 1:
            raise RuntimeError("db down")
        return 0


def test_background_thread_runs_and_stops():
    sessions = _CountingSessions()
    reaper = SessionReaper(sessions, interval=0.01)

    reaper.start()
    assert sessions.called.wait(timeout=2)
    assert reaper.running

    reaper.stop(timeout=2)
    assert not reaper.running
    assert sessions.calls >= 1


def test_background_thread_survives_errors():
    sessions = _CountingSessions(fail_first=True)
    reaper = SessionReaper(sessions, interval=0.01)

    reaper.start()
    try:
        for _ in range(200):
            if sessions.calls >= 2:
                break
            time.sleep(0.01)
    finally:
        reaper.stop(timeout=2)

    assert sessions.calls >= 2
