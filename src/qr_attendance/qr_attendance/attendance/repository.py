from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceLogRow, AttendanceRecord, InsertOutcome


class AttendanceRepository(Protocol):
    """Attendance Ledger. One row per (participant, event), enforced by the store."""

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_participant_and_event(self, participant_id: str, event_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_or_get_existing(
        self,
        *,
        participant_id: str,
        event_id: str,
        scanned_at: datetime,
        status: AttendanceStatus,
        session_id: Optional[str] = None,
        team_id: Optional[str] = None,
        marked_by: Optional[str] = None,
    ) -> InsertOutcome:
        """Insert a record, or return the one already stored for (participant, event).

        Must be atomic with respect to concurrent callers: the uniqueness
        constraint decides the winner, never a prior read.
        """

        raise NotImplementedError

    def invalidate(
        self,
        *,
        attendance_id: int,
        invalidated_at: datetime,
        invalidated_by: str,
        reason: str,
    ) -> bool:
        raise NotImplementedError

    def count_valid_present(self, *, event_id: str, participant_ids: Collection[str]) -> int:
        raise NotImplementedError

    def count_valid_for_event(self, event_id: str) -> int:
        raise NotImplementedError

    def list_for_event(self, event_id: str) -> Sequence[AttendanceLogRow]:
        raise NotImplementedError
