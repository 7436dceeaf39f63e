from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Collection, Dict, Optional, Sequence

from ..common.datetime_utils import as_utc, to_db_datetime
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceLogRow, AttendanceRecord, InsertOutcome
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    ar.attendance_id, ar.participant_id, ar.event_id, ar.session_id, ar.team_id, ar.status,
    ar.scanned_at, ar.marked_by, ar.is_valid, ar.invalidated_at, ar.invalidated_by, ar.invalidation_reason
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        participant_id=r["participant_id"],
        event_id=r["event_id"],
        status=AttendanceStatus(r["status"]),
        scanned_at=as_utc(r["scanned_at"]),
        session_id=r.get("session_id"),
        team_id=r.get("team_id"),
        marked_by=r.get("marked_by"),
        is_valid=bool(r["is_valid"]),
        invalidated_at=as_utc(r["invalidated_at"]) if r.get("invalidated_at") else None,
        invalidated_by=r.get("invalidated_by"),
        invalidation_reason=r.get("invalidation_reason"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records ar WHERE ar.attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_participant_and_event(self, participant_id: str, event_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records ar
                WHERE ar.participant_id=%s AND ar.event_id=%s
                """,
                (participant_id, event_id),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        participant_id, event_id, session_id, team_id, status, scanned_at, marked_by
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        participant_id,
                        event_id,
                        session_id,
                        team_id,
                        status.value,
                        to_db_datetime(scanned_at),
                        marked_by,
                    ),
                )
                attendance_id = int(cur.lastrowid)
        except DuplicateRecordError:
            existing = self.get_for_participant_and_event(participant_id, event_id)
            if existing is None:
                raise
            logger.info(f"Duplicate attendance insert for participant={participant_id} event={event_id}")
            return InsertOutcome(record=existing, created=False)

        record = AttendanceRecord(
            attendance_id=attendance_id,
            participant_id=participant_id,
            event_id=event_id,
            status=status,
            scanned_at=scanned_at,
            session_id=session_id,
            team_id=team_id,
            marked_by=marked_by,
        )
        return InsertOutcome(record=record, created=True)

    def invalidate(
        self,
        *,
        attendance_id: int,
        invalidated_at: datetime,
        invalidated_by: str,
        reason: str,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET is_valid=0, invalidated_at=%s, invalidated_by=%s, invalidation_reason=%s
                WHERE attendance_id=%s AND is_valid=1
                """,
                (to_db_datetime(invalidated_at), invalidated_by, reason, int(attendance_id)),
            )
            return cur.rowcount > 0

    def count_valid_present(self, *, event_id: str, participant_ids: Collection[str]) -> int:
        ids = list(participant_ids)
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM attendance_records
                WHERE event_id=%s AND status=%s AND is_valid=1 AND participant_id IN ({in_clause(ids)})
                """,
                (event_id, AttendanceStatus.PRESENT.value, *ids),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_valid_for_event(self, event_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM attendance_records
                WHERE event_id=%s AND status=%s AND is_valid=1
                """,
                (event_id, AttendanceStatus.PRESENT.value),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_for_event(self, event_id: str) -> Sequence[AttendanceLogRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, p.full_name, p.email
                FROM attendance_records ar
                LEFT JOIN participants p ON p.participant_id = ar.participant_id AND p.event_id = ar.event_id
                WHERE ar.event_id=%s
                ORDER BY ar.scanned_at DESC
                """,
                (event_id,),
            )
            return [
                AttendanceLogRow(record=_to_record(r), participant_name=r.get("full_name"), participant_email=r.get("email"))
                for r in fetchall(cur)
            ]
