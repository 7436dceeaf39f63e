from __future__ import annotations

from typing import Optional

from ..core.enums import RegistrationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Participant
from .repository import ParticipantRepository


class MySQLParticipantRepository(ParticipantRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_registration(self, participant_id: str, event_id: str) -> Optional[Participant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT participant_id, event_id, full_name, email, registration_status
                FROM participants
                WHERE participant_id=%s AND event_id=%s
                """,
                (participant_id, event_id),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Participant(
                participant_id=r["participant_id"],
                event_id=r["event_id"],
                full_name=r["full_name"],
                email=r.get("email"),
                registration_status=RegistrationStatus(r["registration_status"]),
            )

    def count_registered(self, event_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM participants
                WHERE event_id=%s AND registration_status <> %s
                """,
                (event_id, RegistrationStatus.CANCELLED.value),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0
