from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import as_utc, from_epoch_ms, to_db_datetime, to_epoch_ms
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Session
from .repository import SessionRepository

_COLUMNS = """
    session_id, event_id, issuer_id, created_at_ms, expires_at_ms, expires_at_mirror,
    geo_fence_enabled, geo_latitude, geo_longitude, geo_radius_meters
"""


def _to_session(r: Dict[str, Any]) -> Session:
    enabled = bool(r["geo_fence_enabled"])
    return Session(
        session_id=r["session_id"],
        event_id=r["event_id"],
        issuer_id=r["issuer_id"],
        created_at=from_epoch_ms(int(r["created_at_ms"])),
        expires_at=from_epoch_ms(int(r["expires_at_ms"])),
        expires_at_mirror=as_utc(r["expires_at_mirror"]),
        geo_fence_enabled=enabled,
        geo_latitude=float(r["geo_latitude"]) if enabled else None,
        geo_longitude=float(r["geo_longitude"]) if enabled else None,
        geo_radius_meters=float(r["geo_radius_meters"]) if enabled else None,
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, session: Session) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO qr_sessions(
                    session_id, event_id, issuer_id, created_at_ms, expires_at_ms, expires_at_mirror,
                    geo_fence_enabled, geo_latitude, geo_longitude, geo_radius_meters
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session.session_id,
                    session.event_id,
                    session.issuer_id,
                    to_epoch_ms(session.created_at),
                    to_epoch_ms(session.expires_at),
                    to_db_datetime(session.expires_at_mirror),
                    1 if session.geo_fence_enabled else 0,
                    session.geo_latitude,
                    session.geo_longitude,
                    session.geo_radius_meters,
                ),
            )

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM qr_sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_for_event(self, event_id: str, *, alive_at: datetime) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM qr_sessions
                WHERE event_id=%s AND expires_at_ms > %s
                ORDER BY created_at_ms DESC
                """,
                (event_id, to_epoch_ms(alive_at)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def delete_expired(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM qr_sessions WHERE expires_at_mirror <= %s",
                (to_db_datetime(now),),
            )
            return int(cur.rowcount or 0)
