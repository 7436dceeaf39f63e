from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Event
from .repository import EventRepository


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, event_id: str) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT event_id, title, is_active FROM events WHERE event_id=%s", (event_id,))
            r = fetchone(cur)
            if not r:
                return None
            return Event(event_id=r["event_id"], title=r["title"], is_active=bool(r["is_active"]))
