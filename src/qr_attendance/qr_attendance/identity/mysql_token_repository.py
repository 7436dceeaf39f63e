from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Principal
from .repository import TokenRepository


class MySQLTokenRepository(TokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_principal(self, token_hash: str) -> Optional[Principal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subject_id, role
                FROM api_tokens
                WHERE token_hash=%s AND revoked_at IS NULL
                """,
                (token_hash,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Principal(subject_id=r["subject_id"], role=Role(r["role"]))

    def create_token(self, *, token_hash: str, subject_id: str, role: Role) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO api_tokens(token_hash, subject_id, role) VALUES(%s,%s,%s)",
                (token_hash, subject_id, role.value),
            )
