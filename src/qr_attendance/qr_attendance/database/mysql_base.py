from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..core.constants import MYSQL_DUPLICATE_KEY_ERRNO
from ..core.exceptions import DuplicateRecordError, StorageUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error as e:
        logger.warning(f"Rollback failed: {e}")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield `(conn, cursor)` and commit on success.

    Duplicate-key violations surface as `DuplicateRecordError`; lost or
    refused connections as `StorageUnavailableError`.
    """

    try:
        conn = conn_factory.connect()
    except (mysql_errors.InterfaceError, mysql_errors.OperationalError) as e:
        raise StorageUnavailableError(f"Database unavailable: {e}") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql_errors.IntegrityError as e:
        _rollback_quietly(conn)
        if e.errno == MYSQL_DUPLICATE_KEY_ERRNO:
            raise DuplicateRecordError(str(e.msg)) from e
        raise
    except (mysql_errors.InterfaceError, mysql_errors.OperationalError) as e:
        _rollback_quietly(conn)
        raise StorageUnavailableError(f"Database unavailable: {e}") from e
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: List[Any]) -> str:
    """Placeholder list for `IN (...)`; callers must pass a non-empty list."""
    return ", ".join(["%s"] * len(values))
