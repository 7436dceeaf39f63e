from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Session


class SessionRepository(Protocol):
    """Session Store.

    Physical deletion (`delete_expired`) is storage hygiene only; callers must
    check `Session.is_expired` themselves.
    """

    def create(self, session: Session) -> None:
        raise NotImplementedError

    def get_by_id(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def list_for_event(self, event_id: str, *, alive_at: datetime) -> Sequence[Session]:
        raise NotImplementedError

    def delete_expired(self, *, now: datetime) -> int:
        """Delete sessions whose mirrored expiry is at or before `now`; return the count."""

        raise NotImplementedError
