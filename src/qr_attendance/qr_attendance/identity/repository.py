from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import Role
from .model import Principal


class TokenRepository(Protocol):
    """Lookup of API tokens by their SHA-256 digest. Raw tokens are never stored."""

    def get_principal(self, token_hash: str) -> Optional[Principal]:
        raise NotImplementedError

    def create_token(self, *, token_hash: str, subject_id: str, role: Role) -> None:
        raise NotImplementedError
