from __future__ import annotations

import hashlib
import secrets
from typing import Optional

from ..common.validators import require_non_empty
from ..core.enums import Role
from .model import Principal
from .repository import TokenRepository


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the credential from an `Authorization: Bearer ...` header value."""
    if not authorization:
        return None
    scheme, _, value = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


class IdentityService:
    """Resolves bearer credentials to principals."""

    def __init__(self, tokens: TokenRepository):
        self._tokens = tokens

    def resolve(self, authorization: Optional[str]) -> Optional[Principal]:
        token = bearer_token(authorization)
        if token is None:
            return None
        return self._tokens.get_principal(hash_token(token))

    def issue_token(self, *, subject_id: str, role: Role) -> str:
        subject_id = require_non_empty(subject_id, "subject_id")
        token = secrets.token_urlsafe(32)
        self._tokens.create_token(token_hash=hash_token(token), subject_id=subject_id, role=role)
        return token
