from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..common.datetime_utils import from_epoch_ms, to_epoch_ms
from ..core.exceptions import ValidationError
from ..geofence.evaluator import GeoFence


@dataclass(frozen=True)
class Session:
    """Domain entity: a time-boxed QR attendance session.

    `expires_at` is the only field validation looks at. `expires_at_mirror`
    holds the same instant and exists for the background reaper.
    """

    session_id: str
    event_id: str
    issuer_id: str
    created_at: datetime
    expires_at: datetime
    expires_at_mirror: datetime
    geo_fence_enabled: bool = False
    geo_latitude: Optional[float] = None
    geo_longitude: Optional[float] = None
    geo_radius_meters: Optional[float] = None

    @property
    def geo_fence(self) -> Optional[GeoFence]:
        if not self.geo_fence_enabled:
            return None
        return GeoFence(
            latitude=float(self.geo_latitude),
            longitude=float(self.geo_longitude),
            radius_meters=float(self.geo_radius_meters),
        )

    def is_expired(self, now: datetime) -> bool:
        # Dead from the expiry instant on.
        return now >= self.expires_at

    def to_payload(self) -> "SessionPayload":
        return SessionPayload(
            session_id=self.session_id,
            event_id=self.event_id,
            expires_at=self.expires_at,
            geo_fence_enabled=self.geo_fence_enabled,
            geo_fence=self.geo_fence,
        )


@dataclass(frozen=True)
class SessionPayload:
    """What gets embedded in the QR image. Plain JSON, not signed."""

    session_id: str
    event_id: str
    expires_at: datetime
    geo_fence_enabled: bool = False
    geo_fence: Optional[GeoFence] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sessionId": self.session_id,
            "eventId": self.event_id,
            "expiresAt": to_epoch_ms(self.expires_at),
            "geoFenceEnabled": self.geo_fence_enabled,
        }
        if self.geo_fence is not None:
            data["geoLatitude"] = self.geo_fence.latitude
            data["geoLongitude"] = self.geo_fence.longitude
            data["geoRadiusMeters"] = self.geo_fence.radius_meters
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionPayload":
        session_id = data.get("sessionId")
        event_id = data.get("eventId")
        expires_at = data.get("expiresAt")

        if not isinstance(session_id, str) or not session_id.strip():
            raise ValidationError("QR payload has no sessionId")
        if not isinstance(event_id, str) or not event_id.strip():
            raise ValidationError("QR payload has no eventId")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise ValidationError("QR payload has no expiresAt")

        geo_fence_enabled = data.get("geoFenceEnabled") is True
        geo_fence = None
        if geo_fence_enabled:
            try:
                geo_fence = GeoFence(
                    latitude=float(data["geoLatitude"]),
                    longitude=float(data["geoLongitude"]),
                    radius_meters=float(data["geoRadiusMeters"]),
                )
            except (KeyError, TypeError, ValueError):
                # Fence details are informational here; the server holds the real ones.
                geo_fence = None

        return cls(
            session_id=session_id.strip(),
            event_id=event_id.strip(),
            expires_at=from_epoch_ms(expires_at),
            geo_fence_enabled=geo_fence_enabled,
            geo_fence=geo_fence,
        )


class CodeKind(str, Enum):
    SESSION_PAYLOAD = "session_payload"
    BARE_IDENTIFIER = "bare_identifier"


@dataclass(frozen=True)
class ScannedCode:
    """Tagged result of reading QR text.

    A JSON object must be a complete session payload or it is rejected.
    Text that is not JSON at all is kept as a bare identifier, which the
    client submits as a session id and the server validates like any other.
    """

    kind: CodeKind
    raw: str
    payload: Optional[SessionPayload] = None

    @property
    def session_id(self) -> str:
        if self.payload is not None:
            return self.payload.session_id
        return self.raw

    @property
    def event_id(self) -> Optional[str]:
        return self.payload.event_id if self.payload is not None else None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self.payload.expires_at if self.payload is not None else None

    @property
    def geo_fence_enabled(self) -> bool:
        return self.payload is not None and self.payload.geo_fence_enabled


def parse_qr_text(text: Optional[str]) -> ScannedCode:
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("QR code is empty")

    try:
        data = json.loads(raw)
    except ValueError:
        if any(ch.isspace() for ch in raw):
            raise ValidationError("QR code is not a recognised attendance code") from None
        return ScannedCode(kind=CodeKind.BARE_IDENTIFIER, raw=raw)

    if not isinstance(data, dict):
        raise ValidationError("QR code is not a recognised attendance code")
    return ScannedCode(kind=CodeKind.SESSION_PAYLOAD, raw=raw, payload=SessionPayload.from_dict(data))
