from __future__ import annotations

import io
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

import qrcode

from ..common.datetime_utils import now_utc
from ..common.validators import require_latitude, require_longitude, require_non_empty, require_positive
from ..core.constants import (
    DEFAULT_GEOFENCE_RADIUS_METERS,
    DEFAULT_SESSION_TTL_SECONDS,
    SESSION_ID_BYTES,
    SYSTEM_ISSUER_ID,
)
from ..core.exceptions import ValidationError
from ..events.repository import EventRepository
from ..geofence.evaluator import GeoFence
from .model import Session, SessionPayload
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


def geo_fence_from_request(data: Any, *, default_radius_meters: float) -> Optional[GeoFence]:
    """Build a fence from `{latitude, longitude, radiusMeters?}`; a missing body means no fence."""
    if data is None or data is False:
        return None
    if not isinstance(data, dict):
        raise ValidationError("geoFence must be an object")
    if data.get("enabled") is False:
        return None

    radius = data.get("radiusMeters")
    return GeoFence(
        latitude=require_latitude(data.get("latitude")),
        longitude=require_longitude(data.get("longitude")),
        radius_meters=require_positive(
            default_radius_meters if radius is None else radius, "radiusMeters"
        ),
    )


class SessionIssuer:
    """Use case: an organizer opens a QR attendance session for an event.

    Issuing never closes other live sessions of the same event, so several
    checkpoints can run at once.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        events: EventRepository,
        *,
        default_ttl: timedelta = timedelta(seconds=DEFAULT_SESSION_TTL_SECONDS),
        id_factory: Callable[[], str] = new_session_id,
    ):
        self._sessions = sessions
        self._events = events
        self._default_ttl = default_ttl
        self._id_factory = id_factory

    def issue(
        self,
        *,
        event_id: str,
        issuer_id: Optional[str] = None,
        ttl: Optional[timedelta] = None,
        geo_fence: Optional[GeoFence] = None,
        now: Optional[datetime] = None,
    ) -> SessionPayload:
        now = now or now_utc()
        event_id = require_non_empty(event_id, "eventId")
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValidationError("ttl must be positive")

        event = self._events.get_by_id(event_id)
        if not event:
            raise ValidationError("Event not found")
        if not event.is_active:
            raise ValidationError("Event is not active")

        if geo_fence is not None:
            require_latitude(geo_fence.latitude)
            require_longitude(geo_fence.longitude)
            require_positive(geo_fence.radius_meters, "radiusMeters")

        expires_at = now + ttl
        session = Session(
            session_id=self._id_factory(),
            event_id=event_id,
            issuer_id=issuer_id or SYSTEM_ISSUER_ID,
            created_at=now,
            expires_at=expires_at,
            expires_at_mirror=expires_at,
            geo_fence_enabled=geo_fence is not None,
            geo_latitude=geo_fence.latitude if geo_fence else None,
            geo_longitude=geo_fence.longitude if geo_fence else None,
            geo_radius_meters=geo_fence.radius_meters if geo_fence else None,
        )
        self._sessions.create(session)
        logger.info(
            f"Issued session {session.session_id} for event {event_id} "
            f"(ttl={int(ttl.total_seconds())}s, geofence={session.geo_fence_enabled})"
        )
        return session.to_payload()

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get_by_id(session_id)

    def list_active(self, event_id: str, *, now: Optional[datetime] = None) -> Sequence[Session]:
        now = now or now_utc()
        return [s for s in self._sessions.list_for_event(event_id, alive_at=now) if not s.is_expired(now)]


def render_qr_png(payload: SessionPayload) -> bytes:
    """Render the session payload as a PNG QR image."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(payload.to_json())
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
