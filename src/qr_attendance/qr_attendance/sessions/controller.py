from __future__ import annotations

import io
from datetime import timedelta

from flask import Flask, g, jsonify, request, send_file

from ..common.datetime_utils import isoformat_utc, now_utc
from ..common.validators import require_positive
from ..common.web import bearer_required, domain_errors, json_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import Session
from .service import geo_fence_from_request, render_qr_png


def _session_json(s: Session) -> dict:
    data = s.to_payload().to_dict()
    data["issuerId"] = s.issuer_id
    data["createdAt"] = isoformat_utc(s.created_at)
    return data


def register(app: Flask, container: Container) -> None:
    organizer_required = bearer_required(container.identity_service, {Role.ORGANIZER})

    @app.route(
        "/api/organizer/attendance/<event_id>/sessions",
        methods=["POST"],
        endpoint="api_issue_session",
    )
    @domain_errors
    @organizer_required
    def api_issue_session(event_id: str):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        ttl = None
        if data.get("ttlSeconds") is not None:
            ttl = timedelta(seconds=require_positive(data.get("ttlSeconds"), "ttlSeconds"))
        geo_fence = geo_fence_from_request(
            data.get("geoFence"),
            default_radius_meters=container.default_geofence_radius_meters,
        )

        now = now_utc()
        payload = container.session_issuer.issue(
            event_id=event_id,
            issuer_id=g.principal.subject_id,
            ttl=ttl,
            geo_fence=geo_fence,
            now=now,
        )
        return jsonify({
            "success": True,
            "data": {
                "payload": payload.to_dict(),
                "qrData": payload.to_json(),
                "sessionId": payload.session_id,
                "expiresAt": isoformat_utc(payload.expires_at),
                "expiresIn": int((payload.expires_at - now).total_seconds()),
            },
        }), 201

    @app.route(
        "/api/organizer/attendance/<event_id>/sessions",
        methods=["GET"],
        endpoint="api_list_sessions",
    )
    @domain_errors
    @organizer_required
    def api_list_sessions(event_id: str):
        sessions = container.session_issuer.list_active(event_id)
        return jsonify({"success": True, "data": [_session_json(s) for s in sessions]})

    @app.route(
        "/api/organizer/attendance/sessions/<session_id>/qr.png",
        methods=["GET"],
        endpoint="api_session_qr",
    )
    @domain_errors
    @organizer_required
    def api_session_qr(session_id: str):
        session = container.session_issuer.get(session_id)
        if session is None or session.is_expired(now_utc()):
            return json_error("Session not found or expired", 404)

        png = render_qr_png(session.to_payload())
        return send_file(
            io.BytesIO(png),
            mimetype="image/png",
            download_name=f"attendance_{session.session_id}.png",
        )
