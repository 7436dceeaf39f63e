from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, g, jsonify, request

from ..common.validators import optional_float
from ..common.web import bearer_required, domain_errors
from ..container import Container
from ..core.enums import ResultCode, Role
from ..core.exceptions import StorageUnavailableError, ValidationError
from ..identity.model import Principal
from ..sessions.model import parse_qr_text
from .model import ScanRequest, ScanResult

logger = logging.getLogger(__name__)


def _scan_response(result: ScanResult):
    return jsonify(result.to_dict()), result.code.http_status


def _invalid(message: str):
    return _scan_response(ScanResult.failure(ResultCode.INVALID_QR, message))


def register(app: Flask, container: Container) -> None:
    organizer_required = bearer_required(container.identity_service, {Role.ORGANIZER})
    auditor_required = bearer_required(container.identity_service, {Role.AUDITOR, Role.ORGANIZER})

    def resolve_principal() -> Optional[Principal]:
        return container.identity_service.resolve(request.headers.get("Authorization"))

    def run_scan(build_request):
        try:
            principal = resolve_principal()
            try:
                scan = build_request()
            except ValidationError as e:
                return _invalid(str(e))
            result = container.attendance_service.mark_attendance(principal, scan)
        except StorageUnavailableError as e:
            logger.warning(f"Scan rejected, storage unavailable: {e}")
            result = ScanResult.failure(
                ResultCode.NETWORK_ERROR,
                "Attendance service is temporarily unavailable. Please try again.",
            )
        except Exception:
            logger.exception("Unexpected error while marking attendance")
            return jsonify({"success": False, "message": "Internal server error"}), 500
        return _scan_response(result)

    @app.route("/api/participant/attendance/scan", methods=["POST"], endpoint="api_scan")
    def api_scan():
        """Mark the caller present from the contents of a scanned session QR."""

        def build_request() -> ScanRequest:
            body = request.get_json(silent=True)
            if body is not None and not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object")
            return ScanRequest.from_json(body)

        return run_scan(build_request)

    @app.route("/api/participant/attendance/scan/image", methods=["POST"], endpoint="api_scan_image")
    def api_scan_image():
        """Same as `api_scan`, but decodes the QR from an uploaded photo."""

        def build_request() -> ScanRequest:
            upload = request.files.get("image")
            if upload is None or not upload.filename:
                raise ValidationError("No image uploaded")

            # zbar is a native library; only this endpoint needs it.
            from ..scanner.decoder import decode_image_bytes

            try:
                text = decode_image_bytes(upload.read())
            except OSError:
                raise ValidationError("Uploaded file is not a readable image") from None
            if not text:
                raise ValidationError("No QR code found in the image")

            code = parse_qr_text(text)
            return ScanRequest(
                event_id=code.event_id,
                session_id=code.session_id,
                latitude=optional_float(request.form.get("latitude"), "latitude"),
                longitude=optional_float(request.form.get("longitude"), "longitude"),
            )

        return run_scan(build_request)

    @app.route(
        "/api/organizer/attendance/<event_id>/manual/<participant_id>",
        methods=["POST"],
        endpoint="api_mark_manual",
    )
    @domain_errors
    @organizer_required
    def api_mark_manual(event_id: str, participant_id: str):
        result = container.attendance_service.mark_manual(
            g.principal,
            event_id=event_id,
            participant_id=participant_id,
        )
        return _scan_response(result)

    @app.route(
        "/api/auditor/attendance/<int:attendance_id>/invalidate",
        methods=["POST"],
        endpoint="api_invalidate_attendance",
    )
    @domain_errors
    @auditor_required
    def api_invalidate_attendance(attendance_id: int):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        record = container.attendance_service.invalidate(
            g.principal,
            attendance_id=attendance_id,
            reason=data.get("reason"),
        )
        return jsonify({"success": True, "message": "Attendance invalidated", "data": record.to_dict()})

    @app.route("/api/organizer/attendance/<event_id>", methods=["GET"], endpoint="api_attendance_log")
    @domain_errors
    @organizer_required
    def api_attendance_log(event_id: str):
        log = container.attendance_service.attendance_log(event_id)
        return jsonify({
            "success": True,
            "data": {
                "records": [row.to_dict() for row in log.rows],
                "stats": {
                    "totalRegistered": log.total_registered,
                    "totalAttended": log.total_attended,
                    "attendanceRate": log.attendance_rate,
                },
            },
        })

    @app.route("/api/organizer/attendance/<event_id>/live", methods=["GET"], endpoint="api_attendance_live")
    @domain_errors
    @organizer_required
    def api_attendance_live(event_id: str):
        return jsonify({"success": True, "data": container.attendance_service.live_count(event_id)})
