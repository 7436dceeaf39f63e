from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import isoformat_utc
from ..common.validators import optional_float
from ..core.enums import AttendanceStatus, ResultCode


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one participant's attendance at one event.

    Never deleted; an auditor can only flip `is_valid` off.
    """

    attendance_id: int
    participant_id: str
    event_id: str
    status: AttendanceStatus
    scanned_at: datetime
    session_id: Optional[str] = None
    team_id: Optional[str] = None
    marked_by: Optional[str] = None
    is_valid: bool = True
    invalidated_at: Optional[datetime] = None
    invalidated_by: Optional[str] = None
    invalidation_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "attendanceId": self.attendance_id,
            "participantId": self.participant_id,
            "eventId": self.event_id,
            "sessionId": self.session_id,
            "teamId": self.team_id,
            "status": self.status.value,
            "scannedAt": isoformat_utc(self.scanned_at),
            "markedBy": self.marked_by,
            "isValid": self.is_valid,
            "invalidatedAt": isoformat_utc(self.invalidated_at) if self.invalidated_at else None,
            "invalidatedBy": self.invalidated_by,
            "invalidationReason": self.invalidation_reason,
        }


@dataclass(frozen=True)
class InsertOutcome:
    """Result of the ledger's insert-or-report-existing write."""

    record: AttendanceRecord
    created: bool


@dataclass(frozen=True)
class AttendanceLogRow:
    """Read-model for the organizer attendance log."""

    record: AttendanceRecord
    participant_name: Optional[str]
    participant_email: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["participantName"] = self.participant_name
        data["participantEmail"] = self.participant_email
        return data


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ScanRequest:
    event_id: Optional[str] = None
    session_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_json(cls, data: Optional[dict[str, Any]]) -> "ScanRequest":
        data = data or {}
        return cls(
            event_id=_optional_text(data.get("eventId")),
            session_id=_optional_text(data.get("sessionId")),
            latitude=optional_float(data.get("latitude"), "latitude"),
            longitude=optional_float(data.get("longitude"), "longitude"),
        )

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.event_id is not None:
            body["eventId"] = self.event_id
        if self.session_id is not None:
            body["sessionId"] = self.session_id
        if self.has_location:
            body["latitude"] = self.latitude
            body["longitude"] = self.longitude
        return body


@dataclass(frozen=True)
class ScanResult:
    """Discriminated outcome of a scan, as returned to the device."""

    success: bool
    code: ResultCode
    message: str
    data: Optional[dict[str, Any]] = field(default=None)

    @property
    def retryable(self) -> bool:
        return self.code.retryable

    @classmethod
    def failure(cls, code: ResultCode, message: str, data: Optional[dict[str, Any]] = None) -> "ScanResult":
        return cls(success=False, code=code, message=message, data=data)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success, "code": self.code.value, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        return body

    @classmethod
    def from_dict(cls, body: dict[str, Any]) -> "ScanResult":
        try:
            code = ResultCode(body.get("code"))
        except ValueError:
            code = ResultCode.OK if body.get("success") else ResultCode.INVALID_QR
        return cls(
            success=bool(body.get("success")),
            code=code,
            message=str(body.get("message") or ""),
            data=body.get("data"),
        )
