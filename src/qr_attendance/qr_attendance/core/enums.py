from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role attached to a resolved bearer credential."""

    PARTICIPANT = "participant"
    ORGANIZER = "organizer"
    AUDITOR = "auditor"


class AttendanceStatus(str, Enum):
    """Stored attendance status."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ResultCode(str, Enum):
    """Outcome codes of a scan, shared by the server and the scan client."""

    OK = "OK"
    INVALID_QR = "INVALID_QR"
    EXPIRED_QR = "EXPIRED_QR"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    LOCATION_REQUIRED = "LOCATION_REQUIRED"
    ALREADY_MARKED = "ALREADY_MARKED"
    NO_IDENTITY = "NO_IDENTITY"
    NETWORK_ERROR = "NETWORK_ERROR"

    @property
    def retryable(self) -> bool:
        return self is ResultCode.NETWORK_ERROR

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ResultCode.OK: 200,
    ResultCode.ALREADY_MARKED: 200,
    ResultCode.INVALID_QR: 400,
    ResultCode.EXPIRED_QR: 400,
    ResultCode.LOCATION_REQUIRED: 400,
    ResultCode.NO_IDENTITY: 401,
    ResultCode.OUT_OF_RANGE: 403,
    ResultCode.NETWORK_ERROR: 503,
}
