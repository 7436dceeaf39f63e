from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Protocol

from ..attendance.model import ScanRequest, ScanResult
from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.enums import ResultCode

logger = logging.getLogger(__name__)

SCAN_PATH = "/api/participant/attendance/scan"


class AttendanceTransport(Protocol):
    def submit(self, request: ScanRequest) -> ScanResult:
        raise NotImplementedError


def network_error(message: str) -> ScanResult:
    return ScanResult.failure(ResultCode.NETWORK_ERROR, message)


class HttpAttendanceTransport(AttendanceTransport):
    """Posts scans to the attendance API.

    Timeouts, refused connections and 5xx answers become `NETWORK_ERROR`
    results (retryable). Everything else is the server's own verdict.
    """

    def __init__(self, base_url: str, token: str, *, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS):
        self._url = base_url.rstrip("/") + SCAN_PATH
        self._token = token
        self._timeout = float(timeout)

    def submit(self, request: ScanRequest) -> ScanResult:
        req = urllib.request.Request(
            self._url,
            data=json.dumps(request.to_json()).encode("utf-8"),
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {self._token}",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return ScanResult.from_dict(json.loads(resp.read().decode("utf-8")))
        except urllib.error.HTTPError as e:
            return self._from_http_error(e)
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            logger.warning(f"Attendance request failed: {e}")
            return network_error("Network error. Check your connection and try again.")
        except ValueError as e:
            logger.warning(f"Attendance response was not valid JSON: {e}")
            return network_error("Unexpected response from the server. Please try again.")

    def _from_http_error(self, e: urllib.error.HTTPError) -> ScanResult:
        try:
            body = json.loads(e.read().decode("utf-8"))
        except (ValueError, OSError, http.client.HTTPException):
            body = None

        if isinstance(body, dict) and body.get("code"):
            return ScanResult.from_dict(body)
        if e.code >= 500 or e.code == 429:
            return network_error(f"Server unavailable (HTTP {e.code}). Please try again.")
        if e.code == 401:
            return ScanResult.failure(ResultCode.NO_IDENTITY, "Please sign in again to mark attendance.")
        return ScanResult.failure(ResultCode.INVALID_QR, f"Request rejected (HTTP {e.code}).")
