from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from ..attendance.model import ScanRequest, ScanResult
from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_SCAN_INTERVAL_SECONDS
from ..core.enums import ResultCode
from ..core.exceptions import ValidationError
from ..sessions.model import ScannedCode, parse_qr_text
from .transport import AttendanceTransport

logger = logging.getLogger(__name__)

Locator = Callable[[], Optional[tuple[float, float]]]
Decoder = Callable[[Any], Optional[str]]


class FrameSource(Protocol):
    def read(self) -> Optional[Any]:
        """Next frame, or None when no frame is ready."""
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError


class ScanState(str, Enum):
    SCANNING = "scanning"
    SUBMITTING = "submitting"
    DONE = "done"
    RETRYABLE = "retryable"
    STOPPED = "stopped"


class ScanClient:
    """Polls a frame source for a QR code and submits exactly one scan.

    The loop is disarmed the moment a code is decoded, so a single camera
    burst never produces more than one submission. A terminal result ends
    the scan; a retryable one waits for `retry()` to re-arm.
    """

    def __init__(
        self,
        frames: FrameSource,
        transport: AttendanceTransport,
        *,
        decoder: Optional[Decoder] = None,
        locator: Optional[Locator] = None,
        clock: Callable[[], datetime] = now_utc,
        interval: float = DEFAULT_SCAN_INTERVAL_SECONDS,
    ):
        self._frames = frames
        self._transport = transport
        if decoder is None:
            from .decoder import decode_qr

            decoder = decode_qr
        self._decoder = decoder
        self._locator = locator
        self._clock = clock
        self._interval = max(0.0, float(interval))

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._state = ScanState.SCANNING
        self._result: Optional[ScanResult] = None
        self._released = False

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def result(self) -> Optional[ScanResult]:
        return self._result

    def tick(self) -> Optional[ScanResult]:
        """One polling step. Returns a result once a code has been handled."""
        with self._lock:
            if self._state != ScanState.SCANNING:
                return None
            frame = self._frames.read()
            text = self._decoder(frame) if frame is not None else None
            if not text:
                return None
            # Disarm before any network work.
            self._state = ScanState.SUBMITTING

        try:
            result = self._handle(text)
        except Exception as e:
            logger.error(f"Scan submission failed: {e}", exc_info=True)
            result = ScanResult.failure(
                ResultCode.NETWORK_ERROR,
                "Could not reach the attendance service. Please try again.",
            )
        with self._lock:
            if self._state == ScanState.STOPPED:
                return result
            self._result = result
            self._state = ScanState.RETRYABLE if result.retryable else ScanState.DONE

        if self._state == ScanState.DONE:
            self._release()
        return result

    def run(self, *, max_ticks: Optional[int] = None) -> Optional[ScanResult]:
        """Poll until a result arrives, `stop()` is called or `max_ticks` runs out."""
        ticks = 0
        while not self._stop_event.is_set():
            result = self.tick()
            if result is not None:
                return result
            if self._state != ScanState.SCANNING:
                return self._result
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                return None
            self._stop_event.wait(self._interval)
        return None

    def retry(self) -> bool:
        """Re-arm after a retryable failure. Returns False if nothing to retry."""
        with self._lock:
            if self._state != ScanState.RETRYABLE:
                return False
            self._result = None
            self._state = ScanState.SCANNING
        logger.info("Scanner re-armed for retry")
        return True

    def stop(self) -> None:
        with self._lock:
            self._state = ScanState.STOPPED
        self._stop_event.set()
        self._release()

    def _release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._frames.release()

    def _handle(self, text: str) -> ScanResult:
        try:
            code = parse_qr_text(text)
        except ValidationError as e:
            logger.info(f"Rejected scanned code: {e}")
            return ScanResult.failure(ResultCode.INVALID_QR, "This QR code is not a valid attendance code.")

        if code.expires_at is not None and self._clock() >= code.expires_at:
            return ScanResult.failure(
                ResultCode.EXPIRED_QR,
                "QR code has expired. Ask the organizer to generate a new one.",
            )

        return self._transport.submit(self._build_request(code))

    def _build_request(self, code: ScannedCode) -> ScanRequest:
        latitude = longitude = None
        if code.geo_fence_enabled and self._locator is not None:
            try:
                position = self._locator()
            except Exception as e:
                # The server answers LOCATION_REQUIRED when the fix is missing.
                logger.warning(f"Could not read device location: {e}")
                position = None
            if position is not None:
                latitude, longitude = position

        return ScanRequest(
            event_id=code.event_id,
            session_id=code.session_id,
            latitude=latitude,
            longitude=longitude,
        )
