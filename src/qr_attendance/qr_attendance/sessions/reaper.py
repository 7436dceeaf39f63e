from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_REAP_INTERVAL_SECONDS
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionReaper:
    """Background deletion of expired sessions.

    Storage hygiene only: validation reads `expires_at` and never waits on
    this thread.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        *,
        interval: float = DEFAULT_REAP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._sessions = sessions
        self._interval = float(interval)
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: Optional[datetime] = None) -> int:
        removed = self._sessions.delete_expired(now=now or self._clock())
        if removed:
            logger.info(f"Reaped {removed} expired QR session(s)")
        return removed

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="SessionReaper")
        self._thread.start()
        logger.info(f"Started session reaper (interval={self._interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Session reaper did not shut down gracefully")
        self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Session reaper error: {e}", exc_info=True)
            self._stop_event.wait(self._interval)
        logger.info("Session reaper exited")
