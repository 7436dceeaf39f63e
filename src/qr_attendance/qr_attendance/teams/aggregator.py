"""Team attendance aggregation.

Summaries are recomputed from a fresh count every time, so duplicate,
retried or out-of-order triggers all converge to the same numbers.
"""

from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_utc
from .model import TeamAttendanceSummary
from .repository import TeamRepository

logger = logging.getLogger(__name__)


class AggregationTrigger(Protocol):
    def submit(self, event_id: str, team_id: str) -> None:
        raise NotImplementedError


class TeamAttendanceAggregator:
    def __init__(
        self,
        teams: TeamRepository,
        attendance: AttendanceRepository,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._teams = teams
        self._attendance = attendance
        self._clock = clock

    def recompute(self, event_id: str, team_id: str) -> Optional[TeamAttendanceSummary]:
        team = self._teams.get_by_id(team_id)
        if not team or team.event_id != event_id:
            logger.warning(f"Skipping aggregation for unknown team {team_id} in event {event_id}")
            return None

        present = self._attendance.count_valid_present(event_id=event_id, participant_ids=team.members)
        summary = TeamAttendanceSummary.from_count(
            event_id=event_id,
            team_id=team_id,
            present=present,
            total_members=team.total_members,
            updated_at=self._clock(),
        )
        self._teams.save_summary(summary)
        logger.debug(
            f"Team {team_id} attendance: {summary.members_present}/{summary.total_members} "
            f"({summary.attendance_percentage}%)"
        )
        return summary

    def summaries_for_event(self, event_id: str) -> Sequence[TeamAttendanceSummary]:
        return self._teams.list_summaries(event_id)


class AggregationDispatcher(AggregationTrigger):
    """Runs recomputations on a worker thread, off the request path.

    `submit` only enqueues. Errors are logged by the worker and never reach
    the caller that triggered them.
    """

    def __init__(self, aggregator: TeamAttendanceAggregator, *, name: str = "TeamAggregator"):
        self._aggregator = aggregator
        self._name = name
        self._queue: "queue.Queue[tuple[str, str]]" = queue.Queue()
        self._shutdown_event = threading.Event()
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._shutdown_event.clear()
            self._worker = threading.Thread(target=self._process_queue, daemon=True, name=self._name)
            self._worker.start()
        logger.info("Team aggregation worker started")

    def stop(self, timeout: float = 5.0) -> None:
        self._shutdown_event.set()
        worker = self._worker
        if worker and worker.is_alive():
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning("Team aggregation worker did not shut down gracefully")
            else:
                logger.info("Team aggregation worker stopped")
        self._worker = None

    def submit(self, event_id: str, team_id: str) -> None:
        self._queue.put((event_id, team_id))
        if not self.running:
            self.start()

    def pending(self) -> int:
        return self._queue.qsize()

    def wait_idle(self) -> None:
        """Block until every submitted recomputation has been processed."""
        self._queue.join()

    def _process_queue(self) -> None:
        while not self._shutdown_event.is_set():
            try:
                event_id, team_id = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                self._aggregator.recompute(event_id, team_id)
            except Exception as e:
                logger.error(f"Team aggregation failed for team {team_id}: {e}", exc_info=True)
            finally:
                self._queue.task_done()

        logger.info("Team aggregation worker exited")
