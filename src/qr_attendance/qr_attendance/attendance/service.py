from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import isoformat_utc, now_utc
from ..common.validators import require_non_empty
from ..core.constants import MANUAL_SESSION_ID
from ..core.enums import AttendanceStatus, ResultCode, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..events.model import Event
from ..events.repository import EventRepository
from ..geofence.evaluator import evaluate
from ..identity.model import Principal
from ..participants.model import Participant
from ..participants.repository import ParticipantRepository
from ..sessions.repository import SessionRepository
from ..teams.aggregator import AggregationTrigger
from ..teams.model import attendance_percentage
from ..teams.repository import TeamRepository
from .model import AttendanceLogRow, AttendanceRecord, ScanRequest, ScanResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _truncate_to_ms(value: datetime) -> datetime:
    # Stored with millisecond precision; keep the returned value identical to what a re-read gives.
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


@dataclass(frozen=True)
class AttendanceLog:
    rows: list[AttendanceLogRow]
    total_registered: int
    total_attended: int

    @property
    def attendance_rate(self) -> int:
        return attendance_percentage(self.total_attended, self.total_registered)


class AttendanceService:
    """Use case: a participant's device marks them present by scanning a session QR.

    Every validation step runs before the single ledger write, so a failed
    scan never leaves a partial effect behind.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        participants: ParticipantRepository,
        events: EventRepository,
        teams: TeamRepository,
        *,
        aggregation: Optional[AggregationTrigger] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._participants = participants
        self._events = events
        self._teams = teams
        self._aggregation = aggregation
        self._clock = clock

    def mark_attendance(
        self,
        principal: Optional[Principal],
        request: ScanRequest,
        *,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        now = _truncate_to_ms(now or self._clock())

        if principal is None or not principal.is_participant:
            return ScanResult.failure(ResultCode.NO_IDENTITY, "Please sign in again to mark attendance.")

        if not request.session_id:
            return ScanResult.failure(ResultCode.INVALID_QR, "This QR code is not a valid attendance code.")

        session = self._sessions.get_by_id(request.session_id)
        if session is None:
            return ScanResult.failure(
                ResultCode.INVALID_QR,
                "Invalid QR code. Ask the organizer to generate a new one.",
            )
        if session.is_expired(now):
            return ScanResult.failure(
                ResultCode.EXPIRED_QR,
                "QR code has expired. Ask the organizer to generate a new one.",
            )
        if request.event_id and request.event_id != session.event_id:
            return ScanResult.failure(ResultCode.INVALID_QR, "QR code does not match this event.")

        fence = session.geo_fence
        if fence is not None:
            if not request.has_location:
                return ScanResult.failure(
                    ResultCode.LOCATION_REQUIRED,
                    "Location is required for this event. Please enable GPS and try again.",
                )
            check = evaluate(fence, request.latitude, request.longitude)
            if not check.allowed:
                distance = round(check.distance_meters)
                return ScanResult.failure(
                    ResultCode.OUT_OF_RANGE,
                    f"You are {distance}m away from the event venue. "
                    f"You must be within {round(fence.radius_meters)}m to mark attendance.",
                    data={"distanceMeters": distance, "requiredRadiusMeters": fence.radius_meters},
                )

        participant = self._participants.get_registration(principal.subject_id, session.event_id)
        if participant is None or participant.is_cancelled:
            return ScanResult.failure(ResultCode.NO_IDENTITY, "You are not registered for this event.")

        event = self._events.get_by_id(session.event_id)
        return self._record_presence(
            participant,
            event,
            now=now,
            session_id=session.session_id,
            marked_by=None,
        )

    def mark_manual(
        self,
        organizer: Principal,
        *,
        event_id: str,
        participant_id: str,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Organizer marks a participant present without a QR session."""
        if organizer.role != Role.ORGANIZER:
            raise AuthorizationError("Only organizers can mark attendance manually")

        now = _truncate_to_ms(now or self._clock())
        event_id = require_non_empty(event_id, "eventId")
        participant_id = require_non_empty(participant_id, "participantId")

        participant = self._participants.get_registration(participant_id, event_id)
        if participant is None or participant.is_cancelled:
            raise ValidationError("Participant not found for this event")

        event = self._events.get_by_id(event_id)
        return self._record_presence(
            participant,
            event,
            now=now,
            session_id=MANUAL_SESSION_ID,
            marked_by=organizer.subject_id,
        )

    def _record_presence(
        self,
        participant: Participant,
        event: Optional[Event],
        *,
        now: datetime,
        session_id: str,
        marked_by: Optional[str],
    ) -> ScanResult:
        existing = self._attendance.get_for_participant_and_event(participant.participant_id, participant.event_id)
        if existing is not None:
            return self._already_marked(existing, participant, event)

        team = self._teams.get_for_participant(event_id=participant.event_id, participant_id=participant.participant_id)

        outcome = self._attendance.insert_or_get_existing(
            participant_id=participant.participant_id,
            event_id=participant.event_id,
            scanned_at=now,
            status=AttendanceStatus.PRESENT,
            session_id=session_id,
            team_id=team.team_id if team else None,
            marked_by=marked_by,
        )
        if not outcome.created:
            return self._already_marked(outcome.record, participant, event)

        logger.info(
            f"Attendance marked: participant={participant.participant_id} event={participant.event_id} "
            f"session={session_id}"
        )
        if team is not None:
            self._trigger_aggregation(participant.event_id, team.team_id)

        return ScanResult(
            success=True,
            code=ResultCode.OK,
            message="Attendance marked successfully!",
            data=self._result_data(outcome.record, participant, event),
        )

    def _already_marked(
        self,
        record: AttendanceRecord,
        participant: Participant,
        event: Optional[Event],
    ) -> ScanResult:
        return ScanResult(
            success=True,
            code=ResultCode.ALREADY_MARKED,
            message="Attendance already marked",
            data=self._result_data(record, participant, event),
        )

    @staticmethod
    def _result_data(record: AttendanceRecord, participant: Participant, event: Optional[Event]) -> dict:
        return {
            "participantName": participant.full_name,
            "eventId": record.event_id,
            "eventTitle": event.title if event else None,
            "scannedAt": isoformat_utc(record.scanned_at),
        }

    def _trigger_aggregation(self, event_id: str, team_id: str) -> None:
        if self._aggregation is None:
            return
        try:
            self._aggregation.submit(event_id, team_id)
        except Exception as e:
            # The mark is already committed; a lost trigger is repaired by the next recount.
            logger.error(f"Could not enqueue team aggregation for team {team_id}: {e}", exc_info=True)

    def invalidate(
        self,
        auditor: Principal,
        *,
        attendance_id: int,
        reason: str,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Soft-invalidate a record. The row stays, so the participant cannot re-mark."""
        if auditor.role not in {Role.AUDITOR, Role.ORGANIZER}:
            raise AuthorizationError("Only auditors can invalidate attendance")

        now = _truncate_to_ms(now or self._clock())
        reason = require_non_empty(reason, "reason")

        record = self._attendance.get_by_id(attendance_id)
        if record is None:
            raise ValidationError("Attendance record not found")
        if not record.is_valid:
            raise ValidationError("Attendance record is already invalidated")

        if not self._attendance.invalidate(
            attendance_id=attendance_id,
            invalidated_at=now,
            invalidated_by=auditor.subject_id,
            reason=reason,
        ):
            raise ValidationError("Attendance record is already invalidated")

        logger.info(f"Attendance {attendance_id} invalidated by {auditor.subject_id}: {reason}")
        if record.team_id:
            self._trigger_aggregation(record.event_id, record.team_id)

        updated = self._attendance.get_by_id(attendance_id)
        return updated or record

    def attendance_log(self, event_id: str) -> AttendanceLog:
        rows = list(self._attendance.list_for_event(event_id))
        return AttendanceLog(
            rows=rows,
            total_registered=self._participants.count_registered(event_id),
            total_attended=sum(1 for r in rows if r.record.is_valid and r.record.status == AttendanceStatus.PRESENT),
        )

    def live_count(self, event_id: str) -> dict:
        attended = self._attendance.count_valid_for_event(event_id)
        registered = self._participants.count_registered(event_id)
        return {
            "attended": attended,
            "registered": registered,
            "percentage": attendance_percentage(attended, registered),
        }
