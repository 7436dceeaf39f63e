from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RegistrationStatus


@dataclass(frozen=True)
class Team:
    team_id: str
    team_name: str
    event_id: str
    captain_id: str
    members: frozenset[str]
    total_members: int
    registration_status: RegistrationStatus = RegistrationStatus.PENDING


def attendance_percentage(present: int, total: int) -> int:
    """round(present / total * 100) with halves rounded up, clamped to [0, 100]."""
    if total <= 0:
        return 0
    pct = (200 * present + total) // (2 * total)
    return max(0, min(100, pct))


@dataclass(frozen=True)
class TeamAttendanceSummary:
    """Team presence derived from a full recount; never incremented in place."""

    event_id: str
    team_id: str
    members_present: int
    members_absent: int
    total_members: int
    attendance_percentage: int
    updated_at: Optional[datetime] = None

    @classmethod
    def from_count(
        cls,
        *,
        event_id: str,
        team_id: str,
        present: int,
        total_members: int,
        updated_at: Optional[datetime] = None,
    ) -> "TeamAttendanceSummary":
        total = max(0, int(total_members))
        present = max(0, min(int(present), total))
        return cls(
            event_id=event_id,
            team_id=team_id,
            members_present=present,
            members_absent=total - present,
            total_members=total,
            attendance_percentage=attendance_percentage(present, total),
            updated_at=updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "eventId": self.event_id,
            "teamId": self.team_id,
            "membersPresent": self.members_present,
            "membersAbsent": self.members_absent,
            "totalMembers": self.total_members,
            "attendancePercentage": self.attendance_percentage,
        }
