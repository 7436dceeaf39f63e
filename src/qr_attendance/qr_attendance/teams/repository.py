from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Team, TeamAttendanceSummary


class TeamRepository(Protocol):
    def get_by_id(self, team_id: str) -> Optional[Team]:
        raise NotImplementedError

    def get_for_participant(self, *, event_id: str, participant_id: str) -> Optional[Team]:
        """The participant's non-cancelled team for the event, if any."""

        raise NotImplementedError

    def save_summary(self, summary: TeamAttendanceSummary) -> None:
        """Insert or overwrite the summary for `(event_id, team_id)`."""

        raise NotImplementedError

    def get_summary(self, *, event_id: str, team_id: str) -> Optional[TeamAttendanceSummary]:
        raise NotImplementedError

    def list_summaries(self, event_id: str) -> Sequence[TeamAttendanceSummary]:
        raise NotImplementedError
