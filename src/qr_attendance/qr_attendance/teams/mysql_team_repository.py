from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import as_utc, to_db_datetime
from ..core.enums import RegistrationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Team, TeamAttendanceSummary
from .repository import TeamRepository


def _to_summary(r: Dict[str, Any]) -> TeamAttendanceSummary:
    return TeamAttendanceSummary(
        event_id=r["event_id"],
        team_id=r["team_id"],
        members_present=int(r["members_present"]),
        members_absent=int(r["members_absent"]),
        total_members=int(r["total_members"]),
        attendance_percentage=int(r["attendance_percentage"]),
        updated_at=as_utc(r["updated_at"]) if r.get("updated_at") else None,
    )


class MySQLTeamRepository(TeamRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_team(self, cur, r: Dict[str, Any]) -> Team:
        cur.execute("SELECT participant_id FROM team_members WHERE team_id=%s", (r["team_id"],))
        members = frozenset(m["participant_id"] for m in fetchall(cur))
        return Team(
            team_id=r["team_id"],
            team_name=r["team_name"],
            event_id=r["event_id"],
            captain_id=r["captain_id"],
            members=members,
            total_members=int(r["total_members"]),
            registration_status=RegistrationStatus(r["registration_status"]),
        )

    def get_by_id(self, team_id: str) -> Optional[Team]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT team_id, team_name, event_id, captain_id, total_members, registration_status
                FROM teams
                WHERE team_id=%s
                """,
                (team_id,),
            )
            r = fetchone(cur)
            return self._load_team(cur, r) if r else None

    def get_for_participant(self, *, event_id: str, participant_id: str) -> Optional[Team]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT t.team_id, t.team_name, t.event_id, t.captain_id, t.total_members, t.registration_status
                FROM teams t
                JOIN team_members tm ON tm.team_id = t.team_id
                WHERE t.event_id=%s AND tm.participant_id=%s AND t.registration_status <> %s
                LIMIT 1
                """,
                (event_id, participant_id, RegistrationStatus.CANCELLED.value),
            )
            r = fetchone(cur)
            return self._load_team(cur, r) if r else None

    def save_summary(self, summary: TeamAttendanceSummary) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO team_attendance(
                    event_id, team_id, members_present, members_absent, total_members,
                    attendance_percentage, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    members_present=VALUES(members_present),
                    members_absent=VALUES(members_absent),
                    total_members=VALUES(total_members),
                    attendance_percentage=VALUES(attendance_percentage),
                    updated_at=VALUES(updated_at)
                """,
                (
                    summary.event_id,
                    summary.team_id,
                    summary.members_present,
                    summary.members_absent,
                    summary.total_members,
                    summary.attendance_percentage,
                    to_db_datetime(summary.updated_at) if summary.updated_at else None,
                ),
            )

    def get_summary(self, *, event_id: str, team_id: str) -> Optional[TeamAttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, team_id, members_present, members_absent, total_members,
                       attendance_percentage, updated_at
                FROM team_attendance
                WHERE event_id=%s AND team_id=%s
                """,
                (event_id, team_id),
            )
            r = fetchone(cur)
            return _to_summary(r) if r else None

    def list_summaries(self, event_id: str) -> Sequence[TeamAttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, team_id, members_present, members_absent, total_members,
                       attendance_percentage, updated_at
                FROM team_attendance
                WHERE event_id=%s
                ORDER BY team_id ASC
                """,
                (event_id,),
            )
            return [_to_summary(r) for r in fetchall(cur)]
