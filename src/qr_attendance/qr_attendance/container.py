from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import (
    DEFAULT_GEOFENCE_RADIUS_METERS,
    DEFAULT_REAP_INTERVAL_SECONDS,
    DEFAULT_SESSION_TTL_SECONDS,
)
from .database.connection import DatabaseConnection, DBConfig
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .identity.mysql_token_repository import MySQLTokenRepository
from .identity.repository import TokenRepository
from .identity.service import IdentityService
from .participants.mysql_participant_repository import MySQLParticipantRepository
from .participants.repository import ParticipantRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.reaper import SessionReaper
from .sessions.repository import SessionRepository
from .sessions.service import SessionIssuer
from .teams.aggregator import AggregationDispatcher, TeamAttendanceAggregator
from .teams.mysql_team_repository import MySQLTeamRepository
from .teams.repository import TeamRepository


@dataclass(frozen=True)
class Container:
    sessions_repo: SessionRepository
    events_repo: EventRepository
    participants_repo: ParticipantRepository
    tokens_repo: TokenRepository
    attendance_repo: AttendanceRepository
    teams_repo: TeamRepository

    identity_service: IdentityService
    session_issuer: SessionIssuer
    attendance_service: AttendanceService
    team_aggregator: TeamAttendanceAggregator
    aggregation_dispatcher: AggregationDispatcher
    session_reaper: SessionReaper

    default_geofence_radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS
    conn: Optional[DatabaseConnection] = None


def wire_container(
    *,
    sessions_repo: SessionRepository,
    events_repo: EventRepository,
    participants_repo: ParticipantRepository,
    tokens_repo: TokenRepository,
    attendance_repo: AttendanceRepository,
    teams_repo: TeamRepository,
    session_ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
    geofence_radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS,
    reap_interval_seconds: float = DEFAULT_REAP_INTERVAL_SECONDS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services on top of whatever repositories are given."""
    identity_service = IdentityService(tokens_repo)
    session_issuer = SessionIssuer(
        sessions_repo,
        events_repo,
        default_ttl=timedelta(seconds=float(session_ttl_seconds)),
    )
    team_aggregator = TeamAttendanceAggregator(teams_repo, attendance_repo)
    aggregation_dispatcher = AggregationDispatcher(team_aggregator)
    attendance_service = AttendanceService(
        attendance_repo,
        sessions_repo,
        participants_repo,
        events_repo,
        teams_repo,
        aggregation=aggregation_dispatcher,
    )
    session_reaper = SessionReaper(sessions_repo, interval=reap_interval_seconds)

    return Container(
        sessions_repo=sessions_repo,
        events_repo=events_repo,
        participants_repo=participants_repo,
        tokens_repo=tokens_repo,
        attendance_repo=attendance_repo,
        teams_repo=teams_repo,
        identity_service=identity_service,
        session_issuer=session_issuer,
        attendance_service=attendance_service,
        team_aggregator=team_aggregator,
        aggregation_dispatcher=aggregation_dispatcher,
        session_reaper=session_reaper,
        default_geofence_radius_meters=float(geofence_radius_meters),
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    session_ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
    geofence_radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS,
    reap_interval_seconds: float = DEFAULT_REAP_INTERVAL_SECONDS,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connection_timeout=int(db_config.get("connection_timeout", 10)),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_container(
        sessions_repo=MySQLSessionRepository(conn),
        events_repo=MySQLEventRepository(conn),
        participants_repo=MySQLParticipantRepository(conn),
        tokens_repo=MySQLTokenRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        teams_repo=MySQLTeamRepository(conn),
        session_ttl_seconds=session_ttl_seconds,
        geofence_radius_meters=geofence_radius_meters,
        reap_interval_seconds=reap_interval_seconds,
        conn=conn,
    )
