from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import bearer_required, domain_errors
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    organizer_required = bearer_required(container.identity_service, {Role.ORGANIZER})

    @app.route("/api/organizer/teams/<event_id>/attendance", methods=["GET"], endpoint="api_team_attendance")
    @domain_errors
    @organizer_required
    def api_team_attendance(event_id: str):
        summaries = container.team_aggregator.summaries_for_event(event_id)
        return jsonify({"success": True, "data": [s.to_dict() for s in summaries]})
