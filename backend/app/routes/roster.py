# Overview: Read-only pass-through of the external roster provider's directories.

from flask import Blueprint, jsonify, current_app

from ..decorators import require_actor
from ..services.roster_service import get_roster_client, RosterError


roster_bp = Blueprint("roster", __name__, url_prefix="/api/roster")


def _client_or_error():
    client = get_roster_client()
    if not client.is_configured:
        return None, (jsonify({"error": "Roster provider not configured"}), 503)
    return client, None


@roster_bp.get("/users")
@require_actor
def roster_users():
    client, error = _client_or_error()
    if error:
        return error
    try:
        return jsonify({"users": [u.to_dict() for u in client.list_users()]})
    except RosterError as e:
        current_app.logger.warning("Roster users fetch failed: %s", e)
        return jsonify({"error": "Roster provider unavailable"}), 502


@roster_bp.get("/projects")
@require_actor
def roster_projects():
    client, error = _client_or_error()
    if error:
        return error
    try:
        return jsonify({"projects": [p.to_dict() for p in client.list_projects()]})
    except RosterError as e:
        current_app.logger.warning("Roster projects fetch failed: %s", e)
        return jsonify({"error": "Roster provider unavailable"}), 502
