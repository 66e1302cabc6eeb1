# Overview: Flask API routes for projects, roster project sync and spreadsheet import.

import io

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_actor, require_permission
from ..services import project_service
from ..services.roster_service import RosterError
from ..validation import ValidationError, ConflictError


projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@projects_bp.get("")
@require_actor
def list_projects():
    projects = project_service.list_projects(status=request.args.get("status") or None)
    return jsonify({"projects": [p.to_dict() for p in projects], "count": len(projects)})


@projects_bp.post("")
@require_actor
@require_permission("SYNC_PROJECTS")
def create_project():
    """
    Request body:
    - zohoProjectId, name (required)
    - description, budget, travelBudget, status (optional)
    """
    try:
        project = project_service.create_project(request.get_json(silent=True))
        return jsonify({"project": project.to_dict()}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create project")
        return jsonify({"error": "Internal server error"}), 500


@projects_bp.post("/sync-roster")
@require_actor
@require_permission("SYNC_PROJECTS")
def sync_projects():
    """Add roster projects missing locally; existing projects are left untouched."""
    try:
        return jsonify(project_service.sync_projects_from_roster())
    except RosterError as e:
        current_app.logger.warning("Project sync failed: %s", e)
        return jsonify({"error": f"Roster provider unavailable: {e}"}), 502
    except Exception:
        current_app.logger.exception("Failed to sync projects")
        return jsonify({"error": "Internal server error"}), 500


@projects_bp.post("/import-excel")
@require_actor
@require_permission("SYNC_PROJECTS")
def import_projects():
    """
    Import a roster project export.

    Multipart form:
    - file: .xlsx or .csv with Project Name, Project ID, Status, Description
    """
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    upload = request.files["file"]
    try:
        rows = project_service.read_spreadsheet_rows(io.BytesIO(upload.read()), upload.filename or "")
        return jsonify(project_service.import_projects_from_rows(rows))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to import projects")
        return jsonify({"error": "Failed to parse upload"}), 400
