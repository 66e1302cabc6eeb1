from flask import Blueprint, current_app, jsonify, request, g

from app.decorators import require_actor, require_permission, require_any_permission
from app.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


def _year():
    return request.args.get("year", type=int)


@reports_bp.get("/dashboard/stats")
@require_actor
def dashboard_stats():
    try:
        return jsonify(reporting_service.dashboard_stats(g.current_user)), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build dashboard stats")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/budget-tracking/users")
@require_actor
@require_permission("VIEW_BUDGETS")
def user_budgets():
    try:
        return jsonify({"users": reporting_service.user_budget_report(year=_year())}), 200
    except Exception:
        current_app.logger.exception("Failed to build user budget report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/budget-tracking/projects")
@require_actor
@require_permission("VIEW_BUDGETS")
def project_budgets():
    try:
        return jsonify({"projects": reporting_service.project_budget_report(year=_year())}), 200
    except Exception:
        current_app.logger.exception("Failed to build project budget report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/budget-tracking/user/<int:user_id>")
@require_actor
@require_permission("VIEW_BUDGETS")
def user_budget(user_id: int):
    try:
        return jsonify(reporting_service.user_budget_detail(user_id, year=_year())), 200
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to build budget detail for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/budget-tracking/project/<int:project_id>")
@require_actor
@require_permission("VIEW_BUDGETS")
def project_budget(project_id: int):
    try:
        return jsonify(reporting_service.project_budget_detail(project_id, year=_year())), 200
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to build budget detail for project %s", project_id)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/reports/project-analytics")
@require_actor
@require_any_permission("VIEW_ALL_REQUESTS", "VIEW_BUDGETS")
def project_analytics():
    try:
        return jsonify({"projects": reporting_service.project_analytics_report()}), 200
    except Exception:
        current_app.logger.exception("Failed to build project analytics")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/security-events")
@require_actor
@require_permission("VIEW_AUDIT_LOG")
def security_events_report():
    user_id = request.args.get("user_id", type=int)
    event_type = request.args.get("event_type")
    start = request.args.get("start")
    end = request.args.get("end")
    limit = min(request.args.get("limit", 200, type=int), 1000)

    try:
        report = reporting_service.security_events(
            user_id=user_id,
            event_type=event_type,
            start=start,
            end=end,
            limit=limit,
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to list security events")
        return jsonify({"error": "Internal server error"}), 500
