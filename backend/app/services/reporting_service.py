# Overview: Dashboard statistics, budget tracking and project analytics derived from travel requests.

"""
Aggregation over travel requests.

The pure functions (status_counts, user_budget_summary, ...) take
already-loaded collections so they can be tested without a database. The
*_report / dashboard_stats functions load what they need and delegate.

SPEND vs TRIPS:
    Spend only counts operations_completed requests with a positive
    actual_total_cost. A traveller's trip count also includes requests
    still waiting on operations (pm_approved): "how many trips" is broader
    than "how much has been spent so far".
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from flask import current_app

from app.extensions import db
from app.models import Booking, Project, SecurityEvent, TravelRequest, User, OPERATIONS_ROLES
from app.time_utils import parse_iso_datetime, to_utc_z, utcnow
from app.validation import parse_amount
from .user_service import get_user, resolve_effective_role
from .project_service import get_project


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _pct(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


def completed_cost(tx) -> float:
    """actual_total_cost of a completed request, else 0."""
    if tx.status != "operations_completed":
        return 0.0
    cost = parse_amount(tx.actual_total_cost, "actualTotalCost") or 0.0
    return cost if cost > 0 else 0.0


def status_counts(requests: Iterable) -> dict:
    counts = {"total": 0, "pending": 0, "approved": 0, "completed": 0, "rejected": 0, "cancelled": 0}
    by_status = {
        "submitted": "pending",
        "pm_approved": "approved",
        "operations_completed": "completed",
        "pm_rejected": "rejected",
        "cancelled": "cancelled",
    }
    for tx in requests:
        counts["total"] += 1
        key = by_status.get(tx.status)
        if key:
            counts[key] += 1
    return counts


def _in_year(tx, year: int | None) -> bool:
    return year is None or (tx.departure_date is not None and tx.departure_date.year == year)


def user_budget_summary(user, requests: Iterable, *, default_budget: float, year: int | None = None) -> dict:
    """Spend of one traveller against their annual travel budget."""
    own = [tx for tx in requests if tx.traveler_id == user.id and _in_year(tx, year)]
    spent = round(sum(completed_cost(tx) for tx in own), 2)
    trips = sum(1 for tx in own if tx.status in ("operations_completed", "pm_approved"))

    budget = parse_amount(user.annual_travel_budget, "annualTravelBudget")
    if budget is None:
        budget = default_budget

    return {
        "user_id": user.id,
        "name": user.full_name,
        "email": user.email,
        "role": user.role,
        "annual_budget": budget,
        "total_spent": spent,
        "remaining": round(budget - spent, 2),
        "utilization": _pct(spent, budget),
        "trip_count": trips,
    }


def project_matches(project, tx) -> bool:
    """
    Requests store the local project id; roster ids are resolved at
    submission, so they are never compared here.
    """
    return tx.project_id is not None and tx.project_id == project.id


def project_budget_summary(project, requests: Iterable, *, default_budget: float, year: int | None = None) -> dict:
    """Completed spend charged to one project against its travel budget."""
    charged = [
        tx for tx in requests
        if project_matches(project, tx) and _in_year(tx, year) and completed_cost(tx) > 0
    ]
    spent = round(sum(completed_cost(tx) for tx in charged), 2)
    trips = len(charged)

    budget = parse_amount(project.travel_budget, "travelBudget")
    if budget is None:
        budget = default_budget

    return {
        "project_id": project.id,
        "zoho_project_id": project.zoho_project_id,
        "name": project.name,
        "status": project.status,
        "allocated_budget": budget,
        "total_spent": spent,
        "remaining": round(budget - spent, 2),
        "utilization": _pct(spent, budget),
        "trip_count": trips,
        "avg_cost_per_trip": round(spent / trips, 2) if trips else 0.0,
    }


def project_analytics(projects: Iterable, requests: Iterable) -> list[dict]:
    """Per project name: total / approved / pending / completed request counts."""
    projects = list(projects)
    rows: dict[str, dict] = {}

    for tx in requests:
        match = next((p for p in projects if project_matches(p, tx)), None)
        name = match.name if match else "Unassigned"
        row = rows.setdefault(name, {"project": name, "total": 0, "approved": 0, "pending": 0, "completed": 0})
        row["total"] += 1
        if tx.status == "pm_approved":
            row["approved"] += 1
        elif tx.status == "submitted":
            row["pending"] += 1
        elif tx.status == "operations_completed":
            row["completed"] += 1

    return sorted(rows.values(), key=lambda r: (-r["total"], r["project"]))


def _same_month(dt: datetime | None, now: datetime) -> bool:
    return dt is not None and dt.year == now.year and dt.month == now.month


def average_approval_hours(requests: Iterable) -> float | None:
    """Mean submitted -> decision time, in hours; None when nothing was decided."""
    durations = [
        (tx.pm_approved_at - tx.created_at).total_seconds() / 3600
        for tx in requests
        if tx.pm_approved_at is not None and tx.created_at is not None
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 1)


def manager_stats(user, requests: Iterable) -> dict:
    counts = status_counts(tx for tx in requests if tx.requester_id == user.id)
    return {
        "total_requests": counts["total"],
        "pending_requests": counts["pending"],
        "approved_requests": counts["approved"],
        "completed_requests": counts["completed"],
    }


def pm_stats(requests: Iterable, projects: Iterable, *, now: datetime) -> dict:
    requests = list(requests)
    return {
        "pending_approvals": sum(1 for tx in requests if tx.status == "submitted"),
        "approved_month": sum(
            1 for tx in requests if tx.status == "pm_approved" and _same_month(tx.pm_approved_at, now)
        ),
        "active_projects": sum(1 for p in projects if p.status == "active"),
        "avg_approval_hours": average_approval_hours(requests),
    }


def operations_stats(
    team: str,
    requests: Iterable,
    bookings: Iterable,
    users: Iterable,
    *,
    default_budget: float,
    now: datetime,
) -> dict:
    requests = list(requests)
    bookings = list(bookings)

    total_budget = 0.0
    for user in users:
        budget = parse_amount(user.annual_travel_budget, "annualTravelBudget")
        total_budget += default_budget if budget is None else budget
    spent_this_year = sum(completed_cost(tx) for tx in requests if _in_year(tx, now.year))

    return {
        "team": team,
        "active_bookings": sum(1 for b in bookings if b.status == "in_progress"),
        "monthly_spend": round(
            sum(parse_amount(b.cost) or 0.0 for b in bookings if _same_month(b.booked_at or b.created_at, now)),
            2,
        ),
        "pending_tasks": sum(
            1 for tx in requests if tx.status == "pm_approved" and tx.assigned_operations_team == team
        ),
        "budget_remaining": round(total_budget - spent_this_year, 2),
    }


# ================================================================================
# Database-backed reports
# ================================================================================

def _all_requests() -> list[TravelRequest]:
    return TravelRequest.query.order_by(TravelRequest.id.asc()).all()


def dashboard_stats(user: User, *, now: datetime | None = None) -> dict:
    """Dashboard numbers for the user's effective role."""
    now = now or utcnow()
    role = resolve_effective_role(user)
    requests = _all_requests()

    if role == "manager":
        stats = manager_stats(user, requests)
    elif role == "pm":
        stats = pm_stats(requests, Project.query.all(), now=now)
    elif role in OPERATIONS_ROLES:
        stats = operations_stats(
            role,
            requests,
            Booking.query.all(),
            User.query.filter_by(is_active=True).all(),
            default_budget=current_app.config["DEFAULT_ANNUAL_TRAVEL_BUDGET"],
            now=now,
        )
    elif role == "admin":
        counts = status_counts(requests)
        stats = {
            **counts,
            "active_users": User.query.filter_by(is_active=True).count(),
            "active_projects": Project.query.filter_by(status="active").count(),
        }
    else:
        raise ReportError(f"No dashboard for role '{role}'")

    return {"role": role, **stats}


def user_budget_report(*, year: int | None = None) -> list[dict]:
    requests = _all_requests()
    default_budget = current_app.config["DEFAULT_ANNUAL_TRAVEL_BUDGET"]
    users = User.query.filter_by(is_active=True).order_by(User.last_name.asc(), User.id.asc()).all()
    return [user_budget_summary(u, requests, default_budget=default_budget, year=year) for u in users]


def project_budget_report(*, year: int | None = None) -> list[dict]:
    requests = _all_requests()
    default_budget = current_app.config["DEFAULT_PROJECT_TRAVEL_BUDGET"]
    projects = Project.query.order_by(Project.name.asc(), Project.id.asc()).all()
    return [project_budget_summary(p, requests, default_budget=default_budget, year=year) for p in projects]


def user_budget_detail(user_id: int, *, year: int | None = None) -> dict:
    user = get_user(user_id)
    requests = TravelRequest.query.filter_by(traveler_id=user.id).all()
    summary = user_budget_summary(
        user, requests, default_budget=current_app.config["DEFAULT_ANNUAL_TRAVEL_BUDGET"], year=year
    )
    summary["requests"] = [tx.to_dict() for tx in requests if _in_year(tx, year)]
    return summary


def project_budget_detail(project_id: int, *, year: int | None = None) -> dict:
    project = get_project(project_id)
    requests = TravelRequest.query.filter_by(project_id=project.id).all()
    summary = project_budget_summary(
        project, requests, default_budget=current_app.config["DEFAULT_PROJECT_TRAVEL_BUDGET"], year=year
    )
    summary["requests"] = [tx.to_dict() for tx in requests if _in_year(tx, year)]
    return summary


def project_analytics_report() -> list[dict]:
    return project_analytics(Project.query.all(), _all_requests())


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError as exc:
        raise ReportError("Invalid date format. Use ISO-8601.") from exc
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be <= end")
    return start_dt, end_dt


def security_events(
    *,
    user_id: int | None,
    event_type: str | None,
    start: str | None,
    end: str | None,
    limit: int = 200,
) -> dict:
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(SecurityEvent).order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if start_dt:
        query = query.filter(SecurityEvent.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(SecurityEvent.occurred_at <= end_dt)

    events = query.limit(limit).all()
    return {
        "user_id": user_id,
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "limit": limit,
        "events": [event.to_dict() for event in events],
    }
