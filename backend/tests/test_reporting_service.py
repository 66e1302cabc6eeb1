"""
Reporting tests.

The pure aggregation functions are exercised with plain namespaces; the
dashboard is checked against the database per role.
"""

import logging
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.models import Project
from app.services import reporting_service
from app.services.reporting_service import (
    average_approval_hours,
    completed_cost,
    operations_stats,
    pm_stats,
    project_analytics,
    project_budget_summary,
    project_matches,
    status_counts,
    user_budget_summary,
)

from conftest import actor, make_request


NOW = datetime(2026, 6, 15, 12, 0)


def tx(**kw):
    base = {
        "id": 1,
        "status": "submitted",
        "requester_id": 1,
        "traveler_id": 1,
        "project_id": None,
        "actual_total_cost": None,
        "departure_date": datetime(2026, 5, 1),
        "created_at": datetime(2026, 4, 1, 9, 0),
        "pm_approved_at": None,
        "assigned_operations_team": None,
    }
    base.update(kw)
    return SimpleNamespace(**base)


def person(**kw):
    base = {
        "id": 1,
        "full_name": "Mona User",
        "email": "mona@traveldesk.test",
        "role": "manager",
        "annual_travel_budget": 10000,
    }
    base.update(kw)
    return SimpleNamespace(**base)


def proj(**kw):
    base = {"id": 5, "zoho_project_id": "77001", "name": "NEOM Site Survey", "status": "active", "travel_budget": 8000}
    base.update(kw)
    return SimpleNamespace(**base)


class TestPureAggregations:

    def test_completed_cost_only_counts_completed_positive(self):
        assert completed_cost(tx(status="operations_completed", actual_total_cost=250)) == 250.0
        assert completed_cost(tx(status="operations_completed", actual_total_cost="99.99")) == 99.99
        assert completed_cost(tx(status="operations_completed", actual_total_cost=None)) == 0.0
        assert completed_cost(tx(status="pm_approved", actual_total_cost=500)) == 0.0

    def test_status_counts(self):
        counts = status_counts([
            tx(status="submitted"),
            tx(status="submitted"),
            tx(status="pm_approved"),
            tx(status="operations_completed"),
            tx(status="pm_rejected"),
            tx(status="cancelled"),
        ])
        assert counts == {"total": 6, "pending": 2, "approved": 1, "completed": 1, "rejected": 1, "cancelled": 1}

    def test_user_budget_counts_approved_trips_but_not_their_spend(self):
        requests = [
            tx(status="operations_completed", actual_total_cost=2500),
            tx(status="pm_approved", actual_total_cost=None),
            tx(status="submitted"),
            tx(status="operations_completed", actual_total_cost=900, traveler_id=2),
        ]
        summary = user_budget_summary(person(), requests, default_budget=15000)

        assert summary["total_spent"] == 2500.0
        assert summary["remaining"] == 7500.0
        assert summary["utilization"] == 25.0
        assert summary["trip_count"] == 2
        assert summary["annual_budget"] == 10000.0

    def test_user_budget_falls_back_to_default(self):
        summary = user_budget_summary(person(annual_travel_budget=None), [], default_budget=15000)
        assert summary["annual_budget"] == 15000
        assert summary["utilization"] == 0.0

    def test_user_budget_by_year(self):
        requests = [
            tx(status="operations_completed", actual_total_cost=100, departure_date=datetime(2025, 12, 30)),
            tx(status="operations_completed", actual_total_cost=200, departure_date=datetime(2026, 1, 2)),
        ]
        assert user_budget_summary(person(), requests, default_budget=0, year=2026)["total_spent"] == 200.0

    def test_project_matches_local_id_only(self):
        p = proj()
        assert project_matches(p, tx(project_id=5))
        assert not project_matches(p, tx(project_id="77001"))
        assert not project_matches(p, tx(project_id=6))
        assert not project_matches(p, tx(project_id=None))

    def test_roster_id_equal_to_other_local_id_is_not_charged(self):
        alpha = proj(id=1, zoho_project_id="900001", name="Alpha")
        beta = proj(id=2, zoho_project_id="1", name="Beta")
        requests = [tx(status="operations_completed", actual_total_cost=1000, project_id=1)]

        assert project_budget_summary(alpha, requests, default_budget=0)["total_spent"] == 1000.0
        assert project_budget_summary(beta, requests, default_budget=0)["total_spent"] == 0.0
        assert [r["project"] for r in project_analytics([beta, alpha], requests)] == ["Alpha"]

    def test_project_budget_summary(self):
        requests = [
            tx(status="operations_completed", actual_total_cost=1000, project_id=5),
            tx(status="operations_completed", actual_total_cost=3000, project_id=5),
            tx(status="operations_completed", actual_total_cost=0, project_id=5),
            tx(status="pm_approved", project_id=5),
        ]
        summary = project_budget_summary(proj(), requests, default_budget=50000)

        assert summary["total_spent"] == 4000.0
        assert summary["trip_count"] == 2
        assert summary["avg_cost_per_trip"] == 2000.0
        assert summary["remaining"] == 4000.0
        assert summary["utilization"] == 50.0

    def test_project_without_trips(self):
        summary = project_budget_summary(proj(travel_budget=None), [], default_budget=50000)
        assert summary["allocated_budget"] == 50000
        assert summary["avg_cost_per_trip"] == 0.0

    def test_project_analytics_groups_and_sorts(self):
        projects = [proj(), proj(id=6, zoho_project_id="77002", name="Dubai Expo Booth")]
        requests = [
            tx(project_id=6, status="submitted"),
            tx(project_id=5, status="pm_approved"),
            tx(project_id=5, status="operations_completed"),
            tx(project_id=None, status="submitted"),
            tx(project_id=5, status="cancelled"),
        ]
        rows = project_analytics(projects, requests)

        assert rows[0] == {"project": "NEOM Site Survey", "total": 3, "approved": 1, "pending": 0, "completed": 1}
        assert [r["project"] for r in rows[1:]] == ["Dubai Expo Booth", "Unassigned"]

    def test_average_approval_hours(self):
        requests = [
            tx(created_at=datetime(2026, 6, 1, 8), pm_approved_at=datetime(2026, 6, 1, 12)),
            tx(created_at=datetime(2026, 6, 1, 8), pm_approved_at=datetime(2026, 6, 2, 4)),
            tx(pm_approved_at=None),
        ]
        assert average_approval_hours(requests) == 12.0
        assert average_approval_hours([tx()]) is None

    def test_pm_stats(self):
        requests = [
            tx(status="submitted"),
            tx(status="pm_approved", pm_approved_at=NOW - timedelta(days=2)),
            tx(status="pm_approved", pm_approved_at=datetime(2026, 5, 20)),
        ]
        stats = pm_stats(requests, [proj(), proj(status="archived")], now=NOW)
        assert stats["pending_approvals"] == 1
        assert stats["approved_month"] == 1
        assert stats["active_projects"] == 1

    def test_operations_stats(self):
        requests = [
            tx(status="pm_approved", assigned_operations_team="operations_ksa"),
            tx(status="pm_approved", assigned_operations_team="operations_uae"),
            tx(status="operations_completed", actual_total_cost=1200, departure_date=datetime(2026, 3, 1)),
        ]
        bookings = [
            SimpleNamespace(status="in_progress", cost=300, booked_at=NOW - timedelta(days=1), created_at=NOW),
            SimpleNamespace(status="completed", cost="150.5", booked_at=None, created_at=NOW),
            SimpleNamespace(status="completed", cost=999, booked_at=datetime(2026, 4, 1), created_at=NOW),
        ]
        users = [person(), person(id=2, annual_travel_budget=None)]

        stats = operations_stats("operations_ksa", requests, bookings, users, default_budget=5000, now=NOW)

        assert stats["active_bookings"] == 1
        assert stats["monthly_spend"] == 450.5
        assert stats["pending_tasks"] == 1
        assert stats["budget_remaining"] == 13800.0


class TestDashboard:

    def test_manager_dashboard(self, db_session, manager, other_manager):
        make_request(db_session, manager)
        make_request(db_session, manager, status="pm_approved")
        make_request(db_session, other_manager)

        stats = reporting_service.dashboard_stats(manager)
        assert stats == {
            "role": "manager",
            "total_requests": 2,
            "pending_requests": 1,
            "approved_requests": 1,
            "completed_requests": 0,
        }

    def test_admin_dashboard_follows_active_role(self, db_session, admin, manager):
        make_request(db_session, manager, status="pm_approved", assigned_operations_team="operations_uae")

        stats = reporting_service.dashboard_stats(admin)
        assert stats["role"] == "admin"
        assert stats["total"] == 1
        assert stats["active_users"] == 2

        admin.active_role = "operations_uae"
        db_session.commit()
        stats = reporting_service.dashboard_stats(admin)
        assert stats["role"] == "operations_uae"
        assert stats["pending_tasks"] == 1

    def test_project_detail_lists_requests(self, db_session, manager, project):
        make_request(db_session, manager, project_id=project.id, status="operations_completed", actual_total_cost=5000)

        detail = reporting_service.project_budget_detail(project.id)
        assert detail["total_spent"] == 5000.0
        assert detail["allocated_budget"] == 20000.0
        assert detail["utilization"] == 25.0
        assert len(detail["requests"]) == 1

    def test_project_report_ignores_colliding_roster_id(self, db_session, manager):
        alpha = Project(zoho_project_id="900001", name="Alpha", travel_budget=10000, status="active")
        db_session.add(alpha)
        db_session.commit()
        beta = Project(zoho_project_id=str(alpha.id), name="Beta", travel_budget=10000, status="active")
        db_session.add(beta)
        db_session.commit()
        make_request(db_session, manager, project_id=alpha.id, status="operations_completed", actual_total_cost=1000)

        by_name = {row["name"]: row for row in reporting_service.project_budget_report()}
        assert by_name["Alpha"]["total_spent"] == 1000.0
        assert by_name["Beta"]["total_spent"] == 0.0
        assert by_name["Beta"]["trip_count"] == 0

    def test_unknown_user_detail(self, db_session):
        with pytest.raises(ValueError):
            reporting_service.user_budget_detail(12345)


class TestReportRoutes:

    def test_unexpected_failure_returns_json_500(self, app, client, db_session, ops_ksa, monkeypatch, caplog):
        def boom(**kwargs):
            raise RuntimeError("aggregation crashed")

        monkeypatch.setattr(reporting_service, "project_budget_report", boom)

        with caplog.at_level(logging.ERROR, logger=app.logger.name):
            resp = client.get("/api/budget-tracking/projects", headers=actor(ops_ksa))

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}
        assert "Failed to build project budget report" in caplog.text

    def test_budget_routes_require_permission(self, client, db_session, manager):
        resp = client.get("/api/budget-tracking/projects", headers=actor(manager))
        assert resp.status_code == 403
