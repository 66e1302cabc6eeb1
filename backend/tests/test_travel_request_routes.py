"""
End-to-end API tests: a request travels from submission to completion
through the HTTP layer, and each role sees its own slice of it.
"""

from datetime import timedelta

import pytest

from app.models import Booking, TravelRequest
from app.time_utils import utcnow

from conftest import actor, future, make_request, request_payload


class TestRequestFlow:

    def test_submit_approve_complete(self, client, db_session, manager, pm, ops_uae, project):
        resp = client.post(
            "/api/travel-requests",
            json=request_payload(purpose="delivery", projectId=project.zoho_project_id, destinations=["Dubai", "Abu Dhabi"]),
            headers=actor(manager),
        )
        assert resp.status_code == 201, resp.get_json()
        created = resp.get_json()["travel_request"]
        request_id = created["id"]
        assert created["status"] == "submitted"
        assert created["project_id"] == project.id
        assert created["route"] == "Riyadh → Dubai → Abu Dhabi"
        assert created["estimated_total_cost"] == 2100.5
        assert created["status_badge"]["label"]

        resp = client.patch(f"/api/travel-requests/{request_id}/approve", json={}, headers=actor(pm))
        assert resp.status_code == 200
        approved = resp.get_json()["travel_request"]
        assert approved["status"] == "pm_approved"
        assert approved["pm_approved_by"] == pm.id
        assert approved["assigned_operations_team"] == "operations_uae"

        queue = client.get("/api/travel-requests", headers=actor(ops_uae)).get_json()
        assert [r["id"] for r in queue["travel_requests"]] == [request_id]

        resp = client.post(
            f"/api/travel-requests/{request_id}/complete",
            json={"bookings": [
                {"type": "flight", "provider": "Emirates", "cost": 1850},
                {"type": "hotel", "cost": "920.40"},
                {"type": "visa"},
            ]},
            headers=actor(ops_uae),
        )
        assert resp.status_code == 200, resp.get_json()
        completed = resp.get_json()["travel_request"]
        assert completed["status"] == "operations_completed"
        assert completed["actual_total_cost"] == 2770.4
        assert completed["operations_completed_by"] == ops_uae.id
        assert len(completed["bookings"]) == 2

        assert client.get("/api/travel-requests", headers=actor(ops_uae)).get_json()["count"] == 0
        history = client.get("/api/travel-requests?status=completed-rejected", headers=actor(ops_uae)).get_json()
        assert history["count"] == 1

    def test_reject_with_reason(self, client, db_session, manager, pm):
        tx = make_request(db_session, manager)
        resp = client.patch(
            f"/api/travel-requests/{tx.id}/reject", json={"reason": "Use video call"}, headers=actor(pm)
        )
        assert resp.status_code == 200
        body = resp.get_json()["travel_request"]
        assert body["status"] == "pm_rejected"
        assert body["pm_rejection_reason"] == "Use video call"

    def test_reason_must_be_text(self, client, db_session, manager, pm):
        tx = make_request(db_session, manager)
        resp = client.patch(f"/api/travel-requests/{tx.id}/reject", json={"reason": 42}, headers=actor(pm))
        assert resp.status_code == 400

    def test_illegal_transition_is_400(self, client, db_session, manager, pm):
        tx = make_request(db_session, manager, status="operations_completed")
        resp = client.patch(f"/api/travel-requests/{tx.id}/approve", headers=actor(pm))
        assert resp.status_code == 400
        assert "operations_completed" in resp.get_json()["error"]

    def test_complete_submitted_is_400(self, client, db_session, manager, ops_ksa):
        tx = make_request(db_session, manager)
        resp = client.post(f"/api/travel-requests/{tx.id}/complete", json={}, headers=actor(ops_ksa))
        assert resp.status_code == 400

    def test_missing_request_is_404(self, client, db_session, pm):
        assert client.patch("/api/travel-requests/999/approve", headers=actor(pm)).status_code == 404
        assert client.get("/api/travel-requests/999", headers=actor(pm)).status_code == 404

    def test_invalid_submission_is_400(self, client, db_session, manager):
        resp = client.post(
            "/api/travel-requests",
            json=request_payload(departureDate=future(5), returnDate=future(2)),
            headers=actor(manager),
        )
        assert resp.status_code == 400
        assert TravelRequest.query.count() == 0

    def test_unknown_field_is_400(self, client, db_session, manager):
        resp = client.post("/api/travel-requests", json=request_payload(status="pm_approved"), headers=actor(manager))
        assert resp.status_code == 400
        assert "status" in resp.get_json()["error"]

    def test_region_enforcement_flag(self, app, client, db_session, manager, ops_ksa):
        tx = make_request(db_session, manager, status="pm_approved", assigned_operations_team="operations_uae")
        app.config["ENFORCE_OPERATIONS_REGION"] = True
        try:
            resp = client.post(f"/api/travel-requests/{tx.id}/complete", json={}, headers=actor(ops_ksa))
        finally:
            app.config["ENFORCE_OPERATIONS_REGION"] = False
        assert resp.status_code == 403

    def test_cancel_own(self, client, db_session, manager):
        tx = make_request(db_session, manager)
        resp = client.patch(f"/api/travel-requests/{tx.id}/cancel", headers=actor(manager))
        assert resp.status_code == 200
        assert resp.get_json()["travel_request"]["status"] == "cancelled"


class TestNonObjectBodies:
    """A JSON array where an object is expected is a 400, not a crash."""

    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_decisions(self, client, db_session, manager, pm, action):
        tx = make_request(db_session, manager)
        resp = client.patch(f"/api/travel-requests/{tx.id}/{action}", json=["operations_uae"], headers=actor(pm))

        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON payload"}
        assert db_session.get(TravelRequest, tx.id).status == "submitted"

    def test_complete(self, client, db_session, manager, ops_ksa):
        tx = make_request(db_session, manager, status="pm_approved")
        resp = client.post(
            f"/api/travel-requests/{tx.id}/complete",
            json=[{"type": "flight", "cost": 100}],
            headers=actor(ops_ksa),
        )

        assert resp.status_code == 400
        assert Booking.query.count() == 0

    def test_booking(self, client, db_session, ops_ksa):
        resp = client.post("/api/bookings", json=[1, 2], headers=actor(ops_ksa))
        assert resp.status_code == 400

    def test_switch_role(self, client, db_session, admin):
        resp = client.post("/api/admin/switch-role", json=["pm"], headers=actor(admin))
        assert resp.status_code == 400


class TestRouteSummary:

    def test_route_endpoint(self, client, db_session, manager):
        tx = make_request(db_session, manager, origin="Jeddah", destination="Dubai", destinations=["Dubai", "Sharjah"])
        body = client.get(f"/api/travel-requests/{tx.id}/route", headers=actor(manager)).get_json()
        assert body["route"] == "Jeddah → Dubai → Sharjah"
        assert body["destinations"] == "Dubai → Sharjah"
        assert body["suggested_operations_team"] == "operations_uae"
        assert body["assigned_operations_team"] is None


class TestBookingsApi:

    def test_record_and_list(self, client, db_session, manager, ops_ksa):
        tx = make_request(db_session, manager, status="pm_approved")
        resp = client.post(
            "/api/bookings",
            json={"requestId": tx.id, "type": "car_rental", "provider": "Hertz", "cost": 210},
            headers=actor(ops_ksa),
        )
        assert resp.status_code == 201, resp.get_json()
        assert resp.get_json()["booking"]["status"] == "in_progress"

        listed = client.get(f"/api/bookings?requestId={tx.id}", headers=actor(ops_ksa)).get_json()
        assert [b["provider"] for b in listed["bookings"]] == ["Hertz"]

    def test_request_id_required(self, client, db_session, ops_ksa):
        resp = client.post("/api/bookings", json={"type": "flight", "cost": 1}, headers=actor(ops_ksa))
        assert resp.status_code == 400
        assert Booking.query.count() == 0


class TestReportsApi:

    def test_dashboard_per_role(self, client, db_session, manager, pm):
        make_request(db_session, manager)
        body = client.get("/api/dashboard/stats", headers=actor(pm)).get_json()
        assert body["role"] == "pm"
        assert body["pending_approvals"] == 1

        body = client.get("/api/dashboard/stats", headers=actor(manager)).get_json()
        assert body["total_requests"] == 1

    def test_budget_tracking(self, client, db_session, manager, ops_ksa, project):
        make_request(
            db_session, manager, status="operations_completed", project_id=project.id, actual_total_cost=3000,
            departure_date=utcnow() - timedelta(days=20), return_date=utcnow() - timedelta(days=18),
        )

        users = client.get("/api/budget-tracking/users", headers=actor(ops_ksa)).get_json()["users"]
        row = next(u for u in users if u["user_id"] == manager.id)
        assert row["total_spent"] == 3000.0
        assert row["remaining"] == 12000.0

        projects = client.get("/api/budget-tracking/projects", headers=actor(ops_ksa)).get_json()["projects"]
        assert projects[0]["total_spent"] == 3000.0

        detail = client.get(f"/api/budget-tracking/project/{project.id}", headers=actor(ops_ksa)).get_json()
        assert detail["trip_count"] == 1

        assert client.get("/api/budget-tracking/user/999", headers=actor(ops_ksa)).status_code == 404

    def test_project_analytics(self, client, db_session, manager, pm, project):
        make_request(db_session, manager, project_id=project.id)
        make_request(db_session, manager)
        rows = client.get("/api/reports/project-analytics", headers=actor(pm)).get_json()["projects"]
        assert {r["project"] for r in rows} == {project.name, "Unassigned"}


class TestDocumentsApi:

    def test_expiring_listing(self, client, db_session, manager, admin):
        today = utcnow()
        resp = client.post(
            "/api/employee-documents",
            json={
                "userId": manager.id,
                "documentType": "iqama",
                "documentNumber": "2233445566",
                "issuingCountry": "SA",
                "issueDate": (today - timedelta(days=700)).date().isoformat(),
                "expiryDate": (today + timedelta(days=10)).date().isoformat(),
            },
            headers=actor(admin),
        )
        assert resp.status_code == 201, resp.get_json()
        assert resp.get_json()["document"]["status"] == "expiring_soon"

        body = client.get("/api/employee-documents/expiring?days=30", headers=actor(admin)).get_json()
        assert body["summary"]["expiring_soon"] == 1
        assert len(body["documents"]) == 1

    def test_invalid_type_filter(self, client, db_session, admin):
        resp = client.get("/api/employee-documents?type=library_card", headers=actor(admin))
        assert resp.status_code == 400
