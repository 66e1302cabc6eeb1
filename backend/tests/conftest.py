"""
Pytest fixtures for TravelDesk backend tests.

Provides the app with an in-memory database, one user per role, the
actor header helper, a mocked roster provider and a recording mailer.
"""

from datetime import timedelta

import httpx
import pytest
from app import create_app
from app.extensions import db
from app.models import User, Project, TravelRequest
from app.services.roster_service import RosterClient
from app.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ROSTER_CLIENT_ID': None,
        'ROSTER_CLIENT_SECRET': None,
        'ROSTER_REFRESH_TOKEN': None,
        'ROSTER_PORTAL_ID': None,
        'ENFORCE_OPERATIONS_REGION': False,
        'MAIL_SERVER': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions.pop("roster_client", None)
        app.extensions.pop("mailer", None)

        yield db.session

        # Cleanup after test
        db.session.rollback()
        app.extensions.pop("roster_client", None)
        app.extensions.pop("mailer", None)


def make_user(db_session, role: str, email: str, **kwargs) -> User:
    user = User(
        email=email,
        first_name=kwargs.pop("first_name", role.title()),
        last_name=kwargs.pop("last_name", "User"),
        role=role,
        annual_travel_budget=kwargs.pop("annual_travel_budget", 15000),
        **kwargs,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def manager(db_session):
    return make_user(db_session, "manager", "manager@traveldesk.test", first_name="Mona")


@pytest.fixture(scope='function')
def other_manager(db_session):
    return make_user(db_session, "manager", "other.manager@traveldesk.test", first_name="Omar")


@pytest.fixture(scope='function')
def pm(db_session):
    return make_user(db_session, "pm", "pm@traveldesk.test", first_name="Priya")


@pytest.fixture(scope='function')
def ops_ksa(db_session):
    return make_user(db_session, "operations_ksa", "ops.ksa@traveldesk.test", first_name="Khalid")


@pytest.fixture(scope='function')
def ops_uae(db_session):
    return make_user(db_session, "operations_uae", "ops.uae@traveldesk.test", first_name="Aisha")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, "admin", "admin@traveldesk.test", first_name="Ada")


@pytest.fixture(scope='function')
def project(db_session):
    p = Project(zoho_project_id="1001", name="Riyadh Metro Rollout", travel_budget=20000, status="active")
    db_session.add(p)
    db_session.commit()
    return p


def actor(user) -> dict:
    """Helper to create the gateway identity header."""
    return {'X-User-Id': str(user.id)}


def future(days: int) -> str:
    """ISO date `days` from today."""
    return (utcnow() + timedelta(days=days)).date().isoformat()


def request_payload(**overrides) -> dict:
    payload = {
        "origin": "Riyadh",
        "destination": "Dubai",
        "purpose": "sales",
        "departureDate": future(10),
        "returnDate": future(13),
        "estimatedFlightCost": "1200.50",
        "estimatedHotelCost": 900,
    }
    payload.update(overrides)
    return payload


def make_request(db_session, requester, *, status="submitted", traveler=None, **kwargs) -> TravelRequest:
    """Insert a request directly, bypassing submission rules."""
    now = utcnow()
    tx = TravelRequest(
        requester_id=requester.id,
        traveler_id=(traveler or requester).id,
        origin=kwargs.pop("origin", "Riyadh"),
        destination=kwargs.pop("destination", "Dubai"),
        purpose=kwargs.pop("purpose", "sales"),
        departure_date=kwargs.pop("departure_date", now + timedelta(days=5)),
        return_date=kwargs.pop("return_date", now + timedelta(days=8)),
        status=status,
        **kwargs,
    )
    db_session.add(tx)
    db_session.commit()
    return tx


# -- Roster provider ----------------------------------------------------------

ROSTER_USERS = [
    {"id": "z-501", "name": "Sara Haddad", "email": "sara.haddad@traveldesk.test", "role": "Employee"},
    {"id": "z-502", "name": "Yousef", "email": "yousef@traveldesk.test", "role": "Employee"},
]

ROSTER_PROJECTS = [
    {"id": "77001", "name": "NEOM Site Survey", "description": "Phase 1", "status": "active"},
    {"id": "77002", "name": "Dubai Expo Booth", "status": "active", "budget": "120000"},
]


class RosterStub:
    """Serves the roster endpoints through httpx.MockTransport and records calls."""

    def __init__(self, users=None, projects=None, expires_in=3600):
        self.users = list(ROSTER_USERS if users is None else users)
        self.projects = list(ROSTER_PROJECTS if projects is None else projects)
        self.expires_in = expires_in
        self.token_calls = 0
        self.api_calls = []
        self.reject_next = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth/v2/token"):
            self.token_calls += 1
            return httpx.Response(200, json={
                "access_token": f"token-{self.token_calls}",
                "expires_in": self.expires_in,
            })

        self.api_calls.append(request)
        if self.reject_next:
            self.reject_next -= 1
            return httpx.Response(401, json={"error": "INVALID_OAUTHTOKEN"})

        if request.url.path.endswith("/users/"):
            page = int(request.url.params.get("page", 1))
            per_page = int(request.url.params.get("per_page", 200))
            chunk = self.users[(page - 1) * per_page: page * per_page]
            return httpx.Response(200, json={"users": chunk})

        if request.url.path.endswith("/search/"):
            index = int(request.url.params.get("index", 1))
            size = int(request.url.params.get("range", 200))
            chunk = self.projects[index - 1: index - 1 + size]
            if not chunk:
                return httpx.Response(204)
            return httpx.Response(200, json={"projects": chunk})

        return httpx.Response(404)

    def client(self, clock=None) -> RosterClient:
        kwargs = {}
        if clock is not None:
            kwargs["clock"] = clock
        return RosterClient(
            base_url="https://projects.roster.test",
            auth_url="https://accounts.roster.test/oauth/v2/token",
            client_id="client",
            client_secret="secret",
            refresh_token="refresh",
            portal_id="portal",
            transport=httpx.MockTransport(self.handler),
            **kwargs,
        )


@pytest.fixture(scope='function')
def roster(app, db_session):
    """Install a mocked, configured roster client for the app."""
    stub = RosterStub()
    app.extensions["roster_client"] = stub.client()
    yield stub
    app.extensions.pop("roster_client", None)


# -- Outgoing mail ------------------------------------------------------------

class RecordingMailer:
    """Collects messages instead of sending them; fail=True raises on send."""

    is_configured = True

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, to_emails, subject, body):
        if self.fail:
            raise ConnectionRefusedError("smtp unavailable")
        self.sent.append({"to": list(to_emails), "subject": subject, "body": body})


@pytest.fixture(scope='function')
def mailer(app, db_session):
    """Install a recording mailer for the app."""
    recorder = RecordingMailer()
    app.extensions["mailer"] = recorder
    yield recorder
    app.extensions.pop("mailer", None)
