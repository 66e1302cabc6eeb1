# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask travel init
#   Idempotent: creates tables and the default Sales / Events projects.
# - python -m flask travel reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--all]
# - python -m flask users create --email a@b.com --first-name Ada --last-name L --role admin
#
# Projects:
# - python -m flask projects sync
#   Pull roster projects that are missing locally.
# - python -m flask projects import export.xlsx
#   Add projects from a roster export spreadsheet (.xlsx or .csv).
#
# Documents:
# - python -m flask documents expiring [--days 30]
#   Expired documents and those expiring within the window.
#
# Travel requests:
# - python -m flask requests list [--status submitted]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import USER_ROLES, REQUEST_STATUSES, TravelRequest
from .services import document_service, lifecycle_service, project_service, user_service
from .services.destination_service import format_route
from .services.roster_service import RosterError
from .time_utils import to_iso_date, utctoday
from .validation import ValidationError, ConflictError


@click.group('travel')
def travel_group():
    """System bootstrap commands."""


@travel_group.command('init')
@with_appcontext
def init_system():
    """Create tables and the default projects used by sales / event trips."""
    click.echo("START Initializing TravelDesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    for purpose in project_service.DEFAULT_PROJECTS:
        project = project_service.get_or_create_default_project(purpose)
        click.echo(f"PASS Default project for {purpose}: {project.name} (ID: {project.id})")

    click.echo("DONE Run 'python -m flask users create' to add the first admin.")


@travel_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask travel init' to initialize.")


@click.group('users')
def users_group():
    """User directory commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', default='', help='Last name')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@click.option('--budget', type=float, help='Annual travel budget (defaults to config)')
@with_appcontext
def create_user_cli(email, first_name, last_name, role, budget):
    """Create a user."""
    payload = {"email": email, "first_name": first_name, "last_name": last_name, "role": role}
    if budget is not None:
        payload["annual_travel_budget"] = budget

    try:
        user = user_service.create_user(payload)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated users')
@with_appcontext
def list_users(include_inactive):
    """List users with role and budget."""
    users = user_service.list_users(include_inactive=include_inactive)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<32} {'Role':<16} {'Budget':>10} {'Active':<6}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        budget = user.annual_travel_budget or 0
        click.echo(f"{user.id:<5} {user.full_name:<25} {user.email:<32} {user.role:<16} {budget:>10.2f} {active_str:<6}")

    click.echo("="*100 + "\n")


@click.group('projects')
def projects_group():
    """Project directory commands."""


@projects_group.command('sync')
@with_appcontext
def sync_projects():
    """Add roster projects that are missing locally."""
    try:
        result = project_service.sync_projects_from_roster()
    except RosterError as e:
        raise click.ClickException(f"Roster sync failed: {e}")

    click.echo(f"PASS {result['projects_added']} of {result['total_roster_projects']} roster projects added")
    for project in result["added_projects"]:
        click.echo(f"  + {project['zoho_project_id']}: {project['name']}")


@projects_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_projects(path):
    """Import projects from a roster export (.xlsx or .csv)."""
    try:
        with open(path, "rb") as fh:
            rows = project_service.read_spreadsheet_rows(fh, path)
    except ValidationError as e:
        raise click.ClickException(str(e))

    result = project_service.import_projects_from_rows(rows)
    click.echo(f"PASS {result['projects_added']} of {result['total_projects_in_file']} projects added")
    for error in result.get("errors", []):
        click.echo(f"  ! {error}")


@click.group('documents')
def documents_group():
    """Employee document commands."""


@documents_group.command('expiring')
@click.option('--days', type=int, default=None, help='Window in days (defaults to config)')
@with_appcontext
def expiring_documents(days):
    """List expired documents and those expiring within the window."""
    try:
        docs = document_service.expiring_documents(days=days)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not docs:
        click.echo("No expiring documents.")
        return

    today = utctoday()
    for doc in docs:
        status = document_service.classify_expiry(doc.expiry_date, today)
        holder = doc.user.full_name if doc.user else f"user {doc.user_id}"
        click.echo(
            f"{status.status.upper():<14} {to_iso_date(doc.expiry_date)} "
            f"({status.days_until_expiry:>4}d) {doc.document_type:<12} {doc.document_number:<16} {holder}"
        )


@click.group('requests')
def requests_group():
    """Travel request inspection commands."""


@requests_group.command('list')
@click.option('--status', type=click.Choice(list(REQUEST_STATUSES)), help='Filter by status')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_requests(status, limit):
    """List recent travel requests."""
    if status:
        requests = lifecycle_service.get_requests_by_status(status, limit=limit)
    else:
        requests = TravelRequest.query.order_by(TravelRequest.id.desc()).limit(limit).all()

    if not requests:
        click.echo("No travel requests found.")
        return

    for tx in requests:
        traveler = tx.traveler.full_name if tx.traveler else f"user {tx.traveler_id}"
        click.echo(
            f"#{tx.id:<5} {tx.status:<22} {to_iso_date(tx.departure_date)} {traveler:<25} {format_route(tx)}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(travel_group)
    app.cli.add_command(users_group)
    app.cli.add_command(projects_group)
    app.cli.add_command(documents_group)
    app.cli.add_command(requests_group)
