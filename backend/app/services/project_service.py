# Overview: Service-layer operations for projects; default projects, roster sync, spreadsheet import and reference resolution.

from __future__ import annotations

import csv
import io

from flask import current_app
from openpyxl import load_workbook

from ..extensions import db
from ..models import Project
from ..validation import ModelValidationPolicy, ValidationError, ConflictError, validate_payload
from .roster_service import get_roster_client, RosterProject


# purpose -> (roster id, name, description) for requests raised without a project
DEFAULT_PROJECTS = {
    "sales": ("sales", "Sales Activities", "All sales-related travel expenses"),
    "event": ("events", "Events & Conferences", "All event and conference-related travel expenses"),
}

PROJECT_POLICY = ModelValidationPolicy(
    writable_fields={"zoho_project_id", "name", "description", "budget", "travel_budget", "status"},
    required_on_create={"zoho_project_id", "name"},
    aliases={
        "zohoProjectId": "zoho_project_id",
        "travelBudget": "travel_budget",
    },
)


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise ValueError(f"Project {project_id} not found")
    return project


def list_projects(*, status: str | None = None) -> list[Project]:
    q = Project.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Project.name.asc(), Project.id.asc()).all()


def create_project(payload: dict) -> Project:
    patch = validate_payload(model=Project, payload=payload, policy=PROJECT_POLICY, partial=False)
    if Project.query.filter_by(zoho_project_id=patch["zoho_project_id"]).first():
        raise ConflictError(f"Project {patch['zoho_project_id']} already exists")
    for key in ("budget", "travel_budget"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    project = Project(**patch)
    db.session.add(project)
    db.session.commit()
    return project


def get_or_create_default_project(purpose: str) -> Project | None:
    """Catch-all project for sales / event trips; None for other purposes."""
    if purpose not in DEFAULT_PROJECTS:
        return None
    roster_id, name, description = DEFAULT_PROJECTS[purpose]

    project = Project.query.filter_by(zoho_project_id=roster_id).first()
    if project is None:
        project = Project(zoho_project_id=roster_id, name=name, description=description, status="active")
        db.session.add(project)
        db.session.commit()
    return project


def _project_from_roster(roster_project: RosterProject) -> Project:
    project = Project(
        zoho_project_id=roster_project.id,
        name=roster_project.name,
        description=roster_project.description or "",
        budget=roster_project.budget,
        status="active",
    )
    db.session.add(project)
    db.session.commit()
    return project


def find_project_by_reference(reference) -> Project | None:
    if reference is None:
        return None
    ref = str(reference).strip()
    if not ref:
        return None

    # Roster ids are numeric too, so they win over local ids
    project = Project.query.filter_by(zoho_project_id=ref).first()
    if project is not None:
        return project
    if ref.isdigit():
        return db.session.get(Project, int(ref))
    return None


def resolve_project_reference(reference) -> Project:
    """
    Resolve a roster id or local id to a local Project, importing it from
    the roster provider when only the provider knows it.
    """
    project = find_project_by_reference(reference)
    if project is not None:
        return project

    client = get_roster_client()
    if not client.is_configured:
        raise ValidationError("Selected project not found")

    roster_project = client.find_project(str(reference).strip())
    if roster_project is None:
        raise ValidationError("Selected project not found")
    return _project_from_roster(roster_project)


def sync_projects_from_roster() -> dict:
    """
    Add roster projects that are missing locally. Existing projects are
    left untouched.
    """
    roster_projects = get_roster_client().list_projects()
    existing_ids = {p.zoho_project_id for p in Project.query.all()}

    added: list[Project] = []
    for roster_project in roster_projects:
        if roster_project.id in existing_ids:
            continue
        project = Project(
            zoho_project_id=roster_project.id,
            name=roster_project.name,
            description=roster_project.description or "",
            budget=roster_project.budget,
            status="active",
        )
        db.session.add(project)
        existing_ids.add(roster_project.id)
        added.append(project)

    db.session.commit()
    current_app.logger.info("Project sync added %d of %d roster projects", len(added), len(roster_projects))

    return {
        "total_roster_projects": len(roster_projects),
        "projects_added": len(added),
        "added_projects": [{"zoho_project_id": p.zoho_project_id, "name": p.name} for p in added],
    }


# ================================================================================
# Spreadsheet import
# ================================================================================

MAX_REPORTED_ERRORS = 20
EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


def read_spreadsheet_rows(stream, filename: str) -> list[dict]:
    """First sheet of an Excel workbook, or a CSV file, as header-keyed dicts."""
    ext = (filename or "").rsplit(".", 1)[-1].lower()

    if ext == "csv":
        text = stream.read()
        if isinstance(text, bytes):
            text = text.decode("utf-8-sig")
        return [dict(row) for row in csv.DictReader(io.StringIO(text))]

    if ext in EXCEL_EXTENSIONS:
        wb = load_workbook(stream, read_only=True, data_only=True)
        try:
            data = list(wb.worksheets[0].values)
        finally:
            wb.close()
        if not data:
            return []
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        return [
            {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
            for row in data[1:]
            if any(cell is not None for cell in row)
        ]

    raise ValidationError("Unsupported file format (expected .xlsx or .csv)")


def _roster_id_cell(value) -> str | None:
    """Spreadsheet ids arrive as int, float or text; only whole numbers are valid."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else None
    text = str(value).strip()
    return text if text.isdigit() else None


def _text_cell(value) -> str:
    return "" if value is None else str(value).strip()


def import_projects_from_rows(rows: list[dict]) -> dict:
    """
    Import a roster project export (one dict per spreadsheet row).

    Columns: Project Name, Project ID, Status (default Active), Description.
    Invalid rows are reported and skipped; projects already known by their
    roster id are left untouched.
    """
    parsed: list[dict] = []
    errors: list[str] = []

    # Row 1 is the header
    for row_number, row in enumerate(rows, start=2):
        name = _text_cell(row.get("Project Name"))
        if not name or len(name) > 255:
            errors.append(f"Row {row_number}: Project Name is required (max 255 characters)")
            continue
        roster_id = _roster_id_cell(row.get("Project ID"))
        if roster_id is None:
            errors.append(f"Row {row_number}: Invalid Project ID")
            continue
        parsed.append({
            "zoho_project_id": roster_id,
            "name": name,
            "status": _text_cell(row.get("Status")) or "Active",
            "description": _text_cell(row.get("Description")),
        })

    if errors:
        current_app.logger.warning("Project import: %d invalid row(s), first: %s", len(errors), errors[0])

    existing_count = Project.query.count()
    known_ids = {p.zoho_project_id for p in Project.query.all()}

    missing = []
    for item in parsed:
        if item["zoho_project_id"] in known_ids:
            continue
        known_ids.add(item["zoho_project_id"])
        missing.append(item)

    added = [
        Project(
            zoho_project_id=item["zoho_project_id"],
            name=item["name"],
            description=item["description"] or f"Imported from Excel - {item['name']}",
            status="active" if item["status"] == "Active" else "inactive",
        )
        for item in missing
    ]
    db.session.add_all(added)
    db.session.commit()
    current_app.logger.info("Project import added %d of %d valid rows", len(added), len(parsed))

    result = {
        "total_projects_in_file": len(parsed),
        "existing_projects": existing_count,
        "missing_projects_found": len(missing),
        "projects_added": len(added),
        "added_projects": [{"zoho_project_id": p.zoho_project_id, "name": p.name} for p in added],
    }
    if errors:
        result["errors"] = errors[:MAX_REPORTED_ERRORS]
    return result
