"""
Spreadsheet project import tests (openpyxl workbooks built in memory).
"""

import io

import pytest
from openpyxl import Workbook

from app.models import Project
from app.services import project_service
from app.validation import ValidationError

from conftest import actor


HEADER = ("Project Name", "Project ID", "Status", "Description", "Owner")


def workbook_bytes(*rows, header=HEADER) -> io.BytesIO:
    wb = Workbook()
    sheet = wb.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


class TestReadSpreadsheet:

    def test_xlsx_rows_keyed_by_header(self):
        rows = project_service.read_spreadsheet_rows(
            workbook_bytes(("NEOM Site Survey", 77001, "Active", "Phase 1", "Khalid")), "export.xlsx"
        )
        assert rows == [{
            "Project Name": "NEOM Site Survey",
            "Project ID": 77001,
            "Status": "Active",
            "Description": "Phase 1",
            "Owner": "Khalid",
        }]

    def test_csv(self):
        data = io.BytesIO("Project Name,Project ID\nDubai Expo Booth,77002\n".encode("utf-8-sig"))
        rows = project_service.read_spreadsheet_rows(data, "export.CSV")
        assert rows == [{"Project Name": "Dubai Expo Booth", "Project ID": "77002"}]

    def test_unsupported_extension(self):
        with pytest.raises(ValidationError, match="Unsupported"):
            project_service.read_spreadsheet_rows(io.BytesIO(b"x"), "export.pdf")


class TestImportRows:

    def test_adds_missing_and_reports_errors(self, db_session, project):
        result = project_service.import_projects_from_rows([
            {"Project Name": "NEOM Site Survey", "Project ID": 77001, "Status": "Active"},
            {"Project Name": "Old Depot", "Project ID": "77003", "Status": "Closed", "Description": " Archive "},
            {"Project Name": "Already Here", "Project ID": project.zoho_project_id},
            {"Project Name": "", "Project ID": 77004},
            {"Project Name": "Bad Id", "Project ID": "77-05"},
            {"Project Name": "Float Id", "Project ID": 77006.0},
        ])

        assert result["total_projects_in_file"] == 4
        assert result["existing_projects"] == 1
        assert result["missing_projects_found"] == 3
        assert result["projects_added"] == 3
        assert result["errors"] == ["Row 5: Project Name is required (max 255 characters)", "Row 6: Invalid Project ID"]

        neom = Project.query.filter_by(zoho_project_id="77001").one()
        assert neom.status == "active"
        assert neom.description == "Imported from Excel - NEOM Site Survey"

        depot = Project.query.filter_by(zoho_project_id="77003").one()
        assert depot.status == "inactive"
        assert depot.description == "Archive"

        assert Project.query.filter_by(zoho_project_id="77006").count() == 1
        assert Project.query.filter_by(zoho_project_id=project.zoho_project_id).one().name == project.name

    def test_duplicate_rows_added_once(self, db_session):
        result = project_service.import_projects_from_rows([
            {"Project Name": "A", "Project ID": 1},
            {"Project Name": "A again", "Project ID": "1"},
        ])
        assert result["projects_added"] == 1
        assert "errors" not in result


class TestImportRoute:

    def test_upload(self, client, db_session, pm):
        resp = client.post(
            "/api/projects/import-excel",
            data={"file": (workbook_bytes(("Riyadh Fit-out", 88001, "Active", None, None)), "export.xlsx")},
            content_type="multipart/form-data",
            headers=actor(pm),
        )
        assert resp.status_code == 200, resp.get_json()
        assert resp.get_json()["added_projects"] == [{"zoho_project_id": "88001", "name": "Riyadh Fit-out"}]

    def test_file_required(self, client, db_session, pm):
        resp = client.post("/api/projects/import-excel", data={}, headers=actor(pm))
        assert resp.status_code == 400

    def test_operations_denied(self, client, db_session, ops_ksa):
        resp = client.post("/api/projects/import-excel", data={}, headers=actor(ops_ksa))
        assert resp.status_code == 403
