# Overview: Flask API routes for employee documents; parses input and returns JSON responses.

"""
Employee Document Routes

- GET/POST   /api/employee-documents
- PUT/DELETE /api/employee-documents/:id
- GET        /api/employee-documents/expiring
- GET/POST   /api/passports
- GET/POST   /api/visas

Every response row carries the derived expiry status
(expired / expiring_soon / valid) and days_until_expiry.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_actor, require_permission
from ..models import DOCUMENT_TYPES
from ..services import document_service
from ..services.roster_service import RosterError
from ..validation import ValidationError


documents_bp = Blueprint("documents", __name__, url_prefix="/api")


def _listing(docs) -> dict:
    return {
        "documents": [document_service.document_to_dict(d) for d in docs],
        "summary": document_service.summarize(docs),
    }


@documents_bp.get("/employee-documents")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def list_documents_route():
    doc_type = request.args.get("type")
    if doc_type and doc_type not in DOCUMENT_TYPES:
        return jsonify({"error": f"Invalid type. Must be one of: {', '.join(DOCUMENT_TYPES)}"}), 400

    docs = document_service.list_documents(employee=request.args.get("employee"), document_type=doc_type)
    return jsonify(_listing(docs))


@documents_bp.get("/employee-documents/expiring")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def expiring_documents_route():
    try:
        docs = document_service.expiring_documents(days=request.args.get("days", type=int))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_listing(docs))


@documents_bp.post("/employee-documents")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def create_document_route():
    try:
        doc = document_service.create_document(request.get_json(silent=True))
        return jsonify({"document": document_service.document_to_dict(doc)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RosterError as e:
        current_app.logger.warning("Roster lookup failed while creating document: %s", e)
        return jsonify({"error": "Roster provider unavailable"}), 502
    except Exception:
        current_app.logger.exception("Failed to create document")
        return jsonify({"error": "Internal server error"}), 500


@documents_bp.put("/employee-documents/<int:document_id>")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def update_document_route(document_id: int):
    try:
        doc = document_service.update_document(document_id, request.get_json(silent=True))
        return jsonify({"document": document_service.document_to_dict(doc)})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update document")
        return jsonify({"error": "Internal server error"}), 500


@documents_bp.delete("/employee-documents/<int:document_id>")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def delete_document_route(document_id: int):
    try:
        document_service.delete_document(document_id)
        return jsonify({"message": "Document deleted successfully"})
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete document")
        return jsonify({"error": "Internal server error"}), 500


@documents_bp.get("/passports")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def list_passports_route():
    return jsonify(_listing(document_service.list_passports()))


@documents_bp.post("/passports")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def create_passport_route():
    try:
        doc = document_service.create_passport(request.get_json(silent=True))
        return jsonify({"document": document_service.document_to_dict(doc)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create passport")
        return jsonify({"error": "Internal server error"}), 500


@documents_bp.get("/visas")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def list_visas_route():
    return jsonify(_listing(document_service.list_visas()))


@documents_bp.post("/visas")
@require_actor
@require_permission("MANAGE_DOCUMENTS")
def create_visa_route():
    try:
        doc = document_service.create_visa(request.get_json(silent=True))
        return jsonify({"document": document_service.document_to_dict(doc)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create visa")
        return jsonify({"error": "Internal server error"}), 500
