"""
Activity Import Blueprint.

CSV-based bulk import of planned activities.

Endpoints:
  GET  /api/v1/activities/import/template   — Download CSV template
  POST /api/v1/activities/import/validate   — Classify rows without importing
  POST /api/v1/activities/import            — Classify + commit valid rows
"""

import logging

from flask import Blueprint, Response, jsonify, request

from fieldprogress.services.activity_import_service import (
    import_activities_from_csv,
    validate_activities_csv,
)
from fieldprogress.services.activity_store import StoreError
from fieldprogress.services.import_pipeline import ActivityImportError, generate_csv_template
from fieldprogress.utils.errors import E, api_error, code_for_status

logger = logging.getLogger(__name__)

activity_import_bp = Blueprint("activity_import", __name__, url_prefix="/api/v1/activities/import")


# ═══════════════════════════════════════════════════════════════
# Error Handlers
# ═══════════════════════════════════════════════════════════════
@activity_import_bp.errorhandler(ActivityImportError)
def handle_import_error(e):
    return api_error(code_for_status(e.status_code), e.message, status=e.status_code)


@activity_import_bp.errorhandler(StoreError)
def handle_store_error(e):
    return api_error(code_for_status(e.status_code), e.message, status=e.status_code)


# ═══════════════════════════════════════════════════════════════
# Template Download
# ═══════════════════════════════════════════════════════════════
@activity_import_bp.route("/template", methods=["GET"])
def download_template():
    """Download a CSV template for activity import."""
    return Response(
        generate_csv_template(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=activities_template.csv"},
    )


# ═══════════════════════════════════════════════════════════════
# Validate (dry run)
# ═══════════════════════════════════════════════════════════════
@activity_import_bp.route("/validate", methods=["POST"])
def validate_csv():
    """Classify each row as valid / warning / error; nothing is stored."""
    file_content, err = _extract_file_content()
    if err:
        return err
    return jsonify(validate_activities_csv(file_content).to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Import
# ═══════════════════════════════════════════════════════════════
@activity_import_bp.route("", methods=["POST"])
def import_csv():
    """Upload a CSV and commit its valid rows."""
    file_content, err = _extract_file_content()
    if err:
        return err
    return jsonify(import_activities_from_csv(file_content)), 201


# ═══════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════
def _decode(raw: bytes):
    try:
        return raw.decode("utf-8-sig"), None
    except UnicodeDecodeError:
        return None, api_error(E.VALIDATION_INVALID, "CSV content must be UTF-8 encoded")


def _extract_file_content():
    """CSV text from a multipart upload, JSON ``csv_content`` or the raw body.

    Returns ``(content, None)`` or ``(None, error_response)``.
    """
    if request.files:
        file = request.files.get("file")
        if file:
            content, err = _decode(file.read())
            return (content, None) if content else (None, err or _missing())

    data = request.get_json(silent=True)
    if isinstance(data, dict) and "csv_content" in data:
        content = data["csv_content"]
        if not isinstance(content, str):
            return None, api_error(E.VALIDATION_INVALID, "csv_content must be a string")
        return (content, None) if content else (None, _missing())

    if request.data:
        return _decode(request.data)

    return None, _missing()


def _missing():
    return api_error(E.VALIDATION_REQUIRED, "CSV file is required (file upload or raw body)")
