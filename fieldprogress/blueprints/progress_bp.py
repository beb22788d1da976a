"""
Progress Capture Blueprint.

Endpoints:
  GET  /api/v1/activities/<id>/progress   — Aggregate + capture history
  POST /api/v1/activities/<id>/progress   — Record a daily quantity
"""

import logging
from datetime import date

from flask import Blueprint, jsonify, request

from fieldprogress.core.exceptions import NotFoundError, ValidationError
from fieldprogress.services import progress_service
from fieldprogress.utils.errors import E, api_error

logger = logging.getLogger(__name__)

progress_bp = Blueprint("progress", __name__, url_prefix="/api/v1/activities")


@progress_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@progress_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.BUSINESS_RULE, str(error), details=error.details)


@progress_bp.route("/<int:activity_id>/progress", methods=["GET"])
def get_progress(activity_id):
    data = progress_service.get_progress(activity_id)
    data["entries"] = [e.to_dict() for e in progress_service.list_progress_entries(activity_id)]
    return jsonify(data), 200


@progress_bp.route("/<int:activity_id>/progress", methods=["POST"])
def record_progress(activity_id):
    data = request.get_json(silent=True) or {}

    qty = data.get("qty_today")
    if qty is None:
        return api_error(E.VALIDATION_REQUIRED, "qty_today is required")
    try:
        qty = float(qty)
    except (TypeError, ValueError):
        return api_error(E.VALIDATION_INVALID, "qty_today must be a number")

    entry_date = None
    if data.get("entry_date"):
        try:
            entry_date = date.fromisoformat(data["entry_date"])
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "entry_date must be an ISO date (YYYY-MM-DD)")

    entry = progress_service.record_progress(
        activity_id, qty, comment=data.get("comment"), entry_date=entry_date,
    )
    return jsonify(entry.to_dict()), 201
