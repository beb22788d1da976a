"""
Analytics Blueprint — executive dashboard data.

Endpoints:
  GET /api/v1/projects/<id>/analytics            — KPIs + systems + S-curve
  GET /api/v1/projects/<id>/analytics/kpis       — Overall KPIs (?planned=)
  GET /api/v1/projects/<id>/analytics/systems    — Per-system breakdown (?baseline=)
  GET /api/v1/projects/<id>/analytics/s-curve    — Weekly series (?weeks=)
  GET /api/v1/projects/<id>/metrics              — BOQ quantity metrics
"""

import logging
import math

from flask import Blueprint, jsonify, request

from fieldprogress.core.exceptions import NotFoundError
from fieldprogress.services import analytics_service as svc
from fieldprogress.utils.errors import E, api_error

logger = logging.getLogger(__name__)

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/v1/projects/<int:project_id>")

MAX_SERIES_WEEKS = 520


@analytics_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


def _non_negative_float(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None, None
    try:
        value = float(raw)
    except ValueError:
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be a number")
    if not math.isfinite(value) or value < 0:
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be a finite number >= 0")
    return value, None


def _weeks():
    raw = request.args.get("weeks")
    if raw is None:
        return None, None
    try:
        weeks = int(raw)
    except ValueError:
        return None, api_error(E.VALIDATION_INVALID, "weeks must be an integer")
    if not 0 < weeks <= MAX_SERIES_WEEKS:
        return None, api_error(E.VALIDATION_INVALID, f"weeks must be between 1 and {MAX_SERIES_WEEKS}")
    return weeks, None


@analytics_bp.route("/analytics", methods=["GET"])
def executive_dashboard(project_id):
    planned, err = _non_negative_float("planned")
    if err:
        return err
    baseline, err = _non_negative_float("baseline")
    if err:
        return err
    weeks, err = _weeks()
    if err:
        return err
    return jsonify(svc.get_executive_dashboard(project_id, planned, baseline, weeks)), 200


@analytics_bp.route("/analytics/kpis", methods=["GET"])
def overall_kpis(project_id):
    planned, err = _non_negative_float("planned")
    if err:
        return err
    return jsonify(svc.get_overall_kpis(project_id, planned)), 200


@analytics_bp.route("/analytics/systems", methods=["GET"])
def system_analytics(project_id):
    baseline, err = _non_negative_float("baseline")
    if err:
        return err
    return jsonify(svc.get_system_analytics(project_id, baseline)), 200


@analytics_bp.route("/analytics/s-curve", methods=["GET"])
def progress_series(project_id):
    weeks, err = _weeks()
    if err:
        return err
    return jsonify(svc.get_progress_series(project_id, weeks)), 200


@analytics_bp.route("/metrics", methods=["GET"])
def project_metrics(project_id):
    return jsonify(svc.get_project_metrics(project_id)), 200
