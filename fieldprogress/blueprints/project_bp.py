"""
Project Blueprint.

Endpoints:
  GET  /api/v1/projects                      — List projects
  POST /api/v1/projects                      — Create project
  GET  /api/v1/projects/<id>                 — Project detail
  GET  /api/v1/projects/<id>/activities      — Active activities with progress
"""

import logging

from flask import Blueprint, jsonify, request

from fieldprogress.core.exceptions import ConflictError, NotFoundError, ValidationError
from fieldprogress.services import project_service
from fieldprogress.services.activity_store import SqlActivityStore
from fieldprogress.utils.errors import E, api_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1/projects")


# ── Error handlers ────────────────────────────────────────────────────────────


@project_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@project_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.BUSINESS_RULE, str(error), details=error.details)


@project_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT_DUPLICATE, str(error))


# ── Routes ────────────────────────────────────────────────────────────────────


@project_bp.route("", methods=["GET"])
def list_projects():
    return jsonify([p.to_dict() for p in project_service.list_projects()]), 200


@project_bp.route("", methods=["POST"])
def create_project():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "JSON body is required")
    project = project_service.create_project(data)
    return jsonify(project.to_dict()), 201


@project_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(project_service.get_project(project_id).to_dict()), 200


@project_bp.route("/<int:project_id>/activities", methods=["GET"])
def list_activities(project_id):
    project_service.get_project(project_id)
    snapshot = SqlActivityStore().list_active_activities(project_id)
    return jsonify([a.to_dict() for a in snapshot]), 200
