"""Statistics blueprint — super-user dashboard.

Endpoints:
  GET   /api/v1/statistics?search=
  GET   /api/v1/statistics/users/<email>/activity
  PATCH /api/v1/statistics/users/<id>/role

The service reports failures as result dicts; they are mapped to HTTP
statuses through their error_code.
"""

import logging

from flask import Blueprint, jsonify, request

from app.auth import current_principal, require_principal
from app.services import statistics_service
from app.utils.errors import E, api_error, status_for

logger = logging.getLogger(__name__)

statistics_bp = Blueprint("statistics", __name__, url_prefix="/api/v1/statistics")


def _failure_response(result: dict):
    code = result.get("error_code", E.INTERNAL)
    if status_for(code) >= 500:
        logger.error("Statistics request failed: %s", result["error"])
    return api_error(code, result["error"])


@statistics_bp.route("", methods=["GET"])
@require_principal
def get_statistics():
    result = statistics_service.get_statistics(current_principal())
    if not result["success"]:
        return _failure_response(result)

    data = result["data"]
    search = request.args.get("search", "").strip()
    if search:
        data["users"] = statistics_service.filter_users(data["users"], search)
    return jsonify(data), 200


@statistics_bp.route("/users/<path:email>/activity", methods=["GET"])
@require_principal
def get_user_activity(email):
    result = statistics_service.get_user_activity_details(current_principal(), email)
    if not result["success"]:
        return _failure_response(result)
    return jsonify(result["data"]), 200


@statistics_bp.route("/users/<int:user_id>/role", methods=["PATCH"])
@require_principal
def update_role(user_id):
    """Body: {role_type: superuser | tenant | worker}"""
    data = request.get_json(silent=True) or {}
    role_type = (data.get("role_type") or "").strip()
    if not role_type:
        return api_error(E.VALIDATION_REQUIRED, "role_type is required")

    result = statistics_service.update_user_role(current_principal(), user_id, role_type)
    if not result["success"]:
        return _failure_response(result)
    return jsonify(result["user"]), 200
