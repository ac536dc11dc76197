from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, g

from ..decorators import require_operator, require_owner
from ..services import settings_service
from ..services.settings_service import SettingsNotFoundError, SettingsValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


def _json_error(exc: Exception):
    if isinstance(exc, SettingsValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, SettingsNotFoundError):
        return jsonify({"error": str(exc)}), 404
    current_app.logger.exception("Settings request failed")
    return jsonify({"error": "Internal server error"}), 500


@settings_bp.get("/settings")
@require_operator
def get_settings_route():
    return jsonify({"settings": settings_service.get_settings(g.business_id)})


@settings_bp.patch("/settings")
@require_operator
@require_owner
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    changes = payload.get("settings", payload)
    try:
        settings = settings_service.update_settings(g.business_id, changes, actor_id=g.operator.id)
    except Exception as exc:
        return _json_error(exc)
    return jsonify({"settings": settings})
