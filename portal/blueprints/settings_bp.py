"""
Global Settings Blueprint

Admin API for platform-wide feature switches.

Endpoints:
    GET  /api/v1/admin/settings                            — current settings
    GET  /api/v1/admin/settings/features/<key>/impact      — preview (?enabled=true|false)
    PUT  /api/v1/admin/settings/features/<key>             — set flag {enabled, confirm}

A PUT that changes a flag without ``"confirm": true`` is answered with 428
and the impact preview (number of projects that will be touched). The
client shows it to the operator and re-submits with confirmation.
"""

import logging

from flask import Blueprint, jsonify, request

from portal.auth import require_admin
from portal.blueprints import json_body, register_error_handlers
from portal.services import feature_flag_service as svc
from portal.utils.errors import E, api_error
from portal.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/v1/admin/settings")
register_error_handlers(settings_bp)

_TRUE = ("1", "true", "yes", "on")


@settings_bp.route("", methods=["GET"])
@require_admin
def get_settings():
    """Return the global settings, creating them on first access."""
    settings = svc.get_settings()
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(settings.to_dict()), 200


@settings_bp.route("/features/<feature>/impact", methods=["GET"])
@require_admin
def preview_feature(feature):
    """How many projects a global change would touch."""
    raw = request.args.get("enabled")
    if raw is None:
        return api_error(E.VALIDATION_REQUIRED, "enabled query param required")
    settings = svc.get_settings()
    impact = svc.preview_toggle(settings, feature, raw.lower() in _TRUE)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(impact.to_dict()), 200


@settings_bp.route("/features/<feature>", methods=["PUT"])
@require_admin
def set_feature(feature):
    """Set a global flag; a changed value cascades to projects once confirmed."""
    data = json_body()
    if "enabled" not in data or not isinstance(data["enabled"], bool):
        return api_error(E.VALIDATION_REQUIRED, "enabled (boolean) is required")

    settings = svc.get_settings()
    settings, result = svc.set_global_flag(
        settings, feature, data["enabled"], confirmed=data.get("confirm") is True,
    )
    err = db_commit_or_error()
    if err:
        return err

    body = {"settings": settings.to_dict(), "cascade": result.to_dict() if result else None}
    return jsonify(body), 200
