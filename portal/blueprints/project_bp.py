"""
Project (Space) Blueprint

Endpoints:
  Projects:
    GET/POST        /api/v1/projects                        — visible list (+stats, ?overdue) / create
    GET/PUT/DELETE  /api/v1/projects/<pid>                  — read / update / delete
    POST            /api/v1/projects/<pid>/archive|unarchive|complete

  Feature flags:
    GET  /api/v1/projects/<pid>/features                    — effective features
    PUT  /api/v1/projects/<pid>/features/<key>              — toggle {enabled}

  Timeline:
    GET/POST  /api/v1/projects/<pid>/timeline               — list / add item
    POST      /api/v1/projects/<pid>/timeline/apply-template     {template_id, confirm}
    POST      /api/v1/projects/<pid>/timeline/save-as-template   {name, ...}
"""

import logging

from flask import Blueprint, jsonify, request

from portal.auth import current_user, require_admin, require_manager
from portal.blueprints import json_body, register_error_handlers
from portal.services import feature_flag_service, project_service, timeline_service
from portal.services import timeline_template_service as template_service
from portal.utils.errors import E, api_error
from portal.utils.helpers import db_commit_or_error, parse_int

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")
register_error_handlers(project_bp)


# ═══════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════

@project_bp.route("", methods=["GET"])
def list_projects():
    """Projects visible to the current user, newest first.

    ``?overdue=true`` keeps only active projects past their end date.
    """
    include_archived = request.args.get("include_archived", "true").lower() != "false"
    overdue_only = request.args.get("overdue", "false").lower() == "true"
    projects = project_service.list_visible_projects(
        current_user(), include_archived=include_archived, overdue_only=overdue_only,
    )
    return jsonify({
        "items": [p.to_dict() for p in projects],
        "total": len(projects),
        "stats": project_service.project_stats(projects),
    }), 200


@project_bp.route("", methods=["POST"])
@require_manager
def create_project():
    """Create a space; its timeline is seeded from the chosen/default template."""
    data = json_body()
    settings = feature_flag_service.get_settings()
    project, clone = project_service.create_project(data, user=current_user(), settings=settings)
    err = db_commit_or_error()
    if err:
        return err
    body = project.to_dict()
    body["timeline"] = clone.to_dict() if clone else None
    return jsonify(body), 201


@project_bp.route("/<int:pid>", methods=["GET"])
def get_project(pid):
    project = project_service.get_visible_project(pid, current_user())
    settings = feature_flag_service.get_settings()
    body = project.to_dict()
    body["effective_features"] = feature_flag_service.effective_features(project, settings)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(body), 200


@project_bp.route("/<int:pid>", methods=["PUT"])
@require_manager
def update_project(pid):
    project_service.get_visible_project(pid, current_user())
    project = project_service.update_project(pid, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 200


@project_bp.route("/<int:pid>", methods=["DELETE"])
@require_admin
def delete_project(pid):
    """Permanent delete. Use /archive for the recoverable variant."""
    project_service.delete_project(pid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Deleted"}), 200


@project_bp.route("/<int:pid>/<action>", methods=["POST"])
@require_manager
def change_status(pid, action):
    """archive | unarchive | complete"""
    handlers = {
        "archive": project_service.archive_project,
        "unarchive": project_service.unarchive_project,
        "complete": project_service.complete_project,
    }
    handler = handlers.get(action)
    if handler is None:
        return api_error(E.NOT_FOUND, f"Unknown action: {action}")
    project_service.get_visible_project(pid, current_user())
    project = handler(pid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Feature flags
# ═══════════════════════════════════════════════════════════════

@project_bp.route("/<int:pid>/features", methods=["GET"])
def get_features(pid):
    project = project_service.get_visible_project(pid, current_user())
    settings = feature_flag_service.get_settings()
    body = {
        "project_id": project.id,
        "features_enabled": dict(project.features_enabled or {}),
        "effective": feature_flag_service.effective_features(project, settings),
        "global": settings.to_dict(),
    }
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(body), 200


@project_bp.route("/<int:pid>/features/<feature>", methods=["PUT"])
@require_manager
def set_feature(pid, feature):
    data = json_body()
    if "enabled" not in data or not isinstance(data["enabled"], bool):
        return api_error(E.VALIDATION_REQUIRED, "enabled (boolean) is required")
    project = project_service.get_visible_project(pid, current_user())
    settings = feature_flag_service.get_settings()
    feature_flag_service.set_project_feature(project, feature, data["enabled"], settings)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "project_id": project.id,
        "features_enabled": dict(project.features_enabled or {}),
        "effective": feature_flag_service.effective_features(project, settings),
    }), 200


# ═══════════════════════════════════════════════════════════════
# Project timeline
# ═══════════════════════════════════════════════════════════════

@project_bp.route("/<int:pid>/timeline", methods=["GET"])
def list_timeline(pid):
    project = project_service.get_visible_project(pid, current_user())
    items = timeline_service.list_timeline_items(project.id)
    return jsonify({"items": [i.to_dict() for i in items], "total": len(items)}), 200


@project_bp.route("/<int:pid>/timeline", methods=["POST"])
@require_manager
def create_timeline_item(pid):
    project = project_service.get_visible_project(pid, current_user())
    item = timeline_service.create_timeline_item(project, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@project_bp.route("/<int:pid>/timeline/apply-template", methods=["POST"])
@require_manager
def apply_template(pid):
    """Replace the project timeline with a template's items.

    A non-empty timeline is answered with 428 until ``"confirm": true`` is sent.
    """
    data = json_body()
    template_id = parse_int(data.get("template_id"), default=None)
    if template_id is None:
        return api_error(E.VALIDATION_REQUIRED, "template_id is required")
    project = project_service.get_visible_project(pid, current_user())
    result = timeline_service.apply_template(
        project, template_id, confirmed=data.get("confirm") is True,
    )
    err = db_commit_or_error()
    if err:
        return err
    items = timeline_service.list_timeline_items(project.id)
    return jsonify({
        "timeline": result.to_dict(),
        "items": [i.to_dict() for i in items],
    }), 201


@project_bp.route("/<int:pid>/timeline/save-as-template", methods=["POST"])
@require_manager
def save_as_template(pid):
    project = project_service.get_visible_project(pid, current_user())
    template, result = template_service.save_project_as_template(project, json_body())
    err = db_commit_or_error()
    if err:
        return err
    body = template.to_dict()
    body["items"] = result.to_dict()
    return jsonify(body), 201
