"""
Timeline Blueprint

Endpoints:
  Templates (admin):
    GET/POST        /api/v1/timeline-templates                      — list (?active=true) / create
    GET/PUT/DELETE  /api/v1/timeline-templates/<tid>                — template CRUD
    POST            /api/v1/timeline-templates/<tid>/set-default
    POST            /api/v1/timeline-templates/<tid>/duplicate

  Template items (admin):
    GET/POST   /api/v1/timeline-templates/<tid>/items               — list / append
    PUT        /api/v1/timeline-templates/<tid>/items/order         — {ids: [...]}
    PUT/DELETE /api/v1/timeline-template-items/<iid>
    GET        /api/v1/timeline-template-items/<iid>/eligible-parents

  Project timeline items (managers):
    PUT/DELETE /api/v1/timeline-items/<iid>
    POST       /api/v1/timeline-items/<iid>/toggle
"""

import logging

from flask import Blueprint, jsonify, request

from portal.auth import current_user, require_admin, require_manager
from portal.blueprints import json_body, register_error_handlers
from portal.services import project_service, timeline_service
from portal.services import timeline_template_service as svc
from portal.utils.errors import E, api_error
from portal.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

timeline_bp = Blueprint("timeline", __name__, url_prefix="/api/v1")
register_error_handlers(timeline_bp)


# ═══════════════════════════════════════════════════════════════
# Templates
# ═══════════════════════════════════════════════════════════════

@timeline_bp.route("/timeline-templates", methods=["GET"])
def list_templates():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    templates = svc.list_templates(active_only=active_only)
    return jsonify([t.to_dict() for t in templates]), 200


@timeline_bp.route("/timeline-templates", methods=["POST"])
@require_admin
def create_template():
    template = svc.create_template(json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(template.to_dict()), 201


@timeline_bp.route("/timeline-templates/<int:tid>", methods=["GET"])
def get_template(tid):
    template = svc.get_template(tid)
    body = template.to_dict()
    body["items"] = [i.to_dict() for i in svc.list_template_items(tid)]
    return jsonify(body), 200


@timeline_bp.route("/timeline-templates/<int:tid>", methods=["PUT"])
@require_admin
def update_template(tid):
    template = svc.update_template(tid, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(template.to_dict()), 200


@timeline_bp.route("/timeline-templates/<int:tid>", methods=["DELETE"])
@require_admin
def delete_template(tid):
    svc.delete_template(tid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Deleted"}), 200


@timeline_bp.route("/timeline-templates/<int:tid>/set-default", methods=["POST"])
@require_admin
def set_default(tid):
    result = svc.set_default_template(tid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result.to_dict()), 200


@timeline_bp.route("/timeline-templates/<int:tid>/duplicate", methods=["POST"])
@require_admin
def duplicate_template(tid):
    template, result = svc.duplicate_template(tid)
    err = db_commit_or_error()
    if err:
        return err
    body = template.to_dict()
    body["items"] = result.to_dict()
    return jsonify(body), 201


# ═══════════════════════════════════════════════════════════════
# Template items
# ═══════════════════════════════════════════════════════════════

@timeline_bp.route("/timeline-templates/<int:tid>/items", methods=["GET"])
def list_template_items(tid):
    items = svc.list_template_items(tid)
    return jsonify([i.to_dict() for i in items]), 200


@timeline_bp.route("/timeline-templates/<int:tid>/items", methods=["POST"])
@require_admin
def add_template_item(tid):
    item = svc.add_template_item(tid, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@timeline_bp.route("/timeline-templates/<int:tid>/items/order", methods=["PUT"])
@require_admin
def reorder_template_items(tid):
    ids = json_body().get("ids")
    if not isinstance(ids, list):
        return api_error(E.VALIDATION_REQUIRED, "ids (list) is required")
    items = svc.reorder_template_items(tid, ids)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify([i.to_dict() for i in items]), 200


@timeline_bp.route("/timeline-template-items/<int:iid>", methods=["PUT"])
@require_admin
def update_template_item(iid):
    item = svc.update_template_item(iid, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 200


@timeline_bp.route("/timeline-template-items/<int:iid>", methods=["DELETE"])
@require_admin
def delete_template_item(iid):
    svc.delete_template_item(iid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Deleted"}), 200


@timeline_bp.route("/timeline-template-items/<int:iid>/eligible-parents", methods=["GET"])
def eligible_parents(iid):
    """Parent candidates that cannot create a cycle."""
    items = svc.eligible_parents_for(iid)
    return jsonify([i.to_dict() for i in items]), 200


# ═══════════════════════════════════════════════════════════════
# Project timeline items
# ═══════════════════════════════════════════════════════════════

def _visible_item(iid):
    item = timeline_service.get_timeline_item(iid)
    project_service.get_visible_project(item.project_id, current_user())
    return item


@timeline_bp.route("/timeline-items/<int:iid>", methods=["PUT"])
@require_manager
def update_timeline_item(iid):
    _visible_item(iid)
    item = timeline_service.update_timeline_item(iid, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 200


@timeline_bp.route("/timeline-items/<int:iid>/toggle", methods=["POST"])
@require_manager
def toggle_timeline_item(iid):
    _visible_item(iid)
    item = timeline_service.toggle_timeline_item(iid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 200


@timeline_bp.route("/timeline-items/<int:iid>", methods=["DELETE"])
@require_manager
def delete_timeline_item(iid):
    _visible_item(iid)
    timeline_service.delete_timeline_item(iid)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Deleted"}), 200
