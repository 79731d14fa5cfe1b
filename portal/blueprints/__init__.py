"""
Client Spaces Portal
Blueprint registry helpers.
"""

import logging

from flask import jsonify, request

from portal.core.exceptions import (
    ConfirmationRequired,
    NotFoundError,
    ValidationError,
)
from portal.models import db

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map service-layer exceptions to JSON responses for one blueprint.

    Any exception rolls back the pending unit of work before answering.
    """

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return jsonify({"error": str(error)}), 404

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return jsonify({"error": str(error), "details": error.details}), 422

    @bp.errorhandler(ConfirmationRequired)
    def _handle_confirmation(error: ConfirmationRequired):
        db.session.rollback()
        return jsonify({
            "error": "Confirmation required",
            "confirmation_required": True,
            "impact": error.impact.to_dict(),
        }), 428

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        from werkzeug.exceptions import HTTPException

        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    """Request JSON object, or an empty dict for missing / non-object bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
