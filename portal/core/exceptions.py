"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
(see portal.blueprints.register_error_handlers) and get consistent HTTP
status codes everywhere.

Usage:
    from portal.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Project", "TimelineTemplate").
        resource_id: The id that was looked up.

    Maps to HTTP 404.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Examples: enabling a project feature that is globally disabled, assigning
    a parent that would create a cycle, deleting a template item that still
    has children.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConfirmationRequired(Exception):
    """Raised when a platform-wide change was requested without confirmation.

    Carries the impact preview that must be shown to the operator before the
    change is re-submitted with confirmation.

    Maps to HTTP 428.
    """

    def __init__(self, impact) -> None:
        self.impact = impact
        super().__init__(impact.message)
