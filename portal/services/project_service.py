"""Project (client space) service: lifecycle, visibility and creation flow."""

from __future__ import annotations

import logging
from datetime import date

from portal.auth import TITLE_CLIENT, TITLE_PROJECT_MANAGER, TITLE_TEAM_MEMBER, User
from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.project import PROJECT_STATUSES, Project
from portal.models.settings import GlobalSettings
from portal.models.testing import TestingCard
from portal.models.timeline import TimelineItem
from portal.services import feature_flag_service, timeline_service
from portal.services import timeline_template_service as template_service
from portal.services.helpers.entity_store import EntityStore
from portal.services.helpers.tree import CloneResult
from portal.utils.helpers import parse_date_input, parse_int

logger = logging.getLogger(__name__)

_projects = EntityStore(Project)
_testing_cards = EntityStore(TestingCard)
_timeline_items = EntityStore(TimelineItem)

_TEXT_FIELDS = (
    "name", "description", "client_name", "client_email",
    "client_first_name", "client_last_name", "accent_color", "logo_url",
)
_ID_LIST_FIELDS = ("project_manager_ids", "team_member_ids", "additional_client_ids")


# ── Visibility ───────────────────────────────────────────────────────────


def _ids(values) -> set[str]:
    return {str(v) for v in (values or [])}


def can_view_project(user: User, project: Project) -> bool:
    """Role-based visibility of a single project.

    Admin            → every project
    Project Manager  → listed in project_manager_ids
    Client           → client email, additional client, or team member
    Team Member      → listed in team_member_ids
    anyone else      → nothing
    """
    if user.is_admin:
        return True
    if user.title == TITLE_PROJECT_MANAGER:
        return str(user.id) in _ids(project.project_manager_ids)
    if user.title == TITLE_CLIENT:
        email_match = bool(user.email) and (project.client_email or "").lower() == user.email.lower()
        return (
            email_match
            or str(user.id) in _ids(project.additional_client_ids)
            or str(user.id) in _ids(project.team_member_ids)
        )
    if user.title == TITLE_TEAM_MEMBER:
        return str(user.id) in _ids(project.team_member_ids)
    return False


def list_visible_projects(
    user: User,
    *,
    include_archived: bool = True,
    overdue_only: bool = False,
) -> list[Project]:
    """Projects the user may see, newest first."""
    projects = [p for p in _projects.list(sort_key="-created_at") if can_view_project(user, p)]
    if not include_archived:
        projects = [p for p in projects if p.status != "archived"]
    if overdue_only:
        projects = [p for p in projects if is_overdue(p)]
    logger.debug("User %s (%s) sees %d projects", user.id, user.title, len(projects))
    return projects


def get_project(project_id: int) -> Project:
    return _projects.get(project_id)


def get_visible_project(project_id: int, user: User) -> Project:
    """Fetch a project, answering NotFound when the user may not see it."""
    project = _projects.get(project_id)
    if not can_view_project(user, project):
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def is_overdue(project: Project, today: date | None = None) -> bool:
    """An active project whose end date has passed."""
    today = today or date.today()
    return project.status == "active" and project.end_date is not None and project.end_date < today


def project_stats(projects: list[Project], today: date | None = None) -> dict:
    """Dashboard counters over a list of projects."""
    return {
        "overdue": sum(1 for p in projects if is_overdue(p, today)),
        "active": sum(1 for p in projects if p.status == "active"),
        "completed": sum(1 for p in projects if p.status == "completed"),
        "on_hold": sum(1 for p in projects if p.status == "on_hold"),
        "archived": sum(1 for p in projects if p.status == "archived"),
        "total_value": sum((p.value or 0) for p in projects if p.status == "active"),
    }


# ── Create / update ──────────────────────────────────────────────────────


def _parse_value(raw) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def create_project(
    data: dict,
    *,
    user: User,
    settings: GlobalSettings,
) -> tuple[Project, CloneResult | None]:
    """Create a space, seed its timeline from a template and its testing card.

    ``template_id`` selects the template; when the key is absent the active
    default template is used, and ``template_id: null`` skips the timeline.

    Returns:
        (project, clone_result) — clone_result is None when no template applied.
    """
    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    status = str(data.get("status") or "active")
    if status not in PROJECT_STATUSES:
        raise ValidationError(f"Invalid status: {status}", details={"status": "invalid"})

    if "template_id" in data:
        raw = data.get("template_id")
        template = None
        if raw not in (None, ""):
            template_id = parse_int(raw, default=None)
            if template_id is None:
                raise ValidationError("template_id must be an integer", details={"template_id": "invalid"})
            template = template_service.get_template(template_id)
    else:
        template = template_service.get_default_template()

    manager_ids = [str(i) for i in (data.get("project_manager_ids") or [])] or [str(user.id)]

    fields = {
        "name": name,
        "description": data.get("description") or "",
        "status": status,
        "client_name": data.get("client_name"),
        "client_email": (data.get("client_email") or "").strip().lower() or None,
        "client_first_name": data.get("client_first_name"),
        "client_last_name": data.get("client_last_name"),
        "start_date": parse_date_input(data.get("start_date"), field="start_date"),
        "end_date": parse_date_input(data.get("end_date"), field="end_date"),
        "accent_color": data.get("accent_color"),
        "value": _parse_value(data.get("value")),
        "logo_url": data.get("logo_url"),
        "features_enabled": feature_flag_service.sanitize_requested_features(
            data.get("features_enabled"), settings,
        ),
        "project_manager_ids": manager_ids,
        "team_member_ids": [str(i) for i in (data.get("team_member_ids") or [])],
        "additional_client_ids": [str(i) for i in (data.get("additional_client_ids") or [])],
    }
    project = _projects.create(fields)
    logger.info("Created project %s (%s) by user %s", project.id, project.name, user.id,
                extra={"project_id": project.id, "user_id": user.id})

    clone_result = None
    if template is not None:
        clone_result = timeline_service.instantiate_template(project, template.id)

    _testing_cards.create({
        "project_id": project.id,
        "title": "Design Review",
        "description": "Please review and approve the initial designs",
        "is_completed": False,
        "order": 0,
    })
    return project, clone_result


def update_project(project_id: int, data: dict) -> Project:
    """Edit project details. Feature flags go through set_project_feature."""
    project = _projects.get(project_id)
    fields = {}

    for attr in _TEXT_FIELDS:
        if attr in data:
            value = data.get(attr)
            value = str(value).strip() if value is not None else None
            if attr == "name" and not value:
                raise ValidationError("name cannot be empty", details={"name": "required"})
            if attr == "client_email" and value:
                value = value.lower()
            fields[attr] = value
    for attr in ("start_date", "end_date"):
        if attr in data:
            fields[attr] = parse_date_input(data.get(attr), field=attr)
    if "value" in data:
        fields["value"] = _parse_value(data.get("value"))
    if "status" in data:
        status = str(data.get("status") or "")
        if status not in PROJECT_STATUSES:
            raise ValidationError(f"Invalid status: {status}", details={"status": "invalid"})
        fields["status"] = status
    for attr in _ID_LIST_FIELDS:
        if attr in data:
            fields[attr] = [str(i) for i in (data.get(attr) or [])]

    return _projects.update(project, fields)


# ── Lifecycle ────────────────────────────────────────────────────────────


# action → (target status, statuses it may start from)
_TRANSITIONS = {
    "archive": ("archived", ("active",)),
    "unarchive": ("active", ("archived",)),
    "complete": ("completed", ("active",)),
}


def _transition(project_id: int, action: str) -> Project:
    """Apply a lifecycle action.

    Raises:
        NotFoundError: no such project.
        ValidationError: the project is not in a status the action starts from.
    """
    target, allowed_from = _TRANSITIONS[action]
    project = _projects.get(project_id)
    current = project.status
    if current not in allowed_from:
        raise ValidationError(
            f"Cannot {action} a project that is {current}",
            details={"status": f"must be {' or '.join(allowed_from)}"},
        )
    project = _projects.update(project, {"status": target})
    logger.info("Project %s %s → %s", project.id, current, target,
                extra={"project_id": project.id})
    return project


def archive_project(project_id: int) -> Project:
    """Soft delete: hidden from active lists, recoverable with unarchive."""
    return _transition(project_id, "archive")


def unarchive_project(project_id: int) -> Project:
    return _transition(project_id, "unarchive")


def complete_project(project_id: int) -> Project:
    return _transition(project_id, "complete")


def delete_project(project_id: int) -> None:
    """Permanently delete a project with its timeline and testing cards."""
    project = _projects.get(project_id)
    items = _timeline_items.filter({"project_id": project.id})
    for item in items:
        item.parent_id = None
    db.session.flush()
    _projects.delete(project)
    logger.info("Deleted project %s with %d timeline items", project_id, len(items),
                extra={"project_id": project_id})
