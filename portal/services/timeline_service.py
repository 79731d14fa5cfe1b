"""
Project Timeline Service

Concrete, dated timeline items inside a project:
  - instantiate_template   clone a template's items into a project
  - apply_template         replace an existing timeline with a template (confirmed)
  - list / create / update / toggle / delete individual items

Instantiation uses the shared two-pass clone (helpers.tree.clone_tree):
every item is created first, then parents are re-pointed at the new ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from portal.core.exceptions import ConfirmationRequired, ValidationError
from portal.models import db
from portal.models.project import Project
from portal.models.timeline import TimelineItem, TimelineTemplate, TimelineTemplateItem
from portal.services.helpers.entity_store import EntityStore
from portal.services.helpers.tree import CloneResult, clone_tree, validate_parent
from portal.utils.helpers import parse_date_input, parse_int

logger = logging.getLogger(__name__)

_templates = EntityStore(TimelineTemplate)
_template_items = EntityStore(TimelineTemplateItem)
_items = EntityStore(TimelineItem)


def due_date_for(start_date: date | None, offset_days) -> date:
    """start_date (today when missing) plus the offset (0 when missing)."""
    start = start_date or date.today()
    return start + timedelta(days=offset_days or 0)


# ── Template instantiation ───────────────────────────────────────────────


def instantiate_template(project: Project, template_id: int) -> CloneResult:
    """Create the project's timeline items from a template.

    An empty template creates nothing. Template items whose parent is not part
    of the template end up without a parent.

    Raises:
        NotFoundError: the template does not exist.
    """
    template = _templates.get(template_id)
    sources = _template_items.filter({"template_id": template.id}, sort_key="order")
    start = project.start_date or date.today()

    def _create(source: TimelineTemplateItem) -> TimelineItem:
        item = TimelineItem(
            project_id=project.id,
            title=source.title,
            description=source.description,
            due_date=due_date_for(start, source.default_offset_days),
            is_completed=False,
            order=source.order,
        )
        db.session.add(item)
        return item

    context = {"project_id": project.id, "template_id": template.id}
    result = clone_tree(
        sources, _create,
        label=f"template {template.id} → project {project.id}", log_extra=context,
    )
    logger.info(
        "Instantiated template %s into project %s: %d items",
        template.id, project.id, len(result.created), extra=context,
    )
    return result


@dataclass
class ReplaceImpact:
    """Existing timeline items an apply-template call would delete."""
    project_id: int
    template_id: int
    affected_count: int
    message: str

    def to_dict(self):
        return {
            "project_id": self.project_id,
            "template_id": self.template_id,
            "affected_count": self.affected_count,
            "message": self.message,
        }


def apply_template(project: Project, template_id: int, *, confirmed: bool = False) -> CloneResult:
    """Replace a project's timeline with the items of a template.

    A project that already has timeline items needs ``confirmed``; those
    items are deleted before the template is cloned.

    Raises:
        NotFoundError: the template does not exist.
        ValidationError: the template has no items.
        ConfirmationRequired: existing items would be replaced without confirmation.
    """
    template = _templates.get(template_id)
    if _template_items.count({"template_id": template.id}) == 0:
        raise ValidationError(
            "Selected template has no items.", details={"template_id": "empty template"},
        )

    existing = list_timeline_items(project.id)
    if existing and not confirmed:
        raise ConfirmationRequired(ReplaceImpact(
            project_id=project.id,
            template_id=template.id,
            affected_count=len(existing),
            message=(
                "Applying this template will replace all current timeline items "
                f"({len(existing)}). Are you sure you want to continue?"
            ),
        ))

    for item in existing:
        item.parent_id = None
    db.session.flush()
    for item in existing:
        db.session.delete(item)
    db.session.flush()
    if existing:
        logger.info(
            "Removed %d timeline items from project %s before applying template %s",
            len(existing), project.id, template.id,
            extra={"project_id": project.id, "template_id": template.id},
        )
    return instantiate_template(project, template.id)


# ── Timeline item CRUD ───────────────────────────────────────────────────


def list_timeline_items(project_id: int) -> list[TimelineItem]:
    """Project timeline in display order."""
    return _items.filter({"project_id": project_id}, sort_key="order")


def get_timeline_item(item_id: int) -> TimelineItem:
    return _items.get(item_id)


def _parent_from(data: dict, item: TimelineItem | None, project_id: int):
    parent_id = data.get("parent_id")
    if parent_id in ("", None):
        return None
    parent_id = parse_int(parent_id, default=None)
    if parent_id is None:
        raise ValidationError("parent_id must be an integer", details={"parent_id": "invalid"})
    validate_parent(item, parent_id, list_timeline_items(project_id), scope="project")
    return parent_id


def create_timeline_item(project: Project, data: dict) -> TimelineItem:
    """Add an ad-hoc item to a project timeline (appended unless order is given)."""
    title = str(data.get("title", "") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})

    existing = list_timeline_items(project.id)
    fields = {
        "project_id": project.id,
        "title": title,
        "description": data.get("description") or "",
        "due_date": parse_date_input(data.get("due_date"), field="due_date"),
        "is_completed": bool(data.get("is_completed", False)),
        "order": parse_int(data.get("order"), default=len(existing)),
        "assigned_to": data.get("assigned_to") or None,
        "parent_id": _parent_from(data, None, project.id),
    }
    item = _items.create(fields)
    logger.info("Created timeline item %s in project %s", item.id, project.id,
                extra={"project_id": project.id})
    return item


def update_timeline_item(item_id: int, data: dict) -> TimelineItem:
    """Edit an item. Re-parenting is checked against cycles and project scope."""
    item = _items.get(item_id)
    fields = {}

    if "title" in data:
        title = str(data.get("title", "") or "").strip()
        if not title:
            raise ValidationError("title cannot be empty", details={"title": "required"})
        fields["title"] = title
    if "description" in data:
        fields["description"] = data.get("description") or ""
    if "due_date" in data:
        fields["due_date"] = parse_date_input(data.get("due_date"), field="due_date")
    if "is_completed" in data:
        fields["is_completed"] = bool(data.get("is_completed"))
    if "order" in data:
        fields["order"] = parse_int(data.get("order"), default=item.order)
    if "assigned_to" in data:
        fields["assigned_to"] = data.get("assigned_to") or None
    if "parent_id" in data:
        fields["parent_id"] = _parent_from(data, item, item.project_id)

    return _items.update(item, fields)


def toggle_timeline_item(item_id: int) -> TimelineItem:
    item = _items.get(item_id)
    return _items.update(item, {"is_completed": not item.is_completed})


def delete_timeline_item(item_id: int) -> None:
    """Delete an item; its direct children are detached, not deleted."""
    item = _items.get(item_id)
    for child in _items.filter({"project_id": item.project_id, "parent_id": item.id}):
        child.parent_id = None
    db.session.flush()
    _items.delete(item)
    logger.info("Deleted timeline item %s from project %s", item_id, item.project_id,
                extra={"project_id": item.project_id})
