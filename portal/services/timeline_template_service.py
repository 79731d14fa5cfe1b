"""
Timeline Template Service

Admin management of reusable timeline blueprints:
  - template CRUD, set-default, duplicate
  - template item add / edit / delete / reorder
  - eligible-parent candidates for an item (cycle guard)
  - saving an existing project timeline as a new template

Only one template should be the default; set_default_template rewrites the
flag on every template rather than relying on a uniqueness constraint.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from portal.core.exceptions import ValidationError
from portal.models import db
from portal.models.project import Project
from portal.models.timeline import TimelineItem, TimelineTemplate, TimelineTemplateItem
from portal.services.helpers.batch import BatchResult, run_batch
from portal.services.helpers.entity_store import EntityStore
from portal.services.helpers.tree import CloneResult, clone_tree, eligible_parents, validate_parent
from portal.utils.helpers import parse_int

logger = logging.getLogger(__name__)

_templates = EntityStore(TimelineTemplate)
_template_items = EntityStore(TimelineTemplateItem)
_timeline_items = EntityStore(TimelineItem)

DEFAULT_CATEGORY = "General"
DEFAULT_COLOR = "#3b82f6"


# ── Templates ────────────────────────────────────────────────────────────


def list_templates(active_only: bool = False) -> list[TimelineTemplate]:
    """Newest first for administration; by name when only active ones are wanted."""
    if active_only:
        return _templates.filter({"is_active": True}, sort_key="name")
    return _templates.list(sort_key="-created_at")


def get_template(template_id: int) -> TimelineTemplate:
    return _templates.get(template_id)


def get_default_template() -> TimelineTemplate | None:
    defaults = _templates.filter({"is_default": True, "is_active": True}, limit=1)
    return defaults[0] if defaults else None


def _required_name(data: dict) -> str:
    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    return name


def create_template(data: dict) -> TimelineTemplate:
    """Create a template; the very first template becomes the default."""
    name = _required_name(data)
    is_first = _templates.count() == 0
    template = _templates.create({
        "name": name,
        "description": data.get("description") or "",
        "category": data.get("category") or DEFAULT_CATEGORY,
        "color": data.get("color") or DEFAULT_COLOR,
        "is_active": bool(data.get("is_active", True)),
        "is_default": is_first,
    })
    logger.info("Created timeline template %s (%s)%s", template.id, template.name,
                " as default" if is_first else "", extra={"template_id": template.id})
    return template


def update_template(template_id: int, data: dict) -> TimelineTemplate:
    """Edit template metadata. Use set_default_template to move the default flag."""
    template = _templates.get(template_id)
    fields = {}
    if "name" in data:
        fields["name"] = _required_name(data)
    for attr in ("description", "category", "color"):
        if attr in data:
            fields[attr] = data.get(attr) or ""
    if "is_active" in data:
        fields["is_active"] = bool(data.get("is_active"))
    return _templates.update(template, fields)


def delete_template(template_id: int) -> None:
    """Delete a template together with all of its items."""
    template = _templates.get(template_id)
    items = _template_items.filter({"template_id": template.id})
    for item in items:
        item.parent_id = None
    db.session.flush()
    for item in items:
        db.session.delete(item)
    db.session.flush()
    _templates.delete(template)
    logger.info("Deleted timeline template %s and %d items", template_id, len(items),
                extra={"template_id": template_id})


def set_default_template(template_id: int) -> BatchResult:
    """Make one template the default by rewriting is_default on every template."""
    target = _templates.get(template_id)
    result = run_batch(
        f"set default template {target.id}",
        _templates.list(sort_key="-created_at"),
        lambda t: setattr(t, "is_default", t.id == target.id),
    )
    return result


def duplicate_template(template_id: int) -> tuple[TimelineTemplate, CloneResult]:
    """Copy a template and its item tree under a new "(Copy)" template."""
    source = _templates.get(template_id)
    copy = _templates.create({
        "name": f"{source.name} (Copy)",
        "description": source.description,
        "category": source.category,
        "color": source.color,
        "is_active": True,
        "is_default": False,
    })
    items = _template_items.filter({"template_id": source.id}, sort_key="order")

    def _create(item: TimelineTemplateItem) -> TimelineTemplateItem:
        new_item = TimelineTemplateItem(
            template_id=copy.id,
            title=item.title,
            description=item.description,
            order=item.order,
            default_offset_days=item.default_offset_days or 0,
        )
        db.session.add(new_item)
        return new_item

    result = clone_tree(
        items, _create,
        label=f"duplicate template {source.id} → {copy.id}", log_extra={"template_id": copy.id},
    )
    return copy, result


# ── Template items ───────────────────────────────────────────────────────


def list_template_items(template_id: int) -> list[TimelineTemplateItem]:
    _templates.get(template_id)
    return _template_items.filter({"template_id": template_id}, sort_key="order")


def add_template_item(template_id: int, data: dict | None = None) -> TimelineTemplateItem:
    """Append an item at the end of the template."""
    data = data or {}
    template = _templates.get(template_id)
    existing = _template_items.filter({"template_id": template.id})
    raw = data.get("parent_id")
    parent_id = None if raw in ("", None) else parse_int(raw, default=-1)
    validate_parent(None, parent_id, existing, scope="template")
    return _template_items.create({
        "template_id": template.id,
        "title": str(data.get("title") or "New Template Item").strip() or "New Template Item",
        "description": data.get("description") or "",
        "order": len(existing),
        "default_offset_days": parse_int(data.get("default_offset_days"), default=0),
        "parent_id": parent_id,
    })


def update_template_item(item_id: int, data: dict) -> TimelineTemplateItem:
    """Edit title / description / offset / parent of a template item.

    Raises:
        ValidationError: empty title, or a parent that is the item itself,
            one of its descendants, or an item of another template.
    """
    item = _template_items.get(item_id)
    fields = {}
    if "title" in data:
        title = str(data.get("title", "") or "").strip()
        if not title:
            raise ValidationError("title cannot be empty", details={"title": "required"})
        fields["title"] = title
    if "description" in data:
        fields["description"] = data.get("description") or ""
    if "default_offset_days" in data:
        fields["default_offset_days"] = parse_int(data.get("default_offset_days"), default=0)
    if "parent_id" in data:
        raw = data.get("parent_id")
        parent_id = None if raw in ("", None) else parse_int(raw, default=-1)
        siblings = _template_items.filter({"template_id": item.template_id})
        validate_parent(item, parent_id, siblings, scope="template")
        fields["parent_id"] = parent_id
    return _template_items.update(item, fields)


def delete_template_item(item_id: int) -> None:
    """Delete an item that no other item uses as its parent."""
    item = _template_items.get(item_id)
    children = _template_items.filter({"template_id": item.template_id, "parent_id": item.id})
    if children:
        raise ValidationError(
            "Cannot delete this item because it's a parent to other items. "
            "Please reassign children first.",
            details={"children": [c.id for c in children]},
        )
    _template_items.delete(item)


def reorder_template_items(template_id: int, ordered_ids: list) -> list[TimelineTemplateItem]:
    """Set each item's order to its index in ``ordered_ids``.

    ``ordered_ids`` must name every item of the template exactly once.
    """
    items = {i.id: i for i in list_template_items(template_id)}
    ids = [parse_int(i, default=None) for i in ordered_ids or []]
    counts = Counter(ids)
    problems = {
        "unknown_ids": [i for i in counts if i not in items],
        "missing_ids": [i for i in items if i not in counts],
        "duplicate_ids": [i for i, n in counts.items() if n > 1],
    }
    problems = {key: value for key, value in problems.items() if value}
    if problems:
        raise ValidationError(
            "ids must list every item of the template exactly once",
            details=problems,
        )
    for index, item_id in enumerate(ids):
        items[item_id].order = index
    db.session.flush()
    return list_template_items(template_id)


def eligible_parents_for(item_id: int) -> list[TimelineTemplateItem]:
    """Items that may become the parent of ``item_id`` without forming a cycle."""
    item = _template_items.get(item_id)
    siblings = _template_items.filter({"template_id": item.template_id}, sort_key="order")
    return eligible_parents(item, siblings)


# ── Project timeline → template ──────────────────────────────────────────


def save_project_as_template(project: Project, data: dict) -> tuple[TimelineTemplate, CloneResult]:
    """Create an active template from a project's current timeline.

    Offsets are whole days between the project start (today when unset) and
    each item's due date, never negative. Items without a due date get 0.
    """
    name = _required_name(data)
    items = _timeline_items.filter({"project_id": project.id}, sort_key="order")
    if not items:
        raise ValidationError("Add some timeline items first before saving as a template.")

    template = _templates.create({
        "name": name,
        "description": data.get("description") or "",
        "category": data.get("category") or DEFAULT_CATEGORY,
        "color": data.get("color") or DEFAULT_COLOR,
        "is_active": True,
        "is_default": False,
    })
    start = project.start_date or date.today()

    def _create(item: TimelineItem) -> TimelineTemplateItem:
        offset = 0
        if item.due_date:
            offset = max(0, (item.due_date - start).days)
        new_item = TimelineTemplateItem(
            template_id=template.id,
            title=item.title,
            description=item.description,
            order=item.order,
            default_offset_days=offset,
        )
        db.session.add(new_item)
        return new_item

    result = clone_tree(
        items, _create,
        label=f"project {project.id} → template {template.id}",
        log_extra={"project_id": project.id, "template_id": template.id},
    )
    return template, result
