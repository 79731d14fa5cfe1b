"""
Tests for timeline template administration and save-as-template.
"""

from datetime import date

import pytest

from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.timeline import TimelineTemplate, TimelineTemplateItem
from portal.services import timeline_template_service as svc


def _items(template):
    return svc.list_template_items(template.id)


class TestTemplates:
    def test_first_template_becomes_default(self):
        first = svc.create_template({"name": "Standard"})
        second = svc.create_template({"name": "Express", "color": "#ff0000"})

        assert first.is_default is True
        assert second.is_default is False
        assert first.category == "General"
        assert first.color == "#3b82f6"
        assert second.color == "#ff0000"

    def test_name_required(self):
        with pytest.raises(ValidationError):
            svc.create_template({"name": " "})

    def test_set_default_moves_flag(self):
        svc.create_template({"name": "A"})
        svc.create_template({"name": "B"})
        c = svc.create_template({"name": "C"})

        result = svc.set_default_template(c.id)

        assert result.total == 3 and result.failed == 0
        db.session.expire_all()
        flags = {t.name: t.is_default for t in TimelineTemplate.query.all()}
        assert flags == {"A": False, "B": False, "C": True}
        assert svc.get_default_template().id == c.id

    def test_inactive_default_not_used(self):
        t = svc.create_template({"name": "Old"})
        svc.update_template(t.id, {"is_active": False})
        assert svc.get_default_template() is None

    def test_active_only_listing_sorted_by_name(self):
        svc.create_template({"name": "Zulu"})
        svc.create_template({"name": "Alpha"})
        svc.create_template({"name": "Hidden", "is_active": False})

        names = [t.name for t in svc.list_templates(active_only=True)]
        assert names == ["Alpha", "Zulu"]
        assert len(svc.list_templates()) == 3

    def test_duplicate_copies_tree(self, make_template):
        source = make_template("Launch", items=[("A", 0, None), ("B", 5, 0), ("C", 9, 1)])

        copy, result = svc.duplicate_template(source.id)

        assert copy.name == "Launch (Copy)"
        assert copy.is_default is False
        items = {i.title: i for i in _items(copy)}
        assert items["B"].parent_id == items["A"].id
        assert items["C"].parent_id == items["B"].id
        assert items["C"].default_offset_days == 9
        assert len(_items(source)) == 3
        assert result.reparented == 2

    def test_delete_removes_items(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 1, 0)])
        svc.delete_template(t.id)
        assert TimelineTemplateItem.query.count() == 0
        with pytest.raises(NotFoundError):
            svc.get_template(t.id)


class TestTemplateItems:
    def test_add_appends_with_defaults(self, make_template):
        t = make_template(items=[("A", 0, None)])
        item = svc.add_template_item(t.id)
        assert item.title == "New Template Item"
        assert item.order == 1
        assert item.default_offset_days == 0

    def test_update_rejects_cycle(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, 0), ("C", 0, 1)])
        a, b, c = _items(t)

        with pytest.raises(ValidationError):
            svc.update_template_item(a.id, {"parent_id": c.id})

        updated = svc.update_template_item(c.id, {"parent_id": a.id, "default_offset_days": "12"})
        assert updated.parent_id == a.id
        assert updated.default_offset_days == 12

    def test_update_rejects_parent_from_other_template(self, make_template):
        t1 = make_template("One", items=[("A", 0, None)])
        t2 = make_template("Two", items=[("X", 0, None)])
        (a,) = _items(t1)
        (x,) = _items(t2)

        with pytest.raises(ValidationError, match="same template"):
            svc.update_template_item(a.id, {"parent_id": x.id})

    def test_eligible_parents(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, 0), ("C", 0, 1)])
        a, b, c = _items(t)

        assert svc.eligible_parents_for(a.id) == []
        assert [i.title for i in svc.eligible_parents_for(c.id)] == ["A", "B"]

    def test_delete_parent_refused(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, 0)])
        a, b = _items(t)

        with pytest.raises(ValidationError, match="reassign children"):
            svc.delete_template_item(a.id)

        svc.delete_template_item(b.id)
        svc.delete_template_item(a.id)
        assert _items(t) == []

    def test_reorder(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, None), ("C", 0, None)])
        a, b, c = _items(t)

        reordered = svc.reorder_template_items(t.id, [c.id, a.id, b.id])

        assert [i.title for i in reordered] == ["C", "A", "B"]

    def test_reorder_rejects_foreign_ids(self, make_template):
        t = make_template(items=[("A", 0, None)])
        with pytest.raises(ValidationError):
            svc.reorder_template_items(t.id, [12345])

    def test_reorder_requires_every_item(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, None), ("C", 0, None)])
        a, b, c = _items(t)

        with pytest.raises(ValidationError) as excinfo:
            svc.reorder_template_items(t.id, [c.id, a.id])

        assert excinfo.value.details == {"missing_ids": [b.id]}
        assert [i.title for i in svc.list_template_items(t.id)] == ["A", "B", "C"]

    def test_reorder_rejects_duplicates(self, make_template):
        t = make_template(items=[("A", 0, None), ("B", 0, None)])
        a, b = _items(t)

        with pytest.raises(ValidationError) as excinfo:
            svc.reorder_template_items(t.id, [b.id, b.id, a.id])

        assert excinfo.value.details == {"duplicate_ids": [b.id]}


class TestSaveProjectAsTemplate:
    def test_offsets_from_project_start(self, make_project, make_timeline_item):
        project = make_project(start_date=date(2024, 1, 1))
        kickoff = make_timeline_item(project, "Kickoff", due_date=date(2024, 1, 1), order=0)
        make_timeline_item(project, "Review", due_date=date(2024, 1, 15), order=1, parent=kickoff)
        make_timeline_item(project, "Early", due_date=date(2023, 12, 20), order=2)
        make_timeline_item(project, "Undated", order=3)

        template, result = svc.save_project_as_template(project, {"name": "From Acme"})

        items = {i.title: i for i in _items(template)}
        assert items["Kickoff"].default_offset_days == 0
        assert items["Review"].default_offset_days == 14
        assert items["Early"].default_offset_days == 0
        assert items["Undated"].default_offset_days == 0
        assert items["Review"].parent_id == items["Kickoff"].id
        assert template.is_active is True and template.is_default is False
        assert result.reparented == 1

    def test_empty_timeline_refused(self, make_project):
        project = make_project()
        with pytest.raises(ValidationError, match="Add some timeline items"):
            svc.save_project_as_template(project, {"name": "Nothing"})
        assert TimelineTemplate.query.count() == 0
