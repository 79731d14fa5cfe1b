"""
Tests for cloning a timeline template into a project.
"""

from datetime import date, timedelta

import pytest

from portal.core.exceptions import ConfirmationRequired, NotFoundError, ValidationError
from portal.models import db
from portal.models.timeline import TimelineItem, TimelineTemplateItem
from portal.services import timeline_service


def _project_items(project):
    return timeline_service.list_timeline_items(project.id)


class TestDueDates:
    def test_offset_added_to_start(self):
        assert timeline_service.due_date_for(date(2024, 1, 1), 10) == date(2024, 1, 11)

    def test_missing_start_uses_today(self):
        assert timeline_service.due_date_for(None, 3) == date.today() + timedelta(days=3)

    def test_missing_offset_is_zero(self):
        assert timeline_service.due_date_for(date(2024, 5, 5), None) == date(2024, 5, 5)


class TestInstantiateTemplate:
    def test_chain_shape_preserved_with_new_ids(self, make_project, make_template):
        template = make_template(items=[("A", 0, None), ("B", 7, 0), ("C", 14, 1)])
        sources = TimelineTemplateItem.query.filter_by(template_id=template.id).all()
        source_ids = {s.id for s in sources}
        project = make_project(start_date=date(2024, 1, 1))

        result = timeline_service.instantiate_template(project, template.id)

        items = {i.title: i for i in _project_items(project)}
        assert set(items) == {"A", "B", "C"}
        assert items["A"].parent_id is None
        assert items["B"].parent_id == items["A"].id
        assert items["C"].parent_id == items["B"].id
        assert result.reparented == 2
        assert set(result.id_map) == source_ids
        own_ids = {i.id for i in items.values()}
        for source in sources:
            if source.parent_id is None:
                continue
            copy = db.session.get(TimelineItem, result.id_map[source.id])
            assert copy.parent_id == result.id_map[source.parent_id]
            assert copy.parent_id in own_ids

    def test_due_dates_from_project_start(self, make_project, make_template):
        template = make_template(items=[("Kickoff", 0, None), ("Review", 10, None)])
        project = make_project(start_date=date(2024, 1, 1))

        timeline_service.instantiate_template(project, template.id)

        due = {i.title: i.due_date for i in _project_items(project)}
        assert due == {"Kickoff": date(2024, 1, 1), "Review": date(2024, 1, 11)}

    def test_no_start_date_counts_from_today(self, make_project, make_template):
        template = make_template(items=[("Draft", 5, None)])
        project = make_project(start_date=None)

        timeline_service.instantiate_template(project, template.id)

        assert _project_items(project)[0].due_date == date.today() + timedelta(days=5)

    def test_copies_start_incomplete_in_template_order(self, make_project, make_template):
        template = make_template(items=[("First", 0, None), ("Second", 1, None)])
        project = make_project()

        timeline_service.instantiate_template(project, template.id)

        items = _project_items(project)
        assert [i.title for i in items] == ["First", "Second"]
        assert [i.order for i in items] == [0, 1]
        assert not any(i.is_completed for i in items)

    def test_empty_template_creates_nothing(self, make_project, make_template):
        template = make_template(items=[])
        project = make_project()

        result = timeline_service.instantiate_template(project, template.id)

        assert result.created == []
        assert _project_items(project) == []

    def test_parent_outside_template_is_dropped(self, make_project, make_template):
        other = make_template("Other", items=[("Foreign", 0, None)])
        foreign = TimelineTemplateItem.query.filter_by(template_id=other.id).one()
        template = make_template(items=[("Orphan", 2, None)])
        orphan = TimelineTemplateItem.query.filter_by(template_id=template.id).one()
        orphan.parent_id = foreign.id
        db.session.flush()
        project = make_project()

        result = timeline_service.instantiate_template(project, template.id)

        item = _project_items(project)[0]
        assert item.parent_id is None
        assert result.dangling == [orphan.id]

    def test_unknown_template_raises(self, make_project):
        project = make_project()
        with pytest.raises(NotFoundError):
            timeline_service.instantiate_template(project, 9999)
        assert TimelineItem.query.count() == 0

    def test_instantiating_twice_appends(self, make_project, make_template):
        template = make_template(items=[("Only", 0, None)])
        project = make_project()

        timeline_service.instantiate_template(project, template.id)
        timeline_service.instantiate_template(project, template.id)

        assert len(_project_items(project)) == 2


class TestApplyTemplate:
    def test_existing_items_need_confirmation(self, make_project, make_template, make_timeline_item):
        template = make_template(items=[("Only", 0, None)])
        project = make_project()
        make_timeline_item(project, "Old one")
        make_timeline_item(project, "Old two", order=1)

        with pytest.raises(ConfirmationRequired) as excinfo:
            timeline_service.apply_template(project, template.id)

        assert excinfo.value.impact.affected_count == 2
        assert [i.title for i in _project_items(project)] == ["Old one", "Old two"]

    def test_confirmed_apply_replaces_items(self, make_project, make_template, make_timeline_item):
        template = make_template(items=[("Kickoff", 0, None), ("Launch", 5, 0)])
        project = make_project(start_date=date(2024, 1, 1))
        parent = make_timeline_item(project, "Old parent")
        make_timeline_item(project, "Old child", parent=parent)

        result = timeline_service.apply_template(project, template.id, confirmed=True)

        db.session.expire_all()
        items = {i.title: i for i in _project_items(project)}
        assert set(items) == {"Kickoff", "Launch"}
        assert items["Launch"].parent_id == items["Kickoff"].id
        assert items["Launch"].due_date == date(2024, 1, 6)
        assert len(result.created) == 2

    def test_empty_timeline_needs_no_confirmation(self, make_project, make_template):
        template = make_template(items=[("Only", 0, None)])
        project = make_project()

        timeline_service.apply_template(project, template.id)

        assert [i.title for i in _project_items(project)] == ["Only"]

    def test_empty_template_refused(self, make_project, make_template, make_timeline_item):
        template = make_template(items=[])
        project = make_project()
        make_timeline_item(project, "Keep me")

        with pytest.raises(ValidationError) as excinfo:
            timeline_service.apply_template(project, template.id, confirmed=True)

        assert excinfo.value.details == {"template_id": "empty template"}
        assert [i.title for i in _project_items(project)] == ["Keep me"]

    def test_unknown_template_raises(self, make_project):
        with pytest.raises(NotFoundError):
            timeline_service.apply_template(make_project(), 9999, confirmed=True)


class TestTimelineItems:
    def test_create_appends_and_validates_title(self, make_project, make_timeline_item):
        project = make_project()
        make_timeline_item(project, "Existing", order=0)

        item = timeline_service.create_timeline_item(project, {"title": "New", "due_date": "2024-02-01"})
        assert item.order == 1
        assert item.due_date == date(2024, 2, 1)

        with pytest.raises(ValidationError):
            timeline_service.create_timeline_item(project, {"title": "  "})

    def test_invalid_due_date_rejected(self, make_project):
        project = make_project()
        with pytest.raises(ValidationError):
            timeline_service.create_timeline_item(project, {"title": "X", "due_date": "soon"})

    def test_reparent_into_descendant_rejected(self, make_project, make_timeline_item):
        project = make_project()
        a = make_timeline_item(project, "A")
        b = make_timeline_item(project, "B", parent=a)
        c = make_timeline_item(project, "C", parent=b)

        with pytest.raises(ValidationError, match="descendant"):
            timeline_service.update_timeline_item(a.id, {"parent_id": c.id})

        updated = timeline_service.update_timeline_item(c.id, {"parent_id": None})
        assert updated.parent_id is None

    def test_parent_from_other_project_rejected(self, make_project, make_timeline_item):
        p1 = make_project("One")
        p2 = make_project("Two")
        foreign = make_timeline_item(p2, "Foreign")

        with pytest.raises(ValidationError, match="same project"):
            timeline_service.create_timeline_item(p1, {"title": "Mine", "parent_id": foreign.id})

    def test_toggle_flips_completion(self, make_project, make_timeline_item):
        item = make_timeline_item(make_project(), "Task")
        assert timeline_service.toggle_timeline_item(item.id).is_completed is True
        assert timeline_service.toggle_timeline_item(item.id).is_completed is False

    def test_delete_detaches_children(self, make_project, make_timeline_item):
        project = make_project()
        parent = make_timeline_item(project, "Parent")
        child = make_timeline_item(project, "Child", parent=parent)
        child_id = child.id

        timeline_service.delete_timeline_item(parent.id)

        db.session.expire_all()
        remaining = _project_items(project)
        assert [i.id for i in remaining] == [child_id]
        assert remaining[0].parent_id is None
