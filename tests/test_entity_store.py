"""
Tests for the generic entity store contract.
"""

import pytest

from portal.core.exceptions import NotFoundError
from portal.models.project import Project
from portal.services.helpers.entity_store import EntityStore

store = EntityStore(Project)


class TestEntityStore:
    def test_create_assigns_id(self):
        p = store.create({"name": "One", "features_enabled": {}})
        assert p.id is not None
        assert store.get(p.id) is p

    def test_get_missing_raises(self):
        with pytest.raises(NotFoundError, match="Project id=77 not found"):
            store.get(77)
        assert store.get_or_none(77) is None
        assert store.get_or_none(None) is None

    def test_sort_keys(self):
        store.create({"name": "b", "value": 2})
        store.create({"name": "a", "value": 3})
        store.create({"name": "c", "value": 1})

        assert [p.name for p in store.list()] == ["b", "a", "c"]
        assert [p.name for p in store.list(sort_key="name")] == ["a", "b", "c"]
        assert [p.name for p in store.list(sort_key="-value")] == ["a", "b", "c"]

    def test_filter_predicates(self):
        store.create({"name": "x", "status": "active", "client_email": None})
        store.create({"name": "y", "status": "archived", "client_email": "y@test"})
        store.create({"name": "z", "status": "on_hold", "client_email": None})

        assert [p.name for p in store.filter({"status": "archived"})] == ["y"]
        assert [p.name for p in store.filter({"client_email": None})] == ["x", "z"]
        assert [p.name for p in store.filter({"status": ["active", "on_hold"]}, sort_key="-name")] == ["z", "x"]
        assert len(store.filter({}, limit=2)) == 2
        assert store.count({"status": "active"}) == 1

    def test_update_and_delete(self):
        p = store.create({"name": "Before"})
        store.update(p.id, {"name": "After"})
        assert store.get(p.id).name == "After"

        store.delete(p)
        assert store.get_or_none(p.id) is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            store.filter({"nonexistent": 1})
        with pytest.raises(ValueError):
            store.create({"name": "x", "bogus": True})
        with pytest.raises(ValueError):
            store.list(sort_key="-bogus")
