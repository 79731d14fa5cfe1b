"""
Shared pytest fixtures for the Client Spaces Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - settings: Global settings row with every feature on
    - make_project / make_template: ORM helper factories
"""

from datetime import date

import pytest

from portal import create_app
from portal.models import db as _db
from portal.models.project import Project
from portal.models.timeline import TimelineItem, TimelineTemplate, TimelineTemplateItem
from portal.services import feature_flag_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def settings():
    """Global settings singleton (all features on)."""
    s = feature_flag_service.get_settings()
    _db.session.commit()
    return s


# ── ORM helper factories ─────────────────────────────────────────────────


def _project(name="Acme Rebrand", *, features=None, start_date=date(2024, 1, 1), **extra) -> Project:
    p = Project(
        name=name,
        status=extra.pop("status", "active"),
        start_date=start_date,
        features_enabled=features if features is not None else {},
        project_manager_ids=extra.pop("project_manager_ids", []),
        team_member_ids=extra.pop("team_member_ids", []),
        additional_client_ids=extra.pop("additional_client_ids", []),
        **extra,
    )
    _db.session.add(p)
    _db.session.flush()
    return p


def _template(name="Website Launch", items=(), **extra) -> TimelineTemplate:
    """Create a template; ``items`` is a list of (title, offset, parent_index|None)."""
    t = TimelineTemplate(name=name, **extra)
    _db.session.add(t)
    _db.session.flush()
    created = []
    for order, (title, offset, parent_index) in enumerate(items):
        item = TimelineTemplateItem(
            template_id=t.id,
            title=title,
            order=order,
            default_offset_days=offset,
            parent_id=created[parent_index].id if parent_index is not None else None,
        )
        _db.session.add(item)
        _db.session.flush()
        created.append(item)
    return t


def _timeline_item(project, title, *, due_date=None, order=0, parent=None) -> TimelineItem:
    item = TimelineItem(
        project_id=project.id,
        title=title,
        due_date=due_date,
        order=order,
        parent_id=parent.id if parent else None,
    )
    _db.session.add(item)
    _db.session.flush()
    return item


@pytest.fixture()
def make_project():
    return _project


@pytest.fixture()
def make_template():
    return _template


@pytest.fixture()
def make_timeline_item():
    return _timeline_item
