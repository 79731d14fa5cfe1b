"""
Generic entity store over SQLAlchemy models.

Every service reads and writes entities through this contract instead of
touching Model.query directly:

    list(sort_key=None)                          -> [entity]
    filter(predicates, sort_key=None, limit=None) -> [entity]
    get(pk)                                      -> entity (NotFoundError if absent)
    create(fields)                               -> entity (flushed, has an id)
    update(pk, fields)                           -> entity (flushed)
    delete(pk)                                   -> None

Sort keys follow the "field" / "-field" convention (descending with a leading
minus). Writes flush but never commit; the caller owns the transaction.

Usage:
    projects = EntityStore(Project)
    projects.filter({"status": "active"}, sort_key="-created_at")
    projects.update(project.id, {"status": "archived"})

Field names are checked against the model so a typo surfaces immediately
instead of silently filtering nothing.
"""

import logging

from sqlalchemy import select

from portal.core.exceptions import NotFoundError
from portal.models import db

logger = logging.getLogger(__name__)


class EntityStore:
    """list/filter/create/update/delete for a single model class."""

    def __init__(self, model):
        self.model = model

    @property
    def name(self) -> str:
        return self.model.__name__

    # ── reads ────────────────────────────────────────────────────────────

    def get(self, pk):
        entity = db.session.get(self.model, pk)
        if entity is None:
            raise NotFoundError(resource=self.name, resource_id=pk)
        return entity

    def get_or_none(self, pk):
        if pk is None:
            return None
        return db.session.get(self.model, pk)

    def list(self, sort_key: str | None = None):
        stmt = select(self.model)
        stmt = self._apply_sort(stmt, sort_key)
        return list(db.session.execute(stmt).scalars())

    def filter(self, predicates: dict, sort_key: str | None = None, limit: int | None = None):
        stmt = select(self.model)
        for field, value in (predicates or {}).items():
            column = self._column(field)
            if value is None:
                stmt = stmt.where(column.is_(None))
            elif isinstance(value, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        stmt = self._apply_sort(stmt, sort_key)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(db.session.execute(stmt).scalars())

    def count(self, predicates: dict | None = None) -> int:
        return len(self.filter(predicates or {}))

    # ── writes ───────────────────────────────────────────────────────────

    def create(self, fields: dict):
        for field in fields:
            self._column(field)
        entity = self.model(**fields)
        db.session.add(entity)
        db.session.flush()
        return entity

    def update(self, pk, fields: dict):
        entity = pk if isinstance(pk, self.model) else self.get(pk)
        for field, value in fields.items():
            self._column(field)
            setattr(entity, field, value)
        db.session.flush()
        return entity

    def delete(self, pk) -> None:
        entity = pk if isinstance(pk, self.model) else self.get(pk)
        db.session.delete(entity)
        db.session.flush()

    # ── internals ────────────────────────────────────────────────────────

    def _column(self, field: str):
        column = getattr(self.model, field, None)
        if column is None or not hasattr(column, "property"):
            raise ValueError(f"{self.name} has no field {field!r}")
        return column

    def _apply_sort(self, stmt, sort_key):
        if not sort_key:
            return stmt.order_by(self.model.id.asc())
        descending = sort_key.startswith("-")
        column = self._column(sort_key.lstrip("-"))
        ordered = column.desc() if descending else column.asc()
        # id tie-breaker keeps equal sort values in creation order
        return stmt.order_by(ordered, self.model.id.asc())
