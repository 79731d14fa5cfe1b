"""
Per-item batch writes with partial-failure reporting.

Mass updates (feature cascade, set-default template) write each entity inside
its own savepoint. A failing item is rolled back on its own, logged, and
recorded; the items that succeeded stay written. Nothing is retried.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from portal.models import db

logger = logging.getLogger(__name__)


@dataclass
class ItemResult:
    entity_id: Any
    ok: bool
    error: str | None = None

    def to_dict(self):
        return {"id": self.entity_id, "ok": self.ok, "error": self.error}


@dataclass
class BatchResult:
    label: str
    results: list[ItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def failures(self) -> list[ItemResult]:
        return [r for r in self.results if not r.ok]

    def to_dict(self):
        return {
            "label": self.label,
            "total": self.total,
            "updated": self.updated,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


def run_batch(label: str, entities: Iterable, write: Callable[[Any], None]) -> BatchResult:
    """Apply ``write`` to every entity, each in its own savepoint.

    Args:
        label: Short description used in logs and the returned summary.
        entities: Model instances to write.
        write: Callable mutating one entity. Must not commit.

    Returns:
        BatchResult with one ItemResult per entity, in input order.
    """
    result = BatchResult(label=label)
    for entity in entities:
        entity_id = getattr(entity, "id", None)
        try:
            with db.session.begin_nested():
                write(entity)
                db.session.flush()
        except Exception as exc:
            logger.exception("Batch '%s': write failed for id=%s", label, entity_id)
            result.results.append(ItemResult(entity_id=entity_id, ok=False, error=str(exc)))
            continue
        result.results.append(ItemResult(entity_id=entity_id, ok=True))

    if result.failed:
        logger.warning(
            "Batch '%s' finished with failures: %d/%d updated, %d failed",
            label, result.updated, result.total, result.failed,
        )
    else:
        logger.info("Batch '%s' finished: %d/%d updated", label, result.updated, result.total)
    return result
