"""
Parent/child helpers for timeline trees.

Template items and project timeline items reference their parent through
``parent_id`` within the same template / project. This module holds the two
pieces of tree logic shared by every service that touches them:

clone_tree
    Two-pass copy of a set of tree nodes under new identities.
    Pass 1 creates every node without a parent and flushes, which fills the
    source-id → new-id mapping. Pass 2 only starts after that and re-points
    each copy at the copy of its source's parent. A parent that is not in
    the mapping leaves the copy parentless (logged, reported as dangling).

eligible_parents / validate_parent
    Cycle guard. A node's parent may be neither the node itself nor one of
    its descendants. Descendancy is found by walking each candidate's
    parent_id chain upward.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from portal.core.exceptions import ValidationError
from portal.models import db

logger = logging.getLogger(__name__)


@dataclass
class CloneResult:
    """Outcome of clone_tree."""
    id_map: dict = field(default_factory=dict)
    created: list = field(default_factory=list)
    reparented: int = 0
    dangling: list = field(default_factory=list)

    def to_dict(self):
        return {
            "created": len(self.created),
            "reparented": self.reparented,
            "dangling_parent_refs": list(self.dangling),
            "id_map": {str(k): v for k, v in self.id_map.items()},
        }


def clone_tree(
    sources: Iterable,
    create: Callable[[Any], Any],
    *,
    label: str = "tree",
    log_extra: dict | None = None,
) -> CloneResult:
    """Copy ``sources`` under new identities, preserving parent links.

    Args:
        sources: Nodes to copy, already in the desired order. Each must
            expose ``id`` and ``parent_id``.
        create: Builds (and adds to the session) the unparented copy of one
            source node. Must not flush or commit.
        label: Short description for logs.
        log_extra: Context fields (project_id, template_id) attached to log records.

    Returns:
        CloneResult with the id mapping and the created copies in source order.
    """
    result = CloneResult()
    pairs = []

    # Pass 1: flat creation
    for source in sources:
        copy = create(source)
        copy.parent_id = None
        pairs.append((source, copy))
    if not pairs:
        logger.debug("clone_tree[%s]: nothing to copy", label)
        return result
    db.session.flush()
    for source, copy in pairs:
        result.id_map[source.id] = copy.id
        result.created.append(copy)

    # Pass 2: re-parenting against the completed mapping
    for source, copy in pairs:
        if source.parent_id is None:
            continue
        new_parent_id = result.id_map.get(source.parent_id)
        if new_parent_id is None:
            logger.warning(
                "clone_tree[%s]: source id=%s references parent id=%s outside the copied set; "
                "copy id=%s left without parent",
                label, source.id, source.parent_id, copy.id,
                extra=log_extra,
            )
            result.dangling.append(source.id)
            continue
        copy.parent_id = new_parent_id
        result.reparented += 1
    db.session.flush()

    logger.info(
        "clone_tree[%s]: created=%d reparented=%d dangling=%d",
        label, len(result.created), result.reparented, len(result.dangling),
        extra=log_extra,
    )
    return result


def is_descendant(node, candidate, nodes_by_id: dict) -> bool:
    """Return True if ``candidate`` sits somewhere below ``node``."""
    seen = set()
    current = candidate
    while current is not None and current.parent_id is not None:
        if current.parent_id == node.id:
            return True
        if current.id in seen:
            # pre-existing cycle in stored data
            return False
        seen.add(current.id)
        current = nodes_by_id.get(current.parent_id)
    return False


def eligible_parents(node, nodes: Iterable) -> list:
    """Candidates ``node`` may be re-parented under (self and descendants excluded)."""
    nodes = list(nodes)
    by_id = {n.id: n for n in nodes}
    return [
        candidate for candidate in nodes
        if candidate.id != node.id and not is_descendant(node, candidate, by_id)
    ]


def validate_parent(node, parent_id, nodes: Iterable, *, scope: str = "tree"):
    """Raise ValidationError unless ``parent_id`` is an allowed parent for ``node``.

    ``nodes`` is every node of the same template / project. ``None`` always
    passes (detaches the node).
    """
    if parent_id is None:
        return None
    nodes = list(nodes)
    by_id = {n.id: n for n in nodes}
    if node is not None and parent_id == node.id:
        raise ValidationError(
            "An item cannot be its own parent", details={"parent_id": "self reference"},
        )
    parent = by_id.get(parent_id)
    if parent is None:
        raise ValidationError(
            f"Parent item must belong to the same {scope}",
            details={"parent_id": "not in scope"},
        )
    if node is not None and is_descendant(node, parent, by_id):
        raise ValidationError(
            "Parent item cannot be a descendant of the item",
            details={"parent_id": "would create a cycle"},
        )
    return parent
