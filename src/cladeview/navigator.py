"""Read-side navigation over a loaded set of clades.

Loaded clade lists are usually a single page of a tree, so a clade that is
missing from the list has simply not been loaded. None of these functions
raise; absence is always returned as a value.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable
from uuid import UUID

import structlog

from cladeview.clade import Clade
from cladeview.store import ResourceStore
from cladeview.types import BranchType

logger = structlog.get_logger()


class LookupStatus(StrEnum):
    FOUND = "found"
    ROOT = "root"
    NOT_LOADED = "not_loaded"


@dataclass(frozen=True)
class ParentLookup:
    """Result of a parent lookup.

    ``clade`` is set only when ``status`` is FOUND.
    """

    status: LookupStatus
    clade: Clade | None = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


def find_by_uuid(items: Iterable[Clade], id: UUID | None) -> Clade | None:
    """Return the loaded clade with identifier ``id``, or None if it is not loaded."""
    if id is None:
        return None
    for clade in items:
        if clade.uuid == id:
            return clade
    return None


def find_root(items: Iterable[Clade]) -> Clade | None:
    for clade in items:
        if clade.branch_type == BranchType.ROOT and clade.parent is None:
            return clade
    return None


def children_of(clade: Clade, items: Iterable[Clade]) -> list[Clade]:
    """Return the loaded children of ``clade``, in the clade's child order."""
    loaded = {item.uuid: item for item in items}
    return [loaded[child] for child in clade.child if child in loaded]


def is_annotatable(clade: Clade, min_clade_length: int) -> bool:
    """Whether a clade may be annotated: a branch with at least ``min_clade_length`` children.

    Root and leaf clades are never annotatable.
    """
    return clade.branch_type == BranchType.BRANCH and len(clade.child) >= min_clade_length


def lookup_parent(current: Clade, items: Iterable[Clade]) -> ParentLookup:
    if current.parent is None:
        return ParentLookup(LookupStatus.ROOT)
    parent = find_by_uuid(items, current.parent)
    if parent is None:
        return ParentLookup(LookupStatus.NOT_LOADED)
    return ParentLookup(LookupStatus.FOUND, parent)


def select_parent(current: Clade, items: Iterable[Clade]) -> Clade | None:
    """Return the parent of ``current``; None for the root or an unloaded parent."""
    return lookup_parent(current, items).clade


def show_parent(store: ResourceStore[Clade]) -> ParentLookup:
    """Move the store's detail record to the parent of the current record.

    The detail is only changed when the parent is loaded in the store's list.
    """
    current = store.detail.record
    if current is None:
        return ParentLookup(LookupStatus.NOT_LOADED)

    lookup = lookup_parent(current, store.list.items)
    if lookup.found:
        store.resolve_get_success(lookup.clade)
    else:
        logger.debug("Parent clade not shown", clade=str(current.uuid), status=str(lookup.status))
    return lookup
