"""Observable list/detail containers shared by every resource kind.

A :class:`ResourceStore` holds two immutable snapshots, a
:class:`ResourceList` and a :class:`ResourceDetail`, and replaces them on
each transition. Readers that hold a snapshot keep a consistent view even
while a newer request is in flight.

Requests are never cancelled. When two list requests overlap, the one that
resolves last determines the final state, whichever was issued first.
"""

from dataclasses import dataclass, field, replace
from operator import attrgetter
from typing import Any, Callable, Generic, Hashable, Iterable, TypeVar

import structlog

from cladeview.clade import Clade, Project, Tree
from cladeview.types import StoreAction

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class ResourceList(Generic[T]):
    """Snapshot of a list request.

    ``error`` holds the failure payload verbatim. A failed request keeps the
    previously loaded items.
    """

    pending: bool = False
    error: Any = None
    items: tuple = ()
    count: int | None = None
    next: str | None = None
    previous: str | None = None


@dataclass(frozen=True)
class ResourceDetail(Generic[T]):
    """Snapshot of a single-record request."""

    pending: bool = False
    error: Any = None
    record: T | None = None
    requested: Hashable | None = None


@dataclass(frozen=True)
class StoreEvent:
    """A transition of one store, delivered to its subscribers."""

    kind: str
    action: StoreAction
    state: ResourceList | ResourceDetail | None = None
    extra: dict = field(default_factory=dict)


Subscriber = Callable[[StoreEvent], None]


class ResourceStore(Generic[T]):
    """Lifecycle container for one resource kind.

    Parameters
    ----------
    kind : str
        Name of the resource kind ("clades", "trees", ...). Included in every
        emitted :class:`StoreEvent`.
    key : Callable
        Returns the identity of an item. Defaults to its ``uuid`` attribute.
    """

    def __init__(self, kind: str, key: Callable[[T], Hashable] = attrgetter("uuid")):
        self.kind = kind
        self.key = key
        self.scope: Hashable | None = None
        self._list: ResourceList[T] = ResourceList()
        self._detail: ResourceDetail[T] = ResourceDetail()
        self._subscribers: list[Subscriber] = []

    def __repr__(self):
        return f"ResourceStore(kind={self.kind!r}, scope={self.scope!r}, items={len(self._list.items)})"

    @property
    def list(self) -> ResourceList[T]:
        return self._list

    @property
    def detail(self) -> ResourceDetail[T]:
        return self._detail

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for every transition; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, action: StoreAction, state=None, **extra) -> None:
        logger.debug("Store transition", kind=self.kind, action=str(action), scope=self.scope)
        event = StoreEvent(kind=self.kind, action=action, state=state, extra=extra)
        # copy so a subscriber may unsubscribe while being notified
        for callback in list(self._subscribers):
            callback(event)

    def begin_list(self) -> ResourceList[T]:
        """Mark the list as pending. Call before the request is issued."""
        self._list = replace(self._list, pending=True)
        self._emit(StoreAction.LIST_PENDING, self._list)
        return self._list

    def resolve_list_success(
        self,
        items: Iterable[T],
        count: int | None = None,
        next: str | None = None,
        previous: str | None = None,
    ) -> ResourceList[T]:
        """Replace the loaded items wholesale and clear any error."""
        items = tuple(items)
        self._list = ResourceList(
            pending=False,
            error=None,
            items=items,
            count=len(items) if count is None else count,
            next=next,
            previous=previous,
        )
        self._emit(StoreAction.LIST_SUCCESS, self._list)
        return self._list

    def resolve_list_fail(self, error) -> ResourceList[T]:
        """Record a failed list request; loaded items are kept."""
        self._list = replace(self._list, pending=False, error=error)
        self._emit(StoreAction.LIST_FAIL, self._list)
        return self._list

    def begin_get(self, id: Hashable | None = None) -> ResourceDetail[T]:
        """Mark the detail as pending for the record ``id``."""
        self._detail = replace(self._detail, pending=True, requested=id)
        self._emit(StoreAction.DETAILS_PENDING, self._detail)
        return self._detail

    def resolve_get_success(self, record: T | None) -> ResourceDetail[T]:
        """Replace the detail record and clear any error."""
        requested = self.key(record) if record is not None else self._detail.requested
        self._detail = ResourceDetail(pending=False, error=None, record=record, requested=requested)
        self._emit(StoreAction.DETAILS_SUCCESS, self._detail)
        return self._detail

    def resolve_get_fail(self, error) -> ResourceDetail[T]:
        self._detail = replace(self._detail, pending=False, error=error)
        self._emit(StoreAction.DETAILS_FAIL, self._detail)
        return self._detail

    def replace_item(self, item: T) -> bool:
        """Swap a loaded item for a newer copy with the same key.

        The detail record is swapped too when it is the same item. Pending and
        error flags are left alone. Returns False when the item is not loaded
        anywhere in this store.
        """
        item_key = self.key(item)
        replaced = False

        items = self._list.items
        for index, current in enumerate(items):
            if self.key(current) == item_key:
                self._list = replace(self._list, items=items[:index] + (item,) + items[index + 1 :])
                replaced = True
                break

        record = self._detail.record
        if record is not None and self.key(record) == item_key:
            self._detail = replace(self._detail, record=item)
            replaced = True

        if replaced:
            self._emit(StoreAction.ITEM_REPLACED, self._list, key=item_key)
        return replaced

    def select_scope(self, scope: Hashable | None) -> bool:
        """Switch to a new parent scope, discarding containers loaded for the old one.

        Returns True when the scope changed.
        """
        if scope == self.scope:
            return False
        logger.debug("Store scope changed", kind=self.kind, old_scope=self.scope, new_scope=scope)
        self.reset()
        self.scope = scope
        return True

    def reset(self) -> None:
        """Discard both containers."""
        self._list = ResourceList()
        self._detail = ResourceDetail()
        self.scope = None
        self._emit(StoreAction.RESET)


class StoreContext:
    """One resource store per resource kind.

    Construct one context per view (or per test); contexts share no state.
    """

    def __init__(self):
        self.projects: ResourceStore[Project] = ResourceStore("projects")
        self.trees: ResourceStore[Tree] = ResourceStore("trees")
        self.clades: ResourceStore[Clade] = ResourceStore("clades")

    def __iter__(self):
        return iter((self.projects, self.trees, self.clades))

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to every store in the context."""
        unsubscribers = [store.subscribe(callback) for store in self]

        def unsubscribe():
            for unsubscriber in unsubscribers:
                unsubscriber()

        return unsubscribe

    def reset(self) -> None:
        for store in self:
            store.reset()
