"""Load API resources into resource stores.

Each load marks its store pending before the request is issued, runs the
blocking request in a worker thread, and resolves the store with the result.
Transport failures and malformed responses are recorded in the store and
never raised.
"""

import asyncio
from typing import Callable
from uuid import UUID

import structlog

from cladeview.clade import Clade, Project, Tree
from cladeview.client import ApiClient, Page
from cladeview.exceptions import TransportError
from cladeview.store import ResourceDetail, ResourceList, ResourceStore, StoreContext

logger = structlog.get_logger()

# raised by the from_api parsers for records missing required fields or holding bad values
MALFORMED_RECORD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


def _malformed(store: ResourceStore, err: Exception, payload) -> TransportError:
    logger.error("Malformed response", kind=store.kind, error=repr(err))
    return TransportError(f"Malformed {store.kind} response: {err!r}", payload=payload)


class ResourceLoader:
    """Fetch projects, trees and clades into a :class:`cladeview.store.StoreContext`."""

    def __init__(self, api: ApiClient, context: StoreContext):
        self.api = api
        self.context = context
        # page, page_size and query of the last clade list request
        self._clade_params: tuple = (None, None, None)

    async def _load_list(self, store: ResourceStore, parse: Callable, fetch: Callable, *args) -> ResourceList:
        store.begin_list()
        try:
            page: Page = await asyncio.to_thread(fetch, *args)
        except TransportError as err:
            logger.warning("List request failed", kind=store.kind, status_code=err.status_code, error=str(err))
            return store.resolve_list_fail(err)

        try:
            items = [parse(record) for record in page.results]
        except MALFORMED_RECORD_ERRORS as err:
            return store.resolve_list_fail(_malformed(store, err, page.results))

        logger.debug("List loaded", kind=store.kind, items=len(items), count=page.count)
        return store.resolve_list_success(items, count=page.count, next=page.next, previous=page.previous)

    async def _load_detail(self, store: ResourceStore, parse: Callable, fetch: Callable, id, *args) -> ResourceDetail:
        store.begin_get(id)
        try:
            data = await asyncio.to_thread(fetch, *args)
        except TransportError as err:
            logger.warning("Detail request failed", kind=store.kind, id=str(id), status_code=err.status_code)
            return store.resolve_get_fail(err)

        try:
            record = parse(data)
        except MALFORMED_RECORD_ERRORS as err:
            return store.resolve_get_fail(_malformed(store, err, data))

        return store.resolve_get_success(record)

    async def load_projects(
        self, page: int | None = None, page_size: int | None = None, query: str | None = None
    ) -> ResourceList[Project]:
        return await self._load_list(
            self.context.projects, Project.from_api, self.api.list_projects, page, page_size, query
        )

    async def load_project(self, project_id: UUID) -> ResourceDetail[Project]:
        return await self._load_detail(
            self.context.projects, Project.from_api, self.api.get_project, project_id, project_id
        )

    async def load_trees(
        self, project_id: UUID, page: int | None = None, page_size: int | None = None, query: str | None = None
    ) -> ResourceList[Tree]:
        store = self.context.trees
        store.select_scope(project_id)
        return await self._load_list(store, Tree.from_api, self.api.list_trees, project_id, page, page_size, query)

    async def load_tree(self, project_id: UUID, tree_id: UUID) -> ResourceDetail[Tree]:
        store = self.context.trees
        store.select_scope(project_id)
        return await self._load_detail(store, Tree.from_api, self.api.get_tree, tree_id, project_id, tree_id)

    async def load_clades(
        self, tree_id: UUID, page: int | None = None, page_size: int | None = None, query: str | None = None
    ) -> ResourceList[Clade]:
        """Load a page of a tree's clades.

        Selecting a different tree discards clades loaded for the previous one.
        """
        store = self.context.clades
        store.select_scope(tree_id)
        self._clade_params = (page, page_size, query)
        return await self._load_list(store, Clade.from_api, self.api.list_clades, tree_id, page, page_size, query)

    async def load_clade(self, tree_id: UUID, clade_id: UUID) -> ResourceDetail[Clade]:
        store = self.context.clades
        store.select_scope(tree_id)
        return await self._load_detail(store, Clade.from_api, self.api.get_clade, clade_id, tree_id, clade_id)

    async def refresh_clades(self, tree_id: UUID | None = None) -> ResourceList[Clade] | None:
        """Reload the current clade list with the parameters it was last loaded with.

        Does nothing when no clade list has been loaded, or when ``tree_id``
        is not the tree currently selected.
        """
        scope = self.context.clades.scope
        if scope is None or (tree_id is not None and tree_id != scope):
            logger.debug("Clade refresh skipped", tree=str(tree_id), current_tree=str(scope))
            return None
        return await self.load_clades(scope, *self._clade_params)


class ApiTrainingService:
    """:class:`cladeview.training.TrainingService` backed by :class:`cladeview.client.ApiClient`."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def train(self, source_clade: UUID, feature_set: UUID) -> dict:
        return await asyncio.to_thread(self.api.train_clade, source_clade, feature_set)
