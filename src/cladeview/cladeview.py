"""Class for working with a research server's projects, trees and clades."""

import asyncio
from pathlib import Path
from uuid import UUID

import polars as pl
import structlog
from requests import Session

from cladeview import navigator, sequence, summary
from cladeview.auth import TokenProvider
from cladeview.clade import Clade, Model, Project, Tree
from cladeview.client import ApiClient
from cladeview.loader import ApiTrainingService, ResourceLoader
from cladeview.store import ResourceDetail, ResourceList, ResourceStore, StoreContext
from cladeview.training import TrainingOrchestrator, TrainingService
from cladeview.util.config import Config

logger = structlog.get_logger()


class CladeView:
    """Client-side view of a phylogenetic research dataset.

    A CladeView wires together the pieces of cladeview: an
    :class:`cladeview.client.ApiClient` for the research API, a
    :class:`cladeview.store.StoreContext` holding the loaded projects, trees
    and clades, a :class:`cladeview.loader.ResourceLoader` that fills the
    stores, and a :class:`cladeview.training.TrainingOrchestrator` for clade
    model training. Instances share no state, so several views (or tests)
    can run side by side.

    Parameters
    ----------
    config : :class:`cladeview.util.config.Config` | None
        Connection and behavior settings. Defaults to ``Config()``, which
        reads ``CLADEVIEW_*`` environment variables.
    token_provider : Callable[[], str | None] | None
        Supplies the API credential. See :mod:`cladeview.auth`.
    session : requests.Session | None
        HTTP session for the API client.
    training_service : TrainingService | None
        Overrides the service that runs training. Defaults to the API's
        train endpoint.

    Example
    -------
    >>> import asyncio
    >>> from cladeview import CladeView
    >>> from cladeview.auth import EnvTokenProvider
    >>>
    >>> async def train_root(project_id, tree_id):
    ...     cv = CladeView(token_provider=EnvTokenProvider())
    ...     await cv.load_tree(project_id, tree_id)
    ...     await cv.load_clades(tree_id)
    ...     root = cv.root()
    ...     if root is not None and cv.is_trainable(root):
    ...         return await cv.train(root)
    """

    def __init__(
        self,
        config: Config | None = None,
        token_provider: TokenProvider | None = None,
        session: Session | None = None,
        training_service: TrainingService | None = None,
    ):
        self._config = config or self._get_config()
        self.context = StoreContext()
        self.api = ApiClient(self._config, token_provider=token_provider, session=session)
        self.loader = ResourceLoader(self.api, self.context)
        self.orchestrator = TrainingOrchestrator(
            service=training_service or ApiTrainingService(self.api),
            clades=self.context.clades,
            min_clade_length=self._config.min_clade_length,
            refresh=self.loader.refresh_clades,
        )

    def __repr__(self):
        return f"CladeView(base_url={self._config.base_url!r}, min_clade_length={self.min_clade_length})"

    def _get_config(self) -> Config:
        """Return a config object."""
        config = Config()

        return config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def min_clade_length(self) -> int:
        return self._config.min_clade_length

    @property
    def projects(self) -> ResourceStore[Project]:
        return self.context.projects

    @property
    def trees(self) -> ResourceStore[Tree]:
        return self.context.trees

    @property
    def clades(self) -> ResourceStore[Clade]:
        return self.context.clades

    async def load_projects(self, **list_params) -> ResourceList[Project]:
        return await self.loader.load_projects(**list_params)

    async def load_project(self, project_id: UUID) -> ResourceDetail[Project]:
        return await self.loader.load_project(project_id)

    async def load_trees(self, project_id: UUID, **list_params) -> ResourceList[Tree]:
        return await self.loader.load_trees(project_id, **list_params)

    async def load_tree(self, project_id: UUID, tree_id: UUID) -> ResourceDetail[Tree]:
        return await self.loader.load_tree(project_id, tree_id)

    async def load_clades(self, tree_id: UUID, **list_params) -> ResourceList[Clade]:
        return await self.loader.load_clades(tree_id, **list_params)

    async def load_clade(self, tree_id: UUID, clade_id: UUID) -> ResourceDetail[Clade]:
        return await self.loader.load_clade(tree_id, clade_id)

    def find_clade(self, clade_id: UUID) -> Clade | None:
        """Return a loaded clade; None means it is not loaded."""
        return navigator.find_by_uuid(self.clades.list.items, clade_id)

    def root(self) -> Clade | None:
        return navigator.find_root(self.clades.list.items)

    def select_clade(self, clade_id: UUID) -> Clade | None:
        """Make a loaded clade the current detail record, without a request."""
        clade = self.find_clade(clade_id)
        if clade is not None:
            self.clades.resolve_get_success(clade)
        return clade

    def parent_of(self, clade: Clade) -> navigator.ParentLookup:
        return navigator.lookup_parent(clade, self.clades.list.items)

    def children_of(self, clade: Clade) -> list[Clade]:
        return navigator.children_of(clade, self.clades.list.items)

    def show_parent(self) -> navigator.ParentLookup:
        """Move the current clade detail to its parent, when the parent is loaded."""
        return navigator.show_parent(self.clades)

    def is_annotatable(self, clade: Clade) -> bool:
        return navigator.is_annotatable(clade, self.min_clade_length)

    def is_trainable(self, clade: Clade) -> bool:
        return self.orchestrator.eligibility(clade, self.min_clade_length)

    def feature_set_for(self, clade: Clade) -> UUID | None:
        """Return the feature set of the clade's tree, if that tree is loaded."""
        tree = self.trees.detail.record
        if tree is None or tree.uuid != clade.tree:
            tree = next((item for item in self.trees.list.items if item.uuid == clade.tree), None)
        return tree.feature_set if tree is not None else None

    def start_training(self, clade: Clade, feature_set_id: UUID | None = None) -> "asyncio.Task[Model]":
        """Launch training for a clade; see :meth:`TrainingOrchestrator.start_training`.

        ``feature_set_id`` defaults to the feature set of the clade's tree.
        """
        if feature_set_id is None:
            feature_set_id = self.feature_set_for(clade)
        return self.orchestrator.start_training(clade, feature_set_id)

    async def train(self, clade: Clade, feature_set_id: UUID | None = None) -> Model:
        return await self.start_training(clade, feature_set_id)

    def model_summary(self, decimals: int = 2) -> pl.DataFrame:
        """Summarize the models of the loaded clades; see :func:`cladeview.summary.summarize_models`."""
        return summary.summarize_models(self.clades.list.items, decimals=decimals)

    def export_fasta(self, output_file: Path | str) -> Path:
        """Write the sequences of the loaded clades to a FASTA file."""
        return sequence.write_fasta(self.clades.list.items, output_file)
