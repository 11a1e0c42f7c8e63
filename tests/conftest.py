import asyncio
from uuid import UUID, uuid4

import pytest

from cladeview.clade import Clade, Model, Tree
from cladeview.store import StoreContext
from cladeview.types import BranchType, TrainStatus
from cladeview.util.config import Config

API_URL = "https://research.example.org"
BASE_URL = f"{API_URL}/api/v1"

PROJECT_ID = UUID("6f1c0a8e-3b5d-4a52-9a8e-1c2d3e4f5a60")
TREE_ID = UUID("0b8f6c1e-7d2a-4c3b-8e9f-2a1b3c4d5e6f")
FEATURE_SET_ID = UUID("c4a5b6d7-e8f9-4a0b-9c1d-2e3f4a5b6c7d")


class FakeTrainingService:
    """Training service double that records calls and can be held open."""

    def __init__(self, result: dict | None = None, error: Exception | None = None, hold: bool = False):
        self.result = result if result is not None else {
            "ml_model": "svm",
            "test_score": [0.92, 0.88],
            "train_status": "finished",
        }
        self.error = error
        self.calls = []
        self.release = asyncio.Event()
        if not hold:
            self.release.set()

    async def train(self, source_clade, feature_set):
        self.calls.append((source_clade, feature_set))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def test_config(monkeypatch) -> Config:
    """Return a Config for the mocked research API."""
    for variable in ["CLADEVIEW_API_URL", "CLADEVIEW_AUTH_SCHEME", "CLADEVIEW_MIN_CLADE_LENGTH", "CLADEVIEW_TOKEN"]:
        monkeypatch.delenv(variable, raising=False)
    return Config(api_url=API_URL, retry=False, min_clade_length=3)


@pytest.fixture
def store_context() -> StoreContext:
    return StoreContext()


@pytest.fixture
def clade_factory():
    """Return a function that builds clades for TREE_ID."""

    def _make_clade(
        branch_type: BranchType = BranchType.BRANCH,
        children: int | list = 0,
        parent: UUID | None = None,
        model: Model | None = None,
        uuid: UUID | None = None,
        **kwargs,
    ) -> Clade:
        child = tuple(children) if isinstance(children, list) else tuple(uuid4() for _ in range(children))
        return Clade(
            uuid=uuid or uuid4(),
            tree=TREE_ID,
            parent=parent,
            child=child,
            branch_type=branch_type,
            model=model,
            **kwargs,
        )

    return _make_clade


@pytest.fixture
def hierarchy(clade_factory):
    """A root with two branches; the first branch has five children, one of them loaded.

    Returns a dict of clades keyed by role.
    """
    root_id, big_id, small_id, leaf_id = uuid4(), uuid4(), uuid4(), uuid4()
    big_children = [leaf_id] + [uuid4() for _ in range(4)]
    clades = {
        "root": clade_factory(BranchType.ROOT, [big_id, small_id], uuid=root_id, name="root"),
        "big": clade_factory(BranchType.BRANCH, big_children, parent=root_id, uuid=big_id, name="big"),
        "small": clade_factory(BranchType.BRANCH, 2, parent=root_id, uuid=small_id, name="small"),
        "leaf": clade_factory(BranchType.LEAF, 0, parent=big_id, uuid=leaf_id, name="leaf"),
    }
    return clades


@pytest.fixture
def trained_model() -> Model:
    return Model(ml_model="rf", test_score=(0.95, 0.71, 0.7), train_status=TrainStatus.FINISHED)


@pytest.fixture
def tree_record() -> Tree:
    return Tree(uuid=TREE_ID, title="ITS tree", feature_set=FEATURE_SET_ID)


@pytest.fixture
def clade_payload():
    """Return an API payload for a clade with a sequence, an annotation and a model."""
    clade_id = "9d6e5f4a-3b2c-4d1e-8f7a-6b5c4d3e2f1a"
    return {
        "uuid": clade_id,
        "tree": str(TREE_ID),
        "parent": "1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d",
        "child": ["2b3c4d5e-6f7a-4b8c-9d0e-1f2a3b4c5d6e", "3c4d5e6f-7a8b-4c9d-8e1f-2a3b4c5d6e7f"],
        "branch_type": "B",
        "name": "Fusarium clade",
        "branch_length": 0.0125,
        "confidence": 98.0,
        "is_valid": True,
        "is_active": True,
        "created": "2020-07-04T19:23:37Z",
        "updated": "2020-07-04T23:01:13Z",
        "sequence": {
            "fasta_head": ">MK123456.1 Fusarium anguioides",
            "fasta_sequence": "ACGTACGTTGCA",
            "length": 12,
            "sequence_clade": clade_id,
        },
        "annotation": {
            "description": "Soil-borne",
            "node_type": "species",
            "external_links": {"node": {"id": 346690}},
            "is_active": True,
            "clade": clade_id,
        },
        "model": {
            "model_clade": clade_id,
            "feature_set": str(FEATURE_SET_ID),
            "ml_model": "svm",
            "test_score": [0.92, 0.88],
            "train_status": "Finished",
        },
        "depth": 4,
    }


@pytest.fixture
def api_clades() -> list[dict]:
    """Return a clade list as the API sends it: a root, a large branch and a leaf with a sequence."""
    root_id = "11111111-1111-4111-8111-111111111111"
    branch_id = "22222222-2222-4222-8222-222222222222"
    leaf_id = "33333333-3333-4333-8333-333333333333"
    return [
        {
            "uuid": root_id,
            "tree": str(TREE_ID),
            "parent": None,
            "child": [branch_id, leaf_id],
            "branch_type": "R",
            "name": "root",
        },
        {
            "uuid": branch_id,
            "tree": str(TREE_ID),
            "parent": root_id,
            "child": [str(uuid4()) for _ in range(5)],
            "branch_type": "B",
            "name": "Fusarium",
        },
        {
            "uuid": leaf_id,
            "tree": str(TREE_ID),
            "parent": root_id,
            "child": [],
            "branch_type": "L",
            "name": "MK123456.1",
            "sequence": {"fasta_head": ">MK123456.1 Fusarium anguioides", "fasta_sequence": "ACGTTGCA"},
        },
    ]


@pytest.fixture
def api_tree() -> dict:
    return {
        "uuid": str(TREE_ID),
        "title": "ITS tree",
        "feature_set": {"uuid": str(FEATURE_SET_ID)},
    }
