"""Records returned by the research API.

Every record has a fixed set of known fields plus an ``extra`` mapping that
holds whatever else the server sent. Records are frozen: a newer copy of a
record replaces the old one, it is never edited in place.
Records are hashable; mapping fields take part in equality but not in the
hash.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from uuid import UUID

from cladeview.types import BranchType, TrainStatus


def _parse_uuid(value) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _parse_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _split_extra(cls, data: dict) -> tuple[dict, dict]:
    """Split an API payload into known field values and the remainder."""
    known = {f.name for f in fields(cls)} - {"extra"}
    values = {key: value for key, value in data.items() if key in known}
    extra = {key: value for key, value in data.items() if key not in known}
    return values, extra


@dataclass(frozen=True)
class Model:
    """A classifier trained for one clade.

    Attributes
    ----------
    model_clade : uuid.UUID | None
        The clade that owns the model.
    feature_set : uuid.UUID | None
        Feature set the model was trained on.
    ml_model : str
        Name of the classifier (e.g. "svm").
    test_score : tuple[float, ...]
        Test scores in [0, 1], in the order reported by the server.
    train_status : :class:`cladeview.types.TrainStatus`
        Server-side training status.
    """

    model_clade: UUID | None = None
    feature_set: UUID | None = None
    ml_model: str = ""
    test_score: tuple[float, ...] = ()
    train_status: TrainStatus = TrainStatus.UNDEFINED
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "Model":
        values, extra = _split_extra(cls, data)
        return cls(
            model_clade=_parse_uuid(values.get("model_clade")),
            feature_set=_parse_uuid(values.get("feature_set")),
            ml_model=values.get("ml_model") or "",
            test_score=tuple(float(score) for score in values.get("test_score") or ()),
            train_status=TrainStatus.parse(values.get("train_status")),
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )


@dataclass(frozen=True)
class SequenceRecord:
    """The FASTA sequence attached to a clade."""

    fasta_head: str = ""
    fasta_sequence: str = ""
    length: int = 0
    sequence_clade: UUID | None = None
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "SequenceRecord":
        values, extra = _split_extra(cls, data)
        fasta_sequence = values.get("fasta_sequence") or ""
        return cls(
            fasta_head=values.get("fasta_head") or "",
            fasta_sequence=fasta_sequence,
            length=int(values.get("length") or len(fasta_sequence)),
            sequence_clade=_parse_uuid(values.get("sequence_clade")),
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )


@dataclass(frozen=True)
class Annotation:
    """A description attached to a clade (a "node description" on the server)."""

    description: str = ""
    node_type: str = ""
    external_links: dict = field(default_factory=dict, hash=False)
    is_active: bool = False
    clade: UUID | None = None
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "Annotation":
        values, extra = _split_extra(cls, data)
        return cls(
            description=values.get("description") or "",
            node_type=values.get("node_type") or "",
            external_links=dict(values.get("external_links") or {}),
            is_active=bool(values.get("is_active", False)),
            clade=_parse_uuid(values.get("clade")),
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )


@dataclass(frozen=True)
class Clade:
    """A node of a phylogenetic tree.

    Attributes
    ----------
    uuid : uuid.UUID
        Clade identifier.
    tree : uuid.UUID | None
        The tree the clade belongs to.
    parent : uuid.UUID | None
        Parent clade. None only for the root clade.
    child : tuple[uuid.UUID, ...]
        Child clade identifiers, in server order.
    branch_type : :class:`cladeview.types.BranchType` | None
        Root, Branch or Leaf. None when the server sent an unknown code.
    model : :class:`Model` | None
        The clade's current classifier, if one was trained.
    extra : dict
        Fields sent by the server that are not listed above.
    """

    uuid: UUID
    tree: UUID | None = None
    parent: UUID | None = None
    child: tuple[UUID, ...] = ()
    branch_type: BranchType | None = None
    name: str | None = None
    branch_length: float = 0.0
    confidence: float = 0.0
    is_valid: bool = False
    is_active: bool = False
    sequence: SequenceRecord | None = None
    annotation: Annotation | None = None
    model: Model | None = None
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "Clade":
        values, extra = _split_extra(cls, data)
        sequence = values.get("sequence")
        annotation = values.get("annotation")
        model = values.get("model")
        return cls(
            uuid=_parse_uuid(values["uuid"]),
            tree=_parse_uuid(values.get("tree")),
            parent=_parse_uuid(values.get("parent")),
            child=tuple(_parse_uuid(child) for child in values.get("child") or ()),
            branch_type=BranchType.parse(values.get("branch_type")),
            name=values.get("name"),
            branch_length=float(values.get("branch_length") or 0.0),
            confidence=float(values.get("confidence") or 0.0),
            is_valid=bool(values.get("is_valid", False)),
            is_active=bool(values.get("is_active", False)),
            sequence=SequenceRecord.from_api(sequence) if sequence else None,
            annotation=Annotation.from_api(annotation) if annotation else None,
            model=Model.from_api(model) if model else None,
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )

    @property
    def is_root(self) -> bool:
        return self.branch_type == BranchType.ROOT and self.parent is None


@dataclass(frozen=True)
class Tree:
    """A phylogenetic tree. Only the fields clade training relies on are modeled."""

    uuid: UUID
    title: str = ""
    description: str = ""
    is_active: bool = False
    feature_set: UUID | None = None
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "Tree":
        values, extra = _split_extra(cls, data)
        # the server nests the feature set as a record; only its id is needed
        feature_set = values.get("feature_set")
        if isinstance(feature_set, dict):
            feature_set = feature_set.get("uuid")
        return cls(
            uuid=_parse_uuid(values["uuid"]),
            title=values.get("title") or "",
            description=values.get("description") or "",
            is_active=bool(values.get("is_active", False)),
            feature_set=_parse_uuid(feature_set),
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )


@dataclass(frozen=True)
class Project:
    """A research project that groups trees."""

    uuid: UUID
    title: str = ""
    description: str = ""
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict = field(default_factory=dict, hash=False)

    @classmethod
    def from_api(cls, data: dict) -> "Project":
        values, extra = _split_extra(cls, data)
        return cls(
            uuid=_parse_uuid(values["uuid"]),
            title=values.get("title") or "",
            description=values.get("description") or "",
            created=_parse_datetime(values.get("created")),
            updated=_parse_datetime(values.get("updated")),
            extra=extra,
        )
