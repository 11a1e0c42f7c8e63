"""Per-clade classifier training.

A :class:`TrainingOrchestrator` validates a clade, launches its training on
the server through a :class:`TrainingService`, and writes the resulting
model back into the clade store. At most one job per clade may be queued or
running at a time.

Job lifecycle::

    (no job) -> QUEUED -> STARTED -> FINISHED
                                  -> FAILED

Terminal jobs leave the active set. The last terminal job of each clade is
kept for inspection (see :meth:`TrainingOrchestrator.last_job`).
"""

import asyncio
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol
from uuid import UUID

import structlog

from cladeview.clade import Clade, Model
from cladeview.exceptions import ValidationError
from cladeview.navigator import find_by_uuid
from cladeview.store import ResourceStore
from cladeview.types import BranchType, JobStatus, ScoreSeverity

logger = structlog.get_logger()


class TrainingService(Protocol):
    """Fits a classifier for a clade on the server."""

    async def train(self, source_clade: UUID, feature_set: UUID) -> dict:
        """Train and return ``{"ml_model": ..., "test_score": [...], "train_status": ...}``."""
        ...


RefreshCallback = Callable[[UUID | None], Awaitable[Any]]


@dataclass
class TrainingJob:
    """A client-side record of one training run. Never persisted."""

    clade: UUID
    feature_set: UUID
    status: JobStatus = JobStatus.QUEUED
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: BaseException | None = None

    @property
    def active(self) -> bool:
        return self.status in (JobStatus.QUEUED, JobStatus.STARTED)


def is_trainable(clade: Clade, min_clade_length: int) -> bool:
    """Whether training may be offered for a clade.

    Training requires that the clade has no model yet and that it is neither
    larger than ``min_clade_length`` nor anything other than a root. This is
    narrower than :func:`cladeview.navigator.is_annotatable` and in practice
    only admits small root clades.
    """
    # NOTE: kept exactly as the research client gates its "Start train"
    # button; it looks inverted relative to annotation eligibility and is
    # pending product clarification (see DESIGN.md).
    return clade.model is None and not (len(clade.child) > min_clade_length or clade.branch_type != BranchType.ROOT)


def score_severity(score: float) -> ScoreSeverity:
    """Map a test score to a quality band.

    >>> score_severity(0.95), score_severity(0.9), score_severity(0.7)
    (<ScoreSeverity.GOOD: 'good'>, <ScoreSeverity.WARNING: 'warning'>, <ScoreSeverity.POOR: 'poor'>)
    """
    if score > 0.9:
        return ScoreSeverity.GOOD
    elif score > 0.7:
        return ScoreSeverity.WARNING
    return ScoreSeverity.POOR


def round_score(value: float, decimals: int = 2) -> float:
    """Round half away from zero at ``decimals`` places.

    The scaled value is normalized to 9 decimal places before rounding, so
    values such as 0.145 (stored as 0.14499999...) round the way their decimal
    notation reads.
    """
    factor = 10**decimals
    scaled = round(abs(value) * factor, 9)
    return math.copysign(math.floor(scaled + 0.5) / factor, value)


def score_badges(model: Model, decimals: int = 2) -> list[tuple[float, ScoreSeverity]]:
    """Return ``(rounded score, severity)`` for each of a model's test scores."""
    return [(round_score(score, decimals), score_severity(score)) for score in model.test_score]


class TrainingOrchestrator:
    """Launch and track classifier training for clades.

    Parameters
    ----------
    service : TrainingService
        Collaborator that runs training on the server.
    clades : ResourceStore[Clade]
        Store whose loaded clades receive the trained model.
    min_clade_length : int
        Child-count threshold passed to the eligibility predicate.
    refresh : Callable | None
        Coroutine function called with the clade's tree id once a model has
        been stored, to reload the clade list from the server.
    eligibility : Callable
        Predicate deciding which clades may be trained. Defaults to
        :func:`is_trainable`.
    """

    def __init__(
        self,
        service: TrainingService,
        clades: ResourceStore[Clade],
        min_clade_length: int = 10,
        refresh: RefreshCallback | None = None,
        eligibility: Callable[[Clade, int], bool] = is_trainable,
    ):
        self.service = service
        self.clades = clades
        self.min_clade_length = min_clade_length
        self.refresh = refresh
        self.eligibility = eligibility
        self._active: dict[UUID, TrainingJob] = {}
        self._last: dict[UUID, TrainingJob] = {}

    @property
    def active_jobs(self) -> dict[UUID, TrainingJob]:
        return dict(self._active)

    def get_job(self, clade_id: UUID) -> TrainingJob | None:
        """Return the queued or running job of a clade, if any."""
        return self._active.get(clade_id)

    def last_job(self, clade_id: UUID) -> TrainingJob | None:
        """Return the most recent finished or failed job of a clade, if any."""
        return self._last.get(clade_id)

    def start_training(self, clade: Clade, feature_set_id: UUID | None) -> "asyncio.Task[Model]":
        """Validate a clade and launch its training.

        Must be called from a running event loop. Validation happens before
        anything is scheduled.

        Returns
        -------
        asyncio.Task
            Resolves to the new :class:`cladeview.clade.Model`. If training
            fails, awaiting the task raises the service's error.

        Raises
        ------
        ValidationError
            If the clade already has an active job, is not eligible for
            training, or no feature set was given.
        """
        if clade.uuid in self._active:
            raise ValidationError(f"not eligible: clade {clade.uuid} already has an active training job")
        if not self.eligibility(clade, self.min_clade_length):
            raise ValidationError(f"not eligible: clade {clade.uuid} cannot be trained")
        if feature_set_id is None:
            raise ValidationError(f"not eligible: no feature set to train clade {clade.uuid} on")

        loop = asyncio.get_running_loop()
        job = TrainingJob(clade=clade.uuid, feature_set=feature_set_id)
        self._active[clade.uuid] = job
        logger.info("Training queued", clade=str(clade.uuid), feature_set=str(feature_set_id))

        task = loop.create_task(self._run(clade, job))
        task.add_done_callback(lambda _: self._release_if_active(job))
        return task

    async def train(self, clade: Clade, feature_set_id: UUID | None) -> Model:
        """Start training and wait for the resulting model."""
        return await self.start_training(clade, feature_set_id)

    async def _run(self, clade: Clade, job: TrainingJob) -> Model:
        job.status = JobStatus.STARTED
        logger.info("Training started", clade=str(job.clade), feature_set=str(job.feature_set))

        try:
            result = await self.service.train(job.clade, job.feature_set)
            model = self._build_model(job, result)
        except (Exception, asyncio.CancelledError) as err:
            self._finish(job, JobStatus.FAILED, error=err)
            logger.error("Training failed", clade=str(job.clade), error=repr(err))
            raise

        self._store_model(clade, model)
        self._finish(job, JobStatus.FINISHED)
        logger.info(
            "Training finished",
            clade=str(job.clade),
            ml_model=model.ml_model,
            test_score=list(model.test_score),
            train_status=str(model.train_status),
        )

        if self.refresh is not None:
            await self.refresh(clade.tree)

        return model

    def _build_model(self, job: TrainingJob, result) -> Model:
        if not isinstance(result, Mapping):
            raise TypeError(f"Unexpected training result: {result!r}")
        return Model.from_api({"model_clade": job.clade, "feature_set": job.feature_set, **result})

    def _store_model(self, clade: Clade, model: Model) -> None:
        # prefer the store's copy: the clade may have been reloaded while training ran
        current = find_by_uuid(self.clades.list.items, clade.uuid)
        if current is None:
            record = self.clades.detail.record
            current = record if record is not None and record.uuid == clade.uuid else clade
        if not self.clades.replace_item(replace(current, model=model)):
            logger.debug("Trained clade is not loaded", clade=str(clade.uuid))

    def _release_if_active(self, job: TrainingJob) -> None:
        # a task cancelled before it first ran never reaches _run's handler
        if job.active:
            self._finish(job, JobStatus.FAILED, error=asyncio.CancelledError())
            logger.warning("Training cancelled", clade=str(job.clade))

    def _finish(self, job: TrainingJob, status: JobStatus, error: BaseException | None = None) -> None:
        job.status = status
        job.error = error
        if self._active.get(job.clade) is job:
            del self._active[job.clade]
        self._last[job.clade] = job
