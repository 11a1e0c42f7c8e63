"""Enumerations for this package."""

from enum import StrEnum


class BranchType(StrEnum):
    """Position of a clade in its tree's hierarchy.

    Values are the single-letter codes used by the research API.
    """

    ROOT = "R"
    """The tree's single root clade"""
    BRANCH = "B"
    """An internal clade with children"""
    LEAF = "L"
    """A terminal clade"""

    @classmethod
    def parse(cls, value) -> "BranchType | None":
        """Parse an API code ("R") or name ("root"); None when unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        value = value.strip()
        for member in cls:
            if value.upper() == member.value or value.upper() == member.name:
                return member
        return None


class TrainStatus(StrEnum):
    """Server-side status of a clade's classifier model."""

    UNAPPLICABLE = "unapplicable"
    STARTED = "started"
    FINISHED = "finished"
    UNDEFINED = "undefined"

    @classmethod
    def parse(cls, value) -> "TrainStatus":
        """Parse a status case-insensitively; unknown values become UNDEFINED."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.UNDEFINED


class JobStatus(StrEnum):
    """Client-side status of a training job."""

    QUEUED = "queued"
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"


class ScoreSeverity(StrEnum):
    """Quality band of a model test score."""

    GOOD = "good"
    """score > 0.9"""
    WARNING = "warning"
    """0.7 < score <= 0.9"""
    POOR = "poor"
    """score <= 0.7"""


class StoreAction(StrEnum):
    """Transitions emitted by a resource store."""

    LIST_PENDING = "list_pending"
    LIST_SUCCESS = "list_success"
    LIST_FAIL = "list_fail"
    DETAILS_PENDING = "details_pending"
    DETAILS_SUCCESS = "details_success"
    DETAILS_FAIL = "details_fail"
    ITEM_REPLACED = "item_replaced"
    RESET = "reset"
