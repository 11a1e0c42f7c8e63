"""Tabular summaries of clade models."""

from typing import Iterable

import polars as pl

from cladeview.clade import Clade
from cladeview.training import round_score, score_severity

MODEL_SCHEMA = {
    "clade": pl.String,
    "name": pl.String,
    "ml_model": pl.String,
    "train_status": pl.String,
    "score_index": pl.Int64,
    "test_score": pl.Float64,
    "rounded_score": pl.Float64,
    "severity": pl.String,
}


def summarize_models(clades: Iterable[Clade], decimals: int = 2) -> pl.DataFrame:
    """Return one row per test score of every clade that has a model.

    Parameters
    ----------
    clades : Iterable[Clade]
        Usually the ``items`` of the clade store's list.
    decimals : int
        Precision of the ``rounded_score`` column.

    Returns
    -------
    :class:`polars.DataFrame`
        Columns: clade, name, ml_model, train_status, score_index,
        test_score, rounded_score, severity. Clades without a model are
        left out; a model without scores contributes no rows.
    """
    rows = []
    for clade in clades:
        if clade.model is None:
            continue
        for index, score in enumerate(clade.model.test_score):
            rows.append(
                {
                    "clade": str(clade.uuid),
                    "name": clade.name,
                    "ml_model": clade.model.ml_model,
                    "train_status": str(clade.model.train_status),
                    "score_index": index,
                    "test_score": score,
                    "rounded_score": round_score(score, decimals),
                    "severity": str(score_severity(score)),
                }
            )

    return pl.DataFrame(rows, schema=MODEL_SCHEMA)


def count_severities(model_summary: pl.DataFrame) -> pl.DataFrame:
    """Count scores in each severity band of a :func:`summarize_models` frame."""
    counts = (
        model_summary.group_by("severity")
        .agg(pl.len().alias("count"))
        .sort("severity")
    )

    return counts
