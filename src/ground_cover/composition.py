"""
Helpers turning class counts, labels and model scores into compositions.

A composition is a table with one row per sample and one column per class,
holding fractions in [0, 1] that sum to 1 on every row.
"""

import numpy as np
import pandas as pd
from typing import List, Sequence

from ground_cover.cste import EvaluationConfig
from ground_cover.exceptions import ValidationError


def counts_to_fractions(counts: pd.DataFrame) -> pd.DataFrame:
    """
    Convert per-class counts to per-class fractions.

    Args:
        counts: Class counts, shape (N, K), one column per class

    Returns:
        Fractions with the same index and columns as `counts`

    Raises:
        ValidationError: If a count is negative or a row has a zero total
    """
    values = counts.to_numpy(dtype=np.float64)
    if (values < 0).any():
        raise ValidationError("Class counts must be non-negative")

    totals = values.sum(axis=1)
    empty_rows = np.flatnonzero(totals == 0)
    if len(empty_rows) > 0:
        bad_ids = list(counts.index[empty_rows][:5])
        raise ValidationError(f"Samples with zero total count have no composition: {bad_ids}")

    return pd.DataFrame(values / totals[:, None], index=counts.index, columns=counts.columns)


def labels_to_counts(labels: Sequence, classes: List[str]) -> pd.DataFrame:
    """
    One-hot encode single-pixel labels as class counts.

    Args:
        labels: Class label per sample
        classes: Ordered class names

    Returns:
        Count table, shape (N, K), with a single 1 per row
    """
    labels = pd.Series(labels)
    unknown = sorted(set(labels.dropna().unique()) - set(classes))
    if unknown or labels.isna().any():
        raise ValidationError(f"Labels outside known classes {classes}: {unknown or ['<missing>']}")

    counts = pd.DataFrame(0, index=labels.index, columns=list(classes), dtype=np.int64)
    for cls in classes:
        counts[cls] = (labels == cls).astype(np.int64)
    return counts


def normalize_scores(scores: pd.DataFrame) -> pd.DataFrame:
    """
    Rescale non-negative per-class model scores so each row sums to 1.

    Args:
        scores: Per-class scores, shape (N, K)

    Returns:
        Normalized scores (a composition)
    """
    values = scores.to_numpy(dtype=np.float64)
    if (values < 0).any():
        raise ValidationError("Scores must be non-negative to be normalized")

    totals = values.sum(axis=1)
    if (totals == 0).any():
        raise ValidationError("Cannot normalize a row of all-zero scores")
    return pd.DataFrame(values / totals[:, None], index=scores.index, columns=scores.columns)


def check_composition(fractions: pd.DataFrame, atol: float = EvaluationConfig.SUM_TOLERANCE) -> None:
    """
    Check that every row is a valid composition.

    Args:
        fractions: Composition table, shape (N, K)
        atol: Absolute tolerance on the row sums

    Raises:
        ValidationError: If a fraction is outside [0, 1] or a row does not sum to 1
    """
    values = fractions.to_numpy(dtype=np.float64)
    if ((values < -atol) | (values > 1 + atol)).any():
        raise ValidationError("Fractions must lie in [0, 1]")

    row_sums = values.sum(axis=1)
    off = np.flatnonzero(~np.isclose(row_sums, 1.0, atol=atol, rtol=0.0))
    if len(off) > 0:
        bad_ids = list(fractions.index[off][:5])
        raise ValidationError(f"Compositions do not sum to 1 for samples: {bad_ids}")
