import numpy as np
import pandas as pd
import pytest

from ground_cover.composition import (
    check_composition,
    counts_to_fractions,
    labels_to_counts,
    normalize_scores,
)
from ground_cover.exceptions import ValidationError


def test_counts_to_fractions():
    counts = pd.DataFrame({"grass": [6, 0], "sand": [3, 5], "dead": [1, 5]}, index=["a", "b"])
    fractions = counts_to_fractions(counts)

    assert list(fractions.index) == ["a", "b"]
    np.testing.assert_allclose(fractions.loc["a"], [0.6, 0.3, 0.1])
    np.testing.assert_allclose(fractions.sum(axis=1), 1.0)


def test_counts_to_fractions_zero_total_raises():
    counts = pd.DataFrame({"grass": [0], "sand": [0], "dead": [0]}, index=["empty"])
    with pytest.raises(ValidationError, match="empty"):
        counts_to_fractions(counts)


def test_counts_to_fractions_negative_raises():
    with pytest.raises(ValidationError):
        counts_to_fractions(pd.DataFrame({"grass": [-1], "sand": [2]}))


def test_labels_to_counts():
    counts = labels_to_counts(["sand", "grass", "sand"], ["grass", "sand", "dead"])

    assert list(counts.columns) == ["grass", "sand", "dead"]
    assert counts.to_numpy().tolist() == [[0, 1, 0], [1, 0, 0], [0, 1, 0]]


def test_labels_to_counts_unknown_label():
    with pytest.raises(ValidationError, match="rock"):
        labels_to_counts(["grass", "rock"], ["grass", "sand", "dead"])


def test_normalize_scores():
    scores = pd.DataFrame({"grass": [2.0, 1.0], "sand": [2.0, 0.0]})
    normalized = normalize_scores(scores)
    np.testing.assert_allclose(normalized.to_numpy(), [[0.5, 0.5], [1.0, 0.0]])


def test_normalize_scores_all_zero_row():
    with pytest.raises(ValidationError):
        normalize_scores(pd.DataFrame({"grass": [0.0], "sand": [0.0]}))


def test_check_composition():
    check_composition(pd.DataFrame({"grass": [0.6], "sand": [0.4]}))

    with pytest.raises(ValidationError):
        check_composition(pd.DataFrame({"grass": [0.6], "sand": [0.6]}))
    with pytest.raises(ValidationError):
        check_composition(pd.DataFrame({"grass": [1.2], "sand": [-0.2]}))
