import numpy as np
import pandas as pd
import pytest

from ground_cover.compositional_evaluation import compute_errors
from ground_cover.exceptions import ValidationError
from ground_cover.cste import CSVKeys
from ground_cover.visualization import (
    plot_observed_vs_predicted,
    plot_ternary,
    ternary_to_cartesian,
    transect_paths,
)


@pytest.fixture
def errors():
    rng = np.random.default_rng(0)
    observed = pd.DataFrame(rng.dirichlet([2, 2, 2], size=12), columns=["grass", "sand", "dead"])
    predicted = pd.DataFrame(rng.dirichlet([2, 2, 2], size=12), columns=["grass", "sand", "dead"])
    return compute_errors(observed, predicted)


def test_ternary_vertices():
    xy = ternary_to_cartesian(np.eye(3))
    np.testing.assert_allclose(xy, [[0.0, 0.0], [1.0, 0.0], [0.5, np.sqrt(3) / 2]])


def test_ternary_centre_and_rescaling():
    xy = ternary_to_cartesian(np.array([[2.0, 2.0, 2.0]]))
    np.testing.assert_allclose(xy, [[0.5, np.sqrt(3) / 6]])


def test_ternary_needs_three_classes():
    with pytest.raises(ValidationError):
        ternary_to_cartesian(np.ones((2, 4)))
    with pytest.raises(ValidationError):
        ternary_to_cartesian(np.zeros((1, 3)))


def test_scatter_plot_saved(tmp_path, errors):
    path = tmp_path / "plots" / "scatter.png"
    assert plot_observed_vs_predicted(errors, save_path=path) is None
    assert path.exists()


def test_scatter_plot_returned(errors):
    fig = plot_observed_vs_predicted(errors)
    assert len(fig.axes) == 3


def test_ternary_plot_with_path(tmp_path, errors):
    order = pd.Series(np.arange(12)[::-1], index=np.arange(12))
    path = tmp_path / "ternary.png"
    plot_ternary(errors, connect=True, order=order, save_path=path)
    assert path.exists()


def test_ternary_plot_missing_order(errors):
    order = pd.Series([0, 1], index=[0, 1])
    with pytest.raises(ValidationError):
        plot_ternary(errors, connect=True, order=order)


def test_ternary_plot_rejects_two_classes():
    errors = compute_errors([{"grass": 0.5, "sand": 0.5}], [{"grass": 0.4, "sand": 0.6}])
    with pytest.raises(ValidationError):
        plot_ternary(errors)


def test_transect_paths_sorted_within_groups():
    ids = ["a2", "b1", "a0", "b0", "a1"]
    order = pd.Series([2, 1, 0, 0, 1], index=ids)
    groups = pd.Series(["a", "b", "a", "b", "a"], index=ids)

    assert transect_paths(ids, order=order, groups=groups) == [["a0", "a1", "a2"], ["b0", "b1"]]


def test_transect_paths_default_to_one_path_in_input_order():
    assert transect_paths(["x", "y", "z"]) == [["x", "y", "z"]]


def test_transect_paths_never_join_photos(pixel_table):
    ids = pixel_table[CSVKeys.SAMPLE_ID].to_numpy()
    order = pd.Series(pixel_table[CSVKeys.ORDER].to_numpy(), index=ids)
    groups = pd.Series(pixel_table[CSVKeys.GROUP_ID].to_numpy(), index=ids)

    paths = transect_paths(ids, order=order, groups=groups)

    assert len(paths) == pixel_table[CSVKeys.GROUP_ID].nunique()
    for path in paths:
        assert groups[path].nunique() == 1
        assert order[path].is_monotonic_increasing


def test_transect_paths_missing_group():
    with pytest.raises(ValidationError):
        transect_paths(["x", "y"], groups=pd.Series([0], index=["x"]))


def test_ternary_plot_one_path_per_group(errors):
    order = pd.Series(np.tile(np.arange(6), 2), index=np.arange(12))
    groups = pd.Series(np.repeat([0, 1], 6), index=np.arange(12))

    fig = plot_ternary(errors, connect=True, order=order, groups=groups)

    # two groups, drawn once for observed and once for predicted
    assert len(fig.axes[0].lines) - len(plot_ternary(errors).axes[0].lines) == 4
