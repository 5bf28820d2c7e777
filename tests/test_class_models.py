import numpy as np
import pandas as pd
import pytest

from ground_cover.class_models import (
    BoostedTreeCoverModel,
    DecisionTreeCoverModel,
    MultinomialCoverModel,
    build_model,
    load_model,
)
from ground_cover.compositional_evaluation import aggregate_rmse, compute_errors
from ground_cover.cste import ModelConfig
from ground_cover.dataset_utils import PixelDataset, grouped_train_test_split
from ground_cover.exceptions import NotFittedError


def small_models():
    return [
        MultinomialCoverModel(Cs=3, cv=3, n_jobs=1),
        DecisionTreeCoverModel(max_depth=4, min_samples_leaf=5),
        BoostedTreeCoverModel(n_estimators=20, max_depth=2),
    ]


@pytest.fixture
def split(pixel_table):
    return grouped_train_test_split(PixelDataset(pixel_table), test_size=0.3, random_state=0)


@pytest.mark.parametrize("model", small_models(), ids=lambda m: m.model_name)
def test_fit_predicts_compositions(model, split):
    train, test = split
    history = model.fit(train.features, train.counts)

    assert history["n_samples"] == len(train)
    assert history["train_rmse"] >= 0

    predicted = model.predict_composition(test.features)
    assert list(predicted.columns) == ["grass", "sand", "dead"]
    assert len(predicted) == len(test)
    np.testing.assert_allclose(predicted.sum(axis=1), 1.0)
    assert ((predicted >= 0) & (predicted <= 1)).all().all()


def test_multinomial_beats_constant_composition(split):
    train, test = split
    model = MultinomialCoverModel(Cs=3, cv=3, n_jobs=1)
    model.fit(train.features, train.counts)

    observed = test.observed_fractions
    constant = pd.DataFrame(
        np.tile(train.observed_fractions.mean().to_numpy(), (len(test), 1)),
        index=observed.index, columns=observed.columns
    )
    model_rmse = aggregate_rmse(compute_errors(observed, model.predict_composition(test.features)))
    constant_rmse = aggregate_rmse(compute_errors(observed, constant))
    assert model_rmse < constant_rmse


def test_class_absent_from_training_predicted_as_zero(pixel_table):
    table = pixel_table.copy()
    table["sand"] += table["dead"]
    table["dead"] = 0
    dataset = PixelDataset(table)

    model = DecisionTreeCoverModel(max_depth=3, min_samples_leaf=5)
    model.fit(dataset.features, dataset.counts)
    predicted = model.predict_composition(dataset.features)

    assert (predicted["dead"] == 0).all()
    np.testing.assert_allclose(predicted.sum(axis=1), 1.0)


def test_failed_fit_leaves_model_unfitted(pixel_table):
    table = pixel_table.copy()
    table["grass"] += table["sand"] + table["dead"]
    table["sand"] = 0
    table["dead"] = 0
    dataset = PixelDataset(table)

    model = MultinomialCoverModel(Cs=3, cv=3, n_jobs=1)
    with pytest.raises(ValueError):
        model.fit(dataset.features, dataset.counts)

    assert not model.is_fitted
    assert model.feature_columns == []
    with pytest.raises(NotFittedError):
        model.predict_composition(dataset.features)


def test_predict_before_fit_raises(pixel_table):
    model = MultinomialCoverModel()
    with pytest.raises(NotFittedError):
        model.predict_composition(PixelDataset(pixel_table).features)


def test_missing_predictor_column_raises(split):
    train, test = split
    model = DecisionTreeCoverModel(max_depth=3)
    model.fit(train.features, train.counts)
    with pytest.raises(ValueError, match="exg"):
        model.predict_composition(test.features.drop(columns=["exg"]))


def test_save_and_load_round_trip(tmp_path, split):
    train, test = split
    model = BoostedTreeCoverModel(n_estimators=10, max_depth=2)
    model.fit(train.features, train.counts)
    model.save(str(tmp_path))

    for filename in (ModelConfig.MODEL_FILENAME, ModelConfig.PREPROCESSOR_FILENAME, ModelConfig.CONFIG_FILENAME):
        assert (tmp_path / filename).exists()

    reloaded = load_model(str(tmp_path))
    assert isinstance(reloaded, BoostedTreeCoverModel)
    assert reloaded.n_estimators == 10
    assert reloaded.max_depth == 2
    assert reloaded.feature_columns == model.feature_columns
    pd.testing.assert_frame_equal(
        reloaded.predict_composition(test.features),
        model.predict_composition(test.features)
    )


def test_load_missing_artifacts(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_model(str(tmp_path))


def test_build_model():
    assert isinstance(build_model("tree"), DecisionTreeCoverModel)
    with pytest.raises(ValueError):
        build_model("forest")
