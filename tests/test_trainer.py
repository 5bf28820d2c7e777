import json

import numpy as np
import pytest

from ground_cover.class_models import DecisionTreeCoverModel
from ground_cover.cste import CSVKeys
from ground_cover.main import main
from ground_cover.trainer import predict_from_saved, train_and_evaluate_model


def test_train_and_evaluate_model(tmp_path, pixel_csv):
    model = DecisionTreeCoverModel(max_depth=4, min_samples_leaf=5)
    results = train_and_evaluate_model(model, csv_path=pixel_csv, output_dir=str(tmp_path), random_state=1)

    evaluation = results["evaluation"]
    assert 0 <= evaluation["rmse"] <= 1
    assert evaluation["classes"] == ["grass", "sand", "dead"]
    assert len(results["result"].errors) == 3 * evaluation["n_samples"]

    assert (tmp_path / "DecisionTree_evaluation.json").exists()
    assert (tmp_path / "DecisionTree_errors.csv").exists()
    assert (tmp_path / "plots" / "DecisionTree_observed_vs_predicted.png").exists()
    assert (tmp_path / "plots" / "DecisionTree_ternary.png").exists()

    with open(tmp_path / "DecisionTree_training_history.json") as f:
        history = json.load(f)
    assert "training_time_seconds" in history


def test_predict_from_saved(tmp_path, pixel_csv, pixel_table):
    model = DecisionTreeCoverModel(max_depth=3)
    results = train_and_evaluate_model(model, csv_path=pixel_csv, output_dir=str(tmp_path), plots=False)

    new_pixels = pixel_table[[CSVKeys.SAMPLE_ID, "red", "green", "blue", "exg", "altitude_m"]].head(5)
    output_csv = tmp_path / "predictions.csv"
    predicted = predict_from_saved(results["model_dir"], new_pixels, output_csv=str(output_csv))

    assert list(predicted.index) == new_pixels[CSVKeys.SAMPLE_ID].tolist()
    np.testing.assert_allclose(predicted.sum(axis=1), 1.0)
    assert output_csv.exists()


def test_cli_train_then_predict(tmp_path, pixel_csv):
    out_dir = tmp_path / "run"
    assert main(["train", "--csv", pixel_csv, "--model", "tree", "--output", str(out_dir), "--no-plots"]) == 0
    assert (out_dir / "model" / "cover_model.pkl").exists()

    predictions = tmp_path / "predictions.csv"
    assert main(["predict", "--model-dir", str(out_dir / "model"), "--csv", pixel_csv,
                 "--output", str(predictions)]) == 0
    assert predictions.exists()


def test_cli_rejects_unknown_model(pixel_csv):
    with pytest.raises(SystemExit):
        main(["train", "--csv", pixel_csv, "--model", "forest"])
