"""Training and evaluation pipeline for composition models."""

import json
import time
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ground_cover.class_models import BaseCoverModel, load_model
from ground_cover.compositional_evaluation import (
    EvaluationResult,
    evaluate,
    print_evaluation_summary,
    save_evaluation_report,
)
from ground_cover.composition import check_composition
from ground_cover.cste import CSVKeys, DataPath, GeneralConfig, ResultPath
from ground_cover.dataset_utils import PixelDataset, grouped_train_test_split
from ground_cover.logger import get_logger
from ground_cover.visualization import plot_observed_vs_predicted, plot_ternary

log = get_logger("trainer")


class CoverTrainer:
    """
    Training pipeline for composition models.

    Handles fitting, evaluation on held-out photos, and saving.
    """

    def __init__(
        self,
        model: BaseCoverModel,
        train_dataset: PixelDataset,
        output_dir: str = DataPath.RESULT_PATH
    ):
        """
        Initialize trainer.

        Args:
            model: Composition model to train
            train_dataset: Training dataset
            output_dir: Directory to save outputs
        """
        self.model = model
        self.train_dataset = train_dataset
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        log.info(f"Initialized trainer for {model.model_name}")
        log.info(f"Output directory: {self.output_dir}")

    def train(self) -> Dict[str, Any]:
        """
        Train the model.

        Returns:
            Training history/metrics
        """
        log.info(f"{'='*50}")
        log.info(f"TRAINING {self.model.model_name}")
        log.info(f"{'='*50}")

        start_time = time.time()

        history = self.model.fit(self.train_dataset.features, self.train_dataset.counts)

        elapsed_time = time.time() - start_time
        log.info(f"Training completed in {elapsed_time:.2f} seconds")

        history['training_time_seconds'] = elapsed_time
        self._save_training_history(history)

        return history

    def evaluate(self, test_dataset: PixelDataset, plots: bool = True) -> EvaluationResult:
        """
        Evaluate the model on test data.

        Args:
            test_dataset: Test dataset
            plots: Whether to save the scatter and ternary plots

        Returns:
            Evaluation result
        """
        log.info(f"{'='*50}")
        log.info(f"EVALUATING {self.model.model_name}")
        log.info(f"{'='*50}")

        observed = test_dataset.observed_fractions
        predicted = self.model.predict_composition(test_dataset.features)
        check_composition(predicted)

        result = evaluate(observed, predicted, sample_ids=test_dataset.sample_ids)
        print_evaluation_summary(result)
        save_evaluation_report(result, str(self.output_dir), self.model.model_name)

        if plots:
            plot_dir = self.output_dir / 'plots'
            plot_observed_vs_predicted(
                result.errors,
                save_path=plot_dir / f'{self.model.model_name}_observed_vs_predicted.png'
            )
            if len(result.classes) == 3:
                ids = test_dataset.sample_ids.to_numpy()
                order = test_dataset.order
                if order is not None:
                    order = pd.Series(order.to_numpy(), index=ids)
                #! Positions restart in every photo, so each photo is its own path
                groups = pd.Series(test_dataset.groups.to_numpy(), index=ids)
                plot_ternary(
                    result.errors,
                    connect=order is not None,
                    order=order,
                    groups=groups,
                    save_path=plot_dir / f'{self.model.model_name}_ternary.png'
                )

        return result

    def save_model(self, model_dir: Optional[str] = None) -> Path:
        """Save trained model (defaults to `<output_dir>/model`)."""
        model_dir = Path(model_dir) if model_dir else self.output_dir / 'model'
        log.info(f"Saving model to {model_dir}...")
        self.model.save(str(model_dir))
        log.info("Model saved successfully")
        return model_dir

    def _save_training_history(self, history: Dict[str, Any]) -> None:
        """
        Save training history to JSON.

        Args:
            history: Training history dictionary
        """
        history_path = self.output_dir / f'{self.model.model_name}_training_history.json'

        #! Convert numpy types to native Python types
        serializable_history = {}
        for key, value in history.items():
            if isinstance(value, np.ndarray):
                serializable_history[key] = value.tolist()
            elif isinstance(value, np.floating):
                serializable_history[key] = float(value)
            elif isinstance(value, np.integer):
                serializable_history[key] = int(value)
            else:
                serializable_history[key] = value

        with open(history_path, 'w') as f:
            json.dump(serializable_history, f, indent=2)

        log.info(f"Saved training history to {history_path}")


def train_and_evaluate_model(
    model: BaseCoverModel,
    csv_path: str = DataPath.PIXEL_TABLE,
    output_dir: str = DataPath.RESULT_PATH,
    test_size: float = GeneralConfig.TEST_SIZE,
    random_state: int = GeneralConfig.RANDOM_SEED,
    exclude_columns: Iterable[str] = (),
    label_column: Optional[str] = None,
    plots: bool = True
) -> Dict[str, Any]:
    """
    Complete training and evaluation pipeline.

    Args:
        model: Model to train
        csv_path: Path to the pixel table (or a loaded DataFrame)
        output_dir: Output directory for model and results
        test_size: Fraction of photos held out for testing
        random_state: Seed for the grouped split
        exclude_columns: Numeric columns not used as predictors
        label_column: Single-label column, if the table has no count columns
        plots: Whether to save evaluation plots

    Returns:
        Dictionary with training and evaluation results
    """
    log.info(f"{'='*70}")
    log.info(f"COMPLETE TRAINING PIPELINE: {model.model_name}")
    log.info(f"{'='*70}")

    dataset = PixelDataset(
        csv_path,
        classes=model.classes,
        exclude_columns=exclude_columns,
        label_column=label_column
    )
    train_dataset, test_dataset = grouped_train_test_split(
        dataset, test_size=test_size, random_state=random_state
    )

    trainer = CoverTrainer(model, train_dataset, output_dir=output_dir)
    training_history = trainer.train()
    evaluation_result = trainer.evaluate(test_dataset, plots=plots)
    model_dir = trainer.save_model()

    log.info(f"PIPELINE COMPLETED: {model.model_name}")

    return {
        'training': training_history,
        'evaluation': evaluation_result.to_dict(),
        'result': evaluation_result,
        'model_dir': str(model_dir),
    }


def predict_from_saved(
    model_dir: str = DataPath.MODEL_DIR,
    csv_path: str = DataPath.PIXEL_TABLE_NEW,
    output_csv: Optional[str] = ResultPath.PREDICTION_CSV_PATH
) -> pd.DataFrame:
    """
    Predict compositions for a new pixel table with a saved model.

    The new table only needs the sample id column and the predictors used
    in training.

    Args:
        model_dir: Directory containing the saved model artifacts
        csv_path: Path to the new pixel table (or a loaded DataFrame)
        output_csv: Where to write the predictions. None to skip writing

    Returns:
        Predicted composition, indexed by sample id
    """
    model = load_model(model_dir)

    df = csv_path if isinstance(csv_path, pd.DataFrame) else pd.read_csv(csv_path)
    if CSVKeys.SAMPLE_ID not in df.columns:
        raise ValueError(f"Pixel table must contain column: {CSVKeys.SAMPLE_ID}")

    features = df.set_index(CSVKeys.SAMPLE_ID)
    predicted = model.predict_composition(features)
    log.info(f"Predicted composition for {len(predicted)} samples")

    if output_csv:
        Path(output_csv).parent.mkdir(parents=True, exist_ok=True)
        predicted.to_csv(output_csv, index_label=CSVKeys.SAMPLE_ID)
        log.info(f"Saved predictions to {output_csv}")

    return predicted
