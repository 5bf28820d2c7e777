"""Abstract base class for all ground-cover composition models."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence
import numpy as np
import pandas as pd
import json
import pickle
from pathlib import Path
from sklearn.preprocessing import StandardScaler

from ground_cover.composition import counts_to_fractions, normalize_scores
from ground_cover.compositional_evaluation import aggregate_rmse, compute_errors
from ground_cover.cste import ModelConfig
from ground_cover.dataset_utils import expand_counts
from ground_cover.exceptions import NotFittedError
from ground_cover.logger import get_logger

log = get_logger("model_base")


class BaseCoverModel(ABC):
    """
    Abstract base class for composition models.

    A model is a preprocessing transform followed by a scikit-learn
    classifier with `predict_proba`. Count-valued ground truth is fed to the
    classifier as weighted single-label rows (see `expand_counts`), and the
    class probabilities are read back as the predicted composition.
    """

    def __init__(self, classes: Sequence[str], model_name: str):
        """
        Initialize base model.

        Args:
            classes: Ordered class names
            model_name: Name identifier for the model
        """
        self.classes: List[str] = list(classes)
        self.model_name = model_name
        self.model = None
        self.preprocessor = None
        self.feature_columns: List[str] = []
        self.config: Dict[str, Any] = {}

    @abstractmethod
    def _build_estimator(self):
        """Return a fresh, unfitted scikit-learn classifier."""

    def _build_preprocessor(self):
        """Return a fresh, unfitted preprocessing transform."""
        return StandardScaler()

    @property
    def is_fitted(self) -> bool:
        return self.model is not None and self.preprocessor is not None

    def fit(self, features: pd.DataFrame, counts: pd.DataFrame) -> Dict[str, Any]:
        """
        Fit the preprocessing transform and the classifier.

        Args:
            features: Predictors, shape (N, F)
            counts: Class counts, shape (N, K), one column per class

        Returns:
            Training metrics dictionary
        """
        log.info(f"Training {self.model_name} on {len(features)} samples")

        X, y, sample_weight = expand_counts(features, counts[self.classes])

        #! Fit into locals so a failed fit leaves the model untouched
        preprocessor = self._build_preprocessor().fit(X)
        model = self._build_estimator()
        model.fit(preprocessor.transform(X), y, sample_weight=sample_weight)

        self.preprocessor = preprocessor
        self.model = model
        self.feature_columns = list(features.columns)

        missing = sorted(set(self.classes) - set(self.model.classes_))
        if missing:
            log.warning(f"Classes absent from training data will be predicted as 0: {missing}")

        #! Training fit on the composition scale
        observed = counts_to_fractions(counts[self.classes])
        predicted = self.predict_composition(features)
        train_rmse = aggregate_rmse(compute_errors(observed, predicted))
        log.info(f"Training RMSE: {train_rmse:.4f}")

        self.config['feature_columns'] = self.feature_columns

        return {
            'train_rmse': train_rmse,
            'n_samples': int(len(features)),
            'n_weighted_rows': int(len(X)),
            'feature_columns': self.feature_columns,
        }

    def predict_proba(self, features: pd.DataFrame) -> np.ndarray:
        """
        Class probabilities aligned to `self.classes`.

        Args:
            features: Predictors, must contain the training feature columns

        Returns:
            Array of shape (N, K)
        """
        if not self.is_fitted:
            raise NotFittedError(f"{self.model_name} must be fitted or loaded before predicting")

        missing = [col for col in self.feature_columns if col not in features.columns]
        if missing:
            raise ValueError(f"Missing predictor columns: {missing}")

        X = features[self.feature_columns].to_numpy(dtype=np.float64)
        proba = self.model.predict_proba(self.preprocessor.transform(X))

        #! Classes never seen in training keep probability 0
        aligned = np.zeros((len(X), len(self.classes)), dtype=np.float64)
        for j, cls in enumerate(self.model.classes_):
            aligned[:, self.classes.index(cls)] = proba[:, j]
        return aligned

    def predict_composition(self, features: pd.DataFrame) -> pd.DataFrame:
        """
        Predicted composition, one row per sample summing to 1.

        Args:
            features: Predictors

        Returns:
            DataFrame indexed like `features` with one column per class
        """
        scores = pd.DataFrame(self.predict_proba(features), index=features.index, columns=self.classes)
        return normalize_scores(scores)

    def save(self, save_dir: str) -> None:
        """
        Save the fitted model, the preprocessing transform and the configuration.

        Args:
            save_dir: Directory to save model artifacts
        """
        if not self.is_fitted:
            raise NotFittedError(f"{self.model_name} has nothing to save before fitting")

        save_path = Path(save_dir)
        save_path.mkdir(parents=True, exist_ok=True)

        model_path = save_path / ModelConfig.MODEL_FILENAME
        with open(model_path, 'wb') as f:
            pickle.dump(self.model, f)
        log.info(f"Saved model to {model_path}")

        preprocessor_path = save_path / ModelConfig.PREPROCESSOR_FILENAME
        with open(preprocessor_path, 'wb') as f:
            pickle.dump(self.preprocessor, f)
        log.info(f"Saved preprocessor to {preprocessor_path}")

        self._save_config(save_dir)

    def load(self, save_dir: str) -> None:
        """
        Load model, preprocessing transform and configuration.

        Args:
            save_dir: Directory containing model artifacts
        """
        self.config = self._load_config(save_dir)
        self.classes = list(self.config['classes'])
        self.feature_columns = list(self.config.get('feature_columns', []))

        #! Hyperparameters follow the saved configuration, not the constructor defaults
        for key, value in self.config.items():
            if key not in ('model_name', 'classes', 'feature_columns') and hasattr(self, key):
                setattr(self, key, value)

        self.model = self._load_pickle(Path(save_dir) / ModelConfig.MODEL_FILENAME)
        self.preprocessor = self._load_pickle(Path(save_dir) / ModelConfig.PREPROCESSOR_FILENAME)
        log.info(f"Loaded {self.model_name} from {save_dir}")

    @staticmethod
    def _load_pickle(path: Path):
        if not path.exists():
            raise FileNotFoundError(f"Artifact not found: {path}. Train and save a model first.")
        with open(path, 'rb') as f:
            return pickle.load(f)

    def _save_config(self, save_dir: str) -> None:
        """
        Save model configuration to JSON.

        Args:
            save_dir: Directory to save configuration
        """
        save_path = Path(save_dir)
        save_path.mkdir(parents=True, exist_ok=True)

        config_path = save_path / ModelConfig.CONFIG_FILENAME
        with open(config_path, 'w') as f:
            json.dump(self.config, f, indent=2)

        log.info(f"Saved config to {config_path}")

    def _load_config(self, save_dir: str) -> Dict[str, Any]:
        """
        Load model configuration from JSON.

        Args:
            save_dir: Directory containing configuration

        Returns:
            Configuration dictionary
        """
        config_path = Path(save_dir) / ModelConfig.CONFIG_FILENAME
        if not config_path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}. Train and save a model first.")
        with open(config_path, 'r') as f:
            config = json.load(f)

        log.info(f"Loaded config from {config_path}")
        return config
