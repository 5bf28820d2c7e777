"""
Composition models wrapping scikit-learn classifiers.

Each model predicts per-class probabilities that are read as the predicted
ground-cover composition of a sample.
"""

# ! TO ADD A NEW MODEL, REGISTER IT HERE !
# 1. subclass BaseCoverModel in this package and implement _build_estimator
# 2. import the class here and add it to MODEL_REGISTRY and __all__

import json
from pathlib import Path

from .base_model import BaseCoverModel
from .multinomial_model import MultinomialCoverModel
from .tree_models import BoostedTreeCoverModel, DecisionTreeCoverModel
from ground_cover.cste import ModelConfig


MODEL_REGISTRY = {
    'multinomial': MultinomialCoverModel,
    'tree': DecisionTreeCoverModel,
    'boosted': BoostedTreeCoverModel,
}

# model_name stored in config.json -> registry key
_NAME_TO_KEY = {
    'Multinomial': 'multinomial',
    'DecisionTree': 'tree',
    'BoostedTree': 'boosted',
}


def build_model(name: str, **kwargs) -> BaseCoverModel:
    """
    Instantiate a model by its registry key.

    Args:
        name: One of MODEL_REGISTRY keys
        **kwargs: Model constructor parameters

    Returns:
        Unfitted model
    """
    if name not in MODEL_REGISTRY:
        raise ValueError(f"Unknown model '{name}'. Available: {sorted(MODEL_REGISTRY)}")
    return MODEL_REGISTRY[name](**kwargs)


def load_model(save_dir: str) -> BaseCoverModel:
    """
    Rebuild and load a saved model, picking its class from the saved config.

    Args:
        save_dir: Directory containing model artifacts

    Returns:
        Fitted model ready for prediction
    """
    config_path = Path(save_dir) / ModelConfig.CONFIG_FILENAME
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}. Train and save a model first.")
    with open(config_path, 'r') as f:
        model_name = json.load(f).get('model_name')

    if model_name not in _NAME_TO_KEY:
        raise ValueError(f"Unknown model name in {config_path}: {model_name!r}")

    model = build_model(_NAME_TO_KEY[model_name])
    model.load(save_dir)
    return model


__all__ = [
    'BaseCoverModel',
    'MultinomialCoverModel',
    'DecisionTreeCoverModel',
    'BoostedTreeCoverModel',
    'MODEL_REGISTRY',
    'build_model',
    'load_model',
]
