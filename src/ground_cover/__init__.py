"""
Ground-cover composition from drone and ground photographs
==========================================================

Modules:
    cste: constants and configuration
    composition: counts / labels / scores to compositions
    compositional_evaluation: per-class errors, pooled RMSE, plotting tables
    dataset_utils: pixel table loading and grouped train/test split
    class_models: multinomial regression, decision tree, boosted trees
    trainer: training and evaluation pipeline
    visualization: observed vs predicted scatter, ternary diagrams
"""

from .exceptions import (
    GroundCoverError,
    ValidationError,
    EmptyInputError,
    NotFittedError,
)

from .compositional_evaluation import (
    ErrorRecord,
    EvaluationResult,
    compute_errors,
    aggregate_rmse,
    to_long_form,
    to_ternary_frame,
    per_class_rmse,
    dominant_class_accuracy,
    evaluate,
)

from .composition import (
    counts_to_fractions,
    labels_to_counts,
    normalize_scores,
    check_composition,
)

__version__ = "0.1.0"
