"""
Constants and configuration for the ground-cover composition pipeline.
"""

from typing import Dict, List

# ============================================================================
# PATH CONFIGURATION
# ============================================================================
class GeneralConfig:
    """General project configuration."""
    RANDOM_SEED: int = 42
    NB_JOBS: int = 4  # Number of parallel jobs for model fitting
    TEST_SIZE: float = 0.2  # Fraction of groups held out for testing


class GeneralPath:
    """General project paths."""
    LOG_PATH: str = r".logs/"


class DataPath:
    """Data directory paths."""
    PIXEL_TABLE: str = r"data/tables/pixel_table.csv"
    PIXEL_TABLE_NEW: str = r"data/tables/new_pixels.csv"

    MODEL_DIR: str = r"data/models/"
    RESULT_PATH: str = r"data/results/"


class ResultPath:
    """Result output paths."""
    PREDICTION_CSV_PATH: str = r"data/results/predicted_composition.csv"


class CSVKeys:
    """Keys for pixel table columns."""
    SAMPLE_ID: str = "sample_id"
    GROUP_ID: str = "photo_id"  # photo / plot the pixel was cut from
    ORDER: str = "transect_position"  # optional, position along a transect
    LABEL: str = "label"  # optional, single-pixel class label


# ============================================================================
# CLASS DEFINITIONS
# ============================================================================

class ClassInfo:
    """Ground-cover class definitions and metadata."""

    # Class names double as the class-count column names of the pixel table /!\
    CLASS_NAMES: List[str] = ["grass", "sand", "dead"]
    NUM_CLASSES: int = len(CLASS_NAMES)

    # Matplotlib colors for visualization
    CLASS_COLORS: Dict[str, str] = {
        "grass": "#4daf4a",  # Green
        "sand": "#e6ab02",   # Ochre
        "dead": "#8c564b",   # Brown
    }


# ============================================================================
# MODEL PARAMETERS
# ============================================================================

class ModelConfig:
    """Default model hyper-parameters and persisted artifact names."""

    # Persisted artifacts (fixed filenames inside a model directory)
    MODEL_FILENAME: str = "cover_model.pkl"
    PREPROCESSOR_FILENAME: str = "preprocessor.pkl"
    CONFIG_FILENAME: str = "config.json"

    # Regularized multinomial regression
    LOGREG_CS: int = 10  # Number of inverse-regularization strengths tried by CV
    LOGREG_CV_FOLDS: int = 5
    LOGREG_MAX_ITER: int = 1000

    # Decision tree
    TREE_MAX_DEPTH: int = 8
    TREE_MIN_SAMPLES_LEAF: int = 20

    # Gradient boosted trees
    GBM_LEARNING_RATE: float = 0.1
    GBM_N_ESTIMATORS: int = 200
    GBM_MAX_DEPTH: int = 3
    GBM_SUBSAMPLE: float = 0.8


class EvaluationConfig:
    """Tolerances and labels used during evaluation."""
    SUM_TOLERANCE: float = 1e-6  # A composition must sum to 1 within this tolerance
    OBSERVED: str = "observed"
    PREDICTED: str = "predicted"


class PlotConfig:
    """Default plotting parameters."""
    DPI: int = 300
    POINT_SIZE: float = 12.0
    ALPHA: float = 0.6
    FIGSIZE_SCATTER: tuple = (12, 4)
    FIGSIZE_TERNARY: tuple = (7, 6.5)
