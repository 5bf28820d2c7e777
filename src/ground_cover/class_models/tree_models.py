"""Decision tree and gradient boosted tree models for cover composition."""

from typing import Sequence
from sklearn.ensemble import GradientBoostingClassifier
from sklearn.preprocessing import FunctionTransformer
from sklearn.tree import DecisionTreeClassifier

from ground_cover.class_models.base_model import BaseCoverModel, log
from ground_cover.cste import ClassInfo, GeneralConfig, ModelConfig


class DecisionTreeCoverModel(BaseCoverModel):
    """Single classification tree. Trees are scale invariant, so no scaling is applied."""

    def __init__(
        self,
        classes: Sequence[str] = ClassInfo.CLASS_NAMES,
        max_depth: int = ModelConfig.TREE_MAX_DEPTH,
        min_samples_leaf: int = ModelConfig.TREE_MIN_SAMPLES_LEAF,
        random_state: int = GeneralConfig.RANDOM_SEED
    ):
        """
        Initialize decision tree model.

        Args:
            classes: Ordered class names
            max_depth: Maximum depth of the tree
            min_samples_leaf: Minimum number of samples in a leaf
            random_state: Random seed for reproducibility
        """
        super().__init__(classes, 'DecisionTree')

        self.max_depth = max_depth
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state

        self.config = {
            'model_name': self.model_name,
            'classes': self.classes,
            'max_depth': max_depth,
            'min_samples_leaf': min_samples_leaf,
            'random_state': random_state
        }

        log.info(f"Initialized decision tree: depth={max_depth}, min leaf={min_samples_leaf}")

    def _build_preprocessor(self) -> FunctionTransformer:
        return FunctionTransformer()

    def _build_estimator(self) -> DecisionTreeClassifier:
        return DecisionTreeClassifier(
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state
        )


class BoostedTreeCoverModel(BaseCoverModel):
    """
    Gradient boosted classification trees.

    Stochastic boosting (subsample < 1) with a fixed seed, so refits on the
    same split are reproducible.
    """

    def __init__(
        self,
        classes: Sequence[str] = ClassInfo.CLASS_NAMES,
        learning_rate: float = ModelConfig.GBM_LEARNING_RATE,
        n_estimators: int = ModelConfig.GBM_N_ESTIMATORS,
        max_depth: int = ModelConfig.GBM_MAX_DEPTH,
        subsample: float = ModelConfig.GBM_SUBSAMPLE,
        random_state: int = GeneralConfig.RANDOM_SEED
    ):
        """
        Initialize gradient boosting model.

        Args:
            classes: Ordered class names
            learning_rate: Shrinkage applied to each tree
            n_estimators: Number of boosting stages
            max_depth: Maximum depth of each tree
            subsample: Fraction of rows drawn for each tree
            random_state: Random seed for reproducibility
        """
        super().__init__(classes, 'BoostedTree')

        self.learning_rate = learning_rate
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.subsample = subsample
        self.random_state = random_state

        self.config = {
            'model_name': self.model_name,
            'classes': self.classes,
            'learning_rate': learning_rate,
            'n_estimators': n_estimators,
            'max_depth': max_depth,
            'subsample': subsample,
            'random_state': random_state
        }

        log.info(
            f"Initialized gradient boosting: trees={n_estimators}, depth={max_depth}, "
            f"rate={learning_rate}"
        )

    def _build_preprocessor(self) -> FunctionTransformer:
        return FunctionTransformer()

    def _build_estimator(self) -> GradientBoostingClassifier:
        return GradientBoostingClassifier(
            learning_rate=self.learning_rate,
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            subsample=self.subsample,
            random_state=self.random_state
        )
