"""Regularized multinomial logistic regression for cover composition."""

from typing import Sequence
from sklearn.linear_model import LogisticRegressionCV

from ground_cover.class_models.base_model import BaseCoverModel, log
from ground_cover.cste import ClassInfo, GeneralConfig, ModelConfig


class MultinomialCoverModel(BaseCoverModel):
    """
    Multinomial logistic regression with an L2 penalty chosen by cross-validation.

    Predictors are standardized first so that one penalty strength applies
    evenly to all coefficients.
    """

    def __init__(
        self,
        classes: Sequence[str] = ClassInfo.CLASS_NAMES,
        Cs: int = ModelConfig.LOGREG_CS,
        cv: int = ModelConfig.LOGREG_CV_FOLDS,
        max_iter: int = ModelConfig.LOGREG_MAX_ITER,
        n_jobs: int = GeneralConfig.NB_JOBS,
        random_state: int = GeneralConfig.RANDOM_SEED
    ):
        """
        Initialize multinomial model.

        Args:
            classes: Ordered class names
            Cs: Number of inverse regularization strengths tried (log grid)
            cv: Number of cross-validation folds
            max_iter: Maximum solver iterations
            n_jobs: Number of parallel jobs for cross-validation
            random_state: Random seed for reproducibility
        """
        super().__init__(classes, 'Multinomial')

        self.Cs = Cs
        self.cv = cv
        self.max_iter = max_iter
        self.n_jobs = n_jobs
        self.random_state = random_state

        #! Store configuration
        self.config = {
            'model_name': self.model_name,
            'classes': self.classes,
            'Cs': Cs,
            'cv': cv,
            'max_iter': max_iter,
            'n_jobs': n_jobs,
            'random_state': random_state
        }

        log.info(f"Initialized multinomial regression: Cs={Cs}, folds={cv}")

    def _build_estimator(self) -> LogisticRegressionCV:
        return LogisticRegressionCV(
            Cs=self.Cs,
            cv=self.cv,
            max_iter=self.max_iter,
            n_jobs=self.n_jobs,
            random_state=self.random_state
        )
