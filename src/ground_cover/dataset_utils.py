"""Dataset utilities for labelled pixel tables."""

import numpy as np
import pandas as pd
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from sklearn.model_selection import GroupShuffleSplit

from ground_cover.composition import counts_to_fractions, labels_to_counts
from ground_cover.cste import ClassInfo, CSVKeys, GeneralConfig
from ground_cover.logger import get_logger

log = get_logger("dataset_utils")


class PixelDataset:
    """
    Table of labelled pixels (or pixel aggregates) with their predictors.

    Each row is one sample: an id, the photo it comes from, numeric
    predictors, and ground truth given either as one count column per class
    or as a single class label column.
    """

    def __init__(
        self,
        source: Union[str, pd.DataFrame],
        classes: Sequence[str] = ClassInfo.CLASS_NAMES,
        exclude_columns: Iterable[str] = (),
        label_column: Optional[str] = None
    ):
        """
        Initialize dataset.

        Args:
            source: Path to a CSV pixel table, or an already loaded DataFrame
            classes: Ordered class names (count column names)
            exclude_columns: Numeric columns that must not be used as predictors
            label_column: Column holding a single class label per sample.
                          If None, one count column per class is required
        """
        if isinstance(source, pd.DataFrame):
            self.df = source.reset_index(drop=True)
        else:
            self.df = pd.read_csv(source)
        self.classes = list(classes)
        self.exclude_columns = list(exclude_columns)
        self.label_column = label_column

        #! Validate required columns
        required_cols = {CSVKeys.SAMPLE_ID, CSVKeys.GROUP_ID}
        if label_column is None:
            required_cols |= set(self.classes)
        else:
            required_cols.add(label_column)
        if not required_cols.issubset(self.df.columns):
            missing = sorted(required_cols - set(self.df.columns))
            raise ValueError(f"Pixel table is missing columns: {missing}")

        if self.df[CSVKeys.SAMPLE_ID].duplicated().any():
            raise ValueError(f"Column '{CSVKeys.SAMPLE_ID}' must be unique")

        unknown = sorted(set(self.exclude_columns) - set(self.df.columns))
        if unknown:
            log.warning(f"Excluded columns not found in table: {unknown}")

        log.info(f"Loaded dataset with {len(self.df)} samples")
        log.info(f"Classes: {self.classes}, predictors: {len(self.feature_columns)}")

    def __len__(self) -> int:
        """Return number of samples."""
        return len(self.df)

    @property
    def feature_columns(self) -> List[str]:
        """Numeric predictor columns (ids, ground truth and exclusions removed)."""
        reserved = {CSVKeys.SAMPLE_ID, CSVKeys.GROUP_ID, CSVKeys.ORDER}
        reserved |= set(self.classes) | set(self.exclude_columns)
        if self.label_column is not None:
            reserved.add(self.label_column)

        numeric = self.df.select_dtypes(include=[np.number]).columns
        return [col for col in numeric if col not in reserved]

    @property
    def sample_ids(self) -> pd.Series:
        return self.df[CSVKeys.SAMPLE_ID]

    @property
    def groups(self) -> pd.Series:
        return self.df[CSVKeys.GROUP_ID]

    @property
    def order(self) -> Optional[pd.Series]:
        """Position along a transect, if the table has one."""
        if CSVKeys.ORDER in self.df.columns:
            return self.df[CSVKeys.ORDER]
        return None

    @property
    def features(self) -> pd.DataFrame:
        """Predictors, shape (N, F)."""
        return self.df[self.feature_columns]

    @property
    def counts(self) -> pd.DataFrame:
        """Class counts, shape (N, K), indexed by sample id."""
        if self.label_column is not None:
            counts = labels_to_counts(self.df[self.label_column], self.classes)
        else:
            counts = self.df[self.classes]
        return counts.set_axis(self.sample_ids.to_numpy(), axis=0)

    @property
    def observed_fractions(self) -> pd.DataFrame:
        """Observed composition, shape (N, K), indexed by sample id."""
        return counts_to_fractions(self.counts)

    def subset(self, indices: Sequence[int]) -> "PixelDataset":
        """
        Rows at the given positions as a new dataset.

        Args:
            indices: Positional row indices

        Returns:
            PixelDataset sharing the same configuration
        """
        return PixelDataset(
            self.df.iloc[list(indices)],
            classes=self.classes,
            exclude_columns=self.exclude_columns,
            label_column=self.label_column
        )


def expand_counts(
    features: pd.DataFrame,
    counts: pd.DataFrame
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Expand count-valued samples into weighted single-label rows.

    Each sample is repeated once per class with a non-zero count, labelled
    with that class and weighted by the count. Fitting a classifier on these
    rows with `sample_weight` is equivalent to fitting the multinomial
    count response directly.

    Args:
        features: Predictors, shape (N, F)
        counts: Class counts, shape (N, K)

    Returns:
        Tuple of (X, y, sample_weight)
        - X: shape (M, F)
        - y: class names, shape (M,)
        - sample_weight: counts, shape (M,)
    """
    if len(features) != len(counts):
        raise ValueError(f"Length mismatch: {len(features)} feature rows vs {len(counts)} count rows")

    X_all = features.to_numpy(dtype=np.float64)
    count_values = counts.to_numpy(dtype=np.float64)
    classes = np.asarray(counts.columns, dtype=object)

    #! Row-major nonzero keeps samples together
    rows, cols = np.nonzero(count_values > 0)
    X = X_all[rows]
    y = classes[cols]
    sample_weight = count_values[rows, cols]

    log.info(f"Expanded {len(features)} samples into {len(X)} weighted rows")
    return X, y, sample_weight


def grouped_train_test_split(
    dataset: PixelDataset,
    test_size: float = GeneralConfig.TEST_SIZE,
    random_state: int = GeneralConfig.RANDOM_SEED
) -> Tuple[PixelDataset, PixelDataset]:
    """
    Split a dataset so that no photo contributes to both train and test.

    Args:
        dataset: Full dataset
        test_size: Fraction of groups held out for testing
        random_state: Seed for reproducibility

    Returns:
        Tuple of (train_dataset, test_dataset)
    """
    splitter = GroupShuffleSplit(n_splits=1, test_size=test_size, random_state=random_state)
    train_idx, test_idx = next(splitter.split(dataset.features, groups=dataset.groups))

    train_dataset = dataset.subset(train_idx)
    test_dataset = dataset.subset(test_idx)

    log.info(
        f"Train samples: {len(train_dataset)} ({train_dataset.groups.nunique()} groups), "
        f"Test samples: {len(test_dataset)} ({test_dataset.groups.nunique()} groups)"
    )
    return train_dataset, test_dataset
