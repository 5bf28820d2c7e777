"""
Evaluation of predicted vs. observed ground-cover compositions.

Observed and predicted compositions are compared class by class for every
sample. The per-(sample, class) squared errors are pooled into a single RMSE
and reshaped into long and ternary forms for plotting.

All functions are pure: inputs are never modified and results are new frames.
"""

import json
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Union

from ground_cover.cste import EvaluationConfig
from ground_cover.exceptions import EmptyInputError, ValidationError
from ground_cover.logger import get_logger

log = get_logger("compositional_evaluation")

SAMPLE_ID = "sample_id"
COVER_CLASS = "cover_class"
OBSERVED = EvaluationConfig.OBSERVED
PREDICTED = EvaluationConfig.PREDICTED
SQUARED_ERROR = "squared_error"
TYPE = "type"
FRACTION = "fraction"

ERROR_COLUMNS = [SAMPLE_ID, COVER_CLASS, OBSERVED, PREDICTED, SQUARED_ERROR]
LONG_FORM_COLUMNS = [SAMPLE_ID, COVER_CLASS, TYPE, FRACTION]

CompositionInput = Union[pd.DataFrame, Sequence[Mapping[str, float]]]


class ErrorRecord(NamedTuple):
    """Error of one class for one sample."""
    sample_id: Any
    cover_class: str
    observed: float
    predicted: float
    squared_error: float


@dataclass
class EvaluationResult:
    """Pooled RMSE plus the error records kept for plotting."""
    rmse: float
    errors: pd.DataFrame
    classes: List[str]
    per_class_rmse: Dict[str, float] = field(default_factory=dict)
    dominant_class_accuracy: float = float("nan")

    @property
    def n_samples(self) -> int:
        if self.errors.empty:
            return 0
        return int(_sample_rank(self.errors).max() + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the error records (JSON serializable)."""
        return {
            'rmse': float(self.rmse),
            'per_class_rmse': {cls: float(v) for cls, v in self.per_class_rmse.items()},
            'dominant_class_accuracy': float(self.dominant_class_accuracy),
            'n_samples': self.n_samples,
            'n_records': int(len(self.errors)),
            'classes': list(self.classes),
        }


# ============================================================================
# ERROR RECORDS
# ============================================================================

def _resolve_sample_ids(
    sample_ids: Optional[Sequence],
    observed: CompositionInput,
    n_samples: int
) -> List:
    """Pick explicit ids, else the DataFrame index, else positions."""
    if sample_ids is not None:
        sample_ids = list(sample_ids)
        if len(sample_ids) != n_samples:
            raise ValidationError(
                f"Got {len(sample_ids)} sample ids for {n_samples} samples"
            )
        return sample_ids
    if isinstance(observed, pd.DataFrame):
        return list(observed.index)
    return list(range(n_samples))


def _errors_from_frames(
    observed: pd.DataFrame,
    predicted: pd.DataFrame,
    sample_ids: List
) -> pd.DataFrame:
    """Vectorized path when both compositions are tables with one column per class."""
    classes = list(observed.columns)
    if set(classes) != set(predicted.columns):
        missing = sorted(set(classes) - set(predicted.columns))
        extra = sorted(set(predicted.columns) - set(classes))
        raise ValidationError(
            f"Class sets differ: missing from predicted {missing}, absent from observed {extra}"
        )

    obs = observed[classes].to_numpy(dtype=np.float64)
    pred = predicted[classes].to_numpy(dtype=np.float64)
    n_samples, n_classes = obs.shape

    #! Row-major ravel keeps sample order, then class order
    return pd.DataFrame({
        SAMPLE_ID: pd.Index(sample_ids).repeat(n_classes).to_numpy(),
        COVER_CLASS: np.tile(np.asarray(classes, dtype=object), n_samples),
        OBSERVED: obs.ravel(),
        PREDICTED: pred.ravel(),
        SQUARED_ERROR: ((pred - obs) ** 2).ravel(),
    }, columns=ERROR_COLUMNS)


def _errors_from_mappings(
    observed: Sequence[Mapping[str, float]],
    predicted: Sequence[Mapping[str, float]],
    sample_ids: List
) -> pd.DataFrame:
    """Per-sample path for sequences of class -> fraction mappings."""
    rows = []
    for sample_id, obs_vector, pred_vector in zip(sample_ids, observed, predicted):
        if set(obs_vector) != set(pred_vector):
            missing = sorted(set(obs_vector) - set(pred_vector))
            extra = sorted(set(pred_vector) - set(obs_vector))
            raise ValidationError(
                f"Class sets differ for sample {sample_id!r}: "
                f"missing from predicted {missing}, absent from observed {extra}"
            )
        for cls, obs_value in obs_vector.items():
            obs_value = np.float64(obs_value)
            pred_value = np.float64(pred_vector[cls])
            rows.append((sample_id, cls, obs_value, pred_value, (pred_value - obs_value) ** 2))

    return pd.DataFrame.from_records(rows, columns=ERROR_COLUMNS)


def compute_errors(
    observed: CompositionInput,
    predicted: CompositionInput,
    sample_ids: Optional[Sequence] = None
) -> pd.DataFrame:
    """
    Compute the squared error of every (sample, class) pair.

    Samples are paired by position: the i-th observed vector is compared with
    the i-th predicted vector.

    Args:
        observed: Observed compositions, a DataFrame (rows = samples,
                  columns = classes) or a sequence of class -> fraction mappings
        predicted: Predicted compositions, same length, order and class set
        sample_ids: Optional ids, one per sample. Defaults to the observed
                    DataFrame index, or to positions 0..N-1

    Returns:
        Error records with columns sample_id, cover_class, observed,
        predicted, squared_error; ordered by sample then class

    Raises:
        ValidationError: If lengths differ or a sample's class sets differ

    Example:
        >>> errs = compute_errors([{'grass': .6, 'sand': .3, 'dead': .1}],
        ...                       [{'grass': .5, 'sand': .3, 'dead': .2}])
        >>> # squared_error: grass=0.01, sand=0.0, dead=0.01
    """
    if len(observed) != len(predicted):
        raise ValidationError(
            f"Length mismatch: {len(observed)} observed vs {len(predicted)} predicted samples"
        )

    ids = _resolve_sample_ids(sample_ids, observed, len(observed))

    if isinstance(observed, pd.DataFrame) and isinstance(predicted, pd.DataFrame):
        return _errors_from_frames(observed, predicted, ids)

    if isinstance(observed, pd.DataFrame):
        observed = observed.to_dict(orient="records")
    if isinstance(predicted, pd.DataFrame):
        predicted = predicted.to_dict(orient="records")
    return _errors_from_mappings(observed, predicted, ids)


def iter_error_records(errors: pd.DataFrame) -> Iterator[ErrorRecord]:
    """Yield the rows of an error frame as ErrorRecord tuples."""
    for row in errors[ERROR_COLUMNS].itertuples(index=False, name=None):
        yield ErrorRecord(*row)


def _as_frame(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> pd.DataFrame:
    if isinstance(errors, pd.DataFrame):
        return errors
    return pd.DataFrame.from_records(
        [tuple(record) for record in errors], columns=ERROR_COLUMNS
    )


# ============================================================================
# AGGREGATES
# ============================================================================

def aggregate_rmse(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> float:
    """
    Pooled root mean squared error over all (sample, class) records.

    RMSE = sqrt(sum(squared_error) / count(records)). Errors of every class
    are pooled before averaging; this is not the mean of per-class RMSEs.

    Args:
        errors: Error frame from compute_errors, or an iterable of ErrorRecord

    Returns:
        RMSE as a float. NaN/Inf inputs propagate.

    Raises:
        EmptyInputError: If there are no records
    """
    if isinstance(errors, pd.DataFrame):
        squared = errors[SQUARED_ERROR].to_numpy(dtype=np.float64)
    else:
        squared = np.array([record.squared_error for record in errors], dtype=np.float64)

    if squared.size == 0:
        raise EmptyInputError("Cannot compute RMSE over zero error records")

    return float(np.sqrt(squared.sum(dtype=np.float64) / squared.size))


def per_class_rmse(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> pd.Series:
    """
    RMSE of each class taken separately (diagnostic, not the headline metric).

    Returns:
        Series indexed by class, in order of first appearance
    """
    frame = _as_frame(errors)
    if frame.empty:
        raise EmptyInputError("Cannot compute per-class RMSE over zero error records")

    mse = frame.groupby(COVER_CLASS, sort=False)[SQUARED_ERROR].mean()
    return np.sqrt(mse).rename("rmse")


def _sample_rank(frame: pd.DataFrame) -> np.ndarray:
    """
    Positional sample number of every record.

    The n-th record of a (sample_id, class) pair belongs to the n-th sample
    carrying that id, so repeated ids still count as separate samples.
    """
    occurrence = frame.groupby([SAMPLE_ID, COVER_CLASS], sort=False, dropna=False).cumcount()
    keys = pd.MultiIndex.from_arrays([frame[SAMPLE_ID], occurrence])
    return pd.factorize(keys)[0]


def _wide(frame: pd.DataFrame, value: str) -> pd.DataFrame:
    """Pivot one value column to one row per sample and one column per class."""
    if frame.duplicated([SAMPLE_ID, COVER_CLASS]).any():
        raise ValidationError("Sample ids must be unique to build per-sample tables")

    sample_order = pd.unique(frame[SAMPLE_ID])
    class_order = pd.unique(frame[COVER_CLASS])
    wide = frame.pivot(index=SAMPLE_ID, columns=COVER_CLASS, values=value)
    wide = wide.reindex(index=sample_order, columns=class_order)
    wide.columns.name = None
    return wide


def dominant_class_accuracy(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> float:
    """
    Fraction of samples whose most abundant predicted class is the observed one.

    Returns:
        Accuracy in [0, 1]
    """
    frame = _as_frame(errors)
    if frame.empty:
        raise EmptyInputError("Cannot compute accuracy over zero error records")

    ranked = frame.assign(_sample_rank=_sample_rank(frame))
    class_order = pd.unique(frame[COVER_CLASS])
    obs = ranked.pivot(index="_sample_rank", columns=COVER_CLASS, values=OBSERVED)
    pred = ranked.pivot(index="_sample_rank", columns=COVER_CLASS, values=PREDICTED)
    obs = obs.reindex(columns=class_order).to_numpy(dtype=np.float64)
    pred = pred.reindex(columns=class_order).to_numpy(dtype=np.float64)
    hits = obs.argmax(axis=1) == pred.argmax(axis=1)
    return float(hits.mean())


# ============================================================================
# RESHAPING FOR PLOTS
# ============================================================================

def to_long_form(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> pd.DataFrame:
    """
    Reshape error records to one row per (sample, class, type).

    For each sample, in input order, the K observed rows come first and the
    K predicted rows second; class order is preserved. With 3 classes each
    sample yields exactly 6 rows.

    Args:
        errors: Error frame from compute_errors, or an iterable of ErrorRecord

    Returns:
        Long-form frame with columns sample_id, cover_class, type, fraction
    """
    frame = _as_frame(errors).reset_index(drop=True)
    sample_rank = _sample_rank(frame)

    parts = []
    for type_rank, value in enumerate((OBSERVED, PREDICTED)):
        part = frame[[SAMPLE_ID, COVER_CLASS, value]].rename(columns={value: FRACTION})
        part[TYPE] = value
        part["_sample_rank"] = sample_rank
        part["_type_rank"] = type_rank
        part["_position"] = np.arange(len(frame))
        parts.append(part)

    long_form = pd.concat(parts, ignore_index=True)
    long_form = long_form.sort_values(
        ["_sample_rank", "_type_rank", "_position"], kind="mergesort"
    )
    return long_form[LONG_FORM_COLUMNS].reset_index(drop=True)


def to_ternary_frame(errors: Union[pd.DataFrame, Iterable[ErrorRecord]]) -> pd.DataFrame:
    """
    One row per (sample, type) with one column per class.

    This is the layout consumed by the ternary plot: each row is a point.

    Returns:
        Frame with columns sample_id, type, <class_1>, ..., <class_K>
    """
    frame = _as_frame(errors)
    parts = []
    for type_rank, value in enumerate((OBSERVED, PREDICTED)):
        wide = _wide(frame, value)
        part = wide.rename_axis(SAMPLE_ID).reset_index()
        part.insert(1, TYPE, value)
        part["_sample_rank"] = np.arange(len(part))
        part["_type_rank"] = type_rank
        parts.append(part)

    ternary = pd.concat(parts, ignore_index=True)
    ternary = ternary.sort_values(["_sample_rank", "_type_rank"], kind="mergesort")
    return ternary.drop(columns=["_sample_rank", "_type_rank"]).reset_index(drop=True)


# ============================================================================
# FULL EVALUATION
# ============================================================================

def evaluate(
    observed: CompositionInput,
    predicted: CompositionInput,
    sample_ids: Optional[Sequence] = None
) -> EvaluationResult:
    """
    Compute error records, pooled RMSE and per-class diagnostics in one call.

    Args:
        observed: Observed compositions
        predicted: Predicted compositions
        sample_ids: Optional sample ids

    Returns:
        EvaluationResult
    """
    errors = compute_errors(observed, predicted, sample_ids=sample_ids)
    rmse = aggregate_rmse(errors)
    class_rmse = per_class_rmse(errors)

    result = EvaluationResult(
        rmse=rmse,
        errors=errors,
        classes=[str(cls) for cls in class_rmse.index],
        per_class_rmse={str(cls): float(v) for cls, v in class_rmse.items()},
        dominant_class_accuracy=dominant_class_accuracy(errors),
    )
    log.info(f"Evaluated {result.n_samples} samples: RMSE={rmse:.4f}")
    return result


def save_evaluation_report(
    result: EvaluationResult,
    save_dir: str,
    model_name: str
) -> Path:
    """
    Save the evaluation summary to JSON and the error records to CSV.

    Args:
        result: Evaluation result
        save_dir: Directory to save the report
        model_name: Name of the model, used as file prefix

    Returns:
        Path of the JSON report
    """
    save_path = Path(save_dir)
    save_path.mkdir(parents=True, exist_ok=True)

    report_path = save_path / f'{model_name}_evaluation.json'
    with open(report_path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)

    errors_path = save_path / f'{model_name}_errors.csv'
    result.errors.to_csv(errors_path, index=False)

    log.info(f"Saved evaluation report to {report_path}")
    return report_path


def print_evaluation_summary(result: EvaluationResult) -> None:
    """Log a formatted evaluation summary."""
    log.info("=" * 50)
    log.info("EVALUATION SUMMARY")
    log.info("=" * 50)
    log.info(f"  Samples:        {result.n_samples}")
    log.info(f"  Pooled RMSE:    {result.rmse:.4f}")
    log.info(f"  Dominant class: {result.dominant_class_accuracy:.4f}")
    log.info("Per-Class RMSE:")
    for cls in result.classes:
        log.info(f"  {cls:<10} {result.per_class_rmse.get(cls, float('nan')):.4f}")
    log.info("=" * 50)
