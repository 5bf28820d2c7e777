"""
Plots of observed vs. predicted ground-cover compositions.

- scatter of observed vs. predicted fraction, one panel per class
- ternary diagram of three-class compositions, optionally joined as a transect path
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ground_cover.compositional_evaluation import (
    COVER_CLASS, OBSERVED, PREDICTED, SAMPLE_ID, TYPE,
    aggregate_rmse, per_class_rmse, to_ternary_frame,
)
from ground_cover.cste import ClassInfo, PlotConfig
from ground_cover.exceptions import ValidationError
from ground_cover.logger import get_logger

log = get_logger("visualization")

# Set plotting style
sns.set_style("whitegrid")
plt.rcParams['savefig.dpi'] = PlotConfig.DPI
plt.rcParams['font.size'] = 10

SQRT3_2 = np.sqrt(3.0) / 2.0


def _finish(fig: plt.Figure, save_path: Optional[Union[str, Path]]) -> Optional[plt.Figure]:
    """Save and close the figure if a path is given, else hand it back."""
    if save_path is None:
        return fig
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(save_path, bbox_inches='tight')
    plt.close(fig)
    log.info(f"Saved: {save_path}")
    return None


# ============================================================================
# SCATTER
# ============================================================================

def plot_observed_vs_predicted(
    errors: pd.DataFrame,
    save_path: Optional[Union[str, Path]] = None
) -> Optional[plt.Figure]:
    """
    Scatter observed vs. predicted fraction for each class with a 1:1 line.

    Args:
        errors: Error frame from compute_errors
        save_path: Output image path. If None the figure is returned open

    Returns:
        The figure when `save_path` is None
    """
    classes = list(pd.unique(errors[COVER_CLASS]))
    class_rmse = per_class_rmse(errors)

    fig, axes = plt.subplots(1, len(classes), figsize=PlotConfig.FIGSIZE_SCATTER, squeeze=False)
    for ax, cls in zip(axes[0], classes):
        subset = errors[errors[COVER_CLASS] == cls]
        sns.scatterplot(
            data=subset, x=OBSERVED, y=PREDICTED, ax=ax,
            s=PlotConfig.POINT_SIZE, alpha=PlotConfig.ALPHA,
            color=ClassInfo.CLASS_COLORS.get(cls, "tab:blue"), edgecolor=None
        )
        ax.plot([0, 1], [0, 1], linestyle='--', color='black', linewidth=1)
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.set_aspect('equal')
        ax.set_xlabel('Observed fraction')
        ax.set_ylabel('Predicted fraction')
        ax.set_title(f'{cls} (RMSE {class_rmse[cls]:.3f})', fontweight='bold')

    fig.suptitle(f'Observed vs predicted composition, pooled RMSE {aggregate_rmse(errors):.3f}')
    fig.tight_layout()
    return _finish(fig, save_path)


# ============================================================================
# TERNARY
# ============================================================================

def ternary_to_cartesian(fractions: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
    """
    Project three-class compositions onto an equilateral triangle.

    The first class sits at (0, 0), the second at (1, 0) and the third at
    (0.5, sqrt(3)/2). Rows are rescaled to sum to 1 before projecting.

    Args:
        fractions: Compositions, shape (N, 3)

    Returns:
        Cartesian coordinates, shape (N, 2)
    """
    values = np.asarray(fractions, dtype=np.float64)
    if values.ndim != 2 or values.shape[1] != 3:
        raise ValidationError(f"Ternary projection needs exactly 3 classes, got shape {values.shape}")

    totals = values.sum(axis=1)
    if (totals == 0).any():
        raise ValidationError("Cannot place a composition with zero total on a ternary diagram")
    values = values / totals[:, None]

    x = values[:, 1] + 0.5 * values[:, 2]
    y = SQRT3_2 * values[:, 2]
    return np.column_stack([x, y])


def _draw_triangle(ax: plt.Axes, classes) -> None:
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, SQRT3_2], [0.0, 0.0]])
    ax.plot(corners[:, 0], corners[:, 1], color='black', linewidth=1)

    #! Light gridlines at 20% steps for each class
    for step in np.arange(0.2, 1.0, 0.2):
        for k in range(3):
            start = np.zeros(3)
            end = np.zeros(3)
            start[k] = end[k] = step
            start[(k + 1) % 3] = 1 - step
            end[(k + 2) % 3] = 1 - step
            line = ternary_to_cartesian(np.vstack([start, end]))
            ax.plot(line[:, 0], line[:, 1], color='grey', linewidth=0.5, alpha=0.4)

    offsets = [(-0.04, -0.05), (0.04, -0.05), (0.0, 0.04)]
    for (cx, cy), (dx, dy), cls in zip(corners[:3], offsets, classes):
        ax.text(cx + dx, cy + dy, str(cls), ha='center', va='center', fontweight='bold')

    ax.set_xlim(-0.1, 1.1)
    ax.set_ylim(-0.1, SQRT3_2 + 0.1)
    ax.set_aspect('equal')
    ax.axis('off')


def transect_paths(
    sample_ids: Sequence,
    order: Optional[pd.Series] = None,
    groups: Optional[pd.Series] = None
) -> List[list]:
    """
    Split samples into paths, one per group, each sorted by position.

    Args:
        sample_ids: Samples to connect
        order: Position of each sample along its transect, indexed by sample id.
               Defaults to input order
        groups: Group (photo / transect) of each sample, indexed by sample id.
                Defaults to a single path

    Returns:
        List of sample id lists, groups in order of first appearance
    """
    ids = pd.Series(list(sample_ids))
    positions = ids.map(order) if order is not None else pd.Series(np.arange(len(ids)))
    if positions.isna().any():
        raise ValidationError("Path order is missing some sample ids")
    labels = ids.map(groups) if groups is not None else pd.Series(np.zeros(len(ids)))
    if labels.isna().any():
        raise ValidationError("Path groups are missing some sample ids")

    frame = pd.DataFrame({'sample_id': ids, 'position': positions, 'group': labels})
    paths = []
    for _, members in frame.groupby('group', sort=False):
        paths.append(members.sort_values('position', kind='mergesort')['sample_id'].tolist())
    return paths


def plot_ternary(
    errors: pd.DataFrame,
    connect: bool = False,
    order: Optional[pd.Series] = None,
    groups: Optional[pd.Series] = None,
    save_path: Optional[Union[str, Path]] = None
) -> Optional[plt.Figure]:
    """
    Ternary diagram of observed and predicted compositions.

    Args:
        errors: Error frame from compute_errors, with exactly 3 classes
        connect: Join samples as paths (e.g. along transects)
        order: Position of each sample along its path, indexed by sample id.
               Defaults to input order
        groups: Group of each sample, indexed by sample id. One path is drawn
                per group. Defaults to a single path
        save_path: Output image path. If None the figure is returned open

    Returns:
        The figure when `save_path` is None
    """
    ternary = to_ternary_frame(errors)
    classes = [col for col in ternary.columns if col not in (SAMPLE_ID, TYPE)]
    if len(classes) != 3:
        raise ValidationError(f"Ternary diagram needs exactly 3 classes, got {classes}")

    paths = []
    if connect:
        sample_ids = ternary.loc[ternary[TYPE] == OBSERVED, SAMPLE_ID]
        paths = transect_paths(sample_ids, order=order, groups=groups)

    fig, ax = plt.subplots(figsize=PlotConfig.FIGSIZE_TERNARY)
    _draw_triangle(ax, classes)

    styles = {
        OBSERVED: dict(marker='o', color='tab:blue'),
        PREDICTED: dict(marker='^', color='tab:orange'),
    }
    for point_type, style in styles.items():
        points = ternary[ternary[TYPE] == point_type].set_index(SAMPLE_ID)

        xy = ternary_to_cartesian(points[classes])
        ax.scatter(xy[:, 0], xy[:, 1], s=PlotConfig.POINT_SIZE * 2, alpha=PlotConfig.ALPHA,
                   label=point_type, **style)
        for path in paths:
            if len(path) < 2:
                continue
            path_xy = ternary_to_cartesian(points.loc[path, classes])
            ax.plot(path_xy[:, 0], path_xy[:, 1], color=style['color'], linewidth=0.8,
                    alpha=PlotConfig.ALPHA)

    ax.legend(loc='upper right', frameon=False)
    ax.set_title('Ground-cover composition', fontweight='bold')
    return _finish(fig, save_path)
