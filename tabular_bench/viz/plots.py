# tabular_bench/viz/plots.py
"""Plots of resampling, benchmark and learner results."""

from pathlib import Path
from typing import Any, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from sklearn.metrics import roc_curve

from ..benchmark import BenchmarkResult
from ..learners.base import Learner
from ..measures import as_measures
from ..prediction import PredictionClassif
from ..resampling import ResampleResult
from ..utils.exceptions import MeasureError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _finish(fig: plt.Figure, save_path: Optional[Union[str, Path]]) -> plt.Figure:
    fig.tight_layout()
    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info(f"Saved plot to {save_path}")
    return fig


def plot_resample_result(
    rr: ResampleResult,
    measure: Optional[Any] = None,
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """Boxplot of the per-iteration scores of a resample result."""
    measure = as_measures(measure)[0]
    scores = rr.score([measure])

    fig, ax = plt.subplots(figsize=(6, 5))
    sns.boxplot(y=scores[measure.id], ax=ax, color="lightsteelblue")
    sns.stripplot(y=scores[measure.id], ax=ax, color="black", size=4)
    ax.set_ylabel(measure.id)
    ax.set_title(f"{rr.learner_id} on {rr.task_id} ({rr.resampling_id}, {rr.iters} iterations)")
    ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_benchmark(
    bmr: BenchmarkResult,
    measure: Optional[Any] = None,
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """Boxplots of per-iteration scores, one per learner and one panel per task."""
    measure = as_measures(measure)[0]
    scores = bmr.score([measure])
    task_ids = bmr.task_ids

    fig, axes = plt.subplots(1, max(len(task_ids), 1), figsize=(6 * max(len(task_ids), 1), 5), squeeze=False)
    for ax, task_id in zip(axes[0], task_ids):
        data = scores[scores["task_id"] == task_id]
        sns.boxplot(data=data, x="learner_id", y=measure.id, ax=ax)
        ax.set_title(task_id)
        ax.set_xlabel("")
        ax.tick_params(axis="x", rotation=30)
        ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_importance(
    learner: Learner,
    top_n: int = 20,
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """Horizontal bar chart of the largest feature importance scores."""
    importance = learner.importance().head(top_n)
    frame = pd.DataFrame({"feature": importance.index, "importance": importance.values})

    fig, ax = plt.subplots(figsize=(8, max(3, 0.35 * len(frame) + 1)))
    sns.barplot(data=frame, x="importance", y="feature", ax=ax, color="steelblue")
    ax.set_title(f"Feature importance: {learner.id}")
    ax.set_ylabel("")
    return _finish(fig, save_path)


def plot_roc(
    prediction: PredictionClassif,
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """ROC curve of a binary probability prediction.

    Raises:
        MeasureError: If the prediction is not binary or lacks probabilities
    """
    if prediction.prob is None or prediction.positive is None:
        raise MeasureError(
            "ROC curves need binary predictions with probabilities",
            error_code="NO_PROBABILITIES"
        )
    mask = prediction.truth.notna().values
    truth = (prediction.truth[mask].astype(object).values == prediction.positive).astype(int)
    fpr, tpr, _ = roc_curve(truth, prediction.prob[prediction.positive].values[mask])
    auc = as_measures("classif.auc")[0].score(prediction)

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(fpr, tpr, linewidth=2, label=f"ROC Curve (AUC = {auc:.4f})")
    ax.plot([0, 1], [0, 1], 'k--', linewidth=1, label='Random Classifier')
    ax.set_xlabel('False Positive Rate')
    ax.set_ylabel('True Positive Rate')
    ax.set_title(f"ROC Curve (positive class: {prediction.positive})")
    ax.legend()
    ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_confusion(
    prediction: PredictionClassif,
    save_path: Optional[Union[str, Path]] = None
) -> plt.Figure:
    """Heatmap of the confusion matrix."""
    fig, ax = plt.subplots(figsize=(6, 5))
    sns.heatmap(prediction.confusion, annot=True, fmt='d', cmap='Blues', ax=ax)
    ax.set_title('Confusion Matrix')
    ax.set_xlabel('True Label')
    ax.set_ylabel('Predicted Label')
    return _finish(fig, save_path)
