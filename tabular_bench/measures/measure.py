# tabular_bench/measures/measure.py
"""Performance measures for classification predictions.

Each measure wraps a scoring function from ``sklearn.metrics`` and knows
whether it is minimized, which prediction type it needs and whether it is
only defined for binary tasks.
"""

import warnings
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    fbeta_score,
    precision_score,
    recall_score,
    roc_auc_score,
)

from ..prediction import PredictionClassif
from ..utils.exceptions import ConfigurationError, MeasureError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Measure:
    """A performance measure.

    Args:
        id: Measure identifier, e.g. ``classif.ce``
        fun: Function ``(truth, response, prob, positive, **params) -> float``
        minimize: Whether lower values are better
        predict_type: ``response`` or ``prob``
        binary_only: Whether the measure is only defined for two classes
        average: ``macro`` (mean of per-iteration scores) or ``micro``
            (score of the pooled prediction) when aggregating resamplings
        range: Theoretical value range
        params: Extra parameters passed to ``fun``
    """

    def __init__(
        self,
        id: str,
        fun: Callable[..., float],
        minimize: bool,
        predict_type: str = "response",
        binary_only: bool = False,
        average: str = "macro",
        range: Tuple[float, float] = (0.0, 1.0),
        params: Optional[Dict[str, Any]] = None
    ) -> None:
        validate_parameter("predict_type", predict_type, valid_values=["response", "prob"])
        validate_parameter("average", average, valid_values=["macro", "micro"])
        self.id = id
        self.fun = fun
        self.minimize = minimize
        self.predict_type = predict_type
        self.binary_only = binary_only
        self.average = average
        self.range = range
        self.params = params or {}

    def score(self, prediction: PredictionClassif) -> float:
        """Compute the measure on a prediction.

        Rows without a true label are ignored. Returns NaN (with a warning)
        when the prediction lacks probabilities that the measure needs, or
        when the measure is undefined for the observed labels.

        Raises:
            MeasureError: If the prediction has no true labels, or a binary
                measure is applied to a multiclass prediction
        """
        mask = prediction.truth.notna().values
        if not mask.any():
            raise MeasureError(
                f"Measure '{self.id}' needs true labels, but the prediction has none",
                error_code="NO_TRUTH"
            )
        if self.binary_only and (len(prediction.class_names) != 2 or prediction.positive is None):
            raise MeasureError(
                f"Measure '{self.id}' is only defined for binary tasks",
                error_code="BINARY_MEASURE_ON_MULTICLASS",
                context={"classes": prediction.class_names}
            )
        if self.predict_type == "prob" and prediction.prob is None:
            logger.warning(f"Measure '{self.id}' needs predict_type 'prob'; returning NaN")
            return float("nan")

        truth = prediction.truth[mask].astype(object).values
        response = prediction.response[mask].astype(object).values
        prob = prediction.prob[mask].reset_index(drop=True) if prediction.prob is not None else None

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                value = self.fun(truth, response, prob, prediction.positive,
                                 classes=prediction.class_names, **self.params)
        except ValueError as e:
            logger.warning(f"Measure '{self.id}' is undefined here ({e}); returning NaN")
            return float("nan")
        return float(value)

    def __repr__(self) -> str:
        direction = "minimize" if self.minimize else "maximize"
        return f"<Measure:{self.id}> ({direction}, predict_type={self.predict_type})"


# ---------------------------------------------------------------------- #
# Scoring functions
# ---------------------------------------------------------------------- #
def _binary_counts(truth, response, positive) -> Tuple[int, int, int, int]:
    t = truth == positive
    r = response == positive
    tp = int(np.sum(t & r))
    fp = int(np.sum(~t & r))
    fn = int(np.sum(t & ~r))
    tn = int(np.sum(~t & ~r))
    return tp, fp, fn, tn


def _ratio(num: int, den: int) -> float:
    return num / den if den > 0 else float("nan")


def _ce(truth, response, prob, positive, **kwargs) -> float:
    return 1.0 - accuracy_score(truth, response)


def _acc(truth, response, prob, positive, **kwargs) -> float:
    return accuracy_score(truth, response)


def _bacc(truth, response, prob, positive, **kwargs) -> float:
    return balanced_accuracy_score(truth, response)


def _auc(truth, response, prob, positive, **kwargs) -> float:
    return roc_auc_score((truth == positive).astype(int), prob[positive].values)


def _bbrier(truth, response, prob, positive, **kwargs) -> float:
    return float(np.mean((prob[positive].values - (truth == positive).astype(float)) ** 2))


def _logloss(truth, response, prob, positive, eps=1e-15, **kwargs) -> float:
    columns = list(prob.columns)
    idx = np.array([columns.index(t) for t in truth])
    p_true = prob.values[np.arange(len(idx)), idx].astype(float)
    return float(-np.mean(np.log(np.clip(p_true, eps, 1 - eps))))


def _tpr(truth, response, prob, positive, **kwargs) -> float:
    tp, fp, fn, tn = _binary_counts(truth, response, positive)
    return _ratio(tp, tp + fn)


def _tnr(truth, response, prob, positive, **kwargs) -> float:
    tp, fp, fn, tn = _binary_counts(truth, response, positive)
    return _ratio(tn, tn + fp)


def _fpr(truth, response, prob, positive, **kwargs) -> float:
    tp, fp, fn, tn = _binary_counts(truth, response, positive)
    return _ratio(fp, fp + tn)


def _fnr(truth, response, prob, positive, **kwargs) -> float:
    tp, fp, fn, tn = _binary_counts(truth, response, positive)
    return _ratio(fn, fn + tp)


def _precision(truth, response, prob, positive, **kwargs) -> float:
    return precision_score(truth, response, pos_label=positive, zero_division=np.nan)


def _recall(truth, response, prob, positive, **kwargs) -> float:
    return recall_score(truth, response, pos_label=positive, zero_division=np.nan)


def _fbeta(truth, response, prob, positive, beta: float = 1.0, **kwargs) -> float:
    return fbeta_score(truth, response, beta=beta, pos_label=positive, zero_division=np.nan)


MEASURES: Dict[str, Callable[..., Measure]] = {
    "classif.ce": lambda: Measure("classif.ce", _ce, minimize=True),
    "classif.acc": lambda: Measure("classif.acc", _acc, minimize=False),
    "classif.bacc": lambda: Measure("classif.bacc", _bacc, minimize=False),
    "classif.auc": lambda: Measure("classif.auc", _auc, minimize=False,
                                   predict_type="prob", binary_only=True),
    "classif.bbrier": lambda: Measure("classif.bbrier", _bbrier, minimize=True,
                                      predict_type="prob", binary_only=True),
    "classif.logloss": lambda: Measure("classif.logloss", _logloss, minimize=True,
                                       predict_type="prob", range=(0.0, float("inf"))),
    "classif.tpr": lambda: Measure("classif.tpr", _tpr, minimize=False, binary_only=True),
    "classif.tnr": lambda: Measure("classif.tnr", _tnr, minimize=False, binary_only=True),
    "classif.fpr": lambda: Measure("classif.fpr", _fpr, minimize=True, binary_only=True),
    "classif.fnr": lambda: Measure("classif.fnr", _fnr, minimize=True, binary_only=True),
    "classif.precision": lambda: Measure("classif.precision", _precision, minimize=False,
                                         binary_only=True),
    "classif.recall": lambda: Measure("classif.recall", _recall, minimize=False, binary_only=True),
    "classif.fbeta": lambda beta=1.0: Measure("classif.fbeta", _fbeta, minimize=False,
                                              binary_only=True, params={"beta": beta}),
}


def msr(key: str, **params: Any) -> Measure:
    """Get a measure by key.

    Args:
        key: Measure key, e.g. ``classif.auc``
        **params: Measure parameters (``beta`` for ``classif.fbeta``),
            plus ``id`` and ``average`` overrides

    Raises:
        ConfigurationError: If the key or a parameter is unknown

    Example:
        >>> msr("classif.fbeta", beta=2)
    """
    if key not in MEASURES:
        raise ConfigurationError(
            f"Unknown measure: {key}. Available: {sorted(MEASURES)}",
            error_code="UNKNOWN_MEASURE"
        )
    measure_id = params.pop("id", None)
    average = params.pop("average", None)
    try:
        measure = MEASURES[key](**params)
    except TypeError as e:
        raise ConfigurationError(
            f"Invalid parameters for measure '{key}': {sorted(params)}",
            error_code="INVALID_MEASURE_PARAMS"
        ) from e
    if measure_id:
        measure.id = measure_id
    if average:
        validate_parameter("average", average, valid_values=["macro", "micro"])
        measure.average = average
    return measure


def msrs(keys) -> list:
    """Get several measures by key."""
    return [msr(key) for key in keys]


def as_measures(measures) -> list:
    """Normalize None, a key, a Measure, or a list of either into a list of measures."""
    if measures is None:
        return [msr("classif.ce")]
    if isinstance(measures, (str, Measure)):
        measures = [measures]
    return [msr(m) if isinstance(m, str) else m for m in measures]


def list_measures() -> pd.DataFrame:
    """Overview of the available measures."""
    rows = []
    for key, factory in sorted(MEASURES.items()):
        m = factory()
        rows.append({"key": key, "minimize": m.minimize, "predict_type": m.predict_type,
                     "binary_only": m.binary_only})
    return pd.DataFrame(rows)
