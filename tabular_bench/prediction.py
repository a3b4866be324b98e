# tabular_bench/prediction.py
"""Classification predictions.

A ``PredictionClassif`` holds, per row id, the true label (when known), the
predicted label and optionally one probability column per class.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .utils.exceptions import MeasureError, DataValidationError
from .utils.logger import get_logger

logger = get_logger(__name__)


class PredictionClassif:
    """Predictions of a classification learner.

    Example:
        >>> prediction = learner.predict(task, row_ids=test_ids)
        >>> prediction.confusion
        >>> prediction.score([msr("classif.ce"), msr("classif.auc")])
    """

    def __init__(
        self,
        row_ids: Sequence[Any],
        truth: Optional[Sequence[Any]],
        response: Sequence[Any],
        class_names: List[Any],
        prob: Optional[pd.DataFrame] = None,
        positive: Optional[Any] = None
    ) -> None:
        """Initialize a prediction.

        Args:
            row_ids: Row ids the predictions belong to
            truth: True labels, or None when unknown
            response: Predicted labels
            class_names: All class levels, positive class first for binary tasks
            prob: Optional class probabilities, one column per class
            positive: Positive class for binary tasks
        """
        n = len(row_ids)
        if len(response) != n:
            raise DataValidationError(
                f"Response has {len(response)} entries for {n} rows",
                error_code="PREDICTION_LENGTH_MISMATCH"
            )

        self.class_names = list(class_names)
        self.positive = positive
        self.row_ids = list(row_ids)

        if truth is None:
            truth = [np.nan] * n
        self.truth = pd.Series(pd.Categorical(np.asarray(truth, dtype=object), categories=self.class_names),
                               name="truth")
        self.response = pd.Series(pd.Categorical(np.asarray(response, dtype=object), categories=self.class_names),
                                  name="response")

        if prob is not None:
            prob = pd.DataFrame(prob).reset_index(drop=True)
            missing = [cls for cls in self.class_names if cls not in prob.columns]
            for cls in missing:
                prob[cls] = 0.0
            prob = prob[self.class_names].astype(float)
            if len(prob) != n:
                raise DataValidationError(
                    f"Probabilities have {len(prob)} rows for {n} predictions",
                    error_code="PREDICTION_LENGTH_MISMATCH"
                )
        self.prob = prob

    @property
    def predict_types(self) -> List[str]:
        return ["response", "prob"] if self.prob is not None else ["response"]

    def __len__(self) -> int:
        return len(self.row_ids)

    @property
    def has_truth(self) -> bool:
        return bool(self.truth.notna().any())

    def as_data_frame(self) -> pd.DataFrame:
        """Row ids, truth, response and ``prob.<class>`` columns."""
        df = pd.DataFrame({
            "row_ids": self.row_ids,
            "truth": self.truth.values,
            "response": self.response.values,
        })
        if self.prob is not None:
            for cls in self.class_names:
                df[f"prob.{cls}"] = self.prob[cls].values
        return df

    @property
    def confusion(self) -> pd.DataFrame:
        """Confusion matrix with predicted labels as rows and true labels as columns."""
        return pd.crosstab(
            self.response, self.truth, rownames=["response"], colnames=["truth"], dropna=False
        ).reindex(index=self.class_names, columns=self.class_names, fill_value=0)

    def score(self, measures: Optional[Sequence[Any]] = None) -> Dict[str, float]:
        """Score the prediction.

        Args:
            measures: Measures to compute; classification error by default

        Returns:
            Mapping of measure id to value
        """
        from .measures import msr

        if measures is None:
            measures = [msr("classif.ce")]
        elif not isinstance(measures, (list, tuple)):
            measures = [measures]
        return {m.id: m.score(self) for m in measures}

    def set_threshold(self, threshold: float) -> "PredictionClassif":
        """Relabel a binary prediction by thresholding the positive-class probability.

        Raises:
            MeasureError: If the prediction has no probabilities or is not binary
        """
        if self.prob is None:
            raise MeasureError("Thresholding needs probability predictions",
                               error_code="NO_PROBABILITIES")
        if len(self.class_names) != 2 or self.positive is None:
            raise MeasureError("Thresholding is only defined for binary predictions",
                               error_code="NOT_BINARY")
        if not 0.0 <= threshold <= 1.0:
            raise MeasureError(f"Threshold must be within [0, 1], got {threshold}",
                               error_code="INVALID_THRESHOLD")
        negative = [cls for cls in self.class_names if cls != self.positive][0]
        labels = np.where(self.prob[self.positive].values >= threshold, self.positive, negative)
        self.response = pd.Series(pd.Categorical(labels, categories=self.class_names), name="response")
        return self

    def filter(self, row_ids: Sequence[Any]) -> "PredictionClassif":
        """New prediction restricted to the given row ids."""
        wanted = set(row_ids)
        mask = np.array([rid in wanted for rid in self.row_ids], dtype=bool)
        return PredictionClassif(
            row_ids=[rid for rid, keep in zip(self.row_ids, mask) if keep],
            truth=self.truth[mask].values,
            response=self.response[mask].values,
            class_names=self.class_names,
            prob=self.prob[mask] if self.prob is not None else None,
            positive=self.positive,
        )

    def __repr__(self) -> str:
        return f"<PredictionClassif> for {len(self)} observations:\n{self.as_data_frame().head()}"


def combine_predictions(predictions: Sequence[PredictionClassif]) -> PredictionClassif:
    """Concatenate predictions, e.g. those of all resampling iterations.

    Raises:
        DataValidationError: If the list is empty
    """
    predictions = list(predictions)
    if not predictions:
        raise DataValidationError("No predictions to combine", error_code="EMPTY_PREDICTIONS")

    first = predictions[0]
    with_prob = all(p.prob is not None for p in predictions)
    return PredictionClassif(
        row_ids=[rid for p in predictions for rid in p.row_ids],
        truth=np.concatenate([p.truth.astype(object).values for p in predictions]),
        response=np.concatenate([p.response.astype(object).values for p in predictions]),
        class_names=first.class_names,
        prob=pd.concat([p.prob for p in predictions], ignore_index=True) if with_prob else None,
        positive=first.positive,
    )
