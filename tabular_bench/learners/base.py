# tabular_bench/learners/base.py
"""Learner interface shared by all classification learners.

A learner is configured through hyperparameters, trained on (a row subset
of) a task, and produces ``PredictionClassif`` objects. Before training it
checks that the task is learnable: feature types must be supported and
missing values are only accepted by learners with the ``missings``
property.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..data.task import ClassificationTask
from ..prediction import PredictionClassif
from ..utils.error_handling import learner_operation_context
from ..utils.exceptions import ConfigurationError, DataValidationError, LearnerError, validate_parameter
from ..utils.logger import get_logger
from ..utils.timer import timed_operation

logger = get_logger(__name__)


@dataclass
class LearnerState:
    """Everything a trained learner remembers about its training task."""

    model: Any
    task_id: str
    target_name: str
    class_names: List[Any]
    positive: Optional[Any]
    feature_names: List[str]
    feature_types: Dict[str, str]
    levels: Dict[str, Tuple[List[Any], bool]] = field(default_factory=dict)
    n_train: int = 0
    train_time: float = 0.0


class Learner:
    """Base class for classification learners.

    Subclasses set ``key``, ``properties``, ``feature_types`` and
    ``default_params`` and implement ``_fit`` and ``_predict_frame``.
    Learners that work on whole tasks (pipelines, tuners) override
    ``_train`` and ``_predict`` instead.

    Example:
        >>> learner = lrn("classif.log_reg", predict_type="prob")
        >>> learner.train(task, row_ids=train_ids)
        >>> prediction = learner.predict(task, row_ids=test_ids)
    """

    key: str = "classif.base"
    properties: FrozenSet[str] = frozenset({"twoclass", "multiclass"})
    feature_types: FrozenSet[str] = frozenset({"logical", "integer", "numeric", "factor", "ordered"})
    predict_types: Tuple[str, ...] = ("response", "prob")
    default_params: Dict[str, Any] = {}

    def __init__(self, id: Optional[str] = None, predict_type: str = "response", **params: Any) -> None:
        """Initialize learner.

        Args:
            id: Learner identifier; defaults to the registry key
            predict_type: ``response`` (labels) or ``prob`` (labels and probabilities)
            **params: Hyperparameters

        Raises:
            ConfigurationError: If the predict type or a hyperparameter is invalid
        """
        self.id = id or self.key
        self._predict_type = "response"
        self.predict_type = predict_type
        self.param_values: Dict[str, Any] = dict(self.default_params)
        self.set_params(**params)
        self.state: Optional[LearnerState] = None

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #
    @property
    def predict_type(self) -> str:
        return self._predict_type

    @predict_type.setter
    def predict_type(self, value: str) -> None:
        validate_parameter("predict_type", value, valid_values=list(self.predict_types))
        self._predict_type = value

    def set_params(self, **params: Any) -> "Learner":
        """Update hyperparameters.

        Raises:
            ConfigurationError: If a parameter is unknown or out of range
        """
        unknown = sorted(k for k in params if k not in self.default_params)
        if unknown:
            raise ConfigurationError(
                f"Unknown hyperparameter(s) for learner '{self.id}': {unknown}. "
                f"Available: {sorted(self.default_params)}",
                error_code="UNKNOWN_HYPERPARAMETER"
            )
        self.param_values.update(params)
        self._validate_params()
        return self

    def _validate_params(self) -> None:
        pass

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    @property
    def model(self) -> Any:
        """The fitted model, None before training."""
        return self.state.model if self.state is not None else None

    @property
    def is_trained(self) -> bool:
        return self.state is not None

    def reset(self) -> "Learner":
        self.state = None
        return self

    def clone(self, deep: bool = True) -> "Learner":
        return copy.deepcopy(self) if deep else copy.copy(self)

    def _assert_trained(self) -> None:
        if self.state is None:
            raise LearnerError(
                f"Learner '{self.id}' has not been trained yet",
                error_code="LEARNER_NOT_TRAINED"
            )

    # ------------------------------------------------------------------ #
    # Training
    # ------------------------------------------------------------------ #
    def check_learnable(self, task: ClassificationTask, row_ids: Optional[Sequence[Any]] = None) -> None:
        """Check that this learner can be trained on the task rows.

        Raises:
            LearnerError: On unsupported feature types, missing values the
                learner cannot handle, or too many classes
        """
        types = task.feature_type_map()
        unsupported = {col: t for col, t in types.items() if t not in self.feature_types}
        if unsupported:
            raise LearnerError(
                f"Learner '{self.id}' does not support feature types "
                f"{sorted(set(unsupported.values()))} of column(s) {sorted(unsupported)}",
                error_code="UNSUPPORTED_FEATURE_TYPES",
                context={"task_id": task.id, "supported": sorted(self.feature_types)}
            )

        if len(task.class_names) > 2 and "multiclass" not in self.properties:
            raise LearnerError(
                f"Learner '{self.id}' only supports binary tasks, "
                f"task '{task.id}' has {len(task.class_names)} classes",
                error_code="MULTICLASS_NOT_SUPPORTED"
            )

        if "missings" not in self.properties and task.feature_names:
            features = task.data(rows=row_ids, cols=task.feature_names)
            counts = features.isna().sum()
            cols = list(counts[counts > 0].index)
            if cols:
                raise LearnerError(
                    f"Task '{task.id}' has missing values in column(s) {cols}, "
                    f"but learner '{self.id}' does not support this",
                    error_code="MISSINGS_NOT_SUPPORTED",
                    context={"task_id": task.id, "missing_counts": counts[counts > 0].to_dict()}
                )

    def train(self, task: ClassificationTask, row_ids: Optional[Sequence[Any]] = None) -> "Learner":
        """Train the learner on the task.

        Args:
            task: Task to train on
            row_ids: Rows to train on; all rows by default

        Returns:
            Self (trained)

        Raises:
            LearnerError: If the task is not learnable or fitting fails
        """
        rows = task.row_ids if row_ids is None else list(row_ids)
        self.check_learnable(task, rows)

        logger.debug(f"Training '{self.id}' on task '{task.id}' ({len(rows)} rows)")
        with timed_operation(f"{self.id}.train", log_result=False, track_performance=False) as timing:
            with learner_operation_context(
                "train", self.id, user_data={"task_id": task.id, "n_rows": len(rows)}
            ):
                model = self._train(task, rows)

        types = task.feature_type_map()
        levels = {}
        for col, ftype in types.items():
            if ftype in ("factor", "ordered"):
                dtype = task._data[col].dtype
                levels[col] = (list(dtype.categories), bool(dtype.ordered))

        self.state = LearnerState(
            model=model,
            task_id=task.id,
            target_name=task.target_name,
            class_names=task.class_names,
            positive=task.positive,
            feature_names=task.feature_names,
            feature_types=types,
            levels=levels,
            n_train=len(rows),
            train_time=timing['duration'],
        )
        return self

    def _train(self, task: ClassificationTask, rows: List[Any]) -> Any:
        data = task.data(rows=rows)
        y = data[task.target_name]
        if y.isna().any():
            raise DataValidationError(
                f"Target '{task.target_name}' has {int(y.isna().sum())} missing values in the training rows",
                error_code="MISSING_TARGET",
                context={"task_id": task.id}
            )
        return self._fit(data[task.feature_names], y)

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> Any:
        raise NotImplementedError()

    # ------------------------------------------------------------------ #
    # Prediction
    # ------------------------------------------------------------------ #
    def predict(self, task: ClassificationTask, row_ids: Optional[Sequence[Any]] = None) -> PredictionClassif:
        """Predict task rows.

        Args:
            task: Task holding the rows to predict
            row_ids: Rows to predict; all rows by default

        Returns:
            Prediction, with probabilities if ``predict_type`` is ``prob``

        Raises:
            LearnerError: If the learner is untrained or prediction fails
        """
        self._assert_trained()
        rows = task.row_ids if row_ids is None else list(row_ids)
        with learner_operation_context(
            "predict", self.id, user_data={"task_id": task.id, "n_rows": len(rows)}
        ):
            return self._predict(task, rows)

    def _predict(self, task: ClassificationTask, rows: List[Any]) -> PredictionClassif:
        X = task.data(rows=rows, cols=self.state.feature_names)
        response, prob = self._predict_frame(X)
        return self._new_prediction(rows, task.truth(rows).values, response, prob)

    def _predict_frame(self, X: pd.DataFrame) -> Tuple[np.ndarray, Optional[pd.DataFrame]]:
        raise NotImplementedError()

    def _new_prediction(self, rows, truth, response, prob) -> PredictionClassif:
        return PredictionClassif(
            row_ids=rows,
            truth=truth,
            response=response,
            class_names=self.state.class_names,
            prob=prob if self.predict_type == "prob" else None,
            positive=self.state.positive,
        )

    def predict_newdata(self, newdata: pd.DataFrame) -> PredictionClassif:
        """Predict a new data table.

        Columns are cast to the types seen in training; factor levels not
        seen in training become missing. If the table contains the target
        it is used as truth.

        Raises:
            LearnerError: If the learner is untrained
            DataValidationError: If training features are missing
        """
        self._assert_trained()
        return self.predict(self._newdata_task(newdata))

    def _newdata_task(self, newdata: pd.DataFrame) -> ClassificationTask:
        s = self.state
        missing = [col for col in s.feature_names if col not in newdata.columns]
        if missing:
            raise DataValidationError(
                f"New data lacks the training feature(s) {missing}",
                error_code="MISSING_FEATURES",
                context={"learner_id": self.id}
            )

        df = newdata[s.feature_names].reset_index(drop=True).copy()
        for col, ftype in s.feature_types.items():
            if col in s.levels:
                levels, ordered = s.levels[col]
                df[col] = pd.Categorical(df[col].astype(object), categories=levels, ordered=ordered)
            elif ftype in ("numeric", "integer") and not pd.api.types.is_numeric_dtype(df[col]):
                df[col] = pd.to_numeric(df[col], errors="coerce")

        if s.target_name in newdata.columns:
            truth = newdata[s.target_name].astype(object).values
        else:
            truth = [np.nan] * len(df)
        df[s.target_name] = pd.Categorical(truth, categories=s.class_names)

        return ClassificationTask(f"{s.task_id}.newdata", df, s.target_name, positive=s.positive)

    # ------------------------------------------------------------------ #
    # Importance
    # ------------------------------------------------------------------ #
    def importance(self) -> pd.Series:
        """Feature importance scores, largest first.

        Raises:
            LearnerError: If the learner provides no importance or is untrained
        """
        if "importance" not in self.properties:
            raise LearnerError(
                f"Learner '{self.id}' does not provide feature importance",
                error_code="NO_IMPORTANCE"
            )
        self._assert_trained()
        with learner_operation_context("importance", self.id):
            scores = self._importance()
        return scores.sort_values(ascending=False)

    def _importance(self) -> pd.Series:
        raise NotImplementedError()

    def __repr__(self) -> str:
        state = "trained" if self.is_trained else "untrained"
        params = ", ".join(f"{k}={v}" for k, v in self.param_values.items() if v is not None)
        return (
            f"<{type(self).__name__}:{self.id}> ({state})\n"
            f"* Params: {params or '-'}\n"
            f"* Predict Type: {self.predict_type}\n"
            f"* Feature types: {', '.join(sorted(self.feature_types))}\n"
            f"* Properties: {', '.join(sorted(self.properties))}"
        )
