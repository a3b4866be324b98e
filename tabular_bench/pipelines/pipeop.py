# tabular_bench/pipelines/pipeop.py
"""Pipeline operators.

A ``PipeOp`` maps a list of inputs to a list of outputs, once in training
and once in prediction. Whatever it learns in ``train`` is kept in
``state`` and applied unchanged in ``predict``. Inputs and outputs are
tasks, except for the learner operator which outputs predictions.
"""

import copy
from typing import Any, Dict, List, Optional

import pandas as pd

from ..data.task import ClassificationTask
from ..learners.base import Learner
from ..utils.error_handling import pipeline_operation_context
from ..utils.exceptions import ConfigurationError, PipelineError
from ..utils.logger import get_logger
from .selectors import Selector

logger = get_logger(__name__)

VARIADIC = -1


class PipeOp:
    """Base class for pipeline operators.

    Subclasses set ``key``, ``n_inputs`` (``VARIADIC`` for any number),
    ``default_params`` and implement ``_train`` and ``_predict``.
    """

    key: str = "base"
    n_inputs: int = 1
    default_params: Dict[str, Any] = {}

    def __init__(self, id: Optional[str] = None, **params: Any) -> None:
        self.id = id or self.key
        self.param_values: Dict[str, Any] = dict(self.default_params)
        self.set_params(**params)
        self.state: Optional[Dict[str, Any]] = None

    def set_params(self, **params: Any) -> "PipeOp":
        """Update parameters.

        Raises:
            ConfigurationError: If a parameter is unknown
        """
        unknown = sorted(k for k in params if k not in self.default_params)
        if unknown:
            raise ConfigurationError(
                f"Unknown parameter(s) for PipeOp '{self.id}': {unknown}. "
                f"Available: {sorted(self.default_params)}",
                error_code="UNKNOWN_PIPEOP_PARAMETER"
            )
        self.param_values.update(params)
        return self

    @property
    def is_trained(self) -> bool:
        return self.state is not None

    @property
    def is_variadic(self) -> bool:
        return self.n_inputs == VARIADIC

    def _check_inputs(self, inputs: List[Any]) -> None:
        if not self.is_variadic and len(inputs) != self.n_inputs:
            raise PipelineError(
                f"PipeOp '{self.id}' expects {self.n_inputs} input(s), got {len(inputs)}",
                error_code="INPUT_COUNT_MISMATCH"
            )
        if self.is_variadic and not inputs:
            raise PipelineError(f"PipeOp '{self.id}' received no inputs", error_code="INPUT_COUNT_MISMATCH")

    def train(self, inputs: List[Any]) -> List[Any]:
        """Learn the operator state from the inputs and return the transformed inputs."""
        self._check_inputs(inputs)
        logger.debug(f"Training PipeOp '{self.id}'")
        with pipeline_operation_context("train", self.id):
            return self._train(inputs)

    def predict(self, inputs: List[Any]) -> List[Any]:
        """Apply the trained state to the inputs.

        Raises:
            PipelineError: If the operator has not been trained
        """
        if not self.is_trained:
            raise PipelineError(
                f"PipeOp '{self.id}' must be trained before predicting",
                error_code="PIPEOP_NOT_TRAINED"
            )
        self._check_inputs(inputs)
        with pipeline_operation_context("predict", self.id):
            return self._predict(inputs)

    def _train(self, inputs: List[Any]) -> List[Any]:
        raise NotImplementedError()

    def _predict(self, inputs: List[Any]) -> List[Any]:
        raise NotImplementedError()

    def reset(self) -> "PipeOp":
        self.state = None
        return self

    def clone(self) -> "PipeOp":
        return copy.deepcopy(self)

    def __rshift__(self, other: Any):
        from .graph import concat_graphs
        return concat_graphs(self, other)

    def __rrshift__(self, other: Any):
        from .graph import concat_graphs
        return concat_graphs(other, self)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.param_values.items() if v is not None)
        state = "trained" if self.is_trained else "not trained"
        return f"<{type(self).__name__}:{self.id}> ({state}) {params}"


class PipeOpTaskPreproc(PipeOp):
    """Operator transforming the features of a single task.

    The ``affect_columns`` selector (all features by default) picks the
    columns the operator works on; it is evaluated during training only and
    the chosen columns are stored in ``state["affect_columns"]``.
    """

    default_params: Dict[str, Any] = {"affect_columns": None}

    def _affected(self, task: ClassificationTask) -> List[str]:
        selector = self.param_values.get("affect_columns")
        if selector is None:
            return task.feature_names
        if isinstance(selector, Selector) or callable(selector):
            return selector(task)
        return [col for col in task.feature_names if col in set(selector)]

    def _train(self, inputs: List[Any]) -> List[Any]:
        task = inputs[0]
        self.state = {"affect_columns": self._affected(task)}
        features = task.data(cols=task.feature_names)
        return [task.with_features(self._train_features(features))]

    def _predict(self, inputs: List[Any]) -> List[Any]:
        task = inputs[0]
        missing = [col for col in self.state["affect_columns"] if col not in task.feature_names]
        if missing:
            raise PipelineError(
                f"PipeOp '{self.id}' was trained with column(s) {missing} that are absent at prediction",
                error_code="MISSING_COLUMNS"
            )
        features = task.data(cols=task.feature_names)
        return [task.with_features(self._predict_features(features))]

    def _train_features(self, features: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError()

    def _predict_features(self, features: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError()


class PipeOpNOP(PipeOp):
    """Passes its input through unchanged."""

    key = "nop"
    default_params: Dict[str, Any] = {}

    def _train(self, inputs):
        self.state = {}
        return inputs

    def _predict(self, inputs):
        return inputs


class PipeOpFeatureUnion(PipeOp):
    """Column-bind the features of several tasks with the same rows and target.

    Columns appearing in several inputs are kept once when identical and
    rejected otherwise.
    """

    key = "featureunion"
    n_inputs = VARIADIC
    default_params: Dict[str, Any] = {}

    def _union(self, tasks: List[ClassificationTask]) -> List[ClassificationTask]:
        first = tasks[0]
        for other in tasks[1:]:
            if other.target_name != first.target_name or other.row_ids != first.row_ids:
                raise PipelineError(
                    f"PipeOp '{self.id}' needs inputs with identical rows and target",
                    error_code="INCOMPATIBLE_INPUTS"
                )

        columns: Dict[str, pd.Series] = {}
        for task in tasks:
            features = task.data(cols=task.feature_names)
            for col in features.columns:
                if col in columns:
                    if not columns[col].equals(features[col]):
                        raise PipelineError(
                            f"Feature '{col}' is produced by several inputs of '{self.id}' with different values",
                            error_code="DUPLICATE_FEATURE"
                        )
                    continue
                columns[col] = features[col]

        union = pd.DataFrame(columns, index=first.data(cols=[]).index)
        return [first.with_features(union)]

    def _train(self, inputs):
        self.state = {"n_inputs": len(inputs)}
        return self._union(inputs)

    def _predict(self, inputs):
        return self._union(inputs)


class PipeOpLearner(PipeOp):
    """Wraps a learner: training fits it and yields no output, prediction yields its prediction."""

    key = "learner"
    default_params: Dict[str, Any] = {}

    def __init__(self, learner: Learner, id: Optional[str] = None) -> None:
        if not isinstance(learner, Learner):
            raise PipelineError(
                f"PipeOpLearner needs a Learner, got {type(learner).__name__}",
                error_code="INVALID_LEARNER"
            )
        self.learner = learner.clone()
        self.id = id or learner.id
        self.state = None

    @property
    def param_values(self) -> Dict[str, Any]:
        return self.learner.param_values

    def set_params(self, **params: Any) -> "PipeOpLearner":
        self.learner.set_params(**params)
        return self

    def _train(self, inputs):
        self.learner.train(inputs[0])
        self.state = {"learner_state": self.learner.state}
        return [None]

    def _predict(self, inputs):
        return [self.learner.predict(inputs[0])]

    def reset(self) -> "PipeOpLearner":
        self.learner.reset()
        return super().reset()
