# tabular_bench/tuning/tuner.py
"""Hyperparameter tuning with Optuna.

Each trial sets the suggested hyperparameters on a clone of the learner and
resamples it. The resampling is instantiated once before the first trial,
so all configurations are compared on identical splits.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

import pandas as pd

from ..data.task import ClassificationTask
from ..learners.base import Learner
from ..measures import Measure, as_measures
from ..prediction import PredictionClassif
from ..resampling import Resampling, resample
from ..utils.exceptions import ConfigurationError, TabularBenchError, TuningError, handle_and_reraise, validate_parameter
from ..utils.logger import get_logger
from ..utils.timer import timed_operation

logger = get_logger(__name__)

try:
    import optuna

    _OPTUNA_AVAILABLE = True
except Exception:  # pragma: no cover - optional dependency
    optuna = None
    _OPTUNA_AVAILABLE = False


@dataclass
class TuningResult:
    """Outcome of a tuning run."""

    learner_id: str
    measure_id: str
    minimize: bool
    best_params: Dict[str, Any]
    best_score: float
    archive: pd.DataFrame = field(repr=False)
    n_trials: int = 0

    def __repr__(self) -> str:
        return (
            f"<TuningResult:{self.learner_id}> best {self.measure_id}={self.best_score:.4f} "
            f"after {self.n_trials} trials with {self.best_params}"
        )


def _get_sampler(sampler: str, seed: Optional[int], n_trials: int):
    if sampler == "tpe":
        return optuna.samplers.TPESampler(seed=seed, n_startup_trials=max(1, min(10, n_trials // 2)))
    return optuna.samplers.RandomSampler(seed=seed)


def _log_trial_callback(study, trial) -> None:
    if trial.value is not None:
        logger.debug(f"Trial {trial.number} completed: value={trial.value:.4f} params={trial.params}")


def tune(
    learner: Learner,
    task: ClassificationTask,
    resampling: Resampling,
    search_space: Dict[str, Any],
    measure: Optional[Any] = None,
    n_trials: int = 20,
    sampler: str = "tpe",
    seed: Optional[int] = None,
    timeout: Optional[float] = None
) -> TuningResult:
    """Search hyperparameters of a learner.

    Args:
        learner: Learner to tune; it is not modified
        task: Task to tune on
        resampling: Resampling scheme used to evaluate each configuration
        search_space: Parameter name to ``p_int``/``p_dbl``/``p_fct`` range;
            graph learners take ``<op id>.<param>`` names
        measure: Measure to optimize; classification error by default
        n_trials: Number of configurations to evaluate
        sampler: ``tpe`` or ``random``
        seed: Seed for the sampler and the resampling
        timeout: Optional time budget in seconds

    Returns:
        TuningResult

    Raises:
        ConfigurationError: If optuna is missing or the search space is empty
        TuningError: If no trial produced a score

    Example:
        >>> result = tune(lrn("classif.rpart"), task, rsmp("cv", folds=3),
        ...               {"cp": p_dbl(1e-3, 0.1, log=True), "minsplit": p_int(2, 30)},
        ...               measure=msr("classif.ce"), n_trials=10, seed=1)
    """
    if not _OPTUNA_AVAILABLE:
        raise ConfigurationError(
            "Optuna is required for tuning. Install with: pip install optuna",
            error_code="OPTUNA_NOT_AVAILABLE"
        )
    if not search_space:
        raise ConfigurationError("The search space is empty", error_code="EMPTY_SEARCH_SPACE")
    validate_parameter("n_trials", n_trials, min_value=1)
    validate_parameter("sampler", sampler, valid_values=["tpe", "random"])

    measure: Measure = as_measures(measure)[0]
    worst = math.inf if measure.minimize else -math.inf
    if resampling.is_instantiated:
        resampling.check_task(task)
        instance = resampling
    else:
        instance = resampling.clone().instantiate(task, seed=seed)

    def objective(trial) -> float:
        params = {name: space.suggest(trial, name) for name, space in search_space.items()}
        candidate = learner.clone().reset()
        candidate.set_params(**params)
        value = resample(task, candidate, instance).aggregate([measure])[measure.id]
        trial.set_user_attr("score", float(value))
        return worst if math.isnan(value) else float(value)

    optuna.logging.set_verbosity(optuna.logging.WARNING)
    study = optuna.create_study(
        direction="minimize" if measure.minimize else "maximize",
        sampler=_get_sampler(sampler, seed, n_trials),
    )

    logger.info(f"Tuning '{learner.id}' on '{task.id}': {n_trials} trials, {measure.id}, sampler={sampler}")
    with timed_operation(f"tune {learner.id}", log_result=False) as timing:
        try:
            study.optimize(objective, n_trials=n_trials, timeout=timeout, callbacks=[_log_trial_callback])
        except TabularBenchError:
            raise
        except Exception as e:
            handle_and_reraise(
                e, TuningError, "Hyperparameter optimization failed",
                error_code="OPTIMIZATION_FAILED",
                context={"learner_id": learner.id, "n_trials": n_trials}
            )

    completed = [t for t in study.trials if t.value is not None]
    if not completed or all(math.isinf(t.value) for t in completed):
        raise TuningError(
            f"No trial produced a finite {measure.id} score",
            error_code="NO_SUCCESSFUL_TRIALS",
            context={"learner_id": learner.id}
        )

    archive = study.trials_dataframe(attrs=("number", "value", "params", "user_attrs", "duration"))
    archive = archive.rename(columns=lambda c: c.replace("params_", "").replace("user_attrs_", ""))

    result = TuningResult(
        learner_id=learner.id,
        measure_id=measure.id,
        minimize=measure.minimize,
        best_params=dict(study.best_params),
        best_score=float(study.best_value),
        archive=archive,
        n_trials=len(completed),
    )
    logger.info(
        f"Tuning finished in {timing['duration']:.1f}s: best {measure.id}={result.best_score:.4f} "
        f"with {result.best_params}"
    )
    return result


class AutoTuner(Learner):
    """Learner that tunes its hyperparameters on the training data before fitting.

    Nested inside ``resample`` this gives an unbiased estimate of the tuned
    learner, since tuning only ever sees the outer training rows.

    Example:
        >>> at = AutoTuner(lrn("classif.rpart"), rsmp("cv", folds=3), {"cp": p_dbl(1e-3, 0.1)}, n_trials=10)
        >>> resample(task, at, rsmp("holdout"))
    """

    key = "classif.autotuner"

    def __init__(
        self,
        learner: Learner,
        resampling: Resampling,
        search_space: Dict[str, Any],
        measure: Optional[Any] = None,
        n_trials: int = 20,
        sampler: str = "tpe",
        seed: Optional[int] = None,
        id: Optional[str] = None
    ) -> None:
        self.learner = learner.clone().reset()
        self.resampling = resampling
        self.search_space = search_space
        self.measure = as_measures(measure)[0]
        self.n_trials = n_trials
        self.sampler = sampler
        self.seed = seed
        self.id = id or f"{learner.id}.tuned"
        self.tuning_result: Optional[TuningResult] = None
        self.state = None

    @property
    def predict_type(self) -> str:
        return self.learner.predict_type

    @predict_type.setter
    def predict_type(self, value: str) -> None:
        self.learner.predict_type = value

    @property
    def properties(self) -> FrozenSet[str]:
        return frozenset(self.learner.properties)

    @property
    def feature_types(self) -> FrozenSet[str]:
        return frozenset(self.learner.feature_types)

    @property
    def param_values(self) -> Dict[str, Any]:
        return self.learner.param_values

    def set_params(self, **params: Any) -> "AutoTuner":
        self.learner.set_params(**params)
        return self

    def check_learnable(self, task: ClassificationTask, row_ids=None) -> None:
        self.learner.check_learnable(task, row_ids)

    def _train(self, task: ClassificationTask, rows: List[Any]) -> Learner:
        inner = task.subset(rows)
        resampling = self.resampling.clone()
        resampling.instance = None
        self.tuning_result = tune(
            self.learner, inner, resampling, self.search_space, measure=self.measure,
            n_trials=self.n_trials, sampler=self.sampler, seed=self.seed
        )
        final = self.learner.clone().reset()
        final.set_params(**self.tuning_result.best_params)
        return final.train(inner)

    def _predict(self, task: ClassificationTask, rows: List[Any]) -> PredictionClassif:
        return self.state.model.predict(task, rows)

    def _importance(self) -> pd.Series:
        return self.state.model.importance()
