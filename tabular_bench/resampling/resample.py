# tabular_bench/resampling/resample.py
"""Repeated train/test evaluation of one learner on one task."""

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from joblib import Parallel, delayed

from ..data.task import ClassificationTask
from ..learners.base import Learner
from ..measures import as_measures
from ..prediction import PredictionClassif, combine_predictions
from ..utils.logger import get_logger
from ..utils.timer import timed_operation
from .schemes import Resampling

logger = get_logger(__name__)


def _run_iteration(
    learner: Learner,
    task: ClassificationTask,
    train: List[Any],
    test: List[Any],
    iteration: int,
    store_model: bool
) -> Dict[str, Any]:
    log = get_logger(__name__, context={"task_id": task.id, "learner_id": learner.id, "iteration": iteration})
    log.debug(f"Training on {len(train)} rows, predicting {len(test)} rows")
    learner = learner.clone().reset()
    learner.train(task, row_ids=train)
    prediction = learner.predict(task, row_ids=test)
    if not store_model:
        learner.reset()
    return {"iteration": iteration, "prediction": prediction, "learner": learner}


class ResampleResult:
    """Predictions (and optionally fitted learners) of every resampling iteration.

    Example:
        >>> rr = resample(task, lrn("classif.ranger"), rsmp("cv", folds=3))
        >>> rr.score(msr("classif.ce"))
        >>> rr.aggregate([msr("classif.ce"), msr("classif.acc")])
    """

    def __init__(
        self,
        task: ClassificationTask,
        learner: Learner,
        resampling: Resampling,
        iterations: Sequence[Dict[str, Any]]
    ) -> None:
        self.task = task
        self.learner = learner
        self.resampling = resampling
        self._iterations = sorted(iterations, key=lambda it: it["iteration"])

    @property
    def task_id(self) -> str:
        return self.task.id

    @property
    def learner_id(self) -> str:
        return self.learner.id

    @property
    def resampling_id(self) -> str:
        return self.resampling.id

    @property
    def iters(self) -> int:
        return len(self._iterations)

    @property
    def learners(self) -> List[Learner]:
        """Learner of every iteration; untrained unless models were stored."""
        return [it["learner"] for it in self._iterations]

    def predictions(self) -> List[PredictionClassif]:
        return [it["prediction"] for it in self._iterations]

    def prediction(self) -> PredictionClassif:
        """All test set predictions combined."""
        return combine_predictions(self.predictions())

    def score(self, measures: Optional[Any] = None) -> pd.DataFrame:
        """Per-iteration scores.

        Returns:
            One row per iteration with ``task_id``, ``learner_id``,
            ``resampling_id``, ``iteration`` and one column per measure
        """
        measures = as_measures(measures)
        rows = []
        for it in self._iterations:
            row = {
                "task_id": self.task_id,
                "learner_id": self.learner_id,
                "resampling_id": self.resampling_id,
                "iteration": it["iteration"],
            }
            row.update({m.id: m.score(it["prediction"]) for m in measures})
            rows.append(row)
        return pd.DataFrame(rows)

    def aggregate(self, measures: Optional[Any] = None) -> pd.Series:
        """Aggregate scores over iterations.

        Macro measures average the per-iteration scores; micro measures
        score the combined prediction.
        """
        measures = as_measures(measures)
        values = {}
        per_iteration = self.score([m for m in measures if m.average == "macro"])
        for m in measures:
            if m.average == "micro":
                values[m.id] = m.score(self.prediction())
            else:
                values[m.id] = per_iteration[m.id].mean(skipna=False)
        return pd.Series(values, dtype=float)

    def __repr__(self) -> str:
        return (
            f"<ResampleResult> of {self.iters} iterations\n"
            f"* Task: {self.task_id}\n"
            f"* Learner: {self.learner_id}\n"
            f"* Resampling: {self.resampling_id}"
        )


def resample(
    task: ClassificationTask,
    learner: Learner,
    resampling: Resampling,
    store_models: bool = False,
    n_jobs: Optional[int] = 1,
    seed: Optional[int] = None
) -> ResampleResult:
    """Evaluate a learner on a task with a resampling scheme.

    The resampling is instantiated on the task unless it already is; the
    learner is cloned for every iteration, so neither it nor the task is
    modified.

    Args:
        task: Task to evaluate on
        learner: Learner to evaluate
        resampling: Resampling scheme
        store_models: Keep the fitted learner of every iteration
        n_jobs: Number of joblib workers for the iterations
        seed: Seed used when instantiating the resampling

    Returns:
        ResampleResult
    """
    if resampling.is_instantiated:
        resampling.check_task(task)
    else:
        resampling = resampling.clone().instantiate(task, seed=seed)

    logger.info(
        f"Resampling '{learner.id}' on task '{task.id}' with '{resampling.id}' "
        f"({resampling.iters} iterations)"
    )
    with timed_operation(f"resample {task.id}/{learner.id}/{resampling.id}", log_result=False) as timing:
        jobs = (
            delayed(_run_iteration)(
                learner, task, resampling.train_set(i), resampling.test_set(i), i, store_models
            )
            for i in range(resampling.iters)
        )
        if n_jobs is None or n_jobs == 1:
            iterations = [fn(*args, **kwargs) for fn, args, kwargs in jobs]
        else:
            iterations = Parallel(n_jobs=n_jobs)(jobs)

    logger.info(f"Finished resampling '{learner.id}' on '{task.id}' in {timing['duration']:.2f}s")
    return ResampleResult(task, learner, resampling, iterations)
