# tabular_bench/benchmark/benchmark.py
"""Comparison of several learners on several tasks under identical splits."""

from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from ..data.task import ClassificationTask
from ..learners.base import Learner
from ..measures import Measure, as_measures
from ..resampling import ResampleResult, Resampling, resample
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger
from ..utils.timer import timer

logger = get_logger(__name__)


def _as_list(x) -> list:
    return list(x) if isinstance(x, (list, tuple)) else [x]


def benchmark_grid(
    tasks: Union[ClassificationTask, Sequence[ClassificationTask]],
    learners: Union[Learner, Sequence[Learner]],
    resamplings: Union[Resampling, Sequence[Resampling]],
    seed: Optional[int] = None
) -> pd.DataFrame:
    """Full cross product of tasks, learners and resamplings.

    Every resampling is instantiated once per task, so all learners on
    that task are evaluated on the same train/test splits.

    Args:
        tasks: Task(s)
        learners: Learner(s)
        resamplings: Resampling scheme(s); already instantiated schemes are
            only accepted for the task they were instantiated on
        seed: Seed for instantiating the resamplings

    Returns:
        Design table with columns ``task``, ``learner`` and ``resampling``
    """
    tasks, learners, resamplings = _as_list(tasks), _as_list(learners), _as_list(resamplings)
    if not tasks or not learners or not resamplings:
        raise ConfigurationError(
            "benchmark_grid() needs at least one task, learner and resampling",
            error_code="EMPTY_DESIGN"
        )

    rows = []
    for task in tasks:
        for resampling in resamplings:
            if resampling.is_instantiated:
                resampling.check_task(task)
                instance = resampling
            else:
                instance = resampling.clone().instantiate(task, seed=seed)
            for learner in learners:
                rows.append({"task": task, "learner": learner, "resampling": instance})

    logger.debug(f"Benchmark design with {len(rows)} experiments")
    return pd.DataFrame(rows, columns=["task", "learner", "resampling"])


@timer(name="benchmark")
def benchmark(
    design: pd.DataFrame,
    store_models: bool = False,
    n_jobs: Optional[int] = None
) -> "BenchmarkResult":
    """Run ``resample`` for every row of a benchmark design.

    Args:
        design: Table from ``benchmark_grid`` (or any table with ``task``,
            ``learner`` and ``resampling`` columns)
        store_models: Keep fitted learners
        n_jobs: Number of joblib workers per resampling

    Returns:
        BenchmarkResult
    """
    missing = [col for col in ("task", "learner", "resampling") if col not in design.columns]
    if missing:
        raise ConfigurationError(
            f"Benchmark design lacks column(s) {missing}",
            error_code="INVALID_DESIGN"
        )

    results = []
    for i, row in enumerate(design.itertuples(index=False), 1):
        logger.info(f"Benchmark experiment {i}/{len(design)}: {row.task.id} / {row.learner.id} / {row.resampling.id}")
        results.append(resample(row.task, row.learner, row.resampling, store_models=store_models, n_jobs=n_jobs))
    return BenchmarkResult(results)


class BenchmarkResult:
    """Collection of resample results from a benchmark.

    Example:
        >>> bmr = benchmark(benchmark_grid(task, learners, rsmp("cv", folds=3)))
        >>> bmr.aggregate([msr("classif.ce"), msr("classif.auc")])
        >>> bmr.best(msr("classif.auc"))
    """

    def __init__(self, resample_results: Optional[Sequence[ResampleResult]] = None) -> None:
        self.resample_results: List[ResampleResult] = list(resample_results or [])

    @property
    def n_resample_results(self) -> int:
        return len(self.resample_results)

    @property
    def task_ids(self) -> List[str]:
        return list(dict.fromkeys(rr.task_id for rr in self.resample_results))

    @property
    def learner_ids(self) -> List[str]:
        return list(dict.fromkeys(rr.learner_id for rr in self.resample_results))

    @property
    def resampling_ids(self) -> List[str]:
        return list(dict.fromkeys(rr.resampling_id for rr in self.resample_results))

    def resample_result(self, nr: int) -> ResampleResult:
        return self.resample_results[nr]

    def score(self, measures: Optional[Any] = None) -> pd.DataFrame:
        """Per-iteration scores of all experiments, with an ``nr`` column."""
        measures = as_measures(measures)
        frames = []
        for nr, rr in enumerate(self.resample_results):
            frame = rr.score(measures)
            frame.insert(0, "nr", nr)
            frames.append(frame)
        if not frames:
            return pd.DataFrame(columns=["nr", "task_id", "learner_id", "resampling_id", "iteration"]
                                + [m.id for m in measures])
        return pd.concat(frames, ignore_index=True)

    def aggregate(self, measures: Optional[Any] = None) -> pd.DataFrame:
        """One row per experiment with aggregated scores."""
        measures = as_measures(measures)
        rows = []
        for nr, rr in enumerate(self.resample_results):
            row = {
                "nr": nr,
                "task_id": rr.task_id,
                "learner_id": rr.learner_id,
                "resampling_id": rr.resampling_id,
                "iters": rr.iters,
            }
            row.update(rr.aggregate(measures).to_dict())
            rows.append(row)
        return pd.DataFrame(rows, columns=["nr", "task_id", "learner_id", "resampling_id", "iters"]
                            + [m.id for m in measures])

    def best(self, measure: Optional[Union[str, Measure]] = None) -> pd.DataFrame:
        """Best experiment per task and resampling according to ``measure``."""
        measure = as_measures(measure)[0]
        agg = self.aggregate([measure]).dropna(subset=[measure.id])
        if agg.empty:
            return agg
        idx = (agg.groupby(["task_id", "resampling_id"])[measure.id].idxmin() if measure.minimize
               else agg.groupby(["task_id", "resampling_id"])[measure.id].idxmax())
        return agg.loc[idx.values].reset_index(drop=True)

    def rank(self, measure: Optional[Union[str, Measure]] = None) -> pd.DataFrame:
        """Aggregated scores with the learners' rank within each task (1 = best)."""
        measure = as_measures(measure)[0]
        agg = self.aggregate([measure])
        agg["rank"] = agg.groupby(["task_id", "resampling_id"])[measure.id].rank(
            ascending=measure.minimize, method="min"
        )
        return agg.sort_values(["task_id", "resampling_id", "rank"]).reset_index(drop=True)

    def friedman_test(self, measure: Optional[Union[str, Measure]] = None) -> Dict[str, float]:
        """Friedman test of equal learner performance.

        Blocks are (task, resampling, iteration) triples, which all
        learners share because splits are instantiated once per task.
        Scores are ranked within each block; the statistic is computed
        from the rank sums with the usual correction for ties and compared
        against a chi-squared distribution with ``learners - 1`` degrees of
        freedom. When every block is a complete tie the statistic and the
        p-value are NaN.

        Raises:
            ConfigurationError: With fewer than two learners or two complete blocks
        """
        measure = as_measures(measure)[0]
        scores = self.score([measure])
        table = scores.pivot_table(
            index=["task_id", "resampling_id", "iteration"], columns="learner_id", values=measure.id
        ).dropna()
        if table.shape[1] < 2 or table.shape[0] < 2:
            raise ConfigurationError(
                "The Friedman test needs at least two learners and two complete blocks",
                error_code="TOO_FEW_GROUPS",
                context={"learners": table.shape[1], "blocks": table.shape[0]}
            )

        values = table.to_numpy(dtype=float)
        n, k = values.shape
        rank_sums = stats.rankdata(values, axis=1).sum(axis=0)
        ties = sum(float(np.sum(counts ** 3 - counts))
                   for counts in (np.unique(row, return_counts=True)[1] for row in values))
        correction = 1.0 - ties / (n * k * (k * k - 1))
        statistic = 12.0 / (n * k * (k + 1)) * float(np.sum(rank_sums ** 2)) - 3.0 * n * (k + 1)
        statistic = statistic / correction if correction > 0 else float("nan")
        p_value = float(stats.chi2.sf(statistic, k - 1))
        return {"statistic": float(statistic), "p_value": p_value, "n_blocks": int(n)}

    def combine(self, other: "BenchmarkResult") -> "BenchmarkResult":
        """New result holding the experiments of both."""
        return BenchmarkResult(self.resample_results + other.resample_results)

    def filter(
        self,
        task_ids: Optional[Sequence[str]] = None,
        learner_ids: Optional[Sequence[str]] = None,
        resampling_ids: Optional[Sequence[str]] = None
    ) -> "BenchmarkResult":
        """New result restricted to the given ids."""
        def keep(rr: ResampleResult) -> bool:
            return ((task_ids is None or rr.task_id in task_ids)
                    and (learner_ids is None or rr.learner_id in learner_ids)
                    and (resampling_ids is None or rr.resampling_id in resampling_ids))
        return BenchmarkResult([rr for rr in self.resample_results if keep(rr)])

    def __repr__(self) -> str:
        return (
            f"<BenchmarkResult> of {self.n_resample_results} resample results\n"
            f"* Tasks: {', '.join(self.task_ids)}\n"
            f"* Learners: {', '.join(self.learner_ids)}\n"
            f"* Resamplings: {', '.join(self.resampling_ids)}"
        )
