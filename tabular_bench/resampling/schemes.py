# tabular_bench/resampling/schemes.py
"""Resampling schemes: rules for splitting task rows into train/test sets.

A scheme is configured first and instantiated on a task later; the
instantiated train/test row ids are fixed until the next ``instantiate``
call so several learners can be compared on identical splits.
"""

import copy
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..data.task import ClassificationTask
from ..utils.exceptions import ConfigurationError, ResamplingError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

Split = Tuple[np.ndarray, np.ndarray]


class Resampling:
    """Base class for resampling schemes.

    Subclasses define ``key``, ``default_params``, ``iters`` and
    ``_sample``, which splits row positions ``0..n-1``.
    """

    key: str = "base"
    default_params: Dict[str, Any] = {}

    def __init__(self, id: Optional[str] = None, stratify: bool = False, **params: Any) -> None:
        unknown = sorted(k for k in params if k not in self.default_params)
        if unknown:
            raise ConfigurationError(
                f"Unknown parameter(s) for resampling '{self.key}': {unknown}. "
                f"Available: {sorted(self.default_params)}",
                error_code="UNKNOWN_RESAMPLING_PARAMETER"
            )
        self.id = id or self.key
        self.stratify = stratify
        self.param_values: Dict[str, Any] = {**self.default_params, **params}
        self._validate_params()
        self.instance: Optional[List[Tuple[List[Any], List[Any]]]] = None
        self.task_id: Optional[str] = None
        self.task_nrow: Optional[int] = None

    def _validate_params(self) -> None:
        pass

    @property
    def iters(self) -> int:
        raise NotImplementedError()

    @property
    def is_instantiated(self) -> bool:
        return self.instance is not None

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        raise NotImplementedError()

    def instantiate(self, task: ClassificationTask, seed: Optional[int] = None) -> "Resampling":
        """Fix the train/test splits for the task.

        With ``stratify=True`` every split keeps the class proportions of
        the task as closely as the class sizes allow; classes smaller than
        the number of folds are dealt over as many folds as they have rows.

        Args:
            task: Task whose rows are split
            seed: Seed for the random number generator

        Returns:
            Self (instantiated)
        """
        rows = task.row_ids
        rng = np.random.default_rng(seed)

        strata = None
        if self.stratify:
            truth = task.truth().astype(object).to_numpy()
            strata = np.asarray(pd.Categorical(truth, categories=task.class_names).codes)
        splits = self._sample(len(rows), rng, strata)

        self.instance = [([rows[j] for j in train], [rows[j] for j in test]) for train, test in splits]
        self.task_id = task.id
        self.task_nrow = task.nrow
        logger.debug(f"Instantiated resampling '{self.id}' on task '{task.id}' ({self.iters} iterations)")
        return self

    def _check_iteration(self, i: int) -> None:
        if not self.is_instantiated:
            raise ResamplingError(
                f"Resampling '{self.id}' has not been instantiated",
                error_code="NOT_INSTANTIATED"
            )
        if not 0 <= i < len(self.instance):
            raise ResamplingError(
                f"Iteration {i} out of range for resampling '{self.id}' with {len(self.instance)} iterations",
                error_code="ITERATION_OUT_OF_RANGE"
            )

    def train_set(self, i: int) -> List[Any]:
        self._check_iteration(i)
        return list(self.instance[i][0])

    def test_set(self, i: int) -> List[Any]:
        self._check_iteration(i)
        return list(self.instance[i][1])

    def check_task(self, task: ClassificationTask) -> None:
        """Raise ``ResamplingError`` if the instance was built for another task."""
        if self.is_instantiated and (self.task_id != task.id or self.task_nrow != task.nrow):
            raise ResamplingError(
                f"Resampling '{self.id}' was instantiated on task '{self.task_id}' "
                f"({self.task_nrow} rows), not on '{task.id}' ({task.nrow} rows)",
                error_code="TASK_MISMATCH"
            )

    def clone(self) -> "Resampling":
        return copy.deepcopy(self)

    def as_data_frame(self) -> pd.DataFrame:
        """Long table of ``set`` (train/test), ``iteration`` and ``row_id``."""
        self._check_iteration(0)
        records = []
        for i, (train, test) in enumerate(self.instance):
            records.extend({"set": "train", "iteration": i, "row_id": r} for r in train)
            records.extend({"set": "test", "iteration": i, "row_id": r} for r in test)
        return pd.DataFrame(records)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v}" for k, v in self.param_values.items())
        state = "instantiated" if self.is_instantiated else "not instantiated"
        return f"<{type(self).__name__}:{self.id}> with {self.iters} iterations ({state})\n* Params: {params or '-'}"


def _shuffled_strata(n: int, rng: np.random.Generator, strata: Optional[np.ndarray]) -> List[np.ndarray]:
    """Row positions of each stratum in random order; a single stratum without ``strata``."""
    if strata is None:
        return [rng.permutation(n)]
    return [rng.permutation(np.flatnonzero(strata == s)) for s in np.unique(strata)]


def _ratio_split(ratio: float, n: int, rng: np.random.Generator, strata: Optional[np.ndarray],
                 key: str) -> Split:
    """Random train/test split with ``ratio`` of each stratum in train.

    A stratum too small to give both sets a row goes to train.
    """
    train, test = [], []
    for perm in _shuffled_strata(n, rng, strata):
        n_train = int(round(ratio * len(perm)))
        if strata is not None:
            n_train = min(len(perm), max(1, n_train))
        train.append(perm[:n_train])
        test.append(perm[n_train:])
    train, test = np.concatenate(train), np.concatenate(test)
    if len(train) == 0 or len(test) == 0:
        raise ResamplingError(
            f"Ratio {ratio} leaves an empty train or test set for {n} rows",
            error_code="EMPTY_SPLIT",
            context={"resampling": key, "n": n}
        )
    return np.sort(train), np.sort(test)


class ResamplingHoldout(Resampling):
    """Single split with ``ratio`` of the rows used for training."""

    key = "holdout"
    default_params = {"ratio": 2 / 3}

    def _validate_params(self) -> None:
        validate_parameter("ratio", self.param_values["ratio"], min_value=0.0, max_value=1.0)

    @property
    def iters(self) -> int:
        return 1

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        return [_ratio_split(self.param_values["ratio"], n, rng, strata, self.key)]


class ResamplingCV(Resampling):
    """K-fold cross-validation; every row is tested exactly once.

    Stratified folds are dealt out class by class, so each fold receives
    an equal share (up to one row) of every class.
    """

    key = "cv"
    default_params = {"folds": 10}

    def _validate_params(self) -> None:
        validate_parameter("folds", self.param_values["folds"], min_value=2)

    @property
    def iters(self) -> int:
        return int(self.param_values["folds"])

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        folds = int(self.param_values["folds"])
        if n < folds:
            raise ResamplingError(
                f"Cannot split {n} rows into {folds} folds",
                error_code="TOO_FEW_ROWS",
                context={"resampling": self.key}
            )
        order = np.concatenate(_shuffled_strata(n, rng, strata))
        assignment = np.empty(n, dtype=int)
        assignment[order] = rng.permutation(folds)[np.arange(n) % folds]
        positions = np.arange(n)
        return [(positions[assignment != k], positions[assignment == k]) for k in range(folds)]


class ResamplingRepeatedCV(Resampling):
    """Cross-validation repeated with fresh fold assignments.

    Iteration ``i`` is fold ``i % folds`` of repetition ``i // folds``.
    """

    key = "repeated_cv"
    default_params = {"folds": 10, "repeats": 10}

    def _validate_params(self) -> None:
        validate_parameter("folds", self.param_values["folds"], min_value=2)
        validate_parameter("repeats", self.param_values["repeats"], min_value=1)

    @property
    def iters(self) -> int:
        return int(self.param_values["folds"]) * int(self.param_values["repeats"])

    def repeats(self, iteration: int) -> int:
        return iteration // int(self.param_values["folds"])

    def folds(self, iteration: int) -> int:
        return iteration % int(self.param_values["folds"])

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        cv = ResamplingCV(folds=self.param_values["folds"])
        splits = []
        for _ in range(int(self.param_values["repeats"])):
            splits.extend(cv._sample(n, rng, strata))
        return splits


class ResamplingSubsampling(Resampling):
    """Repeated holdout."""

    key = "subsampling"
    default_params = {"repeats": 30, "ratio": 2 / 3}

    def _validate_params(self) -> None:
        validate_parameter("repeats", self.param_values["repeats"], min_value=1)
        validate_parameter("ratio", self.param_values["ratio"], min_value=0.0, max_value=1.0)

    @property
    def iters(self) -> int:
        return int(self.param_values["repeats"])

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        return [_ratio_split(self.param_values["ratio"], n, rng, strata, self.key) for _ in range(self.iters)]


class ResamplingBootstrap(Resampling):
    """Train on rows drawn with replacement, test on the out-of-bag rows.

    Stratified draws are made within each class.
    """

    key = "bootstrap"
    default_params = {"repeats": 30, "ratio": 1.0}

    def _validate_params(self) -> None:
        validate_parameter("repeats", self.param_values["repeats"], min_value=1)
        validate_parameter("ratio", self.param_values["ratio"], min_value=0.0)

    @property
    def iters(self) -> int:
        return int(self.param_values["repeats"])

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        ratio = self.param_values["ratio"]
        groups = [np.arange(n)] if strata is None else [np.flatnonzero(strata == s) for s in np.unique(strata)]
        positions = np.arange(n)
        splits = []
        for _ in range(self.iters):
            train = np.sort(np.concatenate([
                rng.choice(g, size=max(1, int(round(ratio * len(g)))), replace=True) for g in groups
            ]))
            test = np.setdiff1d(positions, train)
            splits.append((train, test))
        return splits


class ResamplingInsample(Resampling):
    """Train and test on all rows."""

    key = "insample"

    @property
    def iters(self) -> int:
        return 1

    def _sample(self, n: int, rng: np.random.Generator, strata: Optional[np.ndarray] = None) -> List[Split]:
        positions = np.arange(n)
        return [(positions, positions)]


class ResamplingCustom(Resampling):
    """Train/test sets given explicitly as row ids."""

    key = "custom"

    def __init__(self, id: Optional[str] = None, **params: Any) -> None:
        super().__init__(id=id, stratify=False, **params)

    @property
    def iters(self) -> int:
        return len(self.instance) if self.instance is not None else 0

    def instantiate(
        self,
        task: ClassificationTask,
        train_sets: Optional[Sequence[Sequence[Any]]] = None,
        test_sets: Optional[Sequence[Sequence[Any]]] = None,
        seed: Optional[int] = None
    ) -> "ResamplingCustom":
        """Use the given train/test row ids.

        Raises:
            ResamplingError: If the sets are missing, of different length or
                reference unknown rows
        """
        if train_sets is None or test_sets is None or len(train_sets) != len(test_sets):
            raise ResamplingError(
                "Custom resampling needs train_sets and test_sets of equal length",
                error_code="INVALID_CUSTOM_SETS"
            )
        known = set(task.row_ids)
        for rows in list(train_sets) + list(test_sets):
            unknown = [r for r in rows if r not in known]
            if unknown:
                raise ResamplingError(
                    f"Unknown row ids in custom sets: {unknown[:10]}",
                    error_code="UNKNOWN_ROW_IDS",
                    context={"task_id": task.id}
                )
        self.instance = [(list(train), list(test)) for train, test in zip(train_sets, test_sets)]
        self.task_id = task.id
        self.task_nrow = task.nrow
        return self


RESAMPLINGS: Dict[str, Callable[..., Resampling]] = {
    cls.key: cls
    for cls in (
        ResamplingHoldout,
        ResamplingCV,
        ResamplingRepeatedCV,
        ResamplingSubsampling,
        ResamplingBootstrap,
        ResamplingInsample,
        ResamplingCustom,
    )
}


def rsmp(key: str, **params: Any) -> Resampling:
    """Construct a resampling scheme by key.

    Example:
        >>> rsmp("cv", folds=3)
        >>> rsmp("holdout", ratio=0.8, stratify=True)
    """
    if key not in RESAMPLINGS:
        raise ConfigurationError(
            f"Unknown resampling: {key}. Available: {sorted(RESAMPLINGS)}",
            error_code="UNKNOWN_RESAMPLING"
        )
    return RESAMPLINGS[key](**params)


def rsmps(keys: Sequence[str]) -> List[Resampling]:
    return [rsmp(key) for key in keys]
