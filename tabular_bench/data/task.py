# tabular_bench/data/task.py
"""Classification tasks: a data table bound to a target column.

A ``ClassificationTask`` owns a pandas DataFrame whose index holds the row
ids, one categorical target column and a list of feature columns. Learners,
resamplings and pipeline operators only ever see data through the task, so
the target can never leak into the feature set.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..utils.exceptions import DataValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

FEATURE_TYPES = ("logical", "integer", "numeric", "character", "factor", "ordered")


def infer_feature_type(series: pd.Series) -> str:
    """Map a pandas dtype to a feature type name.

    Object columns holding only booleans (and missing values) are logical.

    Args:
        series: Column to inspect

    Returns:
        One of ``FEATURE_TYPES``
    """
    dtype = series.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        return "ordered" if dtype.ordered else "factor"
    if pd.api.types.is_bool_dtype(dtype):
        return "logical"
    if pd.api.types.is_object_dtype(dtype):
        observed = series.dropna()
        if len(observed) and all(isinstance(v, (bool, np.bool_)) for v in observed):
            return "logical"
    if pd.api.types.is_integer_dtype(dtype):
        return "integer"
    if pd.api.types.is_float_dtype(dtype):
        return "numeric"
    return "character"


class ClassificationTask:
    """A dataset bound to a categorical target for supervised classification.

    Example:
        >>> task = ClassificationTask("german_credit", df, target="credit_risk", positive="good")
        >>> task.missings()
        >>> task.select(["age", "duration", "credit_amount"])
        >>> task.data(rows=[0, 1, 2])
    """

    task_type = "classif"

    def __init__(
        self,
        id: str,
        backend: pd.DataFrame,
        target: str,
        positive: Optional[Any] = None
    ) -> None:
        """Initialize the task.

        Args:
            id: Task identifier
            backend: Data table; its index becomes the row ids
            target: Name of the target column
            positive: Positive class label for binary tasks; defaults to
                the first level of the target

        Raises:
            DataValidationError: If the data does not describe a valid
                classification problem
        """
        if not isinstance(backend, pd.DataFrame):
            raise DataValidationError(
                f"Task backend must be a pandas DataFrame, got {type(backend).__name__}",
                error_code="INVALID_BACKEND"
            )
        if target not in backend.columns:
            raise DataValidationError(
                f"Target column '{target}' not found in data",
                error_code="TARGET_NOT_FOUND",
                context={"task_id": id, "columns": list(backend.columns)}
            )
        if not backend.index.is_unique:
            raise DataValidationError(
                "Row ids (the DataFrame index) must be unique",
                error_code="DUPLICATE_ROW_IDS",
                context={"task_id": id}
            )

        data = backend.copy()
        y = data[target]
        if not isinstance(y.dtype, pd.CategoricalDtype):
            y = y.astype("category")
        if len(y.cat.categories) < 2:
            raise DataValidationError(
                f"Target '{target}' needs at least two classes, found {list(y.cat.categories)}",
                error_code="TOO_FEW_CLASSES",
                context={"task_id": id}
            )

        levels = list(y.cat.categories)
        if positive is not None:
            if positive not in levels:
                raise DataValidationError(
                    f"Positive class '{positive}' is not a level of '{target}': {levels}",
                    error_code="INVALID_POSITIVE_CLASS",
                    context={"task_id": id}
                )
            if len(levels) > 2:
                raise DataValidationError(
                    "A positive class can only be set for binary tasks",
                    error_code="POSITIVE_ON_MULTICLASS",
                    context={"task_id": id, "n_classes": len(levels)}
                )
            levels = [positive] + [lvl for lvl in levels if lvl != positive]
            y = y.cat.reorder_categories(levels)
        data[target] = y

        self.id = id
        self._data = data
        self._target = target
        self._features: List[str] = [col for col in data.columns if col != target]

        logger.debug(f"Created task '{id}': {len(data)} rows, {len(self._features)} features")

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #
    @property
    def target_name(self) -> str:
        return self._target

    @property
    def feature_names(self) -> List[str]:
        return list(self._features)

    @property
    def class_names(self) -> List[Any]:
        return list(self._data[self._target].cat.categories)

    @property
    def positive(self) -> Optional[Any]:
        """Positive class for binary tasks, None otherwise."""
        classes = self.class_names
        return classes[0] if len(classes) == 2 else None

    @property
    def negative(self) -> Optional[Any]:
        classes = self.class_names
        return classes[1] if len(classes) == 2 else None

    @property
    def row_ids(self) -> List[Any]:
        return list(self._data.index)

    @property
    def nrow(self) -> int:
        return len(self._data)

    @property
    def ncol(self) -> int:
        """Number of columns including the target."""
        return len(self._features) + 1

    @property
    def feature_types(self) -> pd.DataFrame:
        """Feature names with their types."""
        return pd.DataFrame({
            "id": self._features,
            "type": [infer_feature_type(self._data[col]) for col in self._features]
        })

    def feature_type_map(self) -> Dict[str, str]:
        return {col: infer_feature_type(self._data[col]) for col in self._features}

    @property
    def properties(self) -> set:
        props = {"twoclass" if len(self.class_names) == 2 else "multiclass"}
        if self._features and self._data[self._features].isna().any().any():
            props.add("missings")
        return props

    # ------------------------------------------------------------------ #
    # Data access
    # ------------------------------------------------------------------ #
    def _check_rows(self, rows: Iterable[Any]) -> List[Any]:
        rows = list(rows)
        unknown = pd.Index(rows).difference(self._data.index)
        if len(unknown) > 0:
            raise DataValidationError(
                f"Unknown row ids: {list(unknown[:10])}",
                error_code="UNKNOWN_ROW_IDS",
                context={"task_id": self.id, "n_unknown": len(unknown)}
            )
        return rows

    def _check_cols(self, cols: Iterable[str], allow_target: bool = True) -> List[str]:
        cols = list(cols)
        allowed = set(self._features)
        if allow_target:
            allowed.add(self._target)
        unknown = [col for col in cols if col not in allowed]
        if unknown:
            raise DataValidationError(
                f"Unknown columns for task '{self.id}': {unknown}",
                error_code="UNKNOWN_COLUMNS",
                context={"task_id": self.id}
            )
        return cols

    def data(
        self,
        rows: Optional[Sequence[Any]] = None,
        cols: Optional[Sequence[str]] = None
    ) -> pd.DataFrame:
        """Retrieve a copy of the data.

        Args:
            rows: Row ids to return (duplicates allowed); all rows by default
            cols: Columns to return; target followed by features by default

        Returns:
            DataFrame indexed by row id
        """
        cols = [self._target] + self._features if cols is None else self._check_cols(cols)
        if rows is None:
            return self._data[cols].copy()
        return self._data.loc[self._check_rows(rows), cols].copy()

    def head(self, n: int = 6) -> pd.DataFrame:
        return self.data(cols=None).head(n)

    def truth(self, rows: Optional[Sequence[Any]] = None) -> pd.Series:
        """Target values for the given rows."""
        return self.data(rows=rows, cols=[self._target])[self._target]

    def missings(self, cols: Optional[Sequence[str]] = None) -> pd.Series:
        """Count missing values per column.

        Args:
            cols: Columns to count; target and features by default

        Returns:
            Series of missing value counts indexed by column name
        """
        cols = [self._target] + self._features if cols is None else self._check_cols(cols)
        return self._data[cols].isna().sum()

    # ------------------------------------------------------------------ #
    # Mutation (in place, returning self)
    # ------------------------------------------------------------------ #
    def select(self, cols: Sequence[str]) -> "ClassificationTask":
        """Keep only the given features.

        Raises:
            DataValidationError: If a column is not a feature of the task
        """
        cols = list(cols)
        if self._target in cols:
            raise DataValidationError(
                f"The target '{self._target}' cannot be selected as a feature",
                error_code="TARGET_AS_FEATURE",
                context={"task_id": self.id}
            )
        self._check_cols(cols, allow_target=False)
        self._features = [col for col in self._features if col in set(cols)]
        self._data = self._data[[self._target] + self._features]
        return self

    def filter(self, rows: Sequence[Any]) -> "ClassificationTask":
        """Keep only the given rows.

        Raises:
            DataValidationError: If a row id is unknown or repeated
        """
        rows = self._check_rows(rows)
        if len(set(rows)) != len(rows):
            raise DataValidationError(
                "Row ids passed to filter() must be unique; use subset() for resampled rows",
                error_code="DUPLICATE_ROW_IDS",
                context={"task_id": self.id}
            )
        self._data = self._data.loc[rows]
        return self

    def cbind(self, data: pd.DataFrame) -> "ClassificationTask":
        """Add feature columns.

        ``data`` is aligned on row ids when its index matches the task's,
        otherwise positionally.
        """
        if len(data) != self.nrow:
            raise DataValidationError(
                f"cbind() needs {self.nrow} rows, got {len(data)}",
                error_code="ROW_COUNT_MISMATCH",
                context={"task_id": self.id}
            )
        clashes = [col for col in data.columns if col in self._data.columns]
        if clashes:
            raise DataValidationError(
                f"Columns already present in task '{self.id}': {clashes}",
                error_code="DUPLICATE_COLUMNS"
            )
        data = data.copy()
        if not data.index.equals(self._data.index):
            data.index = self._data.index
        self._data = pd.concat([self._data, data], axis=1)
        self._features.extend(data.columns)
        return self

    def rename(self, mapping: Dict[str, str]) -> "ClassificationTask":
        """Rename feature columns."""
        self._check_cols(mapping.keys(), allow_target=False)
        self._data = self._data.rename(columns=mapping)
        self._features = [mapping.get(col, col) for col in self._features]
        return self

    # ------------------------------------------------------------------ #
    # Derived tasks
    # ------------------------------------------------------------------ #
    def clone(self) -> "ClassificationTask":
        return copy.deepcopy(self)

    def with_features(self, features: pd.DataFrame) -> "ClassificationTask":
        """New task with the same rows and target but a replaced feature set.

        Args:
            features: Feature table indexed by this task's row ids

        Returns:
            New task
        """
        if self._target in features.columns:
            raise DataValidationError(
                f"Feature table must not contain the target '{self._target}'",
                error_code="TARGET_AS_FEATURE",
                context={"task_id": self.id}
            )
        if not features.index.equals(self._data.index):
            raise DataValidationError(
                "Feature table rows do not match the task rows",
                error_code="ROW_MISMATCH",
                context={"task_id": self.id}
            )
        data = pd.concat([self._data[[self._target]], features], axis=1)
        return ClassificationTask(self.id, data, self._target, positive=self.positive)

    def subset(self, rows: Sequence[Any]) -> "ClassificationTask":
        """New task holding the given rows.

        Repeated row ids (bootstrap samples) get fresh consecutive ids.
        """
        rows = self._check_rows(rows)
        if len(set(rows)) == len(rows):
            return self.clone().filter(rows)
        data = self._data.loc[rows].reset_index(drop=True)
        return ClassificationTask(self.id, data, self._target, positive=self.positive)

    def __repr__(self) -> str:
        types = self.feature_types["type"].value_counts().to_dict()
        type_str = ", ".join(f"{k} ({v})" for k, v in sorted(types.items()))
        return (
            f"<ClassificationTask:{self.id}> ({self.nrow} x {self.ncol})\n"
            f"* Target: {self._target}\n"
            f"* Properties: {', '.join(sorted(self.properties))}\n"
            f"* Classes: {self.class_names} (positive: {self.positive})\n"
            f"* Features ({len(self._features)}): {type_str}"
        )
