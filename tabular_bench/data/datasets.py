# tabular_bench/data/datasets.py
"""Dataset loaders for the German credit and Titanic data.

Both datasets are fetched from OpenML through scikit-learn and normalized
into frames with categorical columns, so tasks built on them get sensible
feature types. ``tsk()`` returns ready-made tasks.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.datasets import fetch_openml

from .task import ClassificationTask
from ..utils.exceptions import ConfigurationError, DataLoadingError, handle_and_reraise, create_error_context
from ..utils.logger import get_logger

logger = get_logger(__name__)

GERMAN_CREDIT_TARGET = "credit_risk"
GERMAN_CREDIT_INTEGER_COLUMNS = [
    "duration", "credit_amount", "installment_commitment", "residence_since",
    "age", "existing_credits", "num_dependents",
]

TITANIC_TARGET = "survived"
# Columns recorded after the voyage; they give the outcome away
TITANIC_LEAKAGE_COLUMNS = ["boat", "body", "home.dest"]
TITANIC_TEXT_COLUMNS = ["name", "ticket", "cabin"]


def _fetch(name: str, version: int, data_home: Optional[Union[str, Path]], cache: bool) -> pd.DataFrame:
    logger.info(f"Fetching OpenML dataset '{name}' (version {version})")
    try:
        bunch = fetch_openml(
            name=name,
            version=version,
            as_frame=True,
            data_home=str(data_home) if data_home else None,
            cache=cache,
            parser="auto",
        )
    except Exception as e:
        handle_and_reraise(
            e, DataLoadingError,
            f"Could not fetch OpenML dataset '{name}'",
            error_code="OPENML_FETCH_FAILED",
            context=create_error_context(name=name, version=version)
        )
    return bunch.frame.copy()


def prepare_german_credit(frame: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw ``credit-g`` frame.

    The ``class`` column is renamed to ``credit_risk``, whole-number columns
    become integers and remaining string columns become categoricals.
    """
    df = frame.rename(columns={"class": GERMAN_CREDIT_TARGET}).copy()
    for col in GERMAN_CREDIT_INTEGER_COLUMNS:
        if col in df.columns and not df[col].isna().any():
            df[col] = df[col].astype("int64")
    for col in df.columns:
        if pd.api.types.is_object_dtype(df[col]) or pd.api.types.is_string_dtype(df[col]):
            df[col] = df[col].astype("category")
    df[GERMAN_CREDIT_TARGET] = df[GERMAN_CREDIT_TARGET].astype(str).astype(
        pd.CategoricalDtype(["good", "bad"])
    )
    return df.reset_index(drop=True)


def prepare_titanic(frame: pd.DataFrame) -> pd.DataFrame:
    """Normalize a raw OpenML ``titanic`` frame.

    Leakage columns are dropped. ``survived`` becomes a yes/no factor and
    ``pclass`` an ordered factor. ``sex`` and ``embarked`` become factors,
    while name, ticket and cabin stay free text. Missing values are kept.
    """
    df = frame.drop(columns=[c for c in TITANIC_LEAKAGE_COLUMNS if c in frame.columns]).copy()
    df.columns = [c.lower() for c in df.columns]

    survived = pd.to_numeric(df[TITANIC_TARGET].astype(str), errors="coerce")
    df[TITANIC_TARGET] = pd.Categorical(
        np.where(survived == 1, "yes", np.where(survived == 0, "no", None)),
        categories=["yes", "no"]
    )

    pclass = pd.to_numeric(df["pclass"].astype(str), errors="coerce")
    df["pclass"] = pd.Categorical(pclass.map({1: "1", 2: "2", 3: "3"}),
                                  categories=["1", "2", "3"], ordered=True)

    for col in ["sex", "embarked"]:
        if col in df.columns:
            df[col] = df[col].astype("object").where(df[col].notna(), np.nan).astype("category")

    for col in ["sibsp", "parch"]:
        if col in df.columns and not df[col].isna().any():
            df[col] = df[col].astype("int64")

    for col in TITANIC_TEXT_COLUMNS:
        if col in df.columns:
            df[col] = df[col].astype("object").where(df[col].notna(), np.nan)

    return df.reset_index(drop=True)


def load_german_credit(data_home: Optional[Union[str, Path]] = None, cache: bool = True) -> pd.DataFrame:
    """Load the German credit data (1000 loan applicants, target ``credit_risk``).

    Args:
        data_home: Optional OpenML cache directory
        cache: Whether to use the local OpenML cache

    Returns:
        Normalized DataFrame

    Raises:
        DataLoadingError: If the data cannot be fetched
    """
    return prepare_german_credit(_fetch("credit-g", 1, data_home, cache))


def load_titanic(data_home: Optional[Union[str, Path]] = None, cache: bool = True) -> pd.DataFrame:
    """Load the Titanic passenger data (target ``survived``).

    Args:
        data_home: Optional OpenML cache directory
        cache: Whether to use the local OpenML cache

    Returns:
        Normalized DataFrame

    Raises:
        DataLoadingError: If the data cannot be fetched
    """
    return prepare_titanic(_fetch("titanic", 1, data_home, cache))


def load_csv(
    path: Union[str, Path],
    target: str,
    categorical: Optional[List[str]] = None,
    ordered: Optional[Dict[str, List[Any]]] = None,
    **read_kwargs: Any
) -> pd.DataFrame:
    """Load a CSV file and type its columns for use in a task.

    Args:
        path: CSV file path
        target: Target column (converted to a categorical)
        categorical: Columns to convert to unordered categoricals
        ordered: Mapping of column to ordered levels
        **read_kwargs: Passed to ``pandas.read_csv``

    Returns:
        DataFrame

    Raises:
        DataLoadingError: If the file cannot be read or lacks the target
    """
    path = Path(path)
    try:
        df = pd.read_csv(path, **read_kwargs)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        handle_and_reraise(
            e, DataLoadingError,
            f"Could not read CSV file {path}",
            error_code="CSV_READ_FAILED",
            context=create_error_context(path=str(path))
        )

    if target not in df.columns:
        raise DataLoadingError(
            f"Target column '{target}' not found in {path.name}",
            error_code="TARGET_NOT_FOUND",
            context={"columns": list(df.columns)}
        )

    for col in categorical or []:
        df[col] = df[col].astype("category")
    for col, levels in (ordered or {}).items():
        df[col] = pd.Categorical(df[col], categories=levels, ordered=True)
    df[target] = df[target].astype("category")

    logger.info(f"Loaded {path.name}: {df.shape[0]} rows, {df.shape[1]} columns")
    return df


def _german_credit_task(**kwargs: Any) -> ClassificationTask:
    return ClassificationTask("german_credit", load_german_credit(**kwargs),
                              target=GERMAN_CREDIT_TARGET, positive="good")


def _titanic_task(**kwargs: Any) -> ClassificationTask:
    return ClassificationTask("titanic", load_titanic(**kwargs),
                              target=TITANIC_TARGET, positive="yes")


TASKS: Dict[str, Callable[..., ClassificationTask]] = {
    "german_credit": _german_credit_task,
    "titanic": _titanic_task,
}


def tsk(key: str, **kwargs: Any) -> ClassificationTask:
    """Get a predefined task.

    Args:
        key: ``german_credit`` or ``titanic``
        **kwargs: Passed to the dataset loader (``data_home``, ``cache``)

    Raises:
        ConfigurationError: If the key is unknown
    """
    if key not in TASKS:
        raise ConfigurationError(
            f"Unknown task: {key}. Available: {sorted(TASKS)}",
            error_code="UNKNOWN_TASK"
        )
    return TASKS[key](**kwargs)
