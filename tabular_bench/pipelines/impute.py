# tabular_bench/pipelines/impute.py
"""Imputation operators and missing-value indicators.

Imputers learn one model per affected column of a supported type during
training and fill missing values with it in both training and prediction;
columns without missing values in training still get a model so that
missing values seen only at prediction time are filled too.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..data.task import infer_feature_type
from ..utils.exceptions import validate_parameter
from ..utils.logger import get_logger
from .pipeop import PipeOpTaskPreproc
from .selectors import selector_invert, selector_type

logger = get_logger(__name__)

MISSING_LEVEL = ".MISSING"

ALL_TYPES = ("logical", "integer", "numeric", "character", "factor", "ordered")


class PipeOpImpute(PipeOpTaskPreproc):
    """Base class for imputers.

    Subclasses list the ``feature_types`` they impute and implement
    ``_train_imputer`` (column -> model) and ``_impute_values`` (model,
    number of values, rng -> fill values).
    """

    feature_types: Tuple[str, ...] = ALL_TYPES
    default_params: Dict[str, Any] = {"affect_columns": None, "seed": None}

    def _rng(self) -> np.random.Generator:
        return np.random.default_rng(self.param_values.get("seed"))

    def _train_features(self, features: pd.DataFrame) -> pd.DataFrame:
        cols = [col for col in self.state["affect_columns"]
                if infer_feature_type(features[col]) in self.feature_types]
        self.state["affect_columns"] = cols
        self.state["models"] = {col: self._train_imputer(features[col]) for col in cols}
        n_missing = int(features[cols].isna().sum().sum()) if cols else 0
        logger.debug(f"PipeOp '{self.id}' imputing {n_missing} values in {len(cols)} column(s)")
        return self._impute(features, self._rng())

    def _predict_features(self, features: pd.DataFrame) -> pd.DataFrame:
        return self._impute(features, self._rng())

    def _impute(self, features: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
        out = features.copy()
        for col, model in self.state["models"].items():
            out[col] = self._impute_column(out[col], model, rng)
        return out

    def _impute_column(self, values: pd.Series, model: Any, rng: np.random.Generator) -> pd.Series:
        mask = values.isna()
        if not mask.any():
            return values
        fill = self._impute_values(model, int(mask.sum()), rng)
        if fill is None:
            return values
        values = values.copy()
        if isinstance(values.dtype, pd.CategoricalDtype):
            new_levels = [lvl for lvl in pd.unique(fill) if lvl not in values.cat.categories]
            if new_levels:
                values = values.cat.add_categories(new_levels)
        elif pd.api.types.is_integer_dtype(values.dtype):
            fill = np.round(np.asarray(fill, dtype=float)).astype("int64")
        elif pd.api.types.is_float_dtype(values.dtype):
            fill = np.asarray(fill, dtype=float)
        values.loc[mask] = fill
        return values

    def _train_imputer(self, values: pd.Series) -> Any:
        raise NotImplementedError()

    def _impute_values(self, model: Any, n: int, rng: np.random.Generator) -> Optional[np.ndarray]:
        raise NotImplementedError()


def _fallback_value(values: pd.Series) -> Any:
    """Fill value for columns without any observed training value."""
    ftype = infer_feature_type(values)
    if ftype in ("factor", "ordered", "character"):
        return MISSING_LEVEL
    if ftype == "logical":
        return False
    return 0


class PipeOpImputeHist(PipeOpImpute):
    """Draw numeric values from a histogram of the observed training values.

    A bin is chosen with probability proportional to its count and the value
    is drawn uniformly within the bin; integer columns are rounded.
    """

    key = "imputehist"
    feature_types = ("integer", "numeric")

    def _train_imputer(self, values: pd.Series) -> Any:
        observed = pd.to_numeric(values.dropna(), errors="coerce").astype(float).to_numpy()
        if len(observed) == 0:
            return {"fallback": 0.0}
        counts, edges = np.histogram(observed, bins="sturges")
        return {"counts": counts, "edges": edges}

    def _impute_values(self, model: Any, n: int, rng: np.random.Generator) -> np.ndarray:
        if "fallback" in model:
            return np.full(n, model["fallback"])
        counts, edges = model["counts"], model["edges"]
        bins = rng.choice(len(counts), size=n, p=counts / counts.sum())
        return rng.uniform(edges[bins], edges[bins + 1])


class PipeOpImputeSample(PipeOpImpute):
    """Draw missing values from the observed training values of the column."""

    key = "imputesample"

    def _train_imputer(self, values: pd.Series) -> Any:
        observed = values.dropna().to_numpy(dtype=object)
        if len(observed) == 0:
            return {"fallback": _fallback_value(values)}
        return {"observed": observed}

    def _impute_values(self, model: Any, n: int, rng: np.random.Generator) -> np.ndarray:
        if "fallback" in model:
            return np.array([model["fallback"]] * n, dtype=object)
        return rng.choice(model["observed"], size=n, replace=True)


class PipeOpImputeNewLvl(PipeOpImpute):
    """Replace missing factor and text values by the level ``.MISSING``.

    The level is added to every affected factor, with or without missing
    values, so that training and prediction share the same level set.
    """

    key = "imputenewlvl"
    feature_types = ("factor", "ordered", "character")

    def _train_imputer(self, values: pd.Series) -> Any:
        return {"level": MISSING_LEVEL}

    def _impute_values(self, model: Any, n: int, rng: np.random.Generator) -> np.ndarray:
        return np.array([model["level"]] * n, dtype=object)

    def _impute_column(self, values: pd.Series, model: Any, rng: np.random.Generator) -> pd.Series:
        if isinstance(values.dtype, pd.CategoricalDtype) and model["level"] not in values.cat.categories:
            values = values.cat.add_categories([model["level"]])
        return super()._impute_column(values, model, rng)


class PipeOpImputeConstantValue(PipeOpImpute):
    """Shared logic of imputers filling a single value per column."""

    def _impute_values(self, model: Any, n: int, rng: np.random.Generator) -> np.ndarray:
        return np.array([model["value"]] * n, dtype=object)


class PipeOpImputeMean(PipeOpImputeConstantValue):
    key = "imputemean"
    feature_types = ("integer", "numeric")

    def _train_imputer(self, values: pd.Series) -> Any:
        observed = values.dropna().astype(float)
        return {"value": float(observed.mean()) if len(observed) else 0.0}

    def _impute_values(self, model, n, rng):
        return np.full(n, model["value"])


class PipeOpImputeMedian(PipeOpImputeConstantValue):
    key = "imputemedian"
    feature_types = ("integer", "numeric")

    def _train_imputer(self, values: pd.Series) -> Any:
        observed = values.dropna().astype(float)
        return {"value": float(observed.median()) if len(observed) else 0.0}

    def _impute_values(self, model, n, rng):
        return np.full(n, model["value"])


class PipeOpImputeMode(PipeOpImputeConstantValue):
    """Most frequent training value; ties resolve to the first in sort order."""

    key = "imputemode"

    def _train_imputer(self, values: pd.Series) -> Any:
        observed = values.dropna()
        if len(observed) == 0:
            return {"value": _fallback_value(values)}
        counts = observed.value_counts(sort=False)
        return {"value": counts.idxmax()}


class PipeOpImputeConstant(PipeOpImputeConstantValue):
    """Fill with ``constant``; factors get it as an additional level if needed."""

    key = "imputeconstant"
    default_params: Dict[str, Any] = {"affect_columns": None, "seed": None, "constant": MISSING_LEVEL}

    def _train_imputer(self, values: pd.Series) -> Any:
        return {"value": self.param_values["constant"]}


class PipeOpMissInd(PipeOpTaskPreproc):
    """Replace the features by missing-value indicators ``missing_<col>``.

    Only the indicator columns are output, so the operator is combined with
    an imputer through ``gunion`` and ``featureunion``. With
    ``which="missing_train"`` only columns that had missing values in
    training get an indicator. ``type`` is ``factor`` (levels ``present``,
    ``missing``), ``integer``, ``logical`` or ``numeric``.
    """

    key = "missind"
    default_params: Dict[str, Any] = {
        "affect_columns": selector_invert(selector_type("factor", "ordered", "character")),
        "which": "missing_train",
        "type": "factor",
    }

    def set_params(self, **params: Any) -> "PipeOpMissInd":
        super().set_params(**params)
        validate_parameter("which", self.param_values["which"], valid_values=["missing_train", "all"])
        validate_parameter("type", self.param_values["type"],
                           valid_values=["factor", "integer", "logical", "numeric"])
        return self

    def _train_features(self, features: pd.DataFrame) -> pd.DataFrame:
        cols: List[str] = self.state["affect_columns"]
        if self.param_values["which"] == "missing_train":
            cols = [col for col in cols if features[col].isna().any()]
        self.state["affect_columns"] = cols
        return self._indicators(features)

    def _predict_features(self, features: pd.DataFrame) -> pd.DataFrame:
        return self._indicators(features)

    def _indicators(self, features: pd.DataFrame) -> pd.DataFrame:
        out = pd.DataFrame(index=features.index)
        kind = self.param_values["type"]
        for col in self.state["affect_columns"]:
            missing = features[col].isna().to_numpy()
            name = f"missing_{col}"
            if kind == "factor":
                out[name] = pd.Categorical(np.where(missing, "missing", "present"),
                                           categories=["present", "missing"])
            elif kind == "integer":
                out[name] = missing.astype("int64")
            elif kind == "logical":
                out[name] = missing
            else:
                out[name] = missing.astype(float)
        return out
