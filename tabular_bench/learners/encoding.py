# tabular_bench/learners/encoding.py
"""Numeric encoding of task features for the sklearn and xgboost backends."""

from typing import Dict, List

import numpy as np
import pandas as pd

from ..data.task import infer_feature_type
from ..utils.exceptions import LearnerError, validate_parameter


class FeatureEncoder:
    """Turn a typed feature table into a float matrix.

    Numeric, integer and logical columns pass through as floats. Ordered
    factors become their level codes. Unordered factors are expanded into
    indicator columns, one per level (``one-hot``) or one per non-reference
    level (``treatment``). Missing values stay missing in every output
    column they touch.

    ``source`` maps every output column back to its input feature so that
    importances can be summed per original feature.
    """

    def __init__(self, method: str = "one-hot") -> None:
        validate_parameter("method", method, valid_values=["one-hot", "treatment"])
        self.method = method
        self.columns: List[str] = []
        self.types: Dict[str, str] = {}
        self.levels: Dict[str, List] = {}
        self.feature_names_out: List[str] = []
        self.source: Dict[str, str] = {}

    def fit(self, X: pd.DataFrame) -> "FeatureEncoder":
        self.columns = list(X.columns)
        self.types = {col: infer_feature_type(X[col]) for col in self.columns}
        self.levels = {}
        self.feature_names_out = []
        self.source = {}

        for col, ftype in self.types.items():
            if ftype == "character":
                raise LearnerError(
                    f"Column '{col}' holds free text and cannot be encoded; "
                    f"convert it to a factor or drop it",
                    error_code="UNSUPPORTED_FEATURE_TYPES"
                )
            if ftype in ("factor", "ordered"):
                self.levels[col] = list(X[col].cat.categories)
            if ftype == "factor":
                levels = self.levels[col]
                if self.method == "treatment":
                    levels = levels[1:]
                outputs = [f"{col}.{lvl}" for lvl in levels]
            else:
                outputs = [col]
            for name in outputs:
                self.feature_names_out.append(name)
                self.source[name] = col
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        blocks = {}
        for col in self.columns:
            ftype = self.types[col]
            values = X[col]
            if ftype == "factor":
                cat = pd.Categorical(values, categories=self.levels[col])
                missing = pd.isna(cat)
                levels = self.levels[col][1:] if self.method == "treatment" else self.levels[col]
                for lvl in levels:
                    dummy = np.asarray(cat == lvl, dtype=float)
                    dummy[missing] = np.nan
                    blocks[f"{col}.{lvl}"] = dummy
            elif ftype == "ordered":
                codes = pd.Categorical(values, categories=self.levels[col], ordered=True).codes.astype(float)
                codes[codes < 0] = np.nan
                blocks[col] = codes
            elif ftype == "logical":
                blocks[col] = values.to_numpy(dtype=float, na_value=np.nan)
            else:
                blocks[col] = pd.to_numeric(values, errors="coerce").astype(float).to_numpy()
        return pd.DataFrame(blocks, index=X.index, columns=self.feature_names_out)

    def fit_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.fit(X).transform(X)

    def aggregate(self, scores) -> pd.Series:
        """Sum per-output-column scores back to the input features."""
        scores = pd.Series(np.asarray(scores, dtype=float), index=self.feature_names_out)
        grouped = scores.groupby([self.source[name] for name in scores.index]).sum()
        return grouped.reindex(self.columns, fill_value=0.0)
