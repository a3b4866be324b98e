# tabular_bench/pipelines/transforms.py
"""Feature transformation operators."""

from typing import Any, Callable, Dict, Union

import pandas as pd

from ..learners.encoding import FeatureEncoder
from ..utils.exceptions import PipelineError, validate_parameter
from ..utils.logger import get_logger
from .pipeop import PipeOp, PipeOpTaskPreproc
from .selectors import selector_all, selector_type

logger = get_logger(__name__)


class PipeOpMutate(PipeOpTaskPreproc):
    """Add or overwrite features computed from the current features.

    ``mutation`` maps each new column name to a callable receiving the
    feature table, or to a ``DataFrame.eval`` expression string. With
    ``delete_originals`` the affected columns are dropped afterwards.

    Example:
        >>> po("mutate", mutation={"family_size": lambda df: df["sibsp"] + df["parch"] + 1})
    """

    key = "mutate"
    default_params: Dict[str, Any] = {"affect_columns": None, "mutation": {}, "delete_originals": False}

    def _mutate(self, features: pd.DataFrame) -> pd.DataFrame:
        out = features.copy()
        mutation: Dict[str, Union[str, Callable]] = self.param_values["mutation"] or {}
        for name, expr in mutation.items():
            value = expr(features) if callable(expr) else features.eval(expr)
            if isinstance(value, pd.Series) and not value.index.equals(features.index):
                value = value.to_numpy()
            out[name] = value
        if self.param_values["delete_originals"]:
            drop = [col for col in self.state["affect_columns"] if col not in mutation]
            out = out.drop(columns=drop)
        return out

    def _train_features(self, features):
        return self._mutate(features)

    def _predict_features(self, features):
        return self._mutate(features)


class PipeOpCollapseFactors(PipeOpTaskPreproc):
    """Merge rare factor levels.

    Per column the least frequent level is merged into the second least
    frequent one, until ``target_level_count`` levels remain or the rarest
    level's training prevalence exceeds ``no_collapse_above_prevalence``.
    """

    key = "collapsefactors"
    default_params: Dict[str, Any] = {
        "affect_columns": selector_type("factor", "ordered"),
        "target_level_count": 2,
        "no_collapse_above_prevalence": 1.0,
    }

    def set_params(self, **params: Any) -> "PipeOpCollapseFactors":
        super().set_params(**params)
        validate_parameter("target_level_count", self.param_values["target_level_count"], min_value=2)
        validate_parameter("no_collapse_above_prevalence", self.param_values["no_collapse_above_prevalence"],
                           min_value=0.0, max_value=1.0)
        return self

    def _collapse_map(self, values: pd.Series) -> Dict[Any, Any]:
        prevalence = values.value_counts(normalize=True, sort=False).reindex(
            values.cat.categories, fill_value=0.0
        )
        groups = {lvl: [lvl] for lvl in prevalence.index}
        shares = prevalence.to_dict()
        while len(shares) > self.param_values["target_level_count"]:
            ranked = sorted(shares, key=lambda lvl: shares[lvl])
            rarest, second = ranked[0], ranked[1]
            if shares[rarest] > self.param_values["no_collapse_above_prevalence"]:
                break
            shares[second] += shares.pop(rarest)
            groups[second].extend(groups.pop(rarest))
        return {old: new for new, olds in groups.items() for old in olds}

    def _train_features(self, features):
        cols = [col for col in self.state["affect_columns"]
                if isinstance(features[col].dtype, pd.CategoricalDtype)]
        self.state["affect_columns"] = cols
        self.state["maps"] = {col: self._collapse_map(features[col]) for col in cols}
        return self._apply(features)

    def _predict_features(self, features):
        return self._apply(features)

    def _apply(self, features: pd.DataFrame) -> pd.DataFrame:
        out = features.copy()
        for col, mapping in self.state["maps"].items():
            dtype = features[col].dtype
            ordered = isinstance(dtype, pd.CategoricalDtype) and dtype.ordered
            kept = list(dict.fromkeys(mapping.values()))
            mapped = features[col].astype(object).map(mapping)
            out[col] = pd.Categorical(mapped, categories=kept, ordered=ordered)
        return out


class PipeOpSelect(PipeOp):
    """Keep only the features chosen by ``selector``."""

    key = "select"
    default_params: Dict[str, Any] = {"selector": selector_all()}

    def _train(self, inputs):
        task = inputs[0]
        self.state = {"features": self.param_values["selector"](task)}
        return [task.clone().select(self.state["features"])]

    def _predict(self, inputs):
        task = inputs[0]
        missing = [col for col in self.state["features"] if col not in task.feature_names]
        if missing:
            raise PipelineError(
                f"PipeOp '{self.id}' was trained with column(s) {missing} that are absent at prediction",
                error_code="MISSING_COLUMNS"
            )
        return [task.clone().select(self.state["features"])]


class PipeOpFixFactors(PipeOpTaskPreproc):
    """Keep factor level sets fixed to those seen in training.

    Levels unseen in training become missing at prediction. With
    ``droplevels`` levels without training observations are dropped.
    """

    key = "fixfactors"
    default_params: Dict[str, Any] = {
        "affect_columns": selector_type("factor", "ordered"),
        "droplevels": True,
    }

    def _train_features(self, features):
        levels = {}
        for col in self.state["affect_columns"]:
            values = features[col]
            if not isinstance(values.dtype, pd.CategoricalDtype):
                continue
            cats = list(values.cat.categories)
            if self.param_values["droplevels"]:
                seen = set(values.dropna())
                cats = [lvl for lvl in cats if lvl in seen]
            levels[col] = (cats, bool(values.dtype.ordered))
        self.state["levels"] = levels
        return self._apply(features)

    def _predict_features(self, features):
        return self._apply(features)

    def _apply(self, features: pd.DataFrame) -> pd.DataFrame:
        out = features.copy()
        for col, (cats, ordered) in self.state["levels"].items():
            out[col] = pd.Categorical(features[col].astype(object), categories=cats, ordered=ordered)
        return out


class PipeOpEncode(PipeOpTaskPreproc):
    """Expand factors into numeric indicator columns ``<col>.<level>``."""

    key = "encode"
    default_params: Dict[str, Any] = {
        "affect_columns": selector_type("factor", "ordered"),
        "method": "one-hot",
    }

    def _train_features(self, features):
        validate_parameter("method", self.param_values["method"], valid_values=["one-hot", "treatment"])
        cols = [col for col in self.state["affect_columns"]
                if isinstance(features[col].dtype, pd.CategoricalDtype)]
        self.state["affect_columns"] = cols
        encoder = FeatureEncoder(self.param_values["method"])
        encoder.fit(self._unordered(features[cols]))
        self.state["encoder"] = encoder
        return self._apply(features)

    def _predict_features(self, features):
        return self._apply(features)

    @staticmethod
    def _unordered(frame: pd.DataFrame) -> pd.DataFrame:
        return frame.apply(lambda s: s.cat.as_unordered())

    def _apply(self, features: pd.DataFrame) -> pd.DataFrame:
        cols = self.state["affect_columns"]
        if not cols:
            return features
        encoded = self.state["encoder"].transform(self._unordered(features[cols]))
        return pd.concat([features.drop(columns=cols), encoded], axis=1)


class PipeOpScale(PipeOpTaskPreproc):
    """Center and scale numeric features with training means and standard deviations."""

    key = "scale"
    default_params: Dict[str, Any] = {
        "affect_columns": selector_type("numeric", "integer"),
        "center": True,
        "scale": True,
    }

    def _train_features(self, features):
        cols = self.state["affect_columns"]
        values = features[cols].astype(float)
        center = values.mean() if self.param_values["center"] else pd.Series(0.0, index=cols)
        scale = values.std(ddof=1) if self.param_values["scale"] else pd.Series(1.0, index=cols)
        scale = scale.replace(0.0, 1.0).fillna(1.0)
        self.state["center"] = center
        self.state["scale"] = scale
        return self._apply(features)

    def _predict_features(self, features):
        return self._apply(features)

    def _apply(self, features: pd.DataFrame) -> pd.DataFrame:
        out = features.copy()
        for col in self.state["affect_columns"]:
            out[col] = (features[col].astype(float) - self.state["center"][col]) / self.state["scale"][col]
        return out
