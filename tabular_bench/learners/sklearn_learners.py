# tabular_bench/learners/sklearn_learners.py
"""Classification learners backed by scikit-learn estimators."""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.inspection import permutation_importance
from sklearn.linear_model import LogisticRegression
from sklearn.tree import DecisionTreeClassifier

from ..utils.exceptions import LearnerError, validate_parameter
from ..utils.logger import get_logger
from .base import Learner
from .encoding import FeatureEncoder

logger = get_logger(__name__)


@dataclass
class EncodedEstimator:
    """A fitted estimator together with the encoder that produced its inputs."""

    estimator: Any
    encoder: FeatureEncoder
    importance: Optional[np.ndarray] = None
    classes: Optional[List[Any]] = None


class SklearnLearner(Learner):
    """Learner wrapping a scikit-learn classifier.

    Subclasses build the estimator from ``param_values`` in
    ``_make_estimator``; features are encoded with ``encoding``.
    """

    encoding = "one-hot"

    def _make_estimator(self, n_features: int) -> Any:
        raise NotImplementedError()

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> EncodedEstimator:
        encoder = FeatureEncoder(self.encoding).fit(X)
        Xt = encoder.transform(X).to_numpy()
        labels = y.astype(object).to_numpy()
        estimator = self._make_estimator(Xt.shape[1])
        estimator.fit(Xt, labels)
        return EncodedEstimator(estimator=estimator, encoder=encoder)

    def _predict_frame(self, X: pd.DataFrame) -> Tuple[np.ndarray, Optional[pd.DataFrame]]:
        fitted = self.state.model
        Xt = fitted.encoder.transform(X).to_numpy()
        prob = pd.DataFrame(fitted.estimator.predict_proba(Xt), columns=list(fitted.estimator.classes_))
        # ties resolve towards the earlier class level
        classes = [cls for cls in self.state.class_names if cls in prob.columns]
        response = prob[classes].idxmax(axis=1).to_numpy()
        return response, prob

    def _importance(self) -> pd.Series:
        fitted = self.state.model
        return fitted.encoder.aggregate(fitted.estimator.feature_importances_)


class FeaturelessLearner(Learner):
    """Baseline that ignores all features.

    ``method="mode"`` predicts the majority class with the training class
    frequencies as probabilities; ``sample`` draws labels uniformly and
    ``weighted.sample`` draws them by frequency.
    """

    key = "classif.featureless"
    properties = frozenset({"twoclass", "multiclass", "missings", "importance"})
    feature_types = frozenset({"logical", "integer", "numeric", "character", "factor", "ordered"})
    default_params = {"method": "mode", "seed": None}

    _strategies = {"mode": "prior", "sample": "uniform", "weighted.sample": "stratified"}

    def _validate_params(self) -> None:
        validate_parameter("method", self.param_values["method"], valid_values=list(self._strategies))

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> DummyClassifier:
        estimator = DummyClassifier(
            strategy=self._strategies[self.param_values["method"]],
            random_state=self.param_values["seed"],
        )
        estimator.fit(np.zeros((len(y), 1)), y.astype(object).to_numpy())
        return estimator

    def _predict_frame(self, X: pd.DataFrame) -> Tuple[np.ndarray, Optional[pd.DataFrame]]:
        estimator = self.state.model
        dummy = np.zeros((len(X), 1))
        response = estimator.predict(dummy)
        prob = pd.DataFrame(estimator.predict_proba(dummy), columns=list(estimator.classes_))
        return response, prob

    def _importance(self) -> pd.Series:
        return pd.Series(0.0, index=self.state.feature_names)


class LogRegLearner(SklearnLearner):
    """Logistic regression, unpenalized by default.

    Factors use treatment coding so that, as in a classical GLM, the first
    level is the reference. ``coefficients()`` returns the fitted
    coefficients on the log-odds of the positive class.
    """

    key = "classif.log_reg"
    properties = frozenset({"twoclass"})
    encoding = "treatment"
    default_params = {"penalty": None, "C": 1.0, "max_iter": 1000, "tol": 1e-4}

    def _validate_params(self) -> None:
        validate_parameter("penalty", self.param_values["penalty"], valid_values=[None, "l2"])
        validate_parameter("C", self.param_values["C"], min_value=0.0)
        validate_parameter("max_iter", self.param_values["max_iter"], min_value=1)

    def _make_estimator(self, n_features: int) -> LogisticRegression:
        p = self.param_values
        return LogisticRegression(penalty=p["penalty"], C=p["C"], max_iter=p["max_iter"], tol=p["tol"])

    def coefficients(self) -> pd.Series:
        """Intercept and coefficients on the log-odds of the positive class."""
        self._assert_trained()
        fitted = self.state.model
        estimator = fitted.estimator
        coef = estimator.coef_[0]
        intercept = estimator.intercept_[0]
        # sklearn models the log-odds of classes_[1]
        if estimator.classes_[1] != self.state.positive:
            coef, intercept = -coef, -intercept
        return pd.Series(
            np.concatenate([[intercept], coef]),
            index=["(Intercept)"] + fitted.encoder.feature_names_out,
        )


class RangerLearner(SklearnLearner):
    """Random forest.

    Importance must be requested before training with
    ``importance="impurity"`` or ``importance="permutation"``; permutation
    importance is computed on the training data.
    """

    key = "classif.ranger"
    properties = frozenset({"twoclass", "multiclass", "importance"})
    default_params = {
        "num_trees": 500,
        "mtry": None,
        "min_node_size": 1,
        "max_depth": None,
        "replace": True,
        "sample_fraction": None,
        "importance": None,
        "num_threads": 1,
        "seed": None,
    }

    def _validate_params(self) -> None:
        p = self.param_values
        validate_parameter("num_trees", p["num_trees"], min_value=1)
        validate_parameter("min_node_size", p["min_node_size"], min_value=1)
        validate_parameter("importance", p["importance"], valid_values=[None, "impurity", "permutation"])
        if p["mtry"] is not None:
            validate_parameter("mtry", p["mtry"], min_value=1)
        if p["sample_fraction"] is not None:
            validate_parameter("sample_fraction", p["sample_fraction"], min_value=0.0, max_value=1.0)

    def _make_estimator(self, n_features: int) -> RandomForestClassifier:
        p = self.param_values
        mtry = "sqrt" if p["mtry"] is None else min(int(p["mtry"]), max(n_features, 1))
        return RandomForestClassifier(
            n_estimators=int(p["num_trees"]),
            max_features=mtry,
            min_samples_leaf=int(p["min_node_size"]),
            max_depth=p["max_depth"],
            bootstrap=p["replace"],
            max_samples=p["sample_fraction"] if p["replace"] else None,
            n_jobs=p["num_threads"],
            random_state=p["seed"],
        )

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> EncodedEstimator:
        fitted = super()._fit(X, y)
        if self.param_values["importance"] == "permutation":
            Xt = fitted.encoder.transform(X).to_numpy()
            result = permutation_importance(
                fitted.estimator, Xt, y.astype(object).to_numpy(),
                n_repeats=5, random_state=self.param_values["seed"]
            )
            fitted.importance = result.importances_mean
        return fitted

    def _importance(self) -> pd.Series:
        mode = self.param_values["importance"]
        if mode is None:
            raise LearnerError(
                f"No importance stored for '{self.id}'; "
                f"train with importance='impurity' or importance='permutation'",
                error_code="NO_IMPORTANCE"
            )
        fitted = self.state.model
        if mode == "permutation":
            return fitted.encoder.aggregate(fitted.importance)
        return fitted.encoder.aggregate(fitted.estimator.feature_importances_)


class RpartLearner(SklearnLearner):
    """Single classification tree.

    ``cp`` is passed as the cost-complexity pruning strength. Missing
    values are routed natively by the tree.
    """

    key = "classif.rpart"
    properties = frozenset({"twoclass", "multiclass", "missings", "importance"})
    default_params = {"cp": 0.01, "maxdepth": 30, "minsplit": 20, "minbucket": None, "seed": None}

    def _validate_params(self) -> None:
        p = self.param_values
        validate_parameter("cp", p["cp"], min_value=0.0, max_value=1.0)
        validate_parameter("maxdepth", p["maxdepth"], min_value=1, max_value=30)
        validate_parameter("minsplit", p["minsplit"], min_value=2)
        if p["minbucket"] is not None:
            validate_parameter("minbucket", p["minbucket"], min_value=1)

    def _make_estimator(self, n_features: int) -> DecisionTreeClassifier:
        p = self.param_values
        minbucket = p["minbucket"] if p["minbucket"] is not None else max(1, round(p["minsplit"] / 3))
        return DecisionTreeClassifier(
            ccp_alpha=p["cp"],
            max_depth=p["maxdepth"],
            min_samples_split=p["minsplit"],
            min_samples_leaf=minbucket,
            random_state=p["seed"],
        )
