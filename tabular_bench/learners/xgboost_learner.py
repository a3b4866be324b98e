# tabular_bench/learners/xgboost_learner.py
"""Gradient boosted trees via XGBoost."""

from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ..utils.exceptions import ConfigurationError, validate_parameter
from ..utils.logger import get_logger
from .encoding import FeatureEncoder
from .sklearn_learners import EncodedEstimator, SklearnLearner

logger = get_logger(__name__)

try:
    import xgboost as xgb
    XGBOOST_AVAILABLE = True
except ImportError:
    XGBOOST_AVAILABLE = False
    logger.warning("XGBoost not available")


class XGBoostLearner(SklearnLearner):
    """Boosted trees; missing values are handled natively.

    Labels are passed to XGBoost as consecutive integer codes of the
    classes present in the training rows.
    """

    key = "classif.xgboost"
    properties = frozenset({"twoclass", "multiclass", "missings", "importance"})
    default_params = {
        "nrounds": 100,
        "eta": 0.3,
        "max_depth": 6,
        "min_child_weight": 1.0,
        "subsample": 1.0,
        "colsample_bytree": 1.0,
        "lambda": 1.0,
        "alpha": 0.0,
        "nthread": 1,
        "seed": None,
    }

    def _validate_params(self) -> None:
        p = self.param_values
        validate_parameter("nrounds", p["nrounds"], min_value=1)
        validate_parameter("eta", p["eta"], min_value=0.0, max_value=1.0)
        validate_parameter("max_depth", p["max_depth"], min_value=0)
        validate_parameter("subsample", p["subsample"], min_value=0.0, max_value=1.0)
        validate_parameter("colsample_bytree", p["colsample_bytree"], min_value=0.0, max_value=1.0)

    def _make_estimator(self, n_features: int):
        if not XGBOOST_AVAILABLE:
            raise ConfigurationError(
                "XGBoost is not installed. Install with: pip install xgboost",
                error_code="XGBOOST_NOT_AVAILABLE"
            )
        p = self.param_values
        return xgb.XGBClassifier(
            n_estimators=int(p["nrounds"]),
            learning_rate=p["eta"],
            max_depth=int(p["max_depth"]),
            min_child_weight=p["min_child_weight"],
            subsample=p["subsample"],
            colsample_bytree=p["colsample_bytree"],
            reg_lambda=p["lambda"],
            reg_alpha=p["alpha"],
            n_jobs=p["nthread"],
            random_state=p["seed"],
            tree_method="hist",
            verbosity=0,
        )

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> EncodedEstimator:
        encoder = FeatureEncoder(self.encoding).fit(X)
        Xt = encoder.transform(X).to_numpy()
        labels = y.astype(object).to_numpy()
        present = [cls for cls in y.cat.categories if (labels == cls).any()]
        codes = np.array([present.index(label) for label in labels])

        estimator = self._make_estimator(Xt.shape[1])
        estimator.fit(Xt, codes)
        return EncodedEstimator(estimator=estimator, encoder=encoder, classes=present)

    def _predict_frame(self, X: pd.DataFrame) -> Tuple[np.ndarray, Optional[pd.DataFrame]]:
        fitted = self.state.model
        Xt = fitted.encoder.transform(X).to_numpy()
        prob = pd.DataFrame(fitted.estimator.predict_proba(Xt), columns=fitted.classes)
        response = prob.idxmax(axis=1).to_numpy()
        return response, prob
