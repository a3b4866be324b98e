"""Tabular Bench - Learners.

Example:
    >>> from tabular_bench.learners import lrn
    >>> learner = lrn("classif.rpart", predict_type="prob")
    >>> learner.train(task)
    >>> learner.importance()
"""

from .base import Learner, LearnerState
from .encoding import FeatureEncoder
from .sklearn_learners import (
    EncodedEstimator,
    SklearnLearner,
    FeaturelessLearner,
    LogRegLearner,
    RangerLearner,
    RpartLearner
)
from .xgboost_learner import XGBoostLearner, XGBOOST_AVAILABLE
from .registry import LearnerRegistry, register_learner, lrn, lrns, list_learners

for _cls in (FeaturelessLearner, LogRegLearner, RangerLearner, RpartLearner, XGBoostLearner):
    register_learner(_cls.key, _cls)

__all__ = [
    'Learner',
    'LearnerState',
    'FeatureEncoder',
    'EncodedEstimator',
    'SklearnLearner',
    'FeaturelessLearner',
    'LogRegLearner',
    'RangerLearner',
    'RpartLearner',
    'XGBoostLearner',
    'XGBOOST_AVAILABLE',
    'LearnerRegistry',
    'register_learner',
    'lrn',
    'lrns',
    'list_learners'
]
