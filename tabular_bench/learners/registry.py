# tabular_bench/learners/registry.py
"""Thread-safe singleton registry of learner classes.

Learners are looked up by key (``classif.ranger``); users can register
their own ``Learner`` subclasses under new keys.
"""

from threading import Lock
from typing import Any, Dict, List, Sequence

import pandas as pd

from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger
from .base import Learner

logger = get_logger(__name__)


class LearnerRegistry:
    """Singleton mapping learner keys to classes."""

    _instance = None
    _lock = Lock()

    def __new__(cls) -> 'LearnerRegistry':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, '_initialized', False):
            return
        self._learners: Dict[str, type] = {}
        self._initialized = True

    def register(self, key: str, learner_class: type) -> None:
        """Register a learner class.

        Raises:
            ConfigurationError: If the class does not inherit from ``Learner``
        """
        if not isinstance(learner_class, type) or not issubclass(learner_class, Learner):
            raise ConfigurationError(
                f"Learner class for '{key}' must inherit from Learner",
                error_code="INVALID_LEARNER_CLASS"
            )
        with self._lock:
            if key in self._learners:
                logger.warning(f"Overriding existing learner: {key}")
            self._learners[key] = learner_class
        logger.debug(f"Registered learner: {key}")

    def get(self, key: str) -> type:
        if key not in self._learners:
            raise ConfigurationError(
                f"Unknown learner: {key}. Available: {self.keys()}",
                error_code="UNKNOWN_LEARNER"
            )
        return self._learners[key]

    def unregister(self, key: str) -> None:
        with self._lock:
            self._learners.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._learners)


def register_learner(key: str, learner_class: type) -> None:
    """Register a custom learner under ``key``.

    Example:
        >>> register_learner("classif.my_tree", MyTreeLearner)
        >>> lrn("classif.my_tree")
    """
    LearnerRegistry().register(key, learner_class)


def lrn(key: str, **params: Any) -> Learner:
    """Construct a learner by key.

    Args:
        key: Registry key, e.g. ``classif.log_reg``
        **params: ``id``, ``predict_type`` and hyperparameters

    Example:
        >>> learner = lrn("classif.ranger", predict_type="prob", num_trees=200)
    """
    return LearnerRegistry().get(key)(**params)


def lrns(keys: Sequence[str], **params: Any) -> List[Learner]:
    """Construct several learners sharing the same settings."""
    return [lrn(key, **params) for key in keys]


def list_learners() -> pd.DataFrame:
    """Overview of the registered learners."""
    registry = LearnerRegistry()
    rows = []
    for key in registry.keys():
        cls = registry.get(key)
        rows.append({
            "key": key,
            "properties": ", ".join(sorted(cls.properties)),
            "feature_types": ", ".join(sorted(cls.feature_types)),
            "predict_types": ", ".join(cls.predict_types),
        })
    return pd.DataFrame(rows)
