# tabular_bench/config/experiment_config.py
"""Type-safe experiment configuration.

An ``ExperimentConfig`` describes a benchmark: which tasks to load, which
learners (optionally behind a preprocessing pipeline) to compare, how to
resample and which measures to report. Configs validate themselves on
construction and can be overridden from ``TABULAR_BENCH_*`` environment
variables.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Union

from ..utils.exceptions import ConfigurationError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "TABULAR_BENCH_"


@dataclass
class PipeOpSpec:
    """A pipeline operator by key, with its parameters."""

    key: str
    params: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    def __post_init__(self) -> None:
        validate_parameter("key", self.key, required=True)

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> "PipeOpSpec":
        if isinstance(data, str):
            return cls(key=data)
        return cls(key=data.get("key"), params=dict(data.get("params") or {}), id=data.get("id"))


@dataclass
class LearnerSpec:
    """A learner by key, with hyperparameters and an optional pipeline in front.

    Each ``pipeline`` step is either one operator or a list of operators that
    run in parallel on the same input (a union of branches).
    """

    key: str
    params: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    predict_type: str = "response"
    pipeline: List[Union[PipeOpSpec, List[PipeOpSpec]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        validate_parameter("key", self.key, required=True)
        validate_parameter("predict_type", self.predict_type, valid_values=["response", "prob"])

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> "LearnerSpec":
        if isinstance(data, str):
            return cls(key=data)
        pipeline = []
        for step in data.get("pipeline") or []:
            if isinstance(step, list):
                pipeline.append([PipeOpSpec.from_dict(s) for s in step])
            else:
                pipeline.append(PipeOpSpec.from_dict(step))
        return cls(
            key=data.get("key"),
            params=dict(data.get("params") or {}),
            id=data.get("id"),
            predict_type=data.get("predict_type", "response"),
            pipeline=pipeline,
        )


@dataclass
class ResamplingSpec:
    """A resampling scheme by key, with its parameters."""

    key: str = "cv"
    params: Dict[str, Any] = field(default_factory=lambda: {"folds": 3})
    stratify: bool = False

    def __post_init__(self) -> None:
        validate_parameter(
            "resampling key", self.key,
            valid_values=["holdout", "cv", "repeated_cv", "subsampling", "bootstrap", "insample"]
        )

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> "ResamplingSpec":
        if isinstance(data, str):
            return cls(key=data, params={})
        return cls(
            key=data.get("key", "cv"),
            params=dict(data.get("params") or {}),
            stratify=bool(data.get("stratify", False)),
        )


@dataclass
class ExperimentConfig:
    """Configuration of a complete benchmark experiment.

    Example:
        >>> config = ExperimentConfig(
        ...     tasks=["german_credit"],
        ...     learners=[LearnerSpec("classif.log_reg"), LearnerSpec("classif.ranger")],
        ...     resampling=ResamplingSpec("cv", {"folds": 5}),
        ...     measures=["classif.ce", "classif.acc"],
        ... )
        >>> config.update_from_env()
    """

    experiment_name: str = "benchmark"
    description: str = ""
    tasks: List[str] = field(default_factory=lambda: ["german_credit"])
    learners: List[LearnerSpec] = field(default_factory=lambda: [LearnerSpec("classif.featureless")])
    resampling: ResamplingSpec = field(default_factory=ResamplingSpec)
    measures: List[str] = field(default_factory=lambda: ["classif.ce"])
    random_state: Optional[int] = 42
    n_jobs: int = 1
    store_models: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    output_dir: Optional[str] = None
    data_home: Optional[str] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check every field; raises ConfigurationError on the first problem."""
        validate_parameter("experiment_name", self.experiment_name, required=True)
        validate_parameter("log_level", self.log_level, valid_values=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
        if self.random_state is not None:
            validate_parameter("random_state", self.random_state, min_value=0)
        if self.n_jobs == 0 or self.n_jobs < -1:
            raise ConfigurationError(
                f"n_jobs must be -1 or a positive integer, got {self.n_jobs}",
                error_code="PARAM_INVALID_VALUE",
                context={"parameter": "n_jobs", "value": self.n_jobs}
            )
        for name in ("tasks", "learners", "measures"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f"Experiment '{self.experiment_name}' needs at least one entry in '{name}'",
                    error_code="PARAM_REQUIRED",
                    context={"parameter": name}
                )
        learner_ids = [spec.id or spec.key for spec in self.learners]
        duplicates = sorted({i for i in learner_ids if learner_ids.count(i) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Learner ids must be unique; give {duplicates} distinct 'id' values",
                error_code="DUPLICATE_LEARNER_ID"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperimentConfig":
        data = dict(data)
        if "learners" in data:
            data["learners"] = [LearnerSpec.from_dict(spec) for spec in data["learners"]]
        if "resampling" in data:
            data["resampling"] = ResamplingSpec.from_dict(data["resampling"])
        if isinstance(data.get("tasks"), str):
            data["tasks"] = [data["tasks"]]
        if isinstance(data.get("measures"), str):
            data["measures"] = [data["measures"]]

        unknown = sorted(set(data) - set(cls.__dataclass_fields__))
        if unknown:
            raise ConfigurationError(
                f"Unknown experiment setting(s): {unknown}",
                error_code="UNKNOWN_CONFIG_KEY",
                context={"valid_keys": sorted(cls.__dataclass_fields__)}
            )
        return cls(**data)

    def update_from_env(self, prefix: str = ENV_PREFIX) -> None:
        """Update scalar settings from environment variables.

        Args:
            prefix: Environment variable prefix, e.g. ``TABULAR_BENCH_N_JOBS``
        """
        for field_name, field_def in self.__dataclass_fields__.items():
            env_name = f"{prefix}{field_name.upper()}"
            if env_name not in os.environ:
                continue
            try:
                env_value = os.environ[env_name]
                field_type = field_def.type

                if field_type == int or field_type == Optional[int]:
                    converted_value = int(env_value)
                elif field_type == bool:
                    converted_value = env_value.lower() in ("true", "1", "yes", "on")
                elif field_type == List[str]:
                    converted_value = [v.strip() for v in env_value.split(",") if v.strip()]
                elif field_type == str or field_type == Optional[str]:
                    converted_value = env_value
                else:
                    logger.warning(f"Setting '{field_name}' cannot be overridden from the environment")
                    continue

                setattr(self, field_name, converted_value)
                logger.info(f"Updated {field_name} from environment: {converted_value}")

            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to parse environment variable {env_name}: {e}")

        self.validate()
