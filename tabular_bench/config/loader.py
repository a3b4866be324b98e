# tabular_bench/config/loader.py
"""YAML loading of experiment configurations and conversion into benchmark designs."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
import yaml

from .experiment_config import ExperimentConfig, LearnerSpec, PipeOpSpec, ResamplingSpec
from ..benchmark import benchmark_grid
from ..data.datasets import tsk
from ..data.task import ClassificationTask
from ..learners.base import Learner
from ..learners.registry import lrn
from ..pipelines.graph import gunion
from ..pipelines.graph_learner import GraphLearner
from ..pipelines.registry import po
from ..resampling import Resampling, rsmp
from ..utils.error_handling import config_operation_context
from ..utils.exceptions import ConfigurationError, handle_and_reraise
from ..utils.logger import get_logger
from ..utils.timer import timer

logger = get_logger(__name__)


@timer(name="config_loading")
def load_yaml(file_path: Union[str, Path], encoding: str = "utf-8") -> Dict[str, Any]:
    """Load a YAML file into a dictionary.

    Raises:
        ConfigurationError: If the file is missing, malformed or not a mapping
    """
    file_path = Path(file_path)
    try:
        with open(file_path, "r", encoding=encoding) as f:
            config = yaml.safe_load(f)

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file must contain a dictionary, got {type(config)}")

        logger.debug(f"Loaded configuration from {file_path}")
        return config

    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {file_path}",
            error_code="CONFIG_FILE_NOT_FOUND",
            context={"file_path": str(file_path)}
        )
    except yaml.YAMLError as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Invalid YAML syntax in {file_path}",
            error_code="CONFIG_LOAD_FAILED",
            context={"file_path": str(file_path)}
        )


def load_config(file_path: Union[str, Path], environment_override: bool = True) -> ExperimentConfig:
    """Load an ``ExperimentConfig`` from YAML.

    Args:
        file_path: Path to the YAML file
        environment_override: Apply ``TABULAR_BENCH_*`` environment variables

    Example:
        >>> config = load_config("examples/configs/german_credit.yaml")
        >>> design = build_benchmark_design(config)
    """
    config = ExperimentConfig.from_dict(load_yaml(file_path))
    if environment_override:
        config.update_from_env()
    logger.info(
        f"Loaded experiment '{config.experiment_name}': {len(config.tasks)} task(s), "
        f"{len(config.learners)} learner(s), resampling '{config.resampling.key}'"
    )
    return config


def save_config(config: ExperimentConfig, file_path: Union[str, Path]) -> None:
    """Write an ``ExperimentConfig`` to YAML.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    file_path = Path(file_path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(
                config.to_dict(), f,
                default_flow_style=False,
                sort_keys=False,
                indent=2,
                allow_unicode=True
            )
        logger.info(f"Saved configuration to {file_path}")
    except OSError as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Failed to save configuration to {file_path}",
            error_code="CONFIG_SAVE_FAILED",
            context={"file_path": str(file_path)}
        )


def build_pipeop(spec: PipeOpSpec):
    params = dict(spec.params)
    if spec.id is not None:
        params["id"] = spec.id
    return po(spec.key, **params)


def build_learner(spec: LearnerSpec) -> Learner:
    """Construct the learner a spec describes.

    With a pipeline the steps are chained in order, list steps become a union
    of parallel branches, and the result is wrapped in a ``GraphLearner``.
    Failures other than ours surface as ``ConfigurationError`` with code
    ``BUILD_LEARNER_FAILED``.
    """
    with config_operation_context("build learner", user_data={"key": spec.key, "params": spec.params}):
        learner = lrn(spec.key, predict_type=spec.predict_type, **spec.params)
        if not spec.pipeline:
            if spec.id is not None:
                learner.id = spec.id
            return learner

        graph = None
        for step in spec.pipeline:
            if isinstance(step, list):
                node = gunion([build_pipeop(s) for s in step])
            else:
                node = build_pipeop(step)
            graph = node if graph is None else graph >> node
        return GraphLearner(graph >> learner, id=spec.id)


def build_resampling(spec: ResamplingSpec) -> Resampling:
    return rsmp(spec.key, stratify=spec.stratify, **spec.params)


def build_benchmark_design(
    config: ExperimentConfig,
    tasks: Optional[Sequence[ClassificationTask]] = None
) -> pd.DataFrame:
    """Turn a config into a benchmark design.

    Args:
        config: Experiment configuration
        tasks: Tasks to use instead of loading ``config.tasks`` by key

    Returns:
        Design table for ``benchmark``
    """
    if tasks is None:
        loader_args = {"data_home": config.data_home} if config.data_home else {}
        tasks = [tsk(key, **loader_args) for key in config.tasks]
    learners: List[Learner] = [build_learner(spec) for spec in config.learners]
    resampling = build_resampling(config.resampling)
    return benchmark_grid(list(tasks), learners, resampling, seed=config.random_state)
