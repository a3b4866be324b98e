"""Tabular Bench - Configuration.

Example:
    >>> from tabular_bench.config import load_config, build_benchmark_design
    >>> config = load_config("experiment.yaml")
    >>> design = build_benchmark_design(config)
"""

from .experiment_config import ExperimentConfig, LearnerSpec, PipeOpSpec, ResamplingSpec, ENV_PREFIX
from .loader import (
    load_yaml,
    load_config,
    save_config,
    build_pipeop,
    build_learner,
    build_resampling,
    build_benchmark_design
)

__all__ = [
    'ExperimentConfig',
    'LearnerSpec',
    'PipeOpSpec',
    'ResamplingSpec',
    'ENV_PREFIX',
    'load_yaml',
    'load_config',
    'save_config',
    'build_pipeop',
    'build_learner',
    'build_resampling',
    'build_benchmark_design'
]
