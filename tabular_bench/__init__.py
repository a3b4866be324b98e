# tabular_bench/__init__.py
"""Tabular Bench - Benchmarking and Pipelines for Tabular Classification.

Tasks, learners, resampling and benchmarking for tabular classification,
with pipeline graphs for imputation and feature engineering:
- Tasks binding a data table to a target, with German credit and Titanic loaders
- Learners wrapping scikit-learn and xgboost behind one train/predict interface
- Holdout, cross-validation, bootstrap and subsampling with reproducible splits
- Benchmarks of many learners on identical splits, with aggregation and ranking
- Pipeline operators (imputation, missing indicators, mutation, factor
  collapsing) composed into graphs and used as learners
- Optuna-backed tuning and matplotlib/seaborn plots

Quick Start:
    >>> import tabular_bench as tb
    >>> task = tb.tsk("german_credit")
    >>> learners = [tb.lrn("classif.log_reg"), tb.lrn("classif.ranger")]
    >>> design = tb.benchmark_grid(task, learners, tb.rsmp("cv", folds=3), seed=1)
    >>> bmr = tb.benchmark(design)
    >>> bmr.aggregate(tb.msrs(["classif.ce", "classif.acc"]))

Pipelines:
    >>> task = tb.tsk("titanic")
    >>> graph = (tb.gunion([tb.po("imputehist"), tb.po("missind")])
    ...          >> tb.po("featureunion")
    ...          >> tb.po("imputenewlvl")
    ...          >> tb.lrn("classif.ranger"))
    >>> learner = tb.GraphLearner(graph)
    >>> tb.resample(task, learner, tb.rsmp("cv", folds=3)).aggregate()
"""

__version__ = "1.0.0"
__description__ = "Benchmarking and pipelines for tabular classification"

from .utils.logger import configure_logging, get_logger

configure_logging(
    level="INFO",
    format_style="detailed",
    include_console=True
)

logger = get_logger(__name__)
logger.debug(f"Tabular Bench v{__version__} initialized")

# Data
from .data import ClassificationTask, tsk, load_german_credit, load_titanic, load_csv

# Learners, predictions and measures
from .learners import Learner, lrn, lrns, list_learners, register_learner
from .prediction import PredictionClassif, combine_predictions
from .measures import Measure, msr, msrs, list_measures

# Resampling and benchmarking
from .resampling import Resampling, ResampleResult, rsmp, rsmps, resample
from .benchmark import BenchmarkResult, benchmark, benchmark_grid

# Pipelines
from .pipelines import (
    PipeOp,
    Graph,
    GraphLearner,
    as_graph,
    as_learner,
    gunion,
    po,
    pos,
    list_pipeops,
    selector_all,
    selector_type,
    selector_name,
    selector_grep,
    selector_invert,
    selector_missing
)

# Tuning
from .tuning import tune, AutoTuner, TuningResult, p_int, p_dbl, p_fct

# Configuration and workflows
from .config import ExperimentConfig, LearnerSpec, ResamplingSpec, load_config, save_config
from .api import run_experiment

# Utilities
from .utils.logger import set_log_level
from .utils.timer import timer, timed_operation
from .utils.exceptions import (
    TabularBenchError,
    ConfigurationError,
    DataValidationError,
    DataLoadingError,
    LearnerError,
    ResamplingError,
    MeasureError,
    PipelineError,
    TuningError
)

__all__ = [
    # Data
    'ClassificationTask',
    'tsk',
    'load_german_credit',
    'load_titanic',
    'load_csv',

    # Learners, predictions and measures
    'Learner',
    'lrn',
    'lrns',
    'list_learners',
    'register_learner',
    'PredictionClassif',
    'combine_predictions',
    'Measure',
    'msr',
    'msrs',
    'list_measures',

    # Resampling and benchmarking
    'Resampling',
    'ResampleResult',
    'rsmp',
    'rsmps',
    'resample',
    'BenchmarkResult',
    'benchmark',
    'benchmark_grid',

    # Pipelines
    'PipeOp',
    'Graph',
    'GraphLearner',
    'as_graph',
    'as_learner',
    'gunion',
    'po',
    'pos',
    'list_pipeops',
    'selector_all',
    'selector_type',
    'selector_name',
    'selector_grep',
    'selector_invert',
    'selector_missing',

    # Tuning
    'tune',
    'AutoTuner',
    'TuningResult',
    'p_int',
    'p_dbl',
    'p_fct',

    # Configuration and workflows
    'ExperimentConfig',
    'LearnerSpec',
    'ResamplingSpec',
    'load_config',
    'save_config',
    'run_experiment',

    # Utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'timer',
    'timed_operation',

    # Exceptions
    'TabularBenchError',
    'ConfigurationError',
    'DataValidationError',
    'DataLoadingError',
    'LearnerError',
    'ResamplingError',
    'MeasureError',
    'PipelineError',
    'TuningError',

    # Metadata
    '__version__',
]
