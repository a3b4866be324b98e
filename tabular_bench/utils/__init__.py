"""Tabular Bench - Utility Components.

Shared logging, timing and error handling used throughout the package.

Example:
    >>> from tabular_bench.utils import get_logger, timed_operation
    >>> logger = get_logger(__name__)
    >>> with timed_operation('resample'):
    ...     pass
"""

from .logger import (
    get_logger,
    configure_logging,
    set_log_level,
    temporary_log_level
)
from .timer import (
    timer,
    timed_operation,
    get_performance_stats,
    reset_performance_stats,
    performance_summary
)
from .exceptions import (
    TabularBenchError,
    ConfigurationError,
    DataValidationError,
    DataLoadingError,
    LearnerError,
    ResamplingError,
    MeasureError,
    PipelineError,
    TuningError,
    FileOperationError,
    PerformanceError,
    handle_and_reraise,
    validate_parameter,
    create_error_context
)
from .error_handling import (
    ErrorContext,
    ErrorHandler,
    learner_operation_context,
    pipeline_operation_context,
    config_operation_context,
    handle_errors
)

__all__ = [
    'get_logger',
    'configure_logging',
    'set_log_level',
    'temporary_log_level',

    'timer',
    'timed_operation',
    'get_performance_stats',
    'reset_performance_stats',
    'performance_summary',

    'TabularBenchError',
    'ConfigurationError',
    'DataValidationError',
    'DataLoadingError',
    'LearnerError',
    'ResamplingError',
    'MeasureError',
    'PipelineError',
    'TuningError',
    'FileOperationError',
    'PerformanceError',
    'handle_and_reraise',
    'validate_parameter',
    'create_error_context',

    'ErrorContext',
    'ErrorHandler',
    'learner_operation_context',
    'pipeline_operation_context',
    'config_operation_context',
    'handle_errors'
]
