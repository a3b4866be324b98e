# tabular_bench/utils/exceptions.py
"""Exception hierarchy for the tabular_bench package.

Every error raised by the package derives from ``TabularBenchError`` and
carries an optional error code plus a context dictionary, so failures deep
inside a resampling loop still say which task, learner and iteration broke.
"""

from typing import Any, Optional, Dict, List


class TabularBenchError(Exception):
    """Base exception for all tabular_bench errors.

    Provides common handling of error codes and context information
    for debugging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize TabularBenchError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg = f"{base_msg} (Context: {context_str})"
        return base_msg


class ConfigurationError(TabularBenchError):
    """Raised when configuration or parameter values are invalid.

    This exception is raised for issues with:
    - Invalid parameter values
    - Unknown registry keys (learners, measures, resamplings, operators)
    - Malformed configuration files
    """
    pass


class DataValidationError(TabularBenchError):
    """Raised when data does not fit the task it is bound to.

    This exception is raised for issues with:
    - Missing target or feature columns
    - Target columns that cannot be treated as class labels
    - Unknown row ids
    """
    pass


class DataLoadingError(TabularBenchError):
    """Raised when a dataset cannot be fetched or read."""
    pass


class LearnerError(TabularBenchError):
    """Raised when a learner cannot be trained or used for prediction.

    This exception is raised for issues with:
    - Tasks containing missing values or feature types the learner
      does not support
    - Predicting with an untrained learner
    - Requesting importance from a learner that does not provide it
    - Failures inside the underlying estimator
    """
    pass


class ResamplingError(TabularBenchError):
    """Raised when a resampling scheme cannot be instantiated or used."""
    pass


class MeasureError(TabularBenchError):
    """Raised when a performance measure cannot be computed."""
    pass


class PipelineError(TabularBenchError):
    """Raised when a pipeline graph is malformed or an operator fails.

    This exception is raised for issues with:
    - Duplicate operator ids
    - Edges to unknown operators or occupied input channels
    - Conflicting columns in a feature union
    - Predicting with untrained operators
    """
    pass


class TuningError(TabularBenchError):
    """Raised when hyperparameter tuning fails."""
    pass


class FileOperationError(TabularBenchError):
    """Raised when file I/O operations fail."""
    pass


class PerformanceError(TabularBenchError):
    """Raised when an operation exceeds its time budget."""
    pass


def handle_and_reraise(
    exception: Exception,
    error_class: type,
    message: str,
    error_code: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Re-raise an exception as a tabular_bench exception.

    Converts external exceptions into the package hierarchy while
    preserving the original traceback.

    Args:
        exception: Original exception that was caught
        error_class: TabularBenchError subclass to raise
        message: Custom error message
        error_code: Optional error code
        context: Optional error context

    Raises:
        error_class: The specified tabular_bench exception
    """
    if context is None:
        context = {}

    context["original_error"] = str(exception)
    context["original_error_type"] = type(exception).__name__

    raise error_class(message, error_code, context) from exception


def validate_parameter(
    param_name: str,
    param_value: Any,
    valid_values: Optional[List[Any]] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = False
) -> None:
    """Validate a parameter value and raise ConfigurationError if invalid.

    Args:
        param_name: Name of the parameter being validated
        param_value: Value to validate
        valid_values: List of valid values (if applicable)
        min_value: Minimum allowed value (for numeric parameters)
        max_value: Maximum allowed value (for numeric parameters)
        required: Whether the parameter is required (cannot be None)

    Raises:
        ConfigurationError: If validation fails
    """
    if required and param_value is None:
        raise ConfigurationError(
            f"Parameter '{param_name}' is required but was not provided",
            error_code="PARAM_REQUIRED",
            context={"parameter": param_name}
        )

    if param_value is None:
        return

    if valid_values is not None and param_value not in valid_values:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be one of {valid_values}, got {param_value}",
            error_code="PARAM_INVALID_VALUE",
            context={"parameter": param_name, "value": param_value, "valid_values": valid_values}
        )

    if min_value is not None and param_value < min_value:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be >= {min_value}, got {param_value}",
            error_code="PARAM_TOO_SMALL",
            context={"parameter": param_name, "value": param_value, "min_value": min_value}
        )

    if max_value is not None and param_value > max_value:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be <= {max_value}, got {param_value}",
            error_code="PARAM_TOO_LARGE",
            context={"parameter": param_name, "value": param_value, "max_value": max_value}
        )


def create_error_context(**kwargs: Any) -> Dict[str, Any]:
    """Create an error context dictionary.

    Complex objects are converted to strings so the context stays printable.

    Args:
        **kwargs: Key-value pairs to include in context

    Returns:
        Dictionary with error context information
    """
    context = {}
    for key, value in kwargs.items():
        if hasattr(value, '__dict__') or hasattr(value, '__slots__'):
            context[key] = str(value)
        else:
            context[key] = value

    return context
