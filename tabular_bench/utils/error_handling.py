"""Standardized error handling with context for operations that call into
external libraries (scikit-learn, xgboost, optuna, pandas).

Errors raised by the package itself pass through unchanged; anything else is
logged and re-raised as the package exception matching the operation.
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional, Type, Callable
import functools
from dataclasses import dataclass

from .logger import get_logger
from .exceptions import (
    TabularBenchError,
    ConfigurationError,
    LearnerError,
    PipelineError,
    TuningError,
    DataValidationError,
)

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Where an operation ran and what to try when it fails."""
    operation: str
    component: str
    user_data: Optional[Dict[str, Any]] = None
    recovery_suggestions: Optional[list] = None

    def exception_context(self) -> Dict[str, Any]:
        """Context attached to the re-raised exception."""
        return {'component': self.component, 'operation': self.operation, **(self.user_data or {})}


class ErrorHandler:
    """Error handling bound to one component (a learner, an operator, ...)."""

    def __init__(self, component_name: str) -> None:
        """Initialize error handler for a specific component.

        Args:
            component_name: Name of the component using this handler
        """
        self.component_name = component_name
        self.logger = get_logger(f"{__name__}.{component_name}")

    @contextmanager
    def operation_context(
        self,
        operation_name: str,
        user_data: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[list] = None,
        reraise_as: Optional[Type[TabularBenchError]] = None
    ):
        """Context manager for standardized operation error handling.

        Args:
            operation_name: Name of the operation being performed
            user_data: Additional context data
            recovery_suggestions: List of suggested recovery actions
            reraise_as: Exception type to reraise as (if different)

        Example:
            >>> handler = ErrorHandler('classif.ranger')
            >>> with handler.operation_context('train', {'task_id': 'german_credit'}):
            ...     estimator.fit(X, y)
        """
        context = ErrorContext(
            operation=operation_name,
            component=self.component_name,
            user_data=user_data,
            recovery_suggestions=recovery_suggestions
        )

        self.logger.debug(f"Starting operation: {operation_name}")

        try:
            yield context
        except TabularBenchError:
            raise
        except Exception as e:
            self._log_error(e, context)
            exception_class = reraise_as or self._determine_exception_type(operation_name)
            raise self._create_enhanced_exception(e, exception_class, context) from e

        self.logger.debug(f"Completed operation: {operation_name}")

    def _log_error(self, exception: Exception, context: ErrorContext) -> None:
        self.logger.error(
            f"Operation '{context.operation}' failed in {context.component}: "
            f"{type(exception).__name__}: {exception}",
            extra={'context': context.exception_context()}
        )

    def _determine_exception_type(self, operation_name: str) -> Type[TabularBenchError]:
        """Map an operation name to the exception class it raises."""
        name = operation_name.lower()
        if 'train' in name or 'predict' in name or 'importance' in name:
            return LearnerError
        if 'pipe' in name or 'graph' in name:
            return PipelineError
        if 'tun' in name:
            return TuningError
        if 'data' in name:
            return DataValidationError
        if 'validat' in name or 'config' in name:
            return ConfigurationError
        return TabularBenchError

    def _create_enhanced_exception(
        self,
        original_exception: Exception,
        exception_class: Type[TabularBenchError],
        context: ErrorContext
    ) -> TabularBenchError:
        message = f"{context.operation} failed in {context.component}: {original_exception}"

        if context.recovery_suggestions:
            message += "\n\nRecovery suggestions:\n"
            for i, suggestion in enumerate(context.recovery_suggestions, 1):
                message += f"  {i}. {suggestion}\n"

        return exception_class(
            message,
            error_code=f"{context.operation.upper().replace(' ', '_')}_FAILED",
            context=context.exception_context()
        )


def learner_operation_context(
    operation_name: str,
    component_name: str = "Learner",
    **kwargs: Any
):
    """Context manager for learner train/predict calls.

    Example:
        >>> with learner_operation_context('train', 'classif.log_reg', user_data={'task_id': 'titanic'}):
        ...     estimator.fit(X, y)
    """
    handler = ErrorHandler(component_name)
    kwargs.setdefault('recovery_suggestions', [
        "Check the task for missing values and unsupported feature types",
        "Check learner hyperparameters",
    ])
    return handler.operation_context(operation_name, **kwargs)


def pipeline_operation_context(
    operation_name: str,
    component_name: str = "PipeOp",
    **kwargs: Any
):
    """Context manager for pipeline operator calls."""
    handler = ErrorHandler(component_name)
    kwargs.setdefault('reraise_as', PipelineError)
    return handler.operation_context(operation_name, **kwargs)


def config_operation_context(
    operation_name: str,
    component_name: str = "Configuration",
    **kwargs: Any
):
    """Context manager for configuration operations."""
    handler = ErrorHandler(component_name)
    kwargs.setdefault('recovery_suggestions', [
        "Check configuration file syntax",
        "Verify all required parameters are provided",
        "Check parameter types and ranges",
    ])
    kwargs.setdefault('reraise_as', ConfigurationError)
    return handler.operation_context(operation_name, **kwargs)


def handle_errors(
    operation_name: Optional[str] = None,
    component_name: Optional[str] = None,
    recovery_suggestions: Optional[list] = None
):
    """Decorator form of ``ErrorHandler.operation_context``.

    The component defaults to the ``id`` (or class name) of the bound object.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            op_name = operation_name or func.__name__

            comp_name = component_name
            if comp_name is None and args:
                comp_name = getattr(args[0], 'id', None) or args[0].__class__.__name__
            comp_name = comp_name or "UnknownComponent"

            handler = ErrorHandler(str(comp_name))
            with handler.operation_context(op_name, recovery_suggestions=recovery_suggestions):
                return func(*args, **kwargs)

        return wrapper
    return decorator
