# tabular_bench/utils/timer.py
"""Timing of resample iterations, benchmarks, tuning runs and config loading.

Every timed call is recorded under its operation name in a process-wide
``PerformanceTracker``; ``performance_summary()`` turns the records into a
table, which is handy after a benchmark to see where the time went.
"""

import functools
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, TypeVar

import numpy as np
import pandas as pd

from .exceptions import PerformanceError
from .logger import get_logger

logger = get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


class PerformanceTracker:
    """Durations per operation name, safe to share between threads."""

    def __init__(self) -> None:
        self._durations: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def record_execution(self, name: str, duration: float) -> None:
        with self._lock:
            self._durations.setdefault(name, []).append(duration)

    @staticmethod
    def _describe(durations: List[float]) -> Dict[str, Any]:
        values = np.asarray(durations, dtype=float)
        return {
            'call_count': len(values),
            'total_time': float(values.sum()),
            'avg_time': float(values.mean()),
            'median_time': float(np.median(values)),
            'min_time': float(values.min()),
            'max_time': float(values.max()),
        }

    def get_stats(self, name: Optional[str] = None) -> Dict[str, Any]:
        """Statistics for ``name``, or for every operation keyed by name.

        Unknown names give an empty dict.
        """
        with self._lock:
            if name:
                durations = self._durations.get(name)
                return self._describe(durations) if durations else {}
            return {op: self._describe(d) for op, d in self._durations.items()}

    def reset_stats(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name:
                self._durations.pop(name, None)
            else:
                self._durations.clear()

    def get_summary(self) -> pd.DataFrame:
        """One row per operation, slowest total first."""
        stats = self.get_stats()
        summary = pd.DataFrame.from_dict(stats, orient='index')
        if summary.empty:
            return summary
        summary.index.name = 'operation'
        return summary.sort_values('total_time', ascending=False)


_performance_tracker = PerformanceTracker()


def _finish(name: str, start_time: float, log_result: bool, track_performance: bool,
            timeout: Optional[float]) -> float:
    """Record, check and log a completed operation; returns its duration."""
    duration = time.perf_counter() - start_time
    if track_performance:
        _performance_tracker.record_execution(name, duration)
    if timeout and duration > timeout:
        raise PerformanceError(
            f"Operation '{name}' took {duration:.3f}s, over its limit of {timeout}s",
            error_code="OPERATION_TIMEOUT",
            context={'operation': name, 'duration': duration, 'timeout': timeout}
        )
    if log_result:
        logger.info(f"Operation '{name}' completed in {duration:.3f}s")
    return duration


def _log_failure(name: str, start_time: float, error: Exception, log_result: bool) -> float:
    duration = time.perf_counter() - start_time
    if log_result:
        logger.error(f"Operation '{name}' failed after {duration:.3f}s: {error}")
    return duration


def timer(
    name: Optional[str] = None,
    log_result: bool = True,
    track_performance: bool = True,
    timeout: Optional[float] = None
) -> Callable[[F], F]:
    """Decorator timing each call of a function.

    Args:
        name: Operation name; defaults to the function's qualified name
        log_result: Log the duration at INFO (failures at ERROR)
        track_performance: Record the duration in the global tracker
        timeout: Raise ``PerformanceError`` when a call took longer than this

    Example:
        >>> @timer(name="benchmark")
        ... def benchmark(design):
        ...     ...
    """
    def decorator(func: F) -> F:
        operation_name = name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(operation_name, start_time, e, log_result)
                raise
            _finish(operation_name, start_time, log_result, track_performance, timeout)
            return result

        return wrapper

    return decorator


@contextmanager
def timed_operation(
    name: str,
    log_result: bool = True,
    track_performance: bool = True,
    timeout: Optional[float] = None
):
    """Time a block of code.

    Yields a dict whose ``duration`` is filled in when the block exits.

    Example:
        >>> with timed_operation("resample classif.ranger on titanic") as timing:
        ...     run_iterations()
        >>> timing['duration']
    """
    start_time = time.perf_counter()
    timing = {'duration': 0.0, 'start_time': start_time}

    try:
        yield timing
    except Exception as e:
        timing['duration'] = _log_failure(name, start_time, e, log_result)
        raise

    timing['duration'] = _finish(name, start_time, log_result, track_performance, timeout)


def get_performance_stats(name: Optional[str] = None) -> Dict[str, Any]:
    return _performance_tracker.get_stats(name)


def reset_performance_stats(name: Optional[str] = None) -> None:
    _performance_tracker.reset_stats(name)


def performance_summary() -> pd.DataFrame:
    """Table of recorded durations per operation (see ``PerformanceTracker``)."""
    return _performance_tracker.get_summary()
