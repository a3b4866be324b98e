# tabular_bench/utils/logger.py
"""Logging for the tabular_bench package.

All package loggers live below the ``tabular_bench`` logger, which is
configured once (console and/or a rotating file). Records may carry a
``context`` dict, e.g. the task, learner and iteration of a resampling
run; the detailed format appends it as JSON.
"""

import json
import logging
import logging.handlers
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import FileOperationError

ROOT_LOGGER_NAME = 'tabular_bench'


def _to_level(level: Union[str, int]) -> int:
    return getattr(logging, level.upper()) if isinstance(level, str) else level


class TabularBenchFormatter(logging.Formatter):
    """``[timestamp] LEVEL | logger | message`` plus an optional context suffix."""

    def __init__(self, include_context: bool = True) -> None:
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        line = f"[{stamp}] {record.levelname:8s} | {record.name:28s} | {record.getMessage()}"

        context = getattr(record, 'context', None)
        if self.include_context and context:
            line += f" | Context: {json.dumps(context, default=str, sort_keys=True)}"
        if record.exc_info and self.include_context:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ExperimentLoggerAdapter(logging.LoggerAdapter):
    """Adapter stamping a fixed experiment context onto every record.

    Context passed per call through ``extra={'context': {...}}`` is merged
    over the fixed one.

    Example:
        >>> log = get_logger(__name__, context={'task_id': 'titanic', 'iteration': 3})
        >>> log.debug("Training on 160 rows")
    """

    def process(self, msg: Any, kwargs: Any) -> Any:
        extra = kwargs.setdefault('extra', {})
        extra['context'] = {**self.extra, **(extra.get('context') or {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "ExperimentLoggerAdapter":
        """New adapter with additional context fields."""
        return ExperimentLoggerAdapter(self.logger, {**self.extra, **context})


class TabularBenchLogger:
    """Process-wide configuration of the package loggers."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured: bool = False
    _lock = threading.Lock()

    @staticmethod
    def _handlers(
        level: int,
        log_file: Optional[Union[str, Path]],
        formatter: logging.Formatter,
        include_console: bool,
        max_file_size: int,
        backup_count: int
    ) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []
        if include_console:
            handlers.append(logging.StreamHandler(sys.stdout))
        if log_file:
            log_path = Path(log_file)
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(logging.handlers.RotatingFileHandler(
                    log_path, maxBytes=max_file_size, backupCount=backup_count, encoding='utf-8'
                ))
            except OSError as e:
                raise FileOperationError(
                    f"Cannot write log file {log_file}",
                    error_code="LOG_FILE_SETUP_FAILED",
                    context={'log_file': str(log_file), 'error': str(e)}
                ) from e
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
        return handlers

    @classmethod
    def configure(
        cls,
        level: Union[str, int] = logging.INFO,
        log_file: Optional[Union[str, Path]] = None,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        format_style: str = "detailed",
        include_console: bool = True,
        force: bool = False
    ) -> None:
        """Configure the ``tabular_bench`` logger.

        Only the first call takes effect unless ``force`` is set; the package
        calls this on import, so user code normally passes ``force=True`` or
        uses ``set_level``.

        Args:
            level: Level name or number
            log_file: Optional path of a rotating log file
            max_file_size: Rotation size in bytes
            backup_count: Rotated files to keep
            format_style: ``detailed`` appends record context, ``simple`` does not
            include_console: Log to stdout
            force: Replace an existing configuration

        Raises:
            FileOperationError: If the log file cannot be created
        """
        with cls._lock:
            if cls._configured and not force:
                return

            level = _to_level(level)
            formatter = TabularBenchFormatter(include_context=format_style == "detailed")
            handlers = cls._handlers(level, log_file, formatter, include_console, max_file_size, backup_count)

            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            for handler in list(root_logger.handlers):
                root_logger.removeHandler(handler)
                handler.close()
            root_logger.setLevel(level)
            for handler in handlers:
                root_logger.addHandler(handler)

            cls._configured = True

    @classmethod
    def get_logger(
        cls,
        name: str,
        context: Optional[Dict[str, Any]] = None
    ) -> Union[logging.Logger, ExperimentLoggerAdapter]:
        if not cls._configured:
            cls.configure()

        if name == '__main__':
            name = f'{ROOT_LOGGER_NAME}.main'
        elif not name.startswith(ROOT_LOGGER_NAME):
            name = f'{ROOT_LOGGER_NAME}.{name}'

        logger = cls._loggers.setdefault(name, logging.getLogger(name))
        if context is not None:
            return ExperimentLoggerAdapter(logger, dict(context))
        return logger

    @classmethod
    def set_level(cls, level: Union[str, int]) -> None:
        level = _to_level(level)
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)


def get_logger(
    name: str,
    context: Optional[Dict[str, Any]] = None
) -> Union[logging.Logger, ExperimentLoggerAdapter]:
    """Logger below ``tabular_bench`` for a module.

    Args:
        name: Usually ``__name__``
        context: Fixed context for every record; returns an
            ``ExperimentLoggerAdapter`` when given

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Resampling started")
    """
    return TabularBenchLogger.get_logger(name, context)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> None:
    """See ``TabularBenchLogger.configure``.

    Example:
        >>> configure_logging(level="DEBUG", log_file="logs/bench.log", force=True)
    """
    TabularBenchLogger.configure(level=level, log_file=log_file, **kwargs)


def set_log_level(level: Union[str, int]) -> None:
    TabularBenchLogger.set_level(level)


class temporary_log_level:
    """Change the package log level inside a ``with`` block.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     resample(task, learner, rsmp("cv", folds=3))
    """

    def __init__(self, level: Union[str, int]) -> None:
        self.level = _to_level(level)
        self.previous: Optional[int] = None

    def __enter__(self) -> None:
        self.previous = logging.getLogger(ROOT_LOGGER_NAME).level
        TabularBenchLogger.set_level(self.level)

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.previous is not None:
            TabularBenchLogger.set_level(self.previous)
