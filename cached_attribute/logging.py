"""
Facilitates configuring loggers for scripts and tests that use cached attributes.

Library modules only create loggers; nothing is configured unless :func:`init_logging` is called.  Key derivation and
memo hits are logged at level 9, store misses / invalidations / refreshes at DEBUG, and decoration at level 19.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from logging import LogRecord, Logger, Filter, Formatter
from pathlib import Path
from typing import Optional, Union, Collection, Callable, Mapping

from tzlocal import get_localzone

__all__ = ['init_logging', 'create_filter', 'DatetimeFormatter', 'ENTRY_FMT_DETAILED']
log = logging.getLogger(__name__)

ENTRY_FMT_DETAILED = '%(asctime)s %(levelname)s %(threadName)s %(name)s %(lineno)d %(message)s'

_NotSet = object()

PathLike = Union[Path, str]
Verbosity = Union[int, bool, None]
OptStrs = Optional[Collection[str]]


def init_logging(
    verbosity: Verbosity = 0,
    *,
    log_path: PathLike | None = None,
    names: OptStrs = _NotSet,
    date_fmt: str = None,
    millis: bool = False,
    entry_fmt: str = None,
    file_fmt: str = None,
    file_lvl: int = logging.DEBUG,
    streams: bool = True,
    replace_handlers: bool = True,
    lvl_names: Mapping[int, str] = _NotSet,
) -> Path | None:
    """
    Configures stream handlers for stdout and stderr so that logs with level logging.INFO and below are sent to stdout
    and logs with level logging.WARNING and above are sent to stderr.  If a log_path is provided, then a file handler
    will be added as well.

    The verbosity argument affects the log level that is set for stdout:
    - 0: 20 = logging.INFO (default)
    - 1: 19 = custom 'verbose' log level (decorated methods)
    - 2: 10 = logging.DEBUG (store misses, invalidations, refreshes)
    - 3: 9 (cache keys and memo hits)
    - 12: 0 = highest verbosity

    :param verbosity: Higher values increase stdout output verbosity
    :param log_path: The path where logs should be written, or None (default) to prevent logging to file
    :param names: The names of the loggers for which handlers should be configured.  If not specified, then the
      ``cached_attribute`` and ``__main__`` loggers are configured.  If None, then the root logger is configured.
    :param date_fmt: The datetime format code to use for timestamps
    :param millis: Include milliseconds in the datetime format (ignored if ``date_fmt`` is specified)
    :param entry_fmt: The log message format to use for stdout/stderr.  Defaults to ``'%(message)s'`` when
      verbosity < 3, otherwise :data:`ENTRY_FMT_DETAILED` is used.
    :param file_fmt: The log message format to use for the log file (default: :data:`ENTRY_FMT_DETAILED`)
    :param file_lvl: The minimum log level that should be written to the log file, if configured
    :param streams: Log to stdout and stderr (default: True)
    :param replace_handlers: Remove any existing handlers on loggers before adding handlers to them
    :param lvl_names: Mapping of {int(level): str(name)} to set non-default log level names
    :return: The path to which logs are being written, or None if no file handler was configured
    """
    _configure_level_names(lvl_names)
    loggers = _get_loggers(names, replace_handlers)
    root_logger = logging.getLogger()
    if root_logger in loggers:
        root_logger.addHandler(logging.NullHandler())
    root_logger.setLevel(logging.NOTSET)

    date_fmt = date_fmt or ('%Y-%m-%d %H:%M:%S.%f %Z' if millis else '%Y-%m-%d %H:%M:%S %Z')
    if streams:
        _add_stream_handlers(loggers, verbosity, date_fmt, entry_fmt)

    if log_path is not None:
        log_path = Path(log_path).expanduser()
        _add_file_handler(loggers, log_path, date_fmt, file_fmt, file_lvl)

    return log_path


def _add_stream_handlers(loggers: list[Logger], verbosity: Verbosity, date_fmt: str, entry_fmt: str = None):
    entry_fmt = entry_fmt or (ENTRY_FMT_DETAILED if verbosity and verbosity > 2 else '%(message)s')
    formatter = DatetimeFormatter(entry_fmt, date_fmt)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(_stdout_level(verbosity))
    stdout_handler.addFilter(create_filter(lambda r: r.levelno < logging.WARNING))
    stdout_handler.name = 'stdout'

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.addFilter(create_filter(lambda r: r.levelno >= logging.WARNING))
    stderr_handler.name = 'stderr'

    for handler in (stdout_handler, stderr_handler):
        handler.setFormatter(formatter)
        for logger in loggers:
            logger.addHandler(handler)


def _stdout_level(verbosity: Verbosity) -> int:
    if not verbosity:
        return logging.INFO
    elif verbosity == 1:
        return 19
    return max(logging.DEBUG + 2 - verbosity, 0)


def _add_file_handler(loggers: list[Logger], log_path: Path, date_fmt: str, file_fmt: str, file_lvl: int):
    if not log_path.parent.exists():
        log_path.parent.mkdir(parents=True, exist_ok=True)
    elif not log_path.parent.is_dir():
        raise ValueError(f'Invalid log path - {log_path.parent} is not a directory')

    file_handler = logging.FileHandler(log_path.as_posix(), encoding='utf-8')
    file_handler.setLevel(file_lvl)
    file_handler.setFormatter(DatetimeFormatter(file_fmt or ENTRY_FMT_DETAILED, date_fmt))
    file_handler.name = log_path.as_posix()
    for logger in loggers:
        logger.addHandler(file_handler)
    log.log(19, f'Logging to {log_path}')


def _get_logger_names(names: OptStrs = _NotSet) -> set[Optional[str]]:
    if names is _NotSet:
        names = {__name__.split('.')[0], '__main__'}
    elif names is None or isinstance(names, str):
        names = {names}
    else:
        names = set(names)

    if None in names:
        names = {None}
    return names


def _get_loggers(names: OptStrs, replace_handlers: bool) -> list[Logger]:
    loggers = list(map(logging.getLogger, _get_logger_names(names)))
    for logger in loggers:
        logger.setLevel(logging.NOTSET)  # Let handlers deal with log levels
        if replace_handlers:
            logger.handlers = []
    return loggers


def _configure_level_names(lvl_names: Mapping[int, str] = _NotSet):
    if lvl_names is _NotSet:
        lvl_names = {lvl: f'DBG_{lvl}' for lvl in range(1, 10)}
        lvl_names[19] = 'VERBOSE'
    if lvl_names:
        for lvl, name in lvl_names.items():
            if logging.getLevelName(lvl) == f'Level {lvl}':
                logging.addLevelName(lvl, name)


def create_filter(filter_fn: Callable[[LogRecord], bool]) -> Filter:
    """
    :param filter_fn: A function that takes 1 parameter (record) and returns True if the record should be logged
    :return: A custom, initialized subclass of logging.Filter using the given filter function
    """
    class CustomLogFilter(Filter):
        def filter(self, record: LogRecord) -> bool:
            return filter_fn(record)

    return CustomLogFilter()


class DatetimeFormatter(Formatter):
    """Enables use of ``%f`` (micro/milliseconds) and ``%Z`` (local timezone) in datetime formats."""
    _local_tz = get_localzone()

    def formatTime(self, record: LogRecord, datefmt: str = None) -> str:
        dt = datetime.fromtimestamp(record.created, self._local_tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            return self.default_msec_format % (dt.strftime(self.default_time_format), record.msecs)
