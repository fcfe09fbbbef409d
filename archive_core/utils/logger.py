import logging
from logging import handlers
from pathlib import Path
from typing import Dict
import os
import sys
import time
from datetime import datetime, timezone

from .node_utils import get_hostname

# Cache for loggers to avoid duplicate creation
_logger_cache: Dict[str, logging.Logger] = {}

# Start time of the current batch run, set by log_banner_start
_run_started: Dict[str, float] = {}


def load_config():
    """Load config - uses centralized config module."""
    from .config import load_config as _load_config
    return _load_config()


class RotatingFileHandlerWithCompression(handlers.RotatingFileHandler):
    """Rotating file handler that compresses old log files"""
    def emit(self, record):
        try:
            # Check if Python is shutting down
            if not sys or not sys.modules:
                return
            super().emit(record)
        except Exception:
            self.handleError(record)

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None
        if self.backupCount > 0:
            for i in range(self.backupCount - 1, 0, -1):
                sfn = self.rotation_filename("%s.%d.gz" % (self.baseFilename, i))
                dfn = self.rotation_filename("%s.%d.gz" % (self.baseFilename, i + 1))
                if os.path.exists(sfn):
                    if os.path.exists(dfn):
                        os.remove(dfn)
                    os.rename(sfn, dfn)
            dfn = self.rotation_filename(self.baseFilename + ".1.gz")
            if os.path.exists(dfn):
                os.remove(dfn)
            # Compress the current log file
            import gzip
            with open(self.baseFilename, 'rb') as f_in:
                with gzip.open(dfn, 'wb') as f_out:
                    f_out.writelines(f_in)
        self.mode = 'w'
        self.stream = self._open()


class WorkerLogFormatter(logging.Formatter):
    """Formatter for processing logs: '<utc time> [<host>.<component>] [LEVEL] message'"""
    def format(self, record):
        try:
            host = get_hostname()
            timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime('%Y-%m-%d %H:%M:%S')

            # Get logger name without host prefix
            logger_name = record.name.split('.')[-1] if '.' in record.name else record.name

            message = f"{timestamp} [{host}.{logger_name}] [{record.levelname}] {record.getMessage()}"
            if record.exc_info:
                message += "\n" + self.formatException(record.exc_info)
            return message
        except Exception:
            return record.getMessage()


class ConsoleLogFormatter(logging.Formatter):
    """Short console format for operators watching a batch run"""
    def format(self, record):
        try:
            timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
            prefix = "" if record.levelno == logging.INFO else f"{record.levelname}: "
            message = f"{timestamp} {prefix}{record.getMessage()}"
            if record.exc_info:
                message += "\n" + self.formatException(record.exc_info)
            return message
        except Exception:
            return record.getMessage()


def setup_worker_logger(component: str) -> logging.Logger:
    """Set up a component logger writing to the processing log and the console

    Args:
        component: Component name (e.g. 'segment_processor', 'auto_publisher')
    """
    try:
        host = get_hostname()
        logger_name = f"{host}.archive.{component}"

        # Return cached logger if it exists
        if logger_name in _logger_cache:
            return _logger_cache[logger_name]

        config = load_config()
        log_dir = Path(config['paths']['log_dir'])
        if not log_dir.is_absolute():
            from .paths import get_project_root
            log_dir = get_project_root() / log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        # Remove any existing handlers
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

        # All components share one processing log per host
        log_path = log_dir / f"{host}_processing.log"

        fh = RotatingFileHandlerWithCompression(
            str(log_path),
            maxBytes=10*1024*1024,
            backupCount=5
        )
        fh.setFormatter(WorkerLogFormatter())
        logger.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(ConsoleLogFormatter())
        logger.addHandler(ch)

        _logger_cache[logger_name] = logger
        return logger

    except Exception:
        # Fallback to basic console logging
        fallback = logging.getLogger(f"fallback.archive.{component}")
        fallback.setLevel(logging.INFO)
        if not fallback.handlers:
            ch = logging.StreamHandler()
            ch.setFormatter(ConsoleLogFormatter())
            fallback.addHandler(ch)
        _logger_cache[f"fallback.{component}"] = fallback
        return fallback


def get_log_file_path() -> str:
    """Path of the processing log on this host, for operator notifications."""
    for cached in _logger_cache.values():
        for handler in cached.handlers:
            if isinstance(handler, logging.FileHandler):
                return handler.baseFilename
    return "the processing log"


def log_banner_start(logger: logging.Logger, title: str, arguments: str = "") -> None:
    """Write the header that opens a batch run in the log."""
    _run_started[title] = time.time()
    logger.info("=" * 72)
    logger.info(f"{title} started on {get_hostname()} (pid {os.getpid()})")
    if arguments:
        logger.info(f"Arguments: {arguments}")
    logger.info("=" * 72)


def log_banner_end(logger: logging.Logger, title: str) -> None:
    """Write the footer that closes a batch run, with elapsed time."""
    started = _run_started.pop(title, None)
    elapsed = f" in {time.time() - started:.1f}s" if started is not None else ""
    logger.info("=" * 72)
    logger.info(f"{title} finished{elapsed}")
    logger.info("=" * 72)


# Create main logger instance
logger = setup_worker_logger('main')
