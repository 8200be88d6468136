"""
utils.py
--------
Logging, timing decorators, and shared helper functions.
"""

import os
import logging
import time
import functools
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Optional[str] = None,
               log_dir: Optional[str] = None) -> logging.Logger:
    """
    Return a named logger writing to stdout and, optionally, a daily file.

    Parameters
    ----------
    name    : Logger name (typically the module __name__).
    level   : Logging level string ("DEBUG", "INFO", ...). Defaults to
              the QR_LOG_LEVEL environment variable, then "WARNING".
    log_dir : Directory for daily log files. Defaults to QR_LOG_DIR;
              no file handler is attached when neither is set.

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:          # avoid duplicate handlers on re-import
        return logger

    level = level or os.getenv("QR_LOG_LEVEL", "WARNING")
    log_dir = log_dir or os.getenv("QR_LOG_DIR")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console handler
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # File handler
    if log_dir:
        logger.addHandler(_file_handler(log_dir, fmt))

    return logger


def _file_handler(log_dir: str, fmt: logging.Formatter) -> logging.FileHandler:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"quantrisk_{datetime.now().strftime('%Y%m%d')}.log"
    )
    fh = logging.FileHandler(log_file)
    fh.setFormatter(fmt)
    return fh


def configure_logging(level: Optional[str] = None,
                      log_dir: Optional[str] = None) -> None:
    """Apply one level, and optionally a daily log file, to every quantrisk logger."""
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for name in list(logging.Logger.manager.loggerDict):
        if name.split(".")[0] != "quantrisk":
            continue
        logger = logging.getLogger(name)
        if level:
            logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
        if log_dir and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            logger.addHandler(_file_handler(log_dir, fmt))


def timeit(func):
    """Decorator that logs the execution time of any function."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        t0 = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - t0
        logger.debug("%s completed in %.3f s", func.__qualname__, elapsed)
        return result
    return wrapper


def format_currency(value: float, decimals: int = 0) -> str:
    """Format a float as a USD currency string."""
    return f"${value:,.{decimals}f}"


def safe_ratio(numerator: float, denominator: float) -> float:
    """Division returning 0 instead of NaN/Inf for a zero denominator."""
    return numerator / denominator if denominator != 0 else 0.0
