"""
logging_utils.py
================

Central logging utilities.

Responsibilities
----------------
• Configure the "tokdd" package logger once
• Log to:
    - console (stderr)
    - file (optional)
• Avoid duplicate handlers

Design principles
-----------------
• Library modules only call logging.getLogger(__name__); they never
  configure handlers themselves.
• Applications and notebooks call setup_logger() once.
• Human-readable, timestamped format
"""

import logging
from pathlib import Path
from typing import Optional, Union


LOGGER_NAME = "tokdd"

_FMT = (
    "%(asctime)s | "
    "%(levelname)-8s | "
    "%(name)s | "
    "%(message)s"
)
_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ============================================================
# LOGGER SETUP
# ============================================================

def setup_logger(log_path: Optional[Union[str, Path]] = None, level: str = "INFO") -> logging.Logger:
    """
    Create and configure the package logger.

    Parameters
    ----------
    log_path : Path, optional
        Log file; when None only the console handler is installed.
    level : str
        Logging level:
        "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"

    Returns
    -------
    logger : logging.Logger
        Configured "tokdd" logger (parent of every module logger)
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Prevent duplicate handlers if setup_logger is called multiple times
    if logger.handlers:
        return logger

    level = str(level).upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    formatter = logging.Formatter(_FMT, datefmt=_DATEFMT)

    # --------------------------------------------------------
    # Console handler
    # --------------------------------------------------------
    ch = logging.StreamHandler()
    ch.setLevel(logger.level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    # --------------------------------------------------------
    # File handler
    # --------------------------------------------------------
    if log_path is not None:
        log_path = Path(log_path).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, mode="w")
        fh.setLevel(logger.level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
        logger.info(f"Logging to file: {log_path}")

    logger.debug("Logger initialized")
    return logger
