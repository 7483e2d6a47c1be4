"""
Logging utilities.

Module loggers live under the ``qtlcoloc`` namespace so a single call to
``setup_logger()`` configures the whole package.
"""

import sys
import logging
from pathlib import Path
from typing import Optional


ROOT_LOGGER = "qtlcoloc"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = ROOT_LOGGER,
    log_file: Optional[str] = None,
    level: str = "INFO",
    format_str: Optional[str] = None,
) -> logging.Logger:
    """
    Set up a logger with console and optional file handlers.
    
    Parameters
    ----------
    name : str
        Logger name. Defaults to the package root logger.
    log_file : str, optional
        Path to log file.
    level : str
        Logging level (DEBUG, INFO, WARNING, ERROR).
    format_str : str, optional
        Log message format.
        
    Returns
    -------
    logging.Logger
        Configured logger.
    """
    formatter = logging.Formatter(format_str or DEFAULT_FORMAT)
    
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    
    # Replace existing handlers
    logger.handlers = []
    
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a package logger by short name.
    
    Parameters
    ----------
    name : str
        Logger name, e.g. "coloc". Names outside the package namespace
        are prefixed with ``qtlcoloc.``.
        
    Returns
    -------
    logging.Logger
        Logger instance.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
