"""
Logging configuration for cipherbid.

Subsystem loggers (catalogue, clock, session, submission, crypto.*)
live under the "cipherbid" logger. Modules only fetch loggers;
handlers are installed once the entry point calls setup_logging().
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "cipherbid"
LOG_FILE = "cipherbid.log"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s" + LOG_FORMAT.replace("%(message)s", "%(reset)s%(message)s"),
        datefmt=DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    return handler


def _file_handler(log_dir: Path, level: int) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILE)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
) -> logging.Logger:
    """
    Install console (and optionally file) handlers on the cipherbid logger.

    Calling it again replaces the previous handlers, so the CLI can
    apply --debug or a configured level after modules were imported.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the log file, ./logs when None
        log_to_file: Whether to also write cipherbid.log

    Returns:
        The configured root cipherbid logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_console_handler(level))
    if log_to_file:
        root.addHandler(_file_handler(Path(log_dir) if log_dir else Path("logs"), level))
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a subsystem, e.g. get_logger("session") -> cipherbid.session"""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
