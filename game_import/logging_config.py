"""
Centralized logging configuration for the game import package.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import LOGS_DIR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
QUIET_LOGGERS = ("requests", "urllib3", "httpx", "langgraph")


def run_log_file(command: str, now: Optional[datetime] = None) -> str:
    """Per-run log file name, e.g. ``import_20240102_030405_import-csv.log``."""
    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"import_{ts}_{command}.log"


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO, command: str = "run") -> None:
    """
    Log to stdout and to a file under ``LOGS_DIR``.

    Args:
        log_file: Name of the log file or an absolute path; defaults to a
            per-run name built from ``command``
        level: Logging level
        command: CLI command the run belongs to
    """
    # Avoid duplicate handlers if already configured
    if logging.getLogger().handlers:
        return

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Default to logs dir if bare filename provided
    log_path = Path(log_file or run_log_file(command))
    if not log_path.is_absolute():
        log_path = LOGS_DIR / log_path.name
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path))
    except OSError as e:
        root_logger.warning(f"File logging disabled, cannot open {log_path}: {e}")
    else:
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
