"""Logging configuration: a dated log file plus stdout when run interactively."""

import logging
import os
import sys
from datetime import date
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

GREEN = "\033[0;32m"
RED = "\033[0;31m"
RESET = "\033[0m"


def log_file_path(log_dir: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return os.path.join(log_dir, f"auto-add-{today.isoformat()}.log")


def resolve_level(verbose: bool = False, config_level: str = "INFO") -> int:
    if verbose:
        return logging.DEBUG
    level_name = (os.getenv("LOG_LEVEL") or config_level or "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(log_dir: str = "logs", level: int = logging.INFO) -> Optional[str]:
    """
    Configure the root logger. Returns the log file path, or None when no
    file could be opened.

    stdout is only added when it is a terminal: cron already redirects
    stdout into a file and would otherwise get every line twice.
    """
    handlers = []
    log_path: Optional[str] = log_file_path(log_dir)
    try:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    except OSError:
        try:
            log_path = os.path.join(os.getcwd(), os.path.basename(log_path))
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
        except OSError:
            log_path = None

    if sys.stdout.isatty() or not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return log_path


def log_success(logger: logging.Logger, message: str) -> None:
    logger.info(f"{GREEN}{message}{RESET}")


def log_failure(logger: logging.Logger, message: str) -> None:
    logger.error(f"{RED}{message}{RESET}")
