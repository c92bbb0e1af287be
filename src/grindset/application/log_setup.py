"""Logging configuration driven by AppConfig.verbose and AppConfig.log_dir."""

import logging
from pathlib import Path

from grindset.application.config import AppConfig

LOG_FILE_NAME = "grindset.log"

_LOG_LEVELS = {0: logging.WARNING, 1: logging.WARNING, 2: logging.INFO}


def level_for_verbosity(verbose: int) -> int:
    """0-1 -> WARNING, 2 -> INFO, 3+ -> DEBUG."""
    return _LOG_LEVELS.get(verbose, logging.DEBUG if verbose > 2 else logging.WARNING)


def setup_logging(config: AppConfig) -> Path | None:
    """
    Set the ``grindset`` logger level and attach a file handler under log_dir.

    Calling it again replaces the file handler from the previous call.

    Returns:
        Path of the log file, or None if log_dir could not be created.
    """
    logger = logging.getLogger("grindset")
    logger.setLevel(level_for_verbosity(config.verbose))

    for handler in list(logger.handlers):
        if getattr(handler, "_grindset_file", False):
            logger.removeHandler(handler)
            handler.close()

    log_path = config.log_dir / LOG_FILE_NAME
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        logger.warning(f"File logging disabled, cannot use {config.log_dir}: {e}")
        return None

    handler._grindset_file = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    logger.addHandler(handler)
    return log_path
