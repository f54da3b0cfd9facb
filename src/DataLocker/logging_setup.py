"""Process logging setup from a ``.logconf`` file or the configured level and format."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Optional

from DataLocker.config.models import LoggingConfig

__all__ = ["configure_logging"]


def configure_logging(settings: LoggingConfig, root: Path, *, verbose: bool = False) -> Optional[Path]:
    """
    Initialize process logging.

    A ``logging.config.fileConfig`` file at ``root / settings.config_file`` takes
    precedence; otherwise the root logger gets a single stream handler using
    ``settings.format``. ``verbose`` forces DEBUG in both cases.

    Returns:
        The logging config file that was applied, if any.
    """

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    config_path = Path(root) / settings.config_file if settings.config_file else None
    if config_path is not None and config_path.is_file():
        logging.config.fileConfig(config_path, disable_existing_loggers=False)
        if verbose:
            logging.getLogger().setLevel(logging.DEBUG)
        return config_path

    level = logging.DEBUG if verbose else logging.getLevelName(settings.level)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(settings.format))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return None
