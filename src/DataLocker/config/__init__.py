"""
DataLocker Configuration Package

Example:
    from DataLocker.config import load_config

    config = load_config(path="datalocker.yaml", cli_overrides={"root": "/srv/locker"})
    config_id = config.config_hash()
"""

from .loader import export_config_schema, load_config
from .models import (
    DEFAULT_ROOT,
    DataLockerConfig,
    HttpClientConfig,
    LockPolicy,
    LoggingConfig,
)

__all__ = [
    "DEFAULT_ROOT",
    "DataLockerConfig",
    "HttpClientConfig",
    "LockPolicy",
    "LoggingConfig",
    "export_config_schema",
    "load_config",
]
