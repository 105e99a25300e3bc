"""Compiler of Master form definitions into renderable formats."""

from lajiforms.async_runner import run_async
from lajiforms.exceptions import (
    AsyncExecutionError,
    DependencyError,
    PackageError,
    SettingsError,
    StoreError,
    UnprocessableError,
)
from lajiforms.logging import configure_logging, get_logger
from lajiforms.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("lajiforms")

__all__ = [
    "AsyncExecutionError",
    "DependencyError",
    "PackageError",
    "Settings",
    "SettingsError",
    "StoreError",
    "UnprocessableError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]
