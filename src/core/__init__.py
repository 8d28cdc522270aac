"""
Core module: Configuration, logging, and exception handling.
"""

from .config import Config, config
from .exceptions import (
    ConfigurationError,
    DataValidationError,
    DutyLogError,
    MessageSourceError,
    StoreError,
)

__all__ = [
    "Config",
    "config",
    "DutyLogError",
    "DataValidationError",
    "ConfigurationError",
    "MessageSourceError",
    "StoreError",
]
