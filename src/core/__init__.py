"""
Core module: Configuration, logging, and exception handling.
"""

from .config import Config, config
from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    DataValidationError,
    IngestionError,
    SentinelError,
)

__all__ = [
    "Config",
    "config",
    "SentinelError",
    "AuthorizationError",
    "DataValidationError",
    "ConfigurationError",
    "IngestionError",
]
