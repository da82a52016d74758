"""
Custom exceptions for the Pool Risk Sentinel.

These exceptions provide clear error semantics across the system.
Use them to distinguish between authorization failures, bad inputs, and
configuration problems.
"""

from typing import Optional


class SentinelError(Exception):
    """Base exception for risk monitoring failures."""
    pass


class AuthorizationError(SentinelError):
    """Raised when a caller lacks the role required for a mutating call."""

    def __init__(self, caller: Optional[str], role: str) -> None:
        self.caller = caller
        self.role = role
        super().__init__(f"caller {caller!r} lacks required role {role!r}")


class DataValidationError(SentinelError):
    """Raised when an observation or parameter payload fails validation."""
    pass


class ConfigurationError(SentinelError):
    """Raised when configuration is invalid or missing."""
    pass


class IngestionError(SentinelError):
    """Raised when an observation replay file cannot be read."""
    pass
