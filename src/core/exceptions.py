"""
Custom exceptions for the Duty Log service.

These exceptions provide clear error semantics across the system.
Use them to distinguish between bad client input, collaborator failures,
and configuration errors.
"""


class DutyLogError(Exception):
    """Base exception for duty log failures."""
    pass


class DataValidationError(DutyLogError):
    """Raised when client input fails validation (missing admin, bad dates, etc.)."""
    pass


class ConfigurationError(DutyLogError):
    """Raised when configuration is invalid or missing."""
    pass


class MessageSourceError(DutyLogError):
    """Raised when the message source cannot be reached or answers with an error."""
    pass


class StoreError(DutyLogError):
    """Raised when a persisted document cannot be written."""
    pass
