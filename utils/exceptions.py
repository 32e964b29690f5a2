"""
Custom Exception Classes for the fomo Application

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""


class FomoError(Exception):
    """Base exception for all fomo application errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(FomoError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Cache Errors
# =============================================================================

class CacheError(FomoError):
    """Raised inside the memory cache for malformed keys or TTLs.

    Never escapes a cache operation; the cache logs it and degrades to a miss.
    """
    pass


# =============================================================================
# Draft Errors
# =============================================================================

class DraftError(FomoError):
    """Base exception for draft queue errors."""
    pass


class DraftNotFoundError(DraftError):
    """Raised when a draft id does not match any queued draft."""
    pass


class DraftValidationError(DraftError):
    """Raised when draft fields are missing or malformed."""
    pass


class UploadError(DraftError):
    """Raised by an uploader when the remote side rejects a draft."""
    pass


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(FomoError):
    """Raised when a storage adapter cannot read or write a value."""
    pass


# =============================================================================
# Backend Errors
# =============================================================================

class BackendError(FomoError):
    """Base exception for remote backend errors."""
    pass


class BackendRequestError(BackendError):
    """Raised when a backend request fails or returns a non-success status."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(BackendError):
    """Raised when a single-row query matches no rows."""
    pass

