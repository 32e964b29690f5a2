"""
Configuration Validation for the fomo Application

This module contains configuration validation logic and the startup
configuration summary. Kept apart from settings.py so settings stay a plain
list of constants.
"""

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url


def validate_settings(require_backend: bool = True, storage_backend: str = None):
    """
    Validate that all required settings are properly configured.

    Args:
        require_backend: If False, missing backend credentials are not an error
            (offline-only use of the draft queue and cache).
        storage_backend: Storage backend chosen for this run (e.g. from the
            command line); defaults to settings.STORAGE_BACKEND.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []
    storage_backend = (storage_backend or settings.STORAGE_BACKEND).lower()

    if require_backend:
        required_vars = [
            ("SUPABASE_URL", settings.SUPABASE_URL),
            ("SUPABASE_ANON_KEY", settings.SUPABASE_ANON_KEY),
        ]

        for var_name, var_value in required_vars:
            if not var_value:
                errors.append(f"Missing required environment variable: {var_name}")

        if settings.SUPABASE_URL and not is_valid_url(settings.SUPABASE_URL):
            errors.append(f"SUPABASE_URL is not a valid URL: {settings.SUPABASE_URL!r}")

    if settings.CONNECTIVITY_PROBE_URL and not is_valid_url(settings.CONNECTIVITY_PROBE_URL):
        errors.append(f"FOMO_CONNECTIVITY_PROBE_URL is not a valid URL: {settings.CONNECTIVITY_PROBE_URL!r}")

    if storage_backend not in settings.STORAGE_BACKENDS:
        errors.append(f"FOMO_STORAGE_BACKEND must be one of {', '.join(settings.STORAGE_BACKENDS)}, "
                      f"got {storage_backend!r}")

    # Verify database connection string was built when database storage is selected
    if storage_backend == "database" and not settings.DB_CONNECTION_STRING:
        errors.append("Database storage selected but the connection string could not be built. "
                      "Check DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD.")

    if not settings.DRAFT_STORAGE_KEY:
        errors.append("FOMO_DRAFT_STORAGE_KEY must not be empty")

    # Validate numeric settings are within reasonable bounds
    day_ms = 24 * 60 * 60 * 1000
    numeric_validations = [
        ("CACHE_MAX_SIZE", settings.CACHE_MAX_SIZE, 1, 100000),
        ("CACHE_TTL_USER_PROFILE", settings.CACHE_TTL_USER_PROFILE, 0, day_ms),
        ("CACHE_TTL_USER_PARTIES", settings.CACHE_TTL_USER_PARTIES, 0, day_ms),
        ("CACHE_TTL_PARTY_DETAILS", settings.CACHE_TTL_PARTY_DETAILS, 0, day_ms),
        ("CACHE_TTL_USER_FRIENDS", settings.CACHE_TTL_USER_FRIENDS, 0, day_ms),
        ("CACHE_TTL_USER_PREFERENCES", settings.CACHE_TTL_USER_PREFERENCES, 0, day_ms),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate timeout values are positive
    timeout_settings = [
        ("REQUEST_TIMEOUT", settings.REQUEST_TIMEOUT),
        ("CONNECTIVITY_PROBE_TIMEOUT", settings.CONNECTIVITY_PROBE_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "backend": {
            "url": settings.SUPABASE_URL,
            "configured": bool(settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY),
            "request_timeout": settings.REQUEST_TIMEOUT,
        },
        "storage": {
            "backend": settings.STORAGE_BACKEND,
            "session_dir": str(settings.SESSION_STORAGE_DIR),
            "draft_key": settings.DRAFT_STORAGE_KEY,
            "database": settings.DB_NAME if settings.STORAGE_BACKEND == "database" else None,
        },
        "cache": {
            "max_size": settings.CACHE_MAX_SIZE,
            "ttl_minutes": {
                "user_profile": settings.CACHE_TTL_USER_PROFILE // 60000,
                "user_parties": settings.CACHE_TTL_USER_PARTIES // 60000,
                "party_details": settings.CACHE_TTL_PARTY_DETAILS // 60000,
                "user_friends": settings.CACHE_TTL_USER_FRIENDS // 60000,
                "user_preferences": settings.CACHE_TTL_USER_PREFERENCES // 60000,
            },
        },
        "connectivity": {
            "probe_url": settings.CONNECTIVITY_PROBE_URL,
            "probe_timeout": settings.CONNECTIVITY_PROBE_TIMEOUT,
        },
    }
