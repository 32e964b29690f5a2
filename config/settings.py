"""
Configuration Settings for fomo

This module centralizes all configuration settings for the fomo application,
including environment variables, backend credentials, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# Backend (hosted database / auth service)
# =============================================================================

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
REQUEST_TIMEOUT = float(os.getenv("FOMO_REQUEST_TIMEOUT", "10"))   # Seconds per backend request

# =============================================================================
# Session Storage
# =============================================================================

STORAGE_BACKENDS = ("file", "database", "memory")
STORAGE_BACKEND = os.getenv("FOMO_STORAGE_BACKEND", "file").lower()
SESSION_STORAGE_DIR = os.getenv("FOMO_SESSION_DIR", os.path.join(APP_ROOT, ".session"))
DRAFT_STORAGE_KEY = os.getenv("FOMO_DRAFT_STORAGE_KEY", "fomo-drafts")

# Database Settings (only used by the "database" storage backend)
DB_SERVER = os.getenv("server", "")
DB_NAME = os.getenv("db", "")
DB_USER = os.getenv("user", "")
DB_PASSWORD = os.getenv("pwd", "")
DB_SESSION_TABLE = os.getenv("FOMO_DB_SESSION_TABLE", "[dbo].[tbl_Session_Storage]")

# Build connection string safely (validation happens in validate_settings())
DB_CONNECTION_STRING = (
    f"DRIVER={{ODBC Driver 18 for SQL Server}}; "
    f"SERVER={DB_SERVER}; "
    f"DATABASE={DB_NAME}; "
    f"UID={DB_USER}; "
    f"PWD={DB_PASSWORD}; "
    f"TrustServerCertificate=yes; MARS_Connection=yes;"
) if all([DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD]) else ""

# =============================================================================
# Memory Cache Settings
# =============================================================================

CACHE_MAX_SIZE = int(os.getenv("FOMO_CACHE_MAX_SIZE", "100"))

# TTLs in milliseconds
CACHE_TTL_USER_PROFILE = 10 * 60 * 1000       # 10 minutes
CACHE_TTL_USER_PARTIES = 5 * 60 * 1000        # 5 minutes
CACHE_TTL_PARTY_DETAILS = 5 * 60 * 1000       # 5 minutes
CACHE_TTL_USER_FRIENDS = 15 * 60 * 1000       # 15 minutes
CACHE_TTL_USER_PREFERENCES = 30 * 60 * 1000   # 30 minutes

# =============================================================================
# Connectivity Settings
# =============================================================================

CONNECTIVITY_PROBE_URL = os.getenv("FOMO_CONNECTIVITY_PROBE_URL", SUPABASE_URL)
CONNECTIVITY_PROBE_TIMEOUT = float(os.getenv("FOMO_CONNECTIVITY_PROBE_TIMEOUT", "5"))

# =============================================================================
# Logging Settings
# =============================================================================

LOG_LEVEL = os.getenv("FOMO_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("FOMO_LOG_FILE", "")
