"""
Shared Test Fixtures for the fomo Application

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings, database connections, logging,
HTTP responses, a controllable clock, storage, and fake uploaders.
"""

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import DraftPost, DraftStatus
from data.storage import MemoryStorage
from utils.exceptions import UploadError


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches the config.settings module with safe test values,
    preventing tests from reading a developer's .env file.

    Usage:
        def test_something(mock_settings):
            mock_settings.CACHE_MAX_SIZE = 5
            # ... test code

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    with patch('config.settings') as mock_settings_module:
        # Backend
        mock_settings_module.SUPABASE_URL = "https://test-project.supabase.co"
        mock_settings_module.SUPABASE_ANON_KEY = "test-anon-key"
        mock_settings_module.REQUEST_TIMEOUT = 10

        # Session storage
        mock_settings_module.STORAGE_BACKENDS = ("file", "database", "memory")
        mock_settings_module.STORAGE_BACKEND = "memory"
        mock_settings_module.SESSION_STORAGE_DIR = "/tmp/fomo-test-session"
        mock_settings_module.DRAFT_STORAGE_KEY = "fomo-drafts"

        # Database Settings
        mock_settings_module.DB_SERVER = "test-server"
        mock_settings_module.DB_NAME = "test-db"
        mock_settings_module.DB_USER = "test-user"
        mock_settings_module.DB_PASSWORD = "test-password"
        mock_settings_module.DB_CONNECTION_STRING = "DRIVER={Test};SERVER=test-server;DATABASE=test-db;"
        mock_settings_module.DB_SESSION_TABLE = "[dbo].[tbl_Session_Storage]"

        # Cache
        mock_settings_module.CACHE_MAX_SIZE = 100
        mock_settings_module.CACHE_TTL_USER_PROFILE = 600000
        mock_settings_module.CACHE_TTL_USER_PARTIES = 300000
        mock_settings_module.CACHE_TTL_PARTY_DETAILS = 300000
        mock_settings_module.CACHE_TTL_USER_FRIENDS = 900000
        mock_settings_module.CACHE_TTL_USER_PREFERENCES = 1800000

        # Connectivity
        mock_settings_module.CONNECTIVITY_PROBE_URL = "https://test-project.supabase.co"
        mock_settings_module.CONNECTIVITY_PROBE_TIMEOUT = 5

        # Logging
        mock_settings_module.LOG_LEVEL = "INFO"
        mock_settings_module.LOG_FILE = ""

        yield mock_settings_module


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def mock_db_connection():
    """
    Mock pyodbc database connection and cursor.

    This fixture provides a mock database connection that simulates
    pyodbc behavior without requiring an actual database connection.

    Usage:
        def test_database(mock_db_connection):
            conn, cursor = mock_db_connection
            cursor.fetchall.return_value = [('row1',), ('row2',)]
            # ... test code

    Returns:
        tuple: A tuple of (mock_connection, mock_cursor).
    """
    mock_cursor = MagicMock()
    mock_cursor.description = [('column1',), ('column2',)]
    mock_cursor.fetchall.return_value = []
    mock_cursor.fetchone.return_value = None
    mock_cursor.rowcount = 0

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    mock_conn.commit.return_value = None
    mock_conn.rollback.return_value = None
    mock_conn.close.return_value = None

    with patch('pyodbc.connect', return_value=mock_conn):
        yield mock_conn, mock_cursor


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Captures actual log records on the root logger; the application loggers
    propagate to it.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger("fomo")
    original_level = root_logger.level
    original_app_level = app_logger.level
    root_logger.setLevel(logging.DEBUG)
    app_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    root_logger.setLevel(original_level)
    app_logger.setLevel(original_app_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data=[{'id': 1}])

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        text: str = '',
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            text: Text content (generated from json_data if not provided).
            json_data: Value to return from response.json().
            headers: Response headers dictionary.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.headers = headers or {'Content-Type': 'application/json'}
        mock_response.ok = 200 <= status_code < 300

        if text:
            mock_response.text = text
        elif json_data is not None:
            mock_response.text = json.dumps(json_data)
        else:
            mock_response.text = ''

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_requests(mock_http_response):
    """
    Mock the requests library for HTTP testing.

    Usage:
        def test_api_call(mock_requests):
            mock_requests.get.return_value = mock_requests.response(json_data={'status': 'ok'})

    Returns:
        MagicMock: A mock requests module with response factory attached.
    """
    with patch('requests.get') as mock_get, \
         patch('requests.post') as mock_post, \
         patch('requests.patch') as mock_patch, \
         patch('requests.delete') as mock_delete, \
         patch('requests.head') as mock_head:

        mock_req = MagicMock()
        mock_req.get = mock_get
        mock_req.post = mock_post
        mock_req.patch = mock_patch
        mock_req.delete = mock_delete
        mock_req.head = mock_head
        mock_req.response = mock_http_response

        yield mock_req


# =============================================================================
# Clock Fixtures
# =============================================================================

class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class FakeDateClock:
    """Datetime clock that advances one second per reading."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def fake_clock():
    """A FakeClock for the memory cache."""
    return FakeClock()


@pytest.fixture
def date_clock():
    """A FakeDateClock for the draft store."""
    return FakeDateClock()


# =============================================================================
# Storage and Uploader Fixtures
# =============================================================================

@pytest.fixture
def memory_storage():
    """An empty in-memory session storage."""
    return MemoryStorage()


class FakeUploader:
    """Deterministic uploader that records every draft it is given.

    Args:
        fail_times: Number of calls that raise before calls start succeeding.
            None means every call raises.
        message: Error message used for failures.
    """

    def __init__(self, fail_times: Optional[int] = 0, message: str = "Server rejected the post"):
        self.fail_times = fail_times
        self.message = message
        self.calls: List[DraftPost] = []
        self.on_call = None

    async def __call__(self, draft: DraftPost) -> None:
        self.calls.append(draft)
        if self.on_call is not None:
            result = self.on_call(draft)
            if hasattr(result, '__await__'):
                await result
        if self.fail_times is None or len(self.calls) <= self.fail_times:
            raise UploadError(self.message)

    @property
    def uploaded_ids(self) -> List[str]:
        return [draft.id for draft in self.calls]


@pytest.fixture
def succeeding_uploader():
    """Uploader that accepts every draft."""
    return FakeUploader(fail_times=0)


@pytest.fixture
def failing_uploader():
    """Uploader that rejects every draft."""
    return FakeUploader(fail_times=None)


@pytest.fixture
def flaky_uploader():
    """Factory for an uploader that fails n times, then succeeds."""
    def _create(n: int, message: str = "Upload failed") -> FakeUploader:
        return FakeUploader(fail_times=n, message=message)
    return _create


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def draft_factory():
    """
    Factory fixture for creating DraftPost objects with sensible defaults.

    Usage:
        def test_draft(draft_factory):
            draft = draft_factory(status=DraftStatus.FAILED, error_message="boom")

    Returns:
        callable: A factory function for creating DraftPost objects.
    """
    counter = {'n': 0}

    def _create_draft(**overrides) -> DraftPost:
        counter['n'] += 1
        fields = {
            'id': f"draft-1700000000000-test{counter['n']:05d}",
            'content': f"Party update #{counter['n']}",
            'timestamp': datetime(2024, 6, 1, 20, counter['n'] % 60, tzinfo=timezone.utc),
            'status': DraftStatus.DRAFT,
            'retry_count': 0,
            'tags': ['dance'],
        }
        fields.update(overrides)
        return DraftPost(**fields)

    return _create_draft


@pytest.fixture
def mock_backend():
    """A MagicMock standing in for BackendService."""
    backend = MagicMock()
    backend.select.return_value = []
    backend.insert.return_value = [{'id': 'row-1'}]
    backend.update.return_value = []
    backend.delete.return_value = None
    return backend
