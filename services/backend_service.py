"""
Backend Service Module

This module talks to the hosted database behind the fomo app through its
REST interface (the PostgREST dialect served by Supabase). It provides
select, insert, update and delete on tables, with equality filters.
"""

from typing import Any, Dict, List, Optional

import requests

from config import settings
from utils.exceptions import BackendRequestError, RecordNotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)


class BackendService:
    """REST client for the hosted database's tables."""

    def __init__(self, url: Optional[str] = None, anon_key: Optional[str] = None,
                 timeout: Optional[float] = None):
        """
        Initialize the backend client.

        Args:
            url: Project URL; defaults to settings.SUPABASE_URL.
            anon_key: Public API key; defaults to settings.SUPABASE_ANON_KEY.
            timeout: Seconds per request; defaults to settings.REQUEST_TIMEOUT.
        """
        self.url = (url or settings.SUPABASE_URL).rstrip('/')
        self.anon_key = anon_key or settings.SUPABASE_ANON_KEY
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.access_token: Optional[str] = None

    def set_access_token(self, token: Optional[str]) -> None:
        """Send requests as a signed-in user (None reverts to the anonymous key)."""
        self.access_token = token

    def _headers(self, single: bool = False, returning: bool = False) -> Dict[str, str]:
        headers = {
            'apikey': self.anon_key,
            'Authorization': f"Bearer {self.access_token or self.anon_key}",
            'Content-Type': 'application/json',
        }
        if single:
            headers['Accept'] = 'application/vnd.pgrst.object+json'
        if returning:
            headers['Prefer'] = 'return=representation'
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = str(value).lower()
            params[column] = f"eq.{value}"
        return params

    def _send(self, method: str, table: str, **kwargs) -> requests.Response:
        try:
            response = getattr(requests, method)(self._table_url(table), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BackendRequestError(f"{method.upper()} {table} failed: {e}") from e

        if not response.ok:
            detail = response.text
            try:
                detail = response.json().get('message', detail)
            except (ValueError, AttributeError):
                pass
            if response.status_code == 406 and kwargs.get('headers', {}).get('Accept', '').endswith('object+json'):
                raise RecordNotFoundError(f"No single row in {table} matched {kwargs.get('params')}")
            raise BackendRequestError(
                f"{method.upper()} {table} returned {response.status_code}: {detail}",
                status_code=response.status_code
            )
        return response

    def select(self, table: str, filters: Optional[Dict[str, Any]] = None, columns: str = "*",
               order: Optional[str] = None, single: bool = False) -> Any:
        """
        Fetch rows matching equality filters.

        Args:
            table: Table name.
            filters: Column -> value equality filters.
            columns: Column list in select syntax (may embed related tables).
            order: Ordering, e.g. "created_at.desc".
            single: Expect exactly one row and return it as a dict.

        Returns:
            A list of row dicts, or a single row dict when single is True.

        Raises:
            RecordNotFoundError: If single is True and no row matched.
            BackendRequestError: On any other failure.
        """
        params = {'select': columns, **self._filter_params(filters)}
        if order:
            params['order'] = order
        response = self._send('get', table, params=params, headers=self._headers(single=single))
        return response.json()

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Insert a row and return the stored representation."""
        response = self._send('post', table, json=row, headers=self._headers(returning=True))
        logger.debug(f"Inserted row into {table}")
        return response.json()

    def update(self, table: str, updates: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update rows matching the filters and return them."""
        if not filters:
            raise ValueError(f"Refusing to update every row of {table}")
        response = self._send('patch', table, json=updates, params=self._filter_params(filters),
                              headers=self._headers(returning=True))
        return response.json()

    def delete(self, table: str, filters: Dict[str, Any]) -> None:
        """Delete rows matching the filters."""
        if not filters:
            raise ValueError(f"Refusing to delete every row of {table}")
        self._send('delete', table, params=self._filter_params(filters), headers=self._headers())
