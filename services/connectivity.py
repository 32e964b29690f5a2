"""
Connectivity Service Module

This module tracks whether the application is online and notifies subscribers
when that changes. Online/offline events can be pushed in directly, or the
monitor can probe a URL to find out.
"""

import dataclasses
from typing import Callable, List, Optional

import requests

from config import settings
from data.models import OfflineState, CONNECTION_TYPES
from utils.helpers import utc_now
from utils.logger import get_logger

logger = get_logger(__name__)


class ConnectivityMonitor:
    """Online/offline signal with subscriber notification."""

    def __init__(self, probe_url: Optional[str] = None, timeout: Optional[float] = None,
                 initial_online: bool = True):
        """
        Initialize the monitor.

        Args:
            probe_url: URL checked by check(); defaults to settings.CONNECTIVITY_PROBE_URL.
            timeout: Seconds before a probe counts as offline.
            initial_online: Starting state before any event or probe.
        """
        self.probe_url = probe_url if probe_url is not None else settings.CONNECTIVITY_PROBE_URL
        self.timeout = timeout or settings.CONNECTIVITY_PROBE_TIMEOUT
        self._state = OfflineState(
            is_online=initial_online,
            last_online=utc_now() if initial_online else None,
        )
        self._subscribers: List[Callable[[bool], None]] = []

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def state(self) -> OfflineState:
        return dataclasses.replace(self._state)

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """
        Register a callback for online state changes.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """
        Record an online or offline event.

        Subscribers are only called when the state actually changes.
        """
        changed = online != self._state.is_online
        self._state.is_online = online
        self._state.is_connecting = False
        if online:
            self._state.last_online = utc_now()

        if not changed:
            return

        logger.info("Connection restored" if online else "Connection lost")
        for callback in list(self._subscribers):
            try:
                callback(online)
            except Exception as e:
                logger.error(f"Connectivity subscriber failed: {e}")

    def set_connection_type(self, connection_type: str) -> None:
        """Record the kind of network in use; unrecognised kinds become "unknown"."""
        self._state.connection_type = connection_type if connection_type in CONNECTION_TYPES else "unknown"

    def ping(self) -> bool:
        """
        Probe the configured URL without recording the result.

        Any HTTP response counts as online; a transport error or timeout counts
        as offline. Without a probe URL the current state is returned.
        Blocks for up to ``timeout`` seconds, so async callers run it in a
        worker thread and pass the result to set_online().
        """
        if not self.probe_url:
            logger.debug("No connectivity probe URL configured")
            return self._state.is_online

        self._state.is_connecting = True
        try:
            requests.head(self.probe_url, timeout=self.timeout)
            return True
        except requests.RequestException as e:
            logger.debug(f"Connectivity probe failed: {e}")
            return False

    def check(self) -> bool:
        """
        Probe the configured URL and record the result.

        Returns:
            bool: The online state after the probe.
        """
        online = self.ping()
        self.set_online(online)
        return online
