"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for services used in the fomo
application. These protocols enable loose coupling, dependency injection, and
easier testing.

Protocols defined:
- DraftUploader: Interface for the async operation that publishes one draft
- ConnectivitySignal: Interface for the online/offline signal
- BackendClient: Interface for the hosted database's table operations
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from data.models import DraftPost


class DraftUploader(Protocol):
    """Protocol for publishing a draft to the remote system.

    The draft queue only relies on completion semantics: returning means the
    remote side accepted the draft, raising means it did not. The exception's
    message is shown to the user on the failed draft.
    """

    async def __call__(self, draft: DraftPost) -> None:
        """Upload one draft.

        Args:
            draft: A copy of the draft being uploaded.

        Raises:
            Exception: Any error; UploadError is preferred.
        """
        ...


class ConnectivitySignal(Protocol):
    """Protocol for an online/offline signal.

    Implementations notify subscribers with the new value whenever the
    online state changes.
    """

    @property
    def is_online(self) -> bool:
        """Current online state."""
        ...

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a callback for online state changes.

        Args:
            callback: Called with True when going online, False when going offline.

        Returns:
            A function that removes the subscription.
        """
        ...


class BackendClient(Protocol):
    """Protocol for row-level operations against the hosted database."""

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        single: bool = False
    ) -> Any:
        """Fetch rows matching equality filters.

        Returns:
            A list of row dicts, or one row dict when single is True.
        """
        ...

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Insert a row and return the stored representation."""
        ...

    def update(self, table: str, updates: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update matching rows and return them."""
        ...

    def delete(self, table: str, filters: Dict[str, Any]) -> None:
        """Delete matching rows."""
        ...
