"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols enable dependency injection for persistence, making the
draft queue testable without real session files or database connections.

Protocols defined:
- SessionStorage: Interface for persisting serialized blobs under a key
"""

from typing import Protocol, Optional


class SessionStorage(Protocol):
    """Protocol defining the interface for key/value blob storage.

    Implementations should provide methods for:
    - Writing a serialized value under a key (replacing any previous value)
    - Reading the value stored under a key
    - Removing a key

    This protocol abstracts the session store, allowing the draft queue to
    work with any compatible backend (files, database rows, in-memory dict).
    Implementations raise StorageError when the underlying store fails.
    """

    def persist(self, key: str, serialized_value: str) -> None:
        """Store a serialized value.

        Args:
            key: The storage key.
            serialized_value: The text to store.
        """
        ...

    def load(self, key: str) -> Optional[str]:
        """Read a serialized value.

        Args:
            key: The storage key.

        Returns:
            The stored text, or None if nothing is stored under the key.
        """
        ...

    def remove(self, key: str) -> None:
        """Delete the value stored under a key, if any.

        Args:
            key: The storage key.
        """
        ...
