"""Key-value persistence interface for the ledger store."""
from abc import ABC, abstractmethod
from typing import Dict, Optional


class KeyValueStore(ABC):
    """String-keyed, string-valued storage used to persist the ledger.

    Implementations only need get/set/remove; the ledger store decides what
    goes into each slot.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class StorageError(Exception):
    """Raised when a persistence backend cannot read or write a slot."""
    pass
