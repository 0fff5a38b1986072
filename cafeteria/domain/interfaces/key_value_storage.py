"""Interface for local key-value storage."""
from abc import ABC, abstractmethod
from typing import Optional


class IKeyValueStorage(ABC):
    """Persisted string key-value medium (the local equivalent of browser storage)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Retrieve a stored value.

        Args:
            key: Storage key

        Returns:
            Stored string or None if not found
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: String to store
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """
        Delete a stored value (no error if absent).

        Args:
            key: Storage key
        """
        pass
