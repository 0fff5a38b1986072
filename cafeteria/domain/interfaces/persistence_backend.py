"""Interface for persistence backends (Repository Pattern)."""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional


Record = Dict[str, Any]
Predicate = Callable[[Record], bool]

USERS = "users"
MENU_ITEMS = "menuItems"
ORDERS = "orders"
OUTLETS = "outlets"

COLLECTIONS = (USERS, MENU_ITEMS, ORDERS, OUTLETS)


class IPersistenceBackend(ABC):
    """
    Uniform CRUD surface over entity collections.

    Allows switching storage backends (remote document store, local blob)
    without changing repository logic. Callers may rely on single-operation
    atomicity only; there are no cross-operation transactions.
    """

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        """
        Retrieve a single record.

        Args:
            collection: Collection name
            record_id: Record identifier

        Returns:
            Record dictionary (including its "id") or None if absent

        Raises:
            BackendUnavailable: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def list(self, collection: str, predicate: Optional[Predicate] = None) -> List[Record]:
        """
        List records of a collection.

        Args:
            collection: Collection name
            predicate: Optional filter applied to every record

        Returns:
            Matching records
        """
        pass

    @abstractmethod
    async def put(self, collection: str, record: Record, record_id: Optional[str] = None) -> str:
        """
        Store a full record, replacing any existing one with the same id.

        Args:
            collection: Collection name
            record: Record to store
            record_id: Explicit id, or None to let the backend assign one

        Returns:
            Id of the stored record
        """
        pass

    @abstractmethod
    async def update(self, collection: str, record_id: str, changes: Record) -> None:
        """
        Merge changes into an existing record (shallow merge).

        Args:
            collection: Collection name
            record_id: Record identifier
            changes: Fields to overwrite

        Raises:
            NotFound: If the record does not exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """
        Delete a record.

        Args:
            collection: Collection name
            record_id: Record identifier

        Raises:
            NotFound: If the record does not exist
        """
        pass

    @abstractmethod
    async def generate_id(self, collection: str) -> str:
        """
        Produce a fresh id that is unique within the collection.

        Args:
            collection: Collection name

        Returns:
            New identifier
        """
        pass
