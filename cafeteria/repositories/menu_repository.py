"""Repository for menu items."""
import logging
from typing import Any, Dict, List, Optional

from cafeteria.domain.entities.menu import MENU_FIELD_NAMES, MenuItem, validate_menu_fields
from cafeteria.domain.entities.session import Session
from cafeteria.domain.interfaces.persistence_backend import MENU_ITEMS, IPersistenceBackend
from cafeteria.repositories.access import require_staff
from cafeteria.utils.timestamps import utc_now


class MenuRepository:
    """Menu items; anyone may read, only staff may change them."""

    def __init__(self, backend: IPersistenceBackend):
        self.backend = backend
        self._logger = logging.getLogger(__name__)

    async def create(
        self,
        session: Optional[Session],
        name: str,
        price: float,
        description: Optional[str] = None,
        category: Optional[str] = None,
        image: Optional[str] = None,
        available: bool = True,
    ) -> MenuItem:
        """
        Add an item to the menu.

        Raises:
            Unauthorized: If the caller is not verified staff
            ValueError: If name is blank or price is negative
        """
        require_staff(session, "create menu items")
        validate_menu_fields(name=name, price=price)

        record_id = await self.backend.generate_id(MENU_ITEMS)
        item = MenuItem(
            id=record_id,
            name=name.strip(),
            price=price,
            description=description,
            category=category,
            image=image,
            available=available,
            created_at=utc_now(),
        )
        await self.backend.put(MENU_ITEMS, item.to_record(), record_id)
        self._logger.info(f"Menu item {record_id} '{item.name}' created by {session.id}")
        return item

    async def get(self, item_id: str) -> Optional[MenuItem]:
        record = await self.backend.get(MENU_ITEMS, item_id)
        return MenuItem.from_record(record) if record is not None else None

    async def list(self, available_only: bool = False) -> List[MenuItem]:
        predicate = (lambda record: bool(record.get("available"))) if available_only else None
        records = await self.backend.list(MENU_ITEMS, predicate)
        items = [MenuItem.from_record(record) for record in records]
        return sorted(items, key=lambda item: item.name.lower())

    async def update(self, session: Optional[Session], item_id: str, changes: Dict[str, Any]) -> MenuItem:
        """
        Change fields of a menu item.

        Raises:
            Unauthorized: If the caller is not verified staff
            ValueError: If a field is unknown or invalid
            NotFound: If the item does not exist
        """
        require_staff(session, "update menu items")
        unknown = set(changes) - set(MENU_FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown menu item fields: {', '.join(sorted(unknown))}")
        validate_menu_fields(**changes)

        record_changes = dict(changes)
        if "price" in record_changes:
            record_changes["price"] = float(record_changes["price"])
        if "available" in record_changes:
            record_changes["available"] = bool(record_changes["available"])

        await self.backend.update(MENU_ITEMS, item_id, record_changes)
        self._logger.info(f"Menu item {item_id} updated by {session.id}: {sorted(record_changes)}")
        return await self.get(item_id)

    async def delete(self, session: Optional[Session], item_id: str) -> None:
        """
        Remove a menu item for good.

        Raises:
            Unauthorized: If the caller is not verified staff
            NotFound: If the item does not exist
        """
        require_staff(session, "delete menu items")
        await self.backend.delete(MENU_ITEMS, item_id)
        self._logger.info(f"Menu item {item_id} deleted by {session.id}")
