"""Repository for cafeteria outlets."""
import logging
from typing import Any, Dict, List, Optional

from cafeteria.domain.entities.outlet import OUTLET_FIELD_NAMES, Outlet
from cafeteria.domain.entities.session import Session
from cafeteria.domain.interfaces.persistence_backend import OUTLETS, IPersistenceBackend
from cafeteria.repositories.access import require_staff
from cafeteria.utils.timestamps import utc_now


class OutletRepository:
    def __init__(self, backend: IPersistenceBackend):
        self.backend = backend
        self._logger = logging.getLogger(__name__)

    async def create(
        self,
        session: Optional[Session],
        name: str,
        location: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[str] = None,
        is_open: bool = True,
    ) -> Outlet:
        require_staff(session, "create outlets")
        record_id = await self.backend.generate_id(OUTLETS)
        outlet = Outlet(
            id=record_id,
            name=name,
            location=location,
            description=description,
            image=image,
            is_open=is_open,
            created_at=utc_now(),
        )
        await self.backend.put(OUTLETS, outlet.to_record(), record_id)
        self._logger.info(f"Outlet {record_id} '{name}' created by {session.id}")
        return outlet

    async def get(self, outlet_id: str) -> Optional[Outlet]:
        record = await self.backend.get(OUTLETS, outlet_id)
        return Outlet.from_record(record) if record is not None else None

    async def list(self, open_only: bool = False) -> List[Outlet]:
        predicate = (lambda record: bool(record.get("isOpen", True))) if open_only else None
        records = await self.backend.list(OUTLETS, predicate)
        return sorted((Outlet.from_record(record) for record in records), key=lambda outlet: outlet.name.lower())

    async def update(self, session: Optional[Session], outlet_id: str, changes: Dict[str, Any]) -> Outlet:
        """
        Change outlet fields (staff only).

        Raises:
            ValueError: On unknown fields or a blank name
            NotFound: If the outlet does not exist
        """
        require_staff(session, "update outlets")
        unknown = set(changes) - set(OUTLET_FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown outlet fields: {', '.join(sorted(unknown))}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValueError("name is required")

        record_changes = {OUTLET_FIELD_NAMES[key]: value for key, value in changes.items()}
        await self.backend.update(OUTLETS, outlet_id, record_changes)
        self._logger.info(f"Outlet {outlet_id} updated by {session.id}: {sorted(record_changes)}")
        return await self.get(outlet_id)

    async def delete(self, session: Optional[Session], outlet_id: str) -> None:
        require_staff(session, "delete outlets")
        await self.backend.delete(OUTLETS, outlet_id)
        self._logger.info(f"Outlet {outlet_id} deleted by {session.id}")
