"""Repository for user records."""
import logging
from typing import Any, Dict, Optional

from cafeteria.domain.entities.session import Session
from cafeteria.domain.entities.user import DEFAULT_ROLE, Role, User, user_changes_to_record
from cafeteria.domain.exceptions import NotFound
from cafeteria.domain.interfaces.persistence_backend import USERS, IPersistenceBackend
from cafeteria.repositories.access import require_staff


class UserRepository:
    """
    User records keyed by the credential identity's uid.

    Records are created lazily and merged field by field; the repository
    never deletes them.
    """

    def __init__(self, backend: IPersistenceBackend):
        self.backend = backend
        self._logger = logging.getLogger(__name__)

    async def get(self, user_id: str) -> Optional[User]:
        record = await self.backend.get(USERS, user_id)
        return User.from_record(record) if record is not None else None

    async def upsert(self, user_id: str, changes: Dict[str, Any]) -> User:
        """
        Create or merge a user record.

        Fields missing from ``changes`` (or given as None) keep their stored
        value. The role changes only when ``changes`` contains ``role``.

        Args:
            user_id: Credential uid
            changes: Entity-named fields (email, name, image, role, is_anonymous)

        Returns:
            The user as stored after the merge
        """
        record_changes = user_changes_to_record(changes)
        existing = await self.get(user_id)

        if existing is None:
            user = User(
                id=user_id,
                email=record_changes.get("email", ""),
                name=record_changes.get("name", ""),
                image=record_changes.get("image", ""),
                role=record_changes.get("role", DEFAULT_ROLE),
                is_anonymous=record_changes.get("isAnonymous", False),
            )
            await self.backend.put(USERS, user.to_record(), user_id)
            self._logger.info(f"Created user {user_id} with role {user.role.value}")
            return user

        if not record_changes:
            return existing

        await self.backend.update(USERS, user_id, record_changes)
        merged = existing.to_record()
        merged.update(record_changes)
        self._logger.debug(f"Merged user {user_id}: {sorted(record_changes)}")
        return User.from_record(merged)

    async def get_or_create(self, user_id: str, defaults: Dict[str, Any]) -> User:
        """Return the stored user, creating it from ``defaults`` only when absent."""
        existing = await self.get(user_id)
        if existing is not None:
            return existing
        return await self.upsert(user_id, defaults)

    async def assign_role(self, session: Optional[Session], user_id: str, role: Any) -> User:
        """
        Change another user's role (staff only).

        Raises:
            Unauthorized: If the caller is not verified staff
            NotFound: If the user does not exist
        """
        require_staff(session, "assign roles")
        role = Role.parse(role)
        existing = await self.get(user_id)
        if existing is None:
            raise NotFound(USERS, user_id)
        return await self.upsert(user_id, {"role": role})
