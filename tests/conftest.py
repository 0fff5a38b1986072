"""Pytest configuration and fixtures."""
import inspect
from typing import Dict, Optional

import pytest

from cafeteria.domain.entities.session import ProviderIdentity, Session
from cafeteria.domain.entities.user import Role
from cafeteria.domain.interfaces.identity_provider import IIdentityProvider, OAuthCredential
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.infrastructure.persistence.json_file_storage import JsonFileStorage
from cafeteria.infrastructure.persistence.local_blob_store import LocalBlobStore
from cafeteria.infrastructure.providers.rest_identity_provider import extract_oob_code
from cafeteria.repositories.menu_repository import MenuRepository
from cafeteria.repositories.order_repository import OrderRepository
from cafeteria.repositories.outlet_repository import OutletRepository
from cafeteria.repositories.user_repository import UserRepository


SIGN_IN_LINK = "https://cafeteria.example/auth?mode=signIn&oobCode=abc123&apiKey=test-api-key"


# ============================================================================
# Test doubles
# ============================================================================

class MemoryStorage(IKeyValueStorage):
    """In-memory key-value medium."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class FakeIdentityProvider(IIdentityProvider):
    """
    Scriptable identity provider.

    Notifies listeners the same way the REST provider does: synchronously
    inside each sign-in call, before the call returns.
    """

    def __init__(self):
        self.current: Optional[ProviderIdentity] = None
        self.listeners = {}
        self.next_identity: Optional[ProviderIdentity] = None
        self.error: Optional[Exception] = None
        self.sent_links = []
        self.received_credentials = []
        self._token = 0

    @property
    def current_identity(self) -> Optional[ProviderIdentity]:
        return self.current

    def on_identity_change(self, listener):
        token = self._token
        self._token += 1
        self.listeners[token] = listener
        return lambda: self.listeners.pop(token, None)

    async def _notify(self):
        for listener in list(self.listeners.values()):
            result = listener(self.current)
            if inspect.isawaitable(result):
                await result

    async def _complete(self, default: ProviderIdentity) -> ProviderIdentity:
        if self.error is not None:
            raise self.error
        self.current = self.next_identity or default
        await self._notify()
        return self.current

    async def sign_in_anonymously(self):
        return await self._complete(ProviderIdentity(uid="anon-1", is_anonymous=True))

    async def sign_up(self, email, password):
        return await self._complete(ProviderIdentity(uid="uid-new", email=email))

    async def sign_in_with_password(self, email, password):
        return await self._complete(ProviderIdentity(uid="uid-1", email=email))

    async def send_sign_in_link(self, email):
        if self.error is not None:
            raise self.error
        self.sent_links.append(email)

    def is_sign_in_link(self, link):
        return extract_oob_code(link) is not None

    async def sign_in_with_email_link(self, email, link):
        return await self._complete(ProviderIdentity(uid="uid-link", email=email))

    async def sign_in_with_credential(self, credential: OAuthCredential):
        self.received_credentials.append(credential)
        return await self._complete(
            ProviderIdentity(uid="uid-oauth", email="oauth@example.com", display_name="OAuth User")
        )

    async def sign_out(self):
        self.current = None
        await self._notify()


# ============================================================================
# Storage and backends
# ============================================================================

@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def file_storage(tmp_path) -> JsonFileStorage:
    return JsonFileStorage(tmp_path / "storage" / "local_storage.json")


@pytest.fixture
def backend(memory_storage) -> LocalBlobStore:
    return LocalBlobStore(memory_storage, storage_key="test_data")


# ============================================================================
# Repositories
# ============================================================================

@pytest.fixture
def user_repository(backend) -> UserRepository:
    return UserRepository(backend)


@pytest.fixture
def menu_repository(backend) -> MenuRepository:
    return MenuRepository(backend)


@pytest.fixture
def order_repository(backend) -> OrderRepository:
    return OrderRepository(backend, price_tolerance=1e-6)


@pytest.fixture
def outlet_repository(backend) -> OutletRepository:
    return OutletRepository(backend)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


# ============================================================================
# Sessions
# ============================================================================

@pytest.fixture
def customer_session() -> Session:
    return Session(
        id="customer-1",
        is_anonymous=False,
        role=Role.CUSTOMER,
        email="customer@example.com",
        verified_role=Role.CUSTOMER,
    )


@pytest.fixture
def other_customer_session() -> Session:
    return Session(id="customer-2", is_anonymous=False, role=Role.CUSTOMER, verified_role=Role.CUSTOMER)


@pytest.fixture
def staff_session() -> Session:
    return Session(
        id="staff-1",
        is_anonymous=False,
        role=Role.STAFF,
        email="staff@example.com",
        verified_role=Role.STAFF,
    )


@pytest.fixture
def admin_session() -> Session:
    return Session(id="admin-1", is_anonymous=False, role=Role.ADMIN, verified_role=Role.ADMIN)


@pytest.fixture
def degraded_session() -> Session:
    return Session.degraded_from(ProviderIdentity(uid="staff-1", email="staff@example.com"))
