"""Service container for dependency injection (IoC Container Pattern)."""
import logging
from typing import Optional

from cafeteria.application.services.cart_service import ShoppingCart
from cafeteria.application.services.session_resolver import SessionResolver
from cafeteria.config.settings import Config
from cafeteria.domain.interfaces.identity_provider import IIdentityProvider, PopupHandler
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.domain.interfaces.persistence_backend import IPersistenceBackend
from cafeteria.infrastructure.factories.provider_factory import ProviderFactory
from cafeteria.infrastructure.redis_client import RedisClientFactory
from cafeteria.repositories.menu_repository import MenuRepository
from cafeteria.repositories.order_repository import OrderRepository
from cafeteria.repositories.outlet_repository import OutletRepository
from cafeteria.repositories.user_repository import UserRepository


class ServiceContainer:
    """
    Service container implementing Dependency Injection pattern.

    Builds every service lazily from the configuration class. It holds
    services only; the current Session lives in the SessionResolver and is
    passed explicitly to repositories and carts.
    """

    def __init__(self, config: type[Config] = Config, popup_handler: Optional[PopupHandler] = None):
        """
        Initialize service container.

        Args:
            config: Configuration class
            popup_handler: OAuth popup opener handed to the session resolver
        """
        self.config = config
        self.popup_handler = popup_handler
        self._logger = logging.getLogger(__name__)

        self._key_value_storage: Optional[IKeyValueStorage] = None
        self._backend: Optional[IPersistenceBackend] = None
        self._identity_provider: Optional[IIdentityProvider] = None
        self._user_repository: Optional[UserRepository] = None
        self._menu_repository: Optional[MenuRepository] = None
        self._order_repository: Optional[OrderRepository] = None
        self._outlet_repository: Optional[OutletRepository] = None
        self._session_resolver: Optional[SessionResolver] = None

    def get_key_value_storage(self) -> IKeyValueStorage:
        """Get or create the local key-value medium."""
        if self._key_value_storage is None:
            self._key_value_storage = ProviderFactory.create_key_value_storage(self.config.LOCAL_STORAGE_PATH)
        return self._key_value_storage

    def get_backend(self) -> IPersistenceBackend:
        """Get or create the configured persistence backend."""
        if self._backend is None:
            backend_type = self.config.PERSISTENCE_BACKEND
            try:
                self._backend = ProviderFactory.create_persistence_backend(
                    backend_type,
                    storage=self.get_key_value_storage() if backend_type.lower() == "local" else None,
                )
                self._logger.info(f"Persistence backend created: {backend_type}")
            except Exception as e:
                self._logger.error(f"Failed to create persistence backend: {e}")
                raise
        return self._backend

    def get_identity_provider(self) -> IIdentityProvider:
        """Get or create the identity provider."""
        if self._identity_provider is None:
            self._identity_provider = ProviderFactory.create_identity_provider(self.config.IDENTITY_API_KEY)
            self._logger.info("IdentityProvider created")
        return self._identity_provider

    def get_user_repository(self) -> UserRepository:
        if self._user_repository is None:
            self._user_repository = UserRepository(self.get_backend())
        return self._user_repository

    def get_menu_repository(self) -> MenuRepository:
        if self._menu_repository is None:
            self._menu_repository = MenuRepository(self.get_backend())
        return self._menu_repository

    def get_order_repository(self) -> OrderRepository:
        if self._order_repository is None:
            self._order_repository = OrderRepository(
                self.get_backend(),
                price_tolerance=self.config.PRICE_TOLERANCE,
            )
        return self._order_repository

    def get_outlet_repository(self) -> OutletRepository:
        if self._outlet_repository is None:
            self._outlet_repository = OutletRepository(self.get_backend())
        return self._outlet_repository

    def get_session_resolver(self) -> SessionResolver:
        """Get or create the session resolver (not yet subscribed; call ``start``)."""
        if self._session_resolver is None:
            self._session_resolver = SessionResolver(
                identity_provider=self.get_identity_provider(),
                user_repository=self.get_user_repository(),
                marker_storage=self.get_key_value_storage(),
                popup_handler=self.popup_handler,
                marker_key=self.config.EMAIL_LINK_MARKER_KEY,
            )
            self._logger.info("SessionResolver created")
        return self._session_resolver

    def new_cart(self) -> ShoppingCart:
        """Create an empty cart bound to the order repository."""
        return ShoppingCart(self.get_order_repository())

    async def close(self) -> None:
        """Tear down the session subscription and release Redis connections."""
        if self._session_resolver is not None:
            self._session_resolver.close()
        if self._backend is not None and self.config.PERSISTENCE_BACKEND.lower() == "remote":
            await RedisClientFactory.close()
