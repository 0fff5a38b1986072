"""Factory for creating backend and provider instances (Factory Pattern)."""
import logging
from typing import Optional

from cafeteria.config.settings import Config
from cafeteria.domain.interfaces.identity_provider import IIdentityProvider
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.domain.interfaces.persistence_backend import IPersistenceBackend
from cafeteria.infrastructure.clients.identity_toolkit_client import IdentityToolkitClient
from cafeteria.infrastructure.persistence.json_file_storage import JsonFileStorage
from cafeteria.infrastructure.persistence.local_blob_store import LocalBlobStore
from cafeteria.infrastructure.persistence.redis_document_store import RedisDocumentStore
from cafeteria.infrastructure.providers.rest_identity_provider import RestIdentityProvider
from cafeteria.infrastructure.redis_client import RedisClientFactory


logger = logging.getLogger(__name__)


class ProviderFactory:
    """
    Factory for creating backend and provider instances following Factory Pattern.

    Centralizes creation logic so the persistence backend is chosen by
    configuration in one place.
    """

    @staticmethod
    def create_key_value_storage(path: Optional[str] = None) -> IKeyValueStorage:
        """
        Create the local key-value medium.

        Args:
            path: JSON file location (defaults to Config value)
        """
        return JsonFileStorage(path or Config.LOCAL_STORAGE_PATH)

    @staticmethod
    def create_persistence_backend(
        backend_type: str = "local",
        storage: Optional[IKeyValueStorage] = None,
    ) -> IPersistenceBackend:
        """
        Create a persistence backend instance.

        Args:
            backend_type: "remote" (Redis document store) or "local" (JSON blob)
            storage: Key-value medium for the local backend

        Returns:
            IPersistenceBackend instance

        Raises:
            ValueError: If backend type is not supported
        """
        backend_type = backend_type.lower()

        if backend_type == "remote":
            redis_client = RedisClientFactory.get_client()
            logger.info("Using remote document store")
            return RedisDocumentStore(redis_client=redis_client)
        elif backend_type == "local":
            logger.info("Using local blob store")
            return LocalBlobStore(storage or ProviderFactory.create_key_value_storage())
        else:
            raise ValueError(f"Unsupported persistence backend type: {backend_type}")

    @staticmethod
    def create_identity_provider(api_key: Optional[str] = None) -> IIdentityProvider:
        """
        Create the identity provider.

        Args:
            api_key: Web API key (defaults to Config value)
        """
        client = IdentityToolkitClient(api_key=api_key)
        return RestIdentityProvider(client=client)
