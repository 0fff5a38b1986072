"""Domain interfaces following Dependency Inversion Principle."""

from cafeteria.domain.interfaces.persistence_backend import IPersistenceBackend
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.domain.interfaces.identity_provider import (
    IIdentityProvider,
    OAuthCredential,
    PopupHandler,
)

__all__ = [
    "IPersistenceBackend",
    "IKeyValueStorage",
    "IIdentityProvider",
    "OAuthCredential",
    "PopupHandler",
]
