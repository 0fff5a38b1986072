"""Identity provider implementations."""
from cafeteria.infrastructure.providers.rest_identity_provider import RestIdentityProvider

__all__ = [
    "RestIdentityProvider",
]
