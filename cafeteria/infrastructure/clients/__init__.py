"""API clients for external services."""
from cafeteria.infrastructure.clients.identity_toolkit_client import IdentityToolkitClient, IdentityToolkitError

__all__ = [
    "IdentityToolkitClient",
    "IdentityToolkitError",
]
