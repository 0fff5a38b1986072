"""Factories for creating provider instances (Factory Pattern)."""

from cafeteria.infrastructure.factories.provider_factory import ProviderFactory

__all__ = [
    "ProviderFactory",
]
