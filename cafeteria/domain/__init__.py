"""Domain layer - core business logic and interfaces.

This layer contains:
- Domain entities
- Persistence, storage and identity provider interfaces
- Domain exceptions
"""
