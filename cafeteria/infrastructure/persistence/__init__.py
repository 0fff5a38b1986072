"""Persistence backend implementations (Infrastructure Layer).

These implement ``IPersistenceBackend`` and ``IKeyValueStorage`` from
cafeteria.domain.interfaces.
"""
from cafeteria.infrastructure.persistence.redis_document_store import RedisDocumentStore
from cafeteria.infrastructure.persistence.local_blob_store import LocalBlobStore
from cafeteria.infrastructure.persistence.json_file_storage import JsonFileStorage

__all__ = [
    "RedisDocumentStore",
    "LocalBlobStore",
    "JsonFileStorage",
]
