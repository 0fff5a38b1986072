"""Remote document store backed by Redis hashes."""
import json
import logging
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from cafeteria.config.settings import Config
from cafeteria.domain.exceptions import BackendUnavailable, NotFound
from cafeteria.domain.interfaces.persistence_backend import IPersistenceBackend, Predicate, Record


class RedisDocumentStore(IPersistenceBackend):
    """
    Remote multi-document store.

    Each collection is one Redis hash mapping record id -> JSON document, so
    every operation touches a single document. Ids are assigned by the
    backend from a per-collection counter.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: Optional[str] = None):
        """
        Initialize the document store.

        Args:
            redis_client: asyncio Redis client (Dependency Injection)
            key_prefix: Namespace for all keys (defaults to Config value)
        """
        self.redis = redis_client
        self._key_prefix = key_prefix if key_prefix is not None else Config.REDIS_KEY_PREFIX
        self._logger = logging.getLogger(__name__)

    def _get_key(self, collection: str) -> str:
        """Generate Redis key for a collection hash."""
        return f"{self._key_prefix}{collection}"

    def _get_sequence_key(self, collection: str) -> str:
        return f"{self._key_prefix}{collection}:seq"

    def _unavailable(self, operation: str, collection: str, error: Exception) -> BackendUnavailable:
        self._logger.error(f"Redis {operation} on {collection} failed: {error}")
        return BackendUnavailable(f"Remote store {operation} failed for {collection}: {error}")

    def _decode(self, collection: str, record_id: str, raw: str) -> Optional[Record]:
        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            self._logger.warning(f"Skipping malformed document {collection}/{record_id}")
            return None
        record["id"] = record_id
        return record

    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        """Retrieve a single document."""
        try:
            raw = await self.redis.hget(self._get_key(collection), record_id)
        except RedisError as e:
            raise self._unavailable("get", collection, e) from e

        if raw is None:
            return None
        return self._decode(collection, record_id, raw)

    async def list(self, collection: str, predicate: Optional[Predicate] = None) -> List[Record]:
        """List documents of a collection, optionally filtered."""
        try:
            documents = await self.redis.hgetall(self._get_key(collection))
        except RedisError as e:
            raise self._unavailable("list", collection, e) from e

        records = []
        for record_id, raw in documents.items():
            record = self._decode(collection, record_id, raw)
            if record is None:
                continue
            if predicate is None or predicate(record):
                records.append(record)

        self._logger.debug(f"Listed {len(records)}/{len(documents)} documents from {collection}")
        return records

    async def put(self, collection: str, record: Record, record_id: Optional[str] = None) -> str:
        """Store a full document, assigning an id when none is given."""
        if record_id is None:
            record_id = await self.generate_id(collection)

        document = dict(record)
        document["id"] = record_id
        try:
            await self.redis.hset(self._get_key(collection), record_id, json.dumps(document))
        except RedisError as e:
            raise self._unavailable("put", collection, e) from e
        except (TypeError, ValueError) as e:
            raise ValueError(f"Record for {collection}/{record_id} is not JSON serializable: {e}") from e

        self._logger.debug(f"Stored {collection}/{record_id}")
        return record_id

    async def update(self, collection: str, record_id: str, changes: Record) -> None:
        """Merge changes into one document inside a WATCH/MULTI transaction."""
        key = self._get_key(collection)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        raw = await pipe.hget(key, record_id)
                        if raw is None:
                            raise NotFound(collection, record_id)

                        document = json.loads(raw)
                        document.update(changes)
                        document["id"] = record_id

                        pipe.multi()
                        pipe.hset(key, record_id, json.dumps(document))
                        await pipe.execute()
                        break
                    except WatchError:
                        # Another writer touched the hash between WATCH and EXEC
                        self._logger.debug(f"Concurrent write on {collection}, re-reading {record_id}")
                        continue
        except RedisError as e:
            raise self._unavailable("update", collection, e) from e

        self._logger.debug(f"Updated {collection}/{record_id}: {sorted(changes)}")

    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a document."""
        try:
            removed = await self.redis.hdel(self._get_key(collection), record_id)
        except RedisError as e:
            raise self._unavailable("delete", collection, e) from e

        if not removed:
            raise NotFound(collection, record_id)
        self._logger.debug(f"Deleted {collection}/{record_id}")

    async def generate_id(self, collection: str) -> str:
        """Assign the next id from the collection counter."""
        try:
            sequence = await self.redis.incr(self._get_sequence_key(collection))
        except RedisError as e:
            raise self._unavailable("generate_id", collection, e) from e
        return str(sequence)
