"""Local single-blob persistence backend."""
import asyncio
import json
import logging
import secrets
import string
import time
from typing import Any, Dict, List, Optional

from cafeteria.config.settings import Config
from cafeteria.domain.exceptions import NotFound
from cafeteria.domain.interfaces.key_value_storage import IKeyValueStorage
from cafeteria.domain.interfaces.persistence_backend import (
    COLLECTIONS,
    MENU_ITEMS,
    ORDERS,
    OUTLETS,
    USERS,
    IPersistenceBackend,
    Predicate,
    Record,
)


ID_PREFIXES: Dict[str, str] = {
    USERS: "user",
    MENU_ITEMS: "item",
    ORDERS: "order",
    OUTLETS: "outlet",
}

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9


def _empty_blob() -> Dict[str, List[Record]]:
    return {collection: [] for collection in COLLECTIONS}


def _record_id(record: Record) -> Optional[str]:
    # Blobs written by the browser client used "_id" (menu, orders) and "uid" (users)
    return record.get("id") or record.get("_id") or record.get("uid")


class LocalBlobStore(IPersistenceBackend):
    """
    Persistence backend keeping every collection in one serialized document.

    Each operation reads the whole blob, scans or mutates one array and
    writes the whole blob back. Writes are atomic at blob granularity only:
    two writers interleaving read and write lose one update (last writer
    wins). Within one process, writes are serialized by a lock and the
    storage medium is only touched from worker threads.
    """

    def __init__(self, storage: IKeyValueStorage, storage_key: Optional[str] = None):
        """
        Initialize the blob store.

        Args:
            storage: Key-value medium holding the blob (Dependency Injection)
            storage_key: Key of the blob (defaults to Config value)
        """
        self.storage = storage
        self.storage_key = storage_key or Config.LOCAL_STORAGE_KEY
        self._logger = logging.getLogger(__name__)
        self._write_lock: Optional[asyncio.Lock] = None

    def _load(self) -> Dict[str, List[Record]]:
        raw = self.storage.get_item(self.storage_key)
        if raw is None:
            return _empty_blob()

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            self._logger.warning(f"Blob '{self.storage_key}' is malformed, resetting to empty document")
            return _empty_blob()
        if not isinstance(parsed, dict):
            self._logger.warning(f"Blob '{self.storage_key}' is not an object, resetting to empty document")
            return _empty_blob()

        blob = _empty_blob()
        for collection in COLLECTIONS:
            entries = parsed.get(collection)
            if isinstance(entries, list):
                blob[collection] = [entry for entry in entries if isinstance(entry, dict)]
        return blob

    def _save(self, blob: Dict[str, List[Record]]) -> None:
        self.storage.set_item(self.storage_key, json.dumps(blob))

    async def _read(self) -> Dict[str, List[Record]]:
        return await asyncio.to_thread(self._load)

    async def _write(self, blob: Dict[str, List[Record]]) -> None:
        await asyncio.to_thread(self._save, blob)

    def _lock(self) -> asyncio.Lock:
        # Created lazily so the lock belongs to the running loop
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")

    @staticmethod
    def _find_index(entries: List[Record], record_id: str) -> int:
        for index, entry in enumerate(entries):
            if _record_id(entry) == record_id:
                return index
        return -1

    @staticmethod
    def _with_id(record: Record) -> Record:
        result = dict(record)
        result["id"] = _record_id(record)
        return result

    def _new_id(self, collection: str, entries: List[Record]) -> str:
        prefix = ID_PREFIXES.get(collection, collection)
        existing = {_record_id(entry) for entry in entries}
        while True:
            suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
            candidate = f"{prefix}_{int(time.time() * 1000)}_{suffix}"
            if candidate not in existing:
                return candidate

    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        self._check_collection(collection)
        entries = (await self._read())[collection]
        index = self._find_index(entries, record_id)
        return self._with_id(entries[index]) if index >= 0 else None

    async def list(self, collection: str, predicate: Optional[Predicate] = None) -> List[Record]:
        self._check_collection(collection)
        records = [self._with_id(entry) for entry in (await self._read())[collection]]
        if predicate is not None:
            records = [record for record in records if predicate(record)]
        return records

    async def put(self, collection: str, record: Record, record_id: Optional[str] = None) -> str:
        self._check_collection(collection)
        async with self._lock():
            blob = await self._read()
            entries = blob[collection]
            if record_id is None:
                record_id = self._new_id(collection, entries)

            stored: Record = dict(record)
            stored["id"] = record_id
            index = self._find_index(entries, record_id)
            if index >= 0:
                entries[index] = stored
            else:
                entries.append(stored)

            await self._write(blob)
        self._logger.debug(f"Stored {collection}/{record_id}")
        return record_id

    async def update(self, collection: str, record_id: str, changes: Record) -> None:
        self._check_collection(collection)
        async with self._lock():
            blob = await self._read()
            entries = blob[collection]
            index = self._find_index(entries, record_id)
            if index < 0:
                raise NotFound(collection, record_id)

            merged: Dict[str, Any] = dict(entries[index])
            merged.update(changes)
            merged["id"] = record_id
            entries[index] = merged

            await self._write(blob)
        self._logger.debug(f"Updated {collection}/{record_id}: {sorted(changes)}")

    async def delete(self, collection: str, record_id: str) -> None:
        self._check_collection(collection)
        async with self._lock():
            blob = await self._read()
            entries = blob[collection]
            index = self._find_index(entries, record_id)
            if index < 0:
                raise NotFound(collection, record_id)

            del entries[index]
            await self._write(blob)
        self._logger.debug(f"Deleted {collection}/{record_id}")

    async def generate_id(self, collection: str) -> str:
        self._check_collection(collection)
        return self._new_id(collection, (await self._read())[collection])
