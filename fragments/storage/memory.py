"""In-process storage backend."""

from typing import Dict, List, Optional

from fragments.storage.base import KeyValueStore, StorageBackend, ValueT, validate_keys, validate_owner


class MemoryDB(KeyValueStore[ValueT]):
    def __init__(self):
        self.db: Dict[str, Dict[str, ValueT]] = {}

    async def put(self, owner_id: str, fragment_id: str, value: ValueT) -> None:
        validate_keys(owner_id, fragment_id)
        self.db.setdefault(owner_id, {})[fragment_id] = value

    async def get(self, owner_id: str, fragment_id: str) -> Optional[ValueT]:
        validate_keys(owner_id, fragment_id)
        return self.db.get(owner_id, {}).get(fragment_id)

    async def query(self, owner_id: str) -> List[ValueT]:
        validate_owner(owner_id)
        return list(self.db.get(owner_id, {}).values())

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        validate_keys(owner_id, fragment_id)
        owner_entries = self.db.get(owner_id)
        if owner_entries is None or fragment_id not in owner_entries:
            return False
        del owner_entries[fragment_id]
        if not owner_entries:
            del self.db[owner_id]
        return True

    def clear(self) -> None:
        self.db = {}


class MemoryStorageBackend(StorageBackend):
    """
    Metadata and payloads held in two in-process dictionaries.

    Contents are lost when the process exits.
    """

    def __init__(self):
        self.metadata: MemoryDB[str] = MemoryDB()
        self.data: MemoryDB[bytes] = MemoryDB()

    async def close(self) -> None:
        self.metadata.clear()
        self.data.clear()
