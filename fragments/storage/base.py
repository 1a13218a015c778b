"""Storage backend contract consumed by the Fragment entity."""

from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

ValueT = TypeVar("ValueT")


def validate_keys(owner_id, fragment_id) -> None:
    """
    Reject anything but string keys.

    Raises:
        TypeError: If either key is not a str
    """
    if not isinstance(owner_id, str) or not isinstance(fragment_id, str):
        raise TypeError(
            f"owner_id and fragment_id strings are required, got owner_id={owner_id!r}, fragment_id={fragment_id!r}"
        )


def validate_owner(owner_id) -> None:
    """
    Reject a non-string owner key.

    Raises:
        TypeError: If owner_id is not a str
    """
    if not isinstance(owner_id, str):
        raise TypeError(f"owner_id string is required, got owner_id={owner_id!r}")


class KeyValueStore(ABC, Generic[ValueT]):
    """
    One key-value namespace keyed by (owner_id, fragment_id).
    """

    @abstractmethod
    async def put(self, owner_id: str, fragment_id: str, value: ValueT) -> None:
        """Insert or overwrite the value for the key."""

    @abstractmethod
    async def get(self, owner_id: str, fragment_id: str) -> Optional[ValueT]:
        """Return the value for the key, or None if absent."""

    @abstractmethod
    async def query(self, owner_id: str) -> List[ValueT]:
        """Return every value stored for owner_id, in insertion order."""

    @abstractmethod
    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        """Remove the key; return whether a value was removed."""


class StorageBackend(ABC):
    """
    Pair of namespaces backing fragments: serialized metadata and raw payloads.
    """

    metadata: KeyValueStore[str]
    data: KeyValueStore[bytes]

    async def close(self) -> None:
        """Release backend resources."""
        return None
