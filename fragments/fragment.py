"""Fragment entity: metadata, validation and lifecycle against a storage backend."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from common.logging_config import get_logger
from fragments.exceptions import NotFoundError, StorageError, ValidationError
from fragments.formats import formats_for
from fragments.storage.base import StorageBackend
from fragments.types import FragmentType, MediaNamespace
from fragments.utils import generate_uuid, next_timestamp, parse_content_type, parse_timestamp

logger = get_logger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "owner_id", "type", "created"})


@dataclass(eq=False)
class Fragment:
    """
    A unit of stored content owned by exactly one user.

    Metadata (this object) and payload bytes live in separate storage
    namespaces keyed by (owner_id, id). Every persistence method takes the
    storage backend explicitly.
    """
    id: Optional[str] = None
    owner_id: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    type: Optional[str] = None
    size: int = 0

    def __post_init__(self):
        if self.owner_id is None and self.type is None:
            raise ValidationError(f"owner_id and type are required, got owner_id={self.owner_id}, type={self.type}")
        if not self.owner_id or not isinstance(self.owner_id, str):
            raise ValidationError(f"owner_id is required, got owner_id={self.owner_id!r}")
        if self.type is None:
            raise ValidationError(f"type is required, got type={self.type}")
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ValidationError(f"size must be an integer, got size={self.size!r}")
        if self.size < 0:
            raise ValidationError(f"size cannot be negative, got size={self.size}")
        if not Fragment.is_supported_type(self.type):
            raise ValidationError(f"type is not supported, got type={self.type!r}")

        for field_name in ("created", "updated"):
            value = getattr(self, field_name)
            if value is not None:
                try:
                    parse_timestamp(value)
                except ValueError:
                    raise ValidationError(f"{field_name} must be an ISO-8601 timestamp, got {field_name}={value!r}")

        now = next_timestamp()
        object.__setattr__(self, "id", self.id or generate_uuid())
        object.__setattr__(self, "created", self.created or now)
        self.updated = self.updated or now

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS and name in self.__dict__:
            raise AttributeError(f"{name} cannot be changed after a fragment is created")
        object.__setattr__(self, name, value)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Fragment":
        """
        Rebuild a fragment from its stored metadata record (camelCase keys).
        """
        return cls(
            id=record.get("id"),
            owner_id=record.get("ownerId"),
            created=record.get("created"),
            updated=record.get("updated"),
            type=record.get("type"),
            size=record.get("size", 0),
        )

    def to_record(self) -> Dict[str, Any]:
        """
        Serializable metadata record, as written to the metadata store.
        """
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "created": self.created,
            "updated": self.updated,
            "type": self.type,
            "size": self.size,
        }

    @staticmethod
    async def by_user(storage: StorageBackend, owner_id: str, expand: bool = False) -> Union[List[str], List["Fragment"]]:
        """
        Get all fragments for the given owner.

        Args:
            storage: Storage backend
            owner_id: Owner whose fragments are listed
            expand: Return full Fragment objects instead of ids

        Returns:
            List of ids, or of Fragments when expand is True

        Raises:
            StorageError: If a stored record cannot be parsed or rebuilt
        """
        serialized = await storage.metadata.query(owner_id)

        try:
            records = [json.loads(value) for value in serialized]
            if expand:
                return [Fragment.from_record(record) for record in records]
            return [record["id"] for record in records]
        except (ValueError, TypeError, KeyError, ValidationError) as e:
            logger.error(f"Corrupt metadata in fragment listing for owner_id={owner_id}: {e}")
            raise StorageError(f"unable to read fragment metadata for owner_id={owner_id}") from e

    @staticmethod
    async def by_id(storage: StorageBackend, owner_id: str, fragment_id: str) -> "Fragment":
        """
        Get the owner's fragment with the given id.

        Raises:
            NotFoundError: If the owner has no fragment with that id
            StorageError: If the stored record cannot be rebuilt
        """
        serialized = await storage.metadata.get(owner_id, fragment_id)
        if serialized is None:
            logger.warning(f"Fragment with id={fragment_id} does not exist for owner_id={owner_id}")
            raise NotFoundError(f"Fragment with id={fragment_id} does not exist")

        try:
            record = json.loads(serialized)
            record["id"] = fragment_id
            record["ownerId"] = owner_id
            return Fragment.from_record(record)
        except (ValueError, ValidationError) as e:
            logger.error(f"Corrupt metadata for fragment id={fragment_id} owner_id={owner_id}: {e}")
            raise StorageError(f"unable to read metadata for fragment with id={fragment_id}") from e

    @staticmethod
    async def delete(storage: StorageBackend, owner_id: str, fragment_id: str) -> None:
        """
        Delete the owner's fragment metadata and data.

        Raises:
            NotFoundError: If the owner has no fragment with that id
        """
        if await storage.metadata.get(owner_id, fragment_id) is None:
            logger.warning(f"Cannot delete fragment id={fragment_id}: not found for owner_id={owner_id}")
            raise NotFoundError(f"Fragment with id={fragment_id} does not exist")

        await storage.metadata.delete(owner_id, fragment_id)
        await storage.data.delete(owner_id, fragment_id)
        logger.info(f"Deleted fragment id={fragment_id} for owner_id={owner_id}")

    async def save(self, storage: StorageBackend) -> None:
        """
        Refresh updated and upsert the metadata record.
        """
        self.updated = next_timestamp(self.updated)
        await storage.metadata.put(self.owner_id, self.id, json.dumps(self.to_record()))
        logger.debug(f"Saved metadata for fragment id={self.id} owner_id={self.owner_id}")

    async def get_data(self, storage: StorageBackend) -> Optional[bytes]:
        return await storage.data.get(self.owner_id, self.id)

    async def set_data(self, storage: StorageBackend, data: bytes) -> None:
        """
        Replace the fragment's payload.

        Metadata is saved before the payload is written. If the payload write
        fails the metadata (size, updated) is not rolled back.

        Raises:
            ValidationError: If data is None or not bytes-like
        """
        if data is None:
            raise ValidationError(f"data is required, got data={data}")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ValidationError(f"data must be bytes, got {type(data).__name__}")

        payload = bytes(data)
        self.size = len(payload)
        await self.save(storage)

        try:
            await storage.data.put(self.owner_id, self.id, payload)
        except StorageError:
            logger.error(
                f"Payload write failed for fragment id={self.id} owner_id={self.owner_id}; "
                f"metadata already saved with size={self.size}"
            )
            raise

    @property
    def mime_type(self) -> str:
        """
        Base MIME type without parameters: "text/html; charset=utf-8" -> "text/html".
        """
        media_type, _ = parse_content_type(self.type)
        return media_type

    @property
    def fragment_type(self) -> FragmentType:
        return FragmentType(self.mime_type)

    @property
    def is_text(self) -> bool:
        return self.fragment_type.namespace is MediaNamespace.TEXT

    @property
    def is_image(self) -> bool:
        return self.fragment_type.namespace is MediaNamespace.IMAGE

    @property
    def is_application(self) -> bool:
        return self.fragment_type.namespace is MediaNamespace.APPLICATION

    @property
    def subtype(self) -> str:
        return self.fragment_type.subtype

    @property
    def formats(self) -> List[str]:
        """
        MIME types this fragment can be served as, stored type first.
        """
        return formats_for(self.fragment_type)

    @staticmethod
    def is_supported_type(value: str) -> bool:
        """
        Check whether a Content-Type value (parameters allowed) can be stored.

        Never raises; unparseable values are unsupported.
        """
        return FragmentType.from_mime(value) is not None
