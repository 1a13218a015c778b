"""Fragment service for request-level business logic."""

from typing import List, Optional, Union

from common.logging_config import get_logger
from fragments import config
from fragments.conversion import convert
from fragments.exceptions import (
    NotFoundError,
    PayloadTooLargeError,
    TypeMismatchError,
    UnsupportedConversionError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from fragments.formats import type_for_extension
from fragments.fragment import Fragment
from fragments.storage.base import StorageBackend
from fragments.types import ConversionResult, FragmentType
from fragments.utils import split_fragment_path

logger = get_logger(__name__)


class FragmentService:
    def __init__(self, storage: StorageBackend, max_body_bytes: Optional[int] = None):
        self.storage = storage
        self.max_body_bytes = max_body_bytes if max_body_bytes is not None else config.MAX_BODY_BYTES

    def _validate_body(self, content_type: Optional[str], body: bytes) -> None:
        if not content_type or not Fragment.is_supported_type(content_type):
            raise UnsupportedMediaTypeError(f"Unsupported Content-Type: {content_type}")
        if not body:
            raise ValidationError("Request body must not be empty")
        if len(body) > self.max_body_bytes:
            raise PayloadTooLargeError(
                f"Request body of {len(body)} bytes exceeds the {self.max_body_bytes} byte limit"
            )

    async def create_fragment(self, owner_id: str, content_type: Optional[str], body: bytes) -> Fragment:
        self._validate_body(content_type, body)

        fragment = Fragment(owner_id=owner_id, type=content_type)
        await fragment.set_data(self.storage, body)

        logger.info(f"Created fragment id={fragment.id} type={fragment.type} size={fragment.size} for owner_id={owner_id}")
        return fragment

    async def update_fragment(
        self,
        owner_id: str,
        fragment_id: str,
        content_type: Optional[str],
        body: bytes,
    ) -> Fragment:
        self._validate_body(content_type, body)

        fragment = await Fragment.by_id(self.storage, owner_id, fragment_id)
        if FragmentType.from_mime(content_type) is not fragment.fragment_type:
            raise TypeMismatchError(
                f"Fragment type mismatch: expected {fragment.type}, received {content_type}"
            )

        await fragment.set_data(self.storage, body)

        logger.info(f"Replaced data of fragment id={fragment_id} size={fragment.size} for owner_id={owner_id}")
        return fragment

    async def list_fragments(self, owner_id: str, expand: bool = False) -> Union[List[str], List[Fragment]]:
        fragments = await Fragment.by_user(self.storage, owner_id, expand)
        logger.debug(f"Listed {len(fragments)} fragments for owner_id={owner_id} expand={expand}")
        return fragments

    async def get_fragment_info(self, owner_id: str, fragment_id: str) -> Fragment:
        return await Fragment.by_id(self.storage, owner_id, fragment_id)

    async def get_fragment_content(self, owner_id: str, raw_id: str) -> ConversionResult:
        """
        Read a fragment, converting it when the id carries an extension.

        Args:
            owner_id: Owner of the fragment
            raw_id: Fragment id, optionally suffixed with ".<ext>"

        Raises:
            NotFoundError: If the fragment or its data does not exist
            UnsupportedConversionError: If the extension is unknown or not producible
        """
        fragment_id, extension = split_fragment_path(raw_id)
        fragment = await Fragment.by_id(self.storage, owner_id, fragment_id)

        requested_type = None
        if extension is not None:
            target = type_for_extension(extension)
            if target is None:
                raise UnsupportedConversionError(f"Unknown fragment extension: .{extension}")
            requested_type = target.value

        data = await fragment.get_data(self.storage)
        if data is None:
            logger.error(f"Fragment id={fragment_id} has metadata but no data for owner_id={owner_id}")
            raise NotFoundError(f"Fragment with id={fragment_id} has no data")

        return await convert(data, fragment.type, requested_type)

    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        await Fragment.delete(self.storage, owner_id, fragment_id)
