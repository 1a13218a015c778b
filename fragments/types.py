"""Fragment type definitions (FragmentType, MediaNamespace, ConversionResult)."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fragments.utils import parse_content_type


class MediaNamespace(str, Enum):
    """Top-level MIME namespace of a supported fragment type."""
    TEXT = "text"
    APPLICATION = "application"
    IMAGE = "image"


class FragmentType(str, Enum):
    """
    The finite set of MIME types a fragment can be stored as.
    """
    TEXT_PLAIN = "text/plain"
    TEXT_MARKDOWN = "text/markdown"
    TEXT_HTML = "text/html"
    TEXT_CSV = "text/csv"
    APPLICATION_JSON = "application/json"
    APPLICATION_YAML = "application/yaml"
    IMAGE_PNG = "image/png"
    IMAGE_JPEG = "image/jpeg"
    IMAGE_WEBP = "image/webp"
    IMAGE_AVIF = "image/avif"
    IMAGE_GIF = "image/gif"

    @property
    def namespace(self) -> MediaNamespace:
        return MediaNamespace(self.value.split("/", 1)[0])

    @property
    def subtype(self) -> str:
        return self.value.split("/", 1)[1]

    @classmethod
    def from_mime(cls, value: str) -> Optional["FragmentType"]:
        """
        Resolve a Content-Type value (parameters allowed) to a FragmentType.

        Returns:
            Matching member, or None if value is unparseable or unsupported
        """
        try:
            media_type, _ = parse_content_type(value)
        except ValueError:
            return None
        try:
            return cls(media_type)
        except ValueError:
            return None


@dataclass(frozen=True)
class ConversionResult:
    """
    Bytes produced for a fragment request and the Content-Type to send them with.
    """
    data: bytes
    content_type: str
