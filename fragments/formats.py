"""Conversion rules table: which formats each stored fragment type can produce."""

from typing import Dict, List, Optional, Tuple, Union

from common.logging_config import get_logger
from fragments.types import FragmentType

logger = get_logger(__name__)


_IMAGE_FORMATS: Tuple[FragmentType, ...] = (
    FragmentType.IMAGE_PNG,
    FragmentType.IMAGE_JPEG,
    FragmentType.IMAGE_WEBP,
    FragmentType.IMAGE_GIF,
    FragmentType.IMAGE_AVIF,
)

# Ordered by priority; the stored type itself always comes first.
CONVERSION_RULES: Dict[FragmentType, Tuple[FragmentType, ...]] = {
    FragmentType.TEXT_PLAIN: (FragmentType.TEXT_PLAIN,),
    FragmentType.TEXT_MARKDOWN: (
        FragmentType.TEXT_MARKDOWN,
        FragmentType.TEXT_HTML,
        FragmentType.TEXT_PLAIN,
    ),
    FragmentType.TEXT_HTML: (FragmentType.TEXT_HTML, FragmentType.TEXT_PLAIN),
    FragmentType.TEXT_CSV: (
        FragmentType.TEXT_CSV,
        FragmentType.TEXT_PLAIN,
        FragmentType.APPLICATION_JSON,
    ),
    FragmentType.APPLICATION_JSON: (
        FragmentType.APPLICATION_JSON,
        FragmentType.APPLICATION_YAML,
        FragmentType.TEXT_PLAIN,
    ),
    FragmentType.APPLICATION_YAML: (FragmentType.APPLICATION_YAML, FragmentType.TEXT_PLAIN),
    FragmentType.IMAGE_PNG: _IMAGE_FORMATS,
    FragmentType.IMAGE_JPEG: _IMAGE_FORMATS,
    FragmentType.IMAGE_WEBP: _IMAGE_FORMATS,
    FragmentType.IMAGE_AVIF: _IMAGE_FORMATS,
    FragmentType.IMAGE_GIF: _IMAGE_FORMATS,
}

EXTENSIONS: Dict[str, FragmentType] = {
    "txt": FragmentType.TEXT_PLAIN,
    "md": FragmentType.TEXT_MARKDOWN,
    "html": FragmentType.TEXT_HTML,
    "csv": FragmentType.TEXT_CSV,
    "json": FragmentType.APPLICATION_JSON,
    "yaml": FragmentType.APPLICATION_YAML,
    "yml": FragmentType.APPLICATION_YAML,
    "png": FragmentType.IMAGE_PNG,
    "jpg": FragmentType.IMAGE_JPEG,
    "jpeg": FragmentType.IMAGE_JPEG,
    "webp": FragmentType.IMAGE_WEBP,
    "avif": FragmentType.IMAGE_AVIF,
    "gif": FragmentType.IMAGE_GIF,
}


def formats_for(stored_type: Union[FragmentType, str]) -> List[str]:
    """
    Get the formats a stored type can be converted to.

    Args:
        stored_type: FragmentType member or Content-Type string (parameters ignored)

    Returns:
        Ordered list of MIME type strings, empty for an unknown type
    """
    fragment_type = stored_type if isinstance(stored_type, FragmentType) else FragmentType.from_mime(stored_type)
    rules = CONVERSION_RULES.get(fragment_type) if fragment_type is not None else None

    if rules is None:
        logger.error(f"No conversion rules for unknown fragment type: {stored_type!r}")
        return []

    return [target.value for target in rules]


def type_for_extension(extension: str) -> Optional[FragmentType]:
    """
    Resolve a file extension (without the dot) to a FragmentType.

    Returns:
        Matching FragmentType, or None for an unknown extension
    """
    return EXTENSIONS.get(extension.lower())
