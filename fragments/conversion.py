"""Conversion engine: produce a requested representation of fragment data."""

import asyncio
import csv
import io
import json
from typing import Callable, Dict, Optional, Tuple

import markdown
import yaml
from PIL import Image, UnidentifiedImageError

from common.constants import DEFAULT_CHARSET, MAX_IMAGE_PIXELS
from common.logging_config import get_logger
from fragments.exceptions import ConversionFailedError, UnsupportedConversionError
from fragments.formats import CONVERSION_RULES, formats_for
from fragments.types import ConversionResult, FragmentType, MediaNamespace
from fragments.utils import parse_content_type

logger = get_logger(__name__)

Converter = Callable[[bytes, FragmentType, FragmentType], bytes]

# Pillow format names
PILLOW_FORMATS: Dict[FragmentType, str] = {
    FragmentType.IMAGE_PNG: "PNG",
    FragmentType.IMAGE_JPEG: "JPEG",
    FragmentType.IMAGE_WEBP: "WEBP",
    FragmentType.IMAGE_GIF: "GIF",
    FragmentType.IMAGE_AVIF: "AVIF",
}


def _decode_text(data: bytes, source: FragmentType) -> str:
    try:
        return data.decode(DEFAULT_CHARSET)
    except UnicodeDecodeError as e:
        raise ConversionFailedError(f"{source.value} data is not valid {DEFAULT_CHARSET} text") from e


def _relabel(data: bytes, source: FragmentType, target: FragmentType) -> bytes:
    return data


def _markdown_to_html(data: bytes, source: FragmentType, target: FragmentType) -> bytes:
    return markdown.markdown(_decode_text(data, source)).encode(DEFAULT_CHARSET)


def _csv_to_json(data: bytes, source: FragmentType, target: FragmentType) -> bytes:
    text = _decode_text(data, source)
    try:
        rows = list(csv.DictReader(io.StringIO(text)))
    except csv.Error as e:
        raise ConversionFailedError(f"unable to parse CSV data: {e}") from e
    return json.dumps(rows).encode(DEFAULT_CHARSET)


def _json_to_yaml(data: bytes, source: FragmentType, target: FragmentType) -> bytes:
    try:
        document = json.loads(_decode_text(data, source))
    except json.JSONDecodeError as e:
        raise ConversionFailedError(f"unable to parse JSON data: {e.msg}") from e
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True).encode(DEFAULT_CHARSET)


def _reencode_image(data: bytes, source: FragmentType, target: FragmentType) -> bytes:
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            if width * height > MAX_IMAGE_PIXELS:
                raise ConversionFailedError(
                    f"{source.value} image of {width}x{height} pixels exceeds the {MAX_IMAGE_PIXELS} pixel limit"
                )
            image.load()
            if target is FragmentType.IMAGE_JPEG and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            output = io.BytesIO()
            image.save(output, format=PILLOW_FORMATS[target])
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, KeyError) as e:
        raise ConversionFailedError(f"unable to convert {source.value} image to {target.value}: {e}") from e
    return output.getvalue()


def _build_converters() -> Dict[Tuple[FragmentType, FragmentType], Converter]:
    converters: Dict[Tuple[FragmentType, FragmentType], Converter] = {
        (FragmentType.TEXT_MARKDOWN, FragmentType.TEXT_HTML): _markdown_to_html,
        (FragmentType.TEXT_MARKDOWN, FragmentType.TEXT_PLAIN): _relabel,
        (FragmentType.TEXT_HTML, FragmentType.TEXT_PLAIN): _relabel,
        (FragmentType.TEXT_CSV, FragmentType.TEXT_PLAIN): _relabel,
        (FragmentType.TEXT_CSV, FragmentType.APPLICATION_JSON): _csv_to_json,
        (FragmentType.APPLICATION_JSON, FragmentType.APPLICATION_YAML): _json_to_yaml,
        (FragmentType.APPLICATION_JSON, FragmentType.TEXT_PLAIN): _relabel,
        (FragmentType.APPLICATION_YAML, FragmentType.TEXT_PLAIN): _relabel,
    }
    for source, targets in CONVERSION_RULES.items():
        if source.namespace is MediaNamespace.IMAGE:
            for target in targets:
                if target is not source:
                    converters[(source, target)] = _reencode_image
    return converters


CONVERTERS: Dict[Tuple[FragmentType, FragmentType], Converter] = _build_converters()

# Converters that decode/encode images run off the event loop
_THREADED_CONVERTERS = frozenset({_reencode_image})


async def convert(data: bytes, from_type: str, to_type: Optional[str] = None) -> ConversionResult:
    """
    Convert fragment data from its stored type to a requested type.

    Args:
        data: Stored payload bytes
        from_type: Stored Content-Type of the fragment (parameters allowed)
        to_type: Requested MIME type, or None for the stored representation

    Returns:
        ConversionResult with the bytes and the Content-Type to serve them as

    Raises:
        UnsupportedConversionError: If to_type is not producible from from_type
        ConversionFailedError: If the payload cannot be parsed for conversion
    """
    source = FragmentType.from_mime(from_type)
    if source is None:
        raise UnsupportedConversionError(f"Unsupported stored type: {from_type}")

    if to_type is None:
        return ConversionResult(data=data, content_type=from_type)

    try:
        requested, _ = parse_content_type(to_type)
    except ValueError as e:
        raise UnsupportedConversionError(f"Invalid requested type: {to_type}") from e

    if requested == source.value:
        return ConversionResult(data=data, content_type=from_type)

    if requested not in formats_for(source):
        logger.warning(f"Rejected conversion from {source.value} to {requested}")
        raise UnsupportedConversionError(f"Cannot convert {source.value} to {requested}")

    target = FragmentType(requested)
    converter = CONVERTERS.get((source, target))
    if converter is None:
        logger.error(f"No converter implemented for {source.value} -> {target.value}")
        raise UnsupportedConversionError(f"Conversion from {source.value} to {target.value} is not implemented")

    logger.info(f"Converting {len(data)} bytes from {source.value} to {target.value}")
    if converter in _THREADED_CONVERTERS:
        converted = await asyncio.to_thread(converter, data, source, target)
    else:
        converted = converter(data, source, target)

    return ConversionResult(data=converted, content_type=target.value)
