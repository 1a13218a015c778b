"""Utility helper functions for the fragments service."""

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple


_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE_RE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")
_PARAMETER_RE = re.compile(rf'\s*;\s*({_TOKEN})\s*=\s*({_TOKEN}|"(?:[^"\\]|\\.)*")\s*')
_QUOTED_PAIR_RE = re.compile(r'\\(.)')


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp, treating naive values as UTC.

    Raises:
        ValueError: If value is not an ISO-8601 timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def next_timestamp(previous: Optional[str] = None) -> str:
    """
    Get current UTC timestamp, guaranteed to be later than previous.

    Args:
        previous: Last timestamp issued for the same record, if any

    Returns:
        ISO format timestamp strictly after previous
    """
    now = datetime.now(timezone.utc)
    if previous:
        last = parse_timestamp(previous)
        if now <= last:
            now = last + timedelta(microseconds=1)
    return now.isoformat()


def parse_content_type(value: str) -> Tuple[str, Dict[str, str]]:
    """
    Parse a Content-Type value into its media type and parameters.

    Args:
        value: Header value (e.g., "text/plain; charset=utf-8")

    Returns:
        Tuple of lowercased "type/subtype" and a dict of parameters

    Raises:
        ValueError: If value is not a valid Content-Type
    """
    if not isinstance(value, str):
        raise ValueError(f"Content-Type must be a string, got {value!r}")

    separator = value.find(";")
    media_type = (value if separator == -1 else value[:separator]).strip().lower()
    if not _MEDIA_TYPE_RE.match(media_type):
        raise ValueError(f"invalid media type: {value!r}")

    parameters: Dict[str, str] = {}
    if separator == -1:
        return media_type, parameters

    rest = value[separator:]
    index = 0
    while index < len(rest):
        match = _PARAMETER_RE.match(rest, index)
        if match is None:
            raise ValueError(f"invalid parameter format: {value!r}")
        name, param_value = match.group(1).lower(), match.group(2)
        if param_value.startswith('"'):
            param_value = _QUOTED_PAIR_RE.sub(r'\1', param_value[1:-1])
        parameters[name] = param_value
        index = match.end()

    return media_type, parameters


def split_fragment_path(raw_id: str) -> Tuple[str, Optional[str]]:
    """
    Split a path segment into fragment id and optional extension.

    Args:
        raw_id: Path segment (e.g., "4c1f...e2.html")

    Returns:
        Tuple of (fragment_id, extension or None)
    """
    fragment_id, dot, extension = raw_id.rpartition(".")
    if not dot:
        return raw_id, None
    return fragment_id, extension.lower()
