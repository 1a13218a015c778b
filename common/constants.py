"""Project-wide constants (size limits, API prefix, service identity)."""

SERVICE_NAME: str = "fragments"
SERVICE_VERSION: str = "0.1.0"

API_PREFIX: str = "/v1"

MAX_FRAGMENT_BYTES: int = 5 * 1024 * 1024  # 5 MiB request body limit

DEFAULT_CHARSET: str = "utf-8"

MAX_IMAGE_PIXELS: int = 40_000_000  # largest image decoded for conversion
