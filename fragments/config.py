"""Configuration settings for the fragments service."""

import os
from common.constants import MAX_FRAGMENT_BYTES


HOST = os.environ.get("FRAGMENTS_HOST", "0.0.0.0")

PORT = int(os.environ.get("FRAGMENTS_PORT", "8080"))

STORAGE_BACKEND = os.environ.get("FRAGMENTS_STORAGE_BACKEND", "memory")

DATABASE_PATH = os.environ.get("FRAGMENTS_DATABASE_PATH", "/app/data/fragments.db")

# Base URL for Location headers; the request's own base URL is used when empty
API_URL = os.environ.get("FRAGMENTS_API_URL", "")

HTPASSWD_FILE = os.environ.get("HTPASSWD_FILE", "")

MAX_BODY_BYTES = int(os.environ.get("FRAGMENTS_MAX_BODY_BYTES", str(MAX_FRAGMENT_BYTES)))
