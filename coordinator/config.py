"""Configuration settings for the upload coordinator server."""

import os
from pathlib import Path

from common.constants import DEFAULT_MAX_PART_SIZE_BYTES


UPLOAD_DIR = Path(os.environ.get("UPLOAD_DIR", "uploads"))

CHUNK_DIR = Path(os.environ.get("CHUNK_DIR", "uploads-chunks"))

COORDINATOR_HOST = os.environ.get("COORDINATOR_HOST", "0.0.0.0")

COORDINATOR_PORT = int(os.environ.get("COORDINATOR_PORT", "3000"))

MAX_PART_SIZE_BYTES = int(os.environ.get("MAX_PART_SIZE_BYTES", str(DEFAULT_MAX_PART_SIZE_BYTES)))
