"""Pydantic schemas for API responses."""

from coordinator.schemas.upload import (
    ChunkStatusResponse,
    ChunkUploadResponse,
    FileItem,
    ListFilesResponse,
    SingleUploadResponse,
)
from coordinator.schemas.common import ErrorResponse

__all__ = [
    "ChunkStatusResponse",
    "ChunkUploadResponse",
    "FileItem",
    "ListFilesResponse",
    "SingleUploadResponse",
    "ErrorResponse",
]
