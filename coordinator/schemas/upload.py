"""Pydantic schemas for upload endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field


class SingleUploadResponse(BaseModel):
    """Response model for a direct (unchunked) upload."""
    message: str
    name: str


class ChunkUploadResponse(BaseModel):
    """Response model for a chunk upload."""
    model_config = {"populate_by_name": True}

    message: str
    status: str
    chunks_received: Optional[List[int]] = Field(default=None, alias="chunksReceived")
    name: Optional[str] = None


class ChunkStatusResponse(BaseModel):
    """Response model for the resumable-status query."""
    model_config = {"populate_by_name": True}

    uploaded_chunks: List[int] = Field(alias="uploadedChunks")


class FileItem(BaseModel):
    """A merged artifact in the upload root."""
    name: str
    size: int


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileItem]
