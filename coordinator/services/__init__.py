"""Service layer for upload handling."""

from coordinator.services.upload_service import UploadService, get_upload_service

__all__ = [
    "UploadService",
    "get_upload_service",
]
