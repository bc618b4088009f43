"""Utility functions for CLI operations."""

import io
from typing import Callable, Optional


class ProgressReader(io.BytesIO):
    """
    In-memory body that reports how many bytes the transport has consumed.

    httpx reads multipart file parts through read(); each read reports the
    current offset, so callers see transport-level progress for one request.
    """

    def __init__(self, data: bytes, on_read: Optional[Callable[[int], None]] = None):
        """
        Initialize the progress reader.

        Args:
            data: Body bytes
            on_read: Called with the number of bytes consumed so far
        """
        super().__init__(data)
        self.on_read = on_read

    def read(self, size: Optional[int] = -1) -> bytes:
        chunk = super().read(size)
        if chunk and self.on_read is not None:
            self.on_read(self.tell())
        return chunk


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
