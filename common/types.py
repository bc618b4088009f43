"""Shared data type definitions (ArtifactDescriptor, ChunkRange, ChunkStatus)."""

import math
from dataclasses import dataclass
from typing import List, Optional

from common.constants import STATUS_COMPLETE


@dataclass(frozen=True)
class ChunkRange:
    """
    A contiguous byte range [start, end) of a source file.
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ArtifactDescriptor:
    """
    Name and size of a merged (or directly uploaded) file on the server.
    """
    name: str
    size: int


@dataclass(frozen=True)
class ChunkStatus:
    """
    Result of submitting one chunk to the coordinator.
    """
    status: str
    chunks_received: List[int]
    name: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == STATUS_COMPLETE


def count_chunks(file_size: int, chunk_size: int) -> int:
    """
    Number of chunks needed to cover file_size bytes.

    Args:
        file_size: Total size in bytes
        chunk_size: Size of each chunk in bytes (must be positive)

    Returns:
        ceil(file_size / chunk_size); an empty file still needs one (empty) chunk
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return max(1, math.ceil(file_size / chunk_size))


def split_ranges(file_size: int, chunk_size: int) -> List[ChunkRange]:
    """
    Split a file of file_size bytes into chunk ranges ordered by index.
    """
    total = count_chunks(file_size, chunk_size)
    return [
        ChunkRange(
            index=index,
            start=index * chunk_size,
            end=min(file_size, (index + 1) * chunk_size),
        )
        for index in range(total)
    ]
