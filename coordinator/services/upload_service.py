"""Upload service: accepts chunks and direct uploads, merges completed uploads."""

import asyncio
import functools
from typing import BinaryIO, Dict, List, Optional

from common.constants import STATUS_COMPLETE, STATUS_IN_PROGRESS
from common.exceptions import ValidationError
from common.logging_config import get_logger
from common.types import ArtifactDescriptor, ChunkStatus
from coordinator import config
from coordinator.chunk_store import ChunkStore, sanitize_artifact_name

logger = get_logger(__name__)


def parse_int_field(value: Optional[str], field_name: str) -> int:
    """
    Parse a required integer form field.

    Raises:
        ValidationError: If the field is missing or not an integer
    """
    if value is None or str(value).strip() == "":
        raise ValidationError(f"Missing required parameter: {field_name}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Parameter {field_name} must be an integer, got {value!r}")


class UploadService:
    """
    Stateless request handling on top of a ChunkStore.

    Blocking filesystem work runs in the default executor so concurrent
    submissions for different indices of one upload proceed in parallel.
    """

    def __init__(self, store: ChunkStore):
        self.store = store

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def submit_chunk(
        self,
        file_id: Optional[str],
        index: Optional[str],
        total_chunks: Optional[str],
        stream: Optional[BinaryIO],
        file_name: Optional[str],
    ) -> ChunkStatus:
        """
        Store one chunk and merge the upload if it is now complete.

        Args:
            file_id: FileIdentifier correlating the chunks of one upload
            index: Chunk index (integer string)
            total_chunks: Total number of chunks (integer string)
            stream: Binary stream with the chunk bytes
            file_name: Original filename, used as the merged artifact name

        Returns:
            ChunkStatus with status "complete" (and the artifact name) or
            "in-progress" (and the indices received so far)

        Raises:
            ValidationError: If required identifiers are missing or out of range
            StorageError: If storing or merging fails
        """
        if stream is None:
            raise ValidationError("Missing required parameters: file")
        if not file_id or not file_id.strip():
            raise ValidationError("Missing required parameters: fileId")
        chunk_index = parse_int_field(index, "currentChunkIndex")
        total = parse_int_field(total_chunks, "totalChunks")
        if total < 1:
            raise ValidationError("totalChunks must be at least 1")
        if not 0 <= chunk_index < total:
            raise ValidationError(f"currentChunkIndex {chunk_index} out of range [0, {total})")
        artifact_name = sanitize_artifact_name(file_name)

        with self.store.track(file_id) as seen_generation:
            await self._run_blocking(self.store.save_chunk, file_id, chunk_index, stream)
            complete = await self._run_blocking(
                self.store.merge_if_complete,
                file_id,
                chunk_index,
                total,
                artifact_name,
                seen_generation,
            )
        if complete:
            logger.info(f"Upload {file_id} complete as {artifact_name}")
            return ChunkStatus(status=STATUS_COMPLETE, chunks_received=[], name=artifact_name)

        received = await self.query_status(file_id)
        logger.debug(f"Upload {file_id}: {len(received)}/{total} chunks received")
        return ChunkStatus(status=STATUS_IN_PROGRESS, chunks_received=received)

    async def query_status(self, file_id: Optional[str]) -> List[int]:
        """
        Return the sorted chunk indices already stored for file_id.

        Raises:
            ValidationError: If file_id is missing
        """
        if not file_id or not file_id.strip():
            raise ValidationError("Missing fileId in query params")
        indices = await self._run_blocking(self.store.list_chunk_indices, file_id)
        return sorted(indices)

    async def submit_direct(self, stream: Optional[BinaryIO], file_name: Optional[str]) -> ArtifactDescriptor:
        """
        Write a small file straight into the upload root.

        Raises:
            ValidationError: If the file or its name is missing
            StorageError: If the write fails
        """
        if stream is None:
            raise ValidationError("Missing required `file` key in body.")
        name = sanitize_artifact_name(file_name)
        size = await self._run_blocking(self.store.save_artifact, name, stream)
        return ArtifactDescriptor(name=name, size=size)

    async def list_files(self) -> List[Dict[str, int]]:
        """List merged artifacts as {"name", "size"} dicts."""
        return await self._run_blocking(self.store.list_artifacts)


_service: Optional[UploadService] = None


def get_upload_service() -> UploadService:
    """
    Get or create the process-wide UploadService built from config.

    Returns:
        UploadService instance
    """
    global _service
    if _service is None:
        store = ChunkStore(
            upload_dir=config.UPLOAD_DIR,
            chunk_dir=config.CHUNK_DIR,
            max_part_size=config.MAX_PART_SIZE_BYTES,
        )
        _service = UploadService(store)
    return _service
