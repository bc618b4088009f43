"""Manages chunk records and merged artifacts on disk: write, list, merge, cleanup."""

import os
import re
import shutil
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Set
from urllib.parse import quote

from common.constants import (
    CHUNK_RECORD_SEPARATOR,
    STREAM_PIECE_SIZE_BYTES,
    TEMP_FILE_PREFIX,
)
from common.exceptions import PayloadTooLargeError, StorageError, ValidationError
from common.logging_config import get_logger

logger = get_logger(__name__)


def encode_file_id(file_id: str) -> str:
    """
    Encode a FileIdentifier into a single safe path component.

    Percent-encoding is injective, so two different ids never share a
    chunk prefix, and path separators cannot escape the chunk root.
    """
    return quote(file_id, safe="")


def sanitize_artifact_name(name: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to a base name inside the upload root.

    Raises:
        ValidationError: If nothing usable is left
    """
    if not name:
        raise ValidationError("Missing filename")
    base = Path(name.replace("\\", "/")).name.strip()
    if base in ("", ".", "..") or base.startswith(TEMP_FILE_PREFIX):
        raise ValidationError(f"Invalid filename: {name!r}")
    return base


def copy_stream(source: BinaryIO, target: BinaryIO, max_bytes: Optional[int] = None) -> int:
    """
    Copy a binary stream in pieces, enforcing an optional size limit.

    Returns:
        Number of bytes copied

    Raises:
        PayloadTooLargeError: If more than max_bytes are read
    """
    written = 0
    while True:
        piece = source.read(STREAM_PIECE_SIZE_BYTES)
        if not piece:
            break
        written += len(piece)
        if max_bytes is not None and written > max_bytes:
            raise PayloadTooLargeError(f"File too large (limit {max_bytes} bytes)")
        target.write(piece)
    return written


def write_atomically(destination: Path, source: BinaryIO, max_bytes: Optional[int] = None) -> int:
    """
    Write a stream to destination through a temp file in the same directory.

    The temp file is renamed over the destination only after a full write,
    so readers never observe a partial file under the final name.
    """
    temp_path = destination.parent / f"{TEMP_FILE_PREFIX}{uuid.uuid4().hex}"
    try:
        with open(temp_path, "wb") as f:
            written = copy_stream(source, f, max_bytes)
        os.replace(temp_path, destination)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return written


class _FileEntry:
    """Lock and merge generation for one fileId, kept while callers track it."""

    __slots__ = ("lock", "generation", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.generation = 0
        self.users = 0


class ChunkStore:
    """
    Filesystem-backed chunk namespace plus the upload root for merged artifacts.

    Chunk records are named ``<encoded fileId>.part_<index>`` under chunk_dir.
    Merges for one fileId are serialized by a per-fileId lock; every
    successful merge bumps that fileId's merge generation so a caller can
    tell whether its chunk was consumed by a concurrent merge.
    """

    def __init__(self, upload_dir: Path, chunk_dir: Path, max_part_size: Optional[int] = None):
        self.upload_dir = Path(upload_dir)
        self.chunk_dir = Path(chunk_dir)
        self.max_part_size = max_part_size

        self._entries: Dict[str, _FileEntry] = {}
        self._locks_guard = threading.Lock()

        self.ensure_directories()

    def ensure_directories(self) -> None:
        """Ensure chunk and upload directories exist."""
        self.chunk_dir.mkdir(parents=True, exist_ok=True)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def get_chunk_path(self, file_id: str, index: int) -> Path:
        """
        Get file path for a chunk record.

        Args:
            file_id: FileIdentifier of the upload
            index: Chunk index

        Returns:
            Path object for the chunk record
        """
        return self.chunk_dir / f"{encode_file_id(file_id)}{CHUNK_RECORD_SEPARATOR}{index}"

    def get_artifact_path(self, name: str) -> Path:
        return self.upload_dir / sanitize_artifact_name(name)

    @contextmanager
    def track(self, file_id: str) -> Iterator[int]:
        """
        Hold the per-fileId lock entry for the duration of a submit.

        Yields the merge generation seen on entry. The entry is dropped once
        no caller tracks file_id, so idle fileIds keep no state.
        """
        with self._locks_guard:
            entry = self._entries.get(file_id)
            if entry is None:
                entry = _FileEntry()
                self._entries[file_id] = entry
            entry.users += 1
            seen = entry.generation
        try:
            yield seen
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0 and self._entries.get(file_id) is entry:
                    del self._entries[file_id]

    def _entry(self, file_id: str) -> _FileEntry:
        with self._locks_guard:
            return self._entries[file_id]

    def merge_generation(self, file_id: str) -> int:
        """Number of merges for file_id completed while it was being tracked."""
        with self._locks_guard:
            entry = self._entries.get(file_id)
            return entry.generation if entry is not None else 0

    def save_chunk(self, file_id: str, index: int, stream: BinaryIO) -> int:
        """
        Write chunk data to disk, replacing any prior content at that index.

        Args:
            file_id: FileIdentifier of the upload
            index: Chunk index
            stream: Binary stream with the chunk bytes

        Returns:
            Number of bytes written

        Raises:
            PayloadTooLargeError: If the chunk exceeds max_part_size
            StorageError: If the write fails
        """
        self.ensure_directories()
        path = self.get_chunk_path(file_id, index)
        try:
            written = write_atomically(path, stream, self.max_part_size)
        except PayloadTooLargeError:
            raise
        except OSError as e:
            logger.error(f"Failed to write chunk {index} for {file_id}: {e}")
            raise StorageError("Error saving chunk") from e

        logger.debug(f"Stored chunk {index} for {file_id} ({written} bytes)")
        return written

    def list_chunk_indices(self, file_id: str) -> Set[int]:
        """
        Scan the chunk namespace for every index persisted for file_id.

        An unreadable or missing namespace is reported as an empty set.
        """
        pattern = re.compile(
            rf"^{re.escape(encode_file_id(file_id) + CHUNK_RECORD_SEPARATOR)}(\d+)$"
        )
        try:
            names = os.listdir(self.chunk_dir)
        except OSError as e:
            logger.warning(f"Cannot read chunk directory {self.chunk_dir}: {e}")
            return set()

        indices = set()
        for name in names:
            match = pattern.match(name)
            if match:
                indices.add(int(match.group(1)))
        return indices

    def is_complete(self, file_id: str, total_chunks: int) -> bool:
        """True iff the persisted indices are exactly {0, ..., total_chunks-1}."""
        if total_chunks < 1:
            return False
        return self.list_chunk_indices(file_id) == set(range(total_chunks))

    def merge(self, file_id: str, total_chunks: int, artifact_name: str) -> bool:
        """
        Merge all chunks for file_id into the artifact, then delete the chunks.

        Safe under concurrent invocation: callers are serialized per file_id,
        and a call that finds the chunks already merged away is a no-op.

        Returns:
            True if this call performed the merge, False if another call already had

        Raises:
            StorageError: If chunks are missing or any read/write fails; chunk
                records are left in place for a retry
        """
        with self.track(file_id):
            entry = self._entry(file_id)
            with entry.lock:
                return self._merge_locked(entry, file_id, total_chunks, artifact_name)

    def merge_if_complete(
        self,
        file_id: str,
        index: int,
        total_chunks: int,
        artifact_name: str,
        seen_generation: int,
    ) -> bool:
        """
        Run the check-completeness/merge/cleanup sequence as one critical section.

        Must be called inside track(file_id), which supplies seen_generation.

        Args:
            index: Chunk index the caller just stored
            seen_generation: Merge generation observed before the caller
                stored its chunk

        Returns:
            True if the upload is complete, either merged by this call or by a
            concurrent call that consumed the caller's chunk
        """
        entry = self._entry(file_id)
        with entry.lock:
            if entry.generation > seen_generation:
                # The merge already consumed this index; a write that landed
                # after its cleanup must not linger as a new upload.
                path = self.get_chunk_path(file_id, index)
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Failed to drop late chunk {index} for {file_id}: {e}")
                return True
            if not self.is_complete(file_id, total_chunks):
                return False
            self._merge_locked(entry, file_id, total_chunks, artifact_name)
            return True

    def _merge_locked(
        self, entry: _FileEntry, file_id: str, total_chunks: int, artifact_name: str
    ) -> bool:
        indices = self.list_chunk_indices(file_id)
        if not indices:
            logger.info(f"No chunks to merge for {file_id}, skipping")
            return False
        if indices != set(range(total_chunks)):
            missing = sorted(set(range(total_chunks)) - indices)
            raise StorageError(f"Cannot merge {file_id}: missing chunks {missing}")

        destination = self.get_artifact_path(artifact_name)
        chunk_paths = [self.get_chunk_path(file_id, i) for i in range(total_chunks)]
        try:
            self._write_artifact(destination, chunk_paths)
        except OSError as e:
            logger.error(f"Merge failed for {file_id} into {destination}: {e}", exc_info=True)
            raise StorageError("Error merging chunks") from e

        with self._locks_guard:
            entry.generation += 1

        self.cleanup_chunks(file_id, total_chunks)
        logger.info(f"Merged {total_chunks} chunks for {file_id} into {destination.name}")
        return True

    def _write_artifact(self, destination: Path, chunk_paths: List[Path]) -> None:
        temp_path = destination.parent / f"{TEMP_FILE_PREFIX}{uuid.uuid4().hex}"
        try:
            with open(temp_path, "wb") as output:
                for chunk_path in chunk_paths:
                    with open(chunk_path, "rb") as chunk:
                        shutil.copyfileobj(chunk, output, STREAM_PIECE_SIZE_BYTES)
            os.replace(temp_path, destination)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

    def cleanup_chunks(self, file_id: str, total_chunks: int) -> List[int]:
        """
        Delete chunk records 0..total_chunks-1 for file_id.

        Returns:
            Indices that could not be deleted
        """
        failed = []
        for index in range(total_chunks):
            try:
                self.get_chunk_path(file_id, index).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete chunk {index} for {file_id}: {e}")
                failed.append(index)
        return failed

    def save_artifact(self, name: str, stream: BinaryIO) -> int:
        """
        Write a direct (unchunked) upload straight into the upload root.

        Raises:
            ValidationError: If the filename is unusable
            PayloadTooLargeError: If the body exceeds max_part_size
            StorageError: If the write fails
        """
        self.ensure_directories()
        destination = self.get_artifact_path(name)
        try:
            written = write_atomically(destination, stream, self.max_part_size)
        except PayloadTooLargeError:
            raise
        except OSError as e:
            logger.error(f"Failed to save {destination}: {e}")
            raise StorageError("Error saving file") from e

        logger.info(f"Saved {destination.name} ({written} bytes)")
        return written

    def list_artifacts(self) -> List[Dict[str, int]]:
        """
        List merged artifacts in the upload root.

        Returns:
            List of {"name", "size"} dicts sorted by name; dot-files and temp
            files are skipped
        """
        if not self.upload_dir.exists():
            return []

        try:
            entries = sorted(self.upload_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(f"Cannot list uploaded files: {e}") from e

        files = []
        for path in entries:
            if path.name.startswith(".") or not path.is_file():
                continue
            files.append({"name": path.name, "size": path.stat().st_size})
        return files
