"""Local file handle used by the upload strategies, plus FileIdentifier derivation."""

import hashlib
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

CONTENT_ID_PREFIX_BYTES = 8 * 1024 * 1024


@dataclass(frozen=True)
class SourceFile:
    """
    A file selected for upload: its path and the metadata captured at selection.
    """
    path: Path
    name: str
    size: int
    last_modified: int
    content_type: str

    @classmethod
    def from_path(cls, path, content_type: Optional[str] = None) -> 'SourceFile':
        """
        Capture name, size, modification time (ms) and MIME type of a file.

        Raises:
            FileNotFoundError: If path does not exist
            IsADirectoryError: If path is a directory
        """
        path = Path(path)
        if path.is_dir():
            raise IsADirectoryError(f"Not a file: {path}")
        stat = path.stat()
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(
            path=path,
            name=path.name,
            size=stat.st_size,
            last_modified=stat.st_mtime_ns // 1_000_000,
            content_type=content_type,
        )

    def read_range(self, start: int, end: int) -> bytes:
        """Read bytes [start, end) of the file."""
        with open(self.path, "rb") as f:
            f.seek(start)
            return f.read(max(0, end - start))

    def read_all(self) -> bytes:
        return self.read_range(0, self.size)


def metadata_file_id(source: SourceFile) -> str:
    """FileIdentifier from name, size and last-modified timestamp."""
    return f"{source.name}-{source.size}-{source.last_modified}"


def content_file_id(source: SourceFile, prefix_bytes: int = CONTENT_ID_PREFIX_BYTES) -> str:
    """
    FileIdentifier from a SHA-256 of a size-bounded prefix of the content.

    Two files collide only if they share size and prefix bytes.
    """
    digest = hashlib.sha256()
    remaining = min(prefix_bytes, source.size)
    with open(source.path, "rb") as f:
        while remaining > 0:
            piece = f.read(min(64 * 1024, remaining))
            if not piece:
                break
            digest.update(piece)
            remaining -= len(piece)
    return f"{digest.hexdigest()[:32]}-{source.size}"


def generate_file_id(source: SourceFile, mode: str = "metadata", chunk_size: Optional[int] = None) -> str:
    """
    Derive the FileIdentifier for a source file.

    Chunk records only line up with the byte ranges that produced them, so
    a chunked upload passes its chunk_size: resuming with a different chunk
    size then starts under a fresh identifier instead of reusing records
    with other boundaries.

    Args:
        source: File being uploaded
        mode: "metadata" (name/size/mtime) or "content" (prefix hash)
        chunk_size: Chunk size in bytes the records are cut with, if chunked

    Raises:
        ValueError: If mode is unknown
    """
    if mode == "metadata":
        file_id = metadata_file_id(source)
    elif mode == "content":
        file_id = content_file_id(source)
    else:
        raise ValueError(f"Unknown file_id_mode: {mode!r}")
    if chunk_size is not None:
        file_id = f"{file_id}-{chunk_size}"
    return file_id

