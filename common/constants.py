"""Project-wide constants (chunk sizes, thresholds, on-disk naming)."""

MIB: int = 1024 * 1024

DEFAULT_CHUNK_SIZE_BYTES: int = 5 * MIB
DEFAULT_PARALLEL_CHUNK_COUNT: int = 3
DEFAULT_SINGLE_UPLOAD_THRESHOLD: int = 5 * MIB
DEFAULT_MAX_PART_SIZE_BYTES: int = 5 * MIB

CHUNK_RECORD_SEPARATOR: str = ".part_"
TEMP_FILE_PREFIX: str = ".tmp-"

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

STATUS_IN_PROGRESS: str = "in-progress"
STATUS_COMPLETE: str = "complete"
