"""In-memory bookkeeping for one file upload: state, per-chunk progress, cancellation."""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Set

from common.types import ChunkRange


class UploadState(str, Enum):
    """Upload lifecycle states."""

    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[UploadState, FrozenSet[UploadState]] = {
    UploadState.IDLE: frozenset({UploadState.VALIDATING, UploadState.UPLOADING}),
    UploadState.VALIDATING: frozenset({UploadState.UPLOADING, UploadState.FAILED}),
    UploadState.UPLOADING: frozenset({UploadState.COMPLETE, UploadState.FAILED}),
    UploadState.COMPLETE: frozenset({UploadState.VALIDATING}),
    UploadState.FAILED: frozenset({UploadState.VALIDATING, UploadState.UPLOADING}),
}


class InvalidTransitionError(Exception):
    """Raised when an upload moves between states the lifecycle does not allow."""

    pass


def transition(current: UploadState, target: UploadState) -> UploadState:
    """
    Validate a state change.

    Returns:
        target, if the change is allowed

    Raises:
        InvalidTransitionError: Otherwise
    """
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move upload from {current.value} to {target.value}")
    return target


class CancellationToken:
    """
    Cooperative cancellation flag shared between the caller and a scheduler.

    Thread-safe, so a REPL signal handler can trigger it while the event
    loop runs.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class UploadTask:
    """
    Tracks one file's chunked upload.

    progress holds, per chunk index, the bytes acknowledged by the transport
    (not confirmed by the server). Each entry is written only by the worker
    that owns that index.
    """

    file_id: str
    file_size: int
    chunks: List[ChunkRange]
    known_indices: Set[int] = field(default_factory=set)
    state: UploadState = UploadState.IDLE
    progress: List[int] = field(default_factory=list)
    on_progress: Optional[Callable[[float], None]] = None
    _last_reported: float = field(default=-1.0, repr=False)

    def __post_init__(self):
        if not self.progress:
            self.progress = [0] * len(self.chunks)
        for index in self.known_indices:
            if 0 <= index < len(self.chunks):
                self.progress[index] = self.chunks[index].size

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    @property
    def pending_chunks(self) -> List[ChunkRange]:
        """Chunks the server does not report as already stored, in index order."""
        return [chunk for chunk in self.chunks if chunk.index not in self.known_indices]

    def move_to(self, target: UploadState) -> None:
        self.state = transition(self.state, target)

    def overall_progress(self) -> float:
        """Sum of per-chunk counters as a percentage of the file size, clamped to 100."""
        if self.file_size <= 0:
            return 100.0 if self.state == UploadState.COMPLETE else 0.0
        return min(sum(self.progress) / self.file_size * 100, 100.0)

    def record_progress(self, index: int, loaded: int) -> None:
        """
        Update one chunk's acknowledged byte count and publish the aggregate.

        A counter never moves backwards (a retried request re-reads its body
        from the start), so the published percentage is non-decreasing.
        """
        loaded = min(loaded, self.chunks[index].size)
        if loaded > self.progress[index]:
            self.progress[index] = loaded
        self.publish()

    def mark_chunk_done(self, index: int) -> None:
        self.progress[index] = self.chunks[index].size
        self.publish()

    def publish(self, value: Optional[float] = None) -> None:
        """Send the aggregate percentage to on_progress if it increased."""
        percent = self.overall_progress() if value is None else value
        if percent <= self._last_reported:
            return
        self._last_reported = percent
        if self.on_progress is not None:
            self.on_progress(percent)
