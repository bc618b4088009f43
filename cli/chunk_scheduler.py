"""Parallel chunked upload strategy with resume support and a bounded worker pool."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from cli.source_file import SourceFile, generate_file_id
from cli.upload_client import UploadClient
from cli.upload_task import CancellationToken, UploadState, UploadTask
from common.constants import DEFAULT_CHUNK_SIZE_BYTES, DEFAULT_PARALLEL_CHUNK_COUNT
from common.exceptions import TransportError, UploadCancelledError, UploadError
from common.logging_config import get_logger
from common.types import ArtifactDescriptor, ChunkRange, ChunkStatus, split_ranges

logger = get_logger(__name__)

T = TypeVar("T")


async def run_bounded(
    jobs: Iterable[Callable[[], Awaitable[T]]],
    limit: int,
    cancel_token: Optional[CancellationToken] = None,
) -> List[T]:
    """
    Run async jobs with at most `limit` in flight at any instant.

    A fixed pool of `limit` workers draws from one shared queue; a worker
    starts its next job as soon as the previous one settles. After the first
    failure (or cancellation) no new job is started; jobs already running
    are allowed to finish, then the first error is raised.

    Args:
        jobs: Zero-argument coroutine factories
        limit: Maximum number of simultaneously running jobs (>= 1)
        cancel_token: Optional token; once cancelled, no new job starts

    Returns:
        Results in job order

    Raises:
        The first exception raised by a job, or UploadCancelledError
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    queue: asyncio.Queue = asyncio.Queue()
    job_list = list(jobs)
    for position, job in enumerate(job_list):
        queue.put_nowait((position, job))

    results: List[Optional[T]] = [None] * len(job_list)
    errors: List[BaseException] = []

    async def worker() -> None:
        while not errors:
            if cancel_token is not None and cancel_token.cancelled:
                return
            try:
                position, job = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[position] = await job()
            except Exception as e:
                errors.append(e)
                return

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, len(job_list)))]
    await asyncio.gather(*workers)

    if errors:
        raise errors[0]
    if cancel_token is not None and cancel_token.cancelled and not queue.empty():
        raise UploadCancelledError("Upload cancelled")
    return results


class ChunkScheduler:
    """
    Uploads large files as independently retriable chunks.

    Flow: query the server for chunks it already holds, skip them, upload
    the rest under a bounded concurrency limit while aggregating per-chunk
    progress, then decide success from the coordinator's responses.
    """

    def __init__(
        self,
        client: UploadClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        parallel_limit: int = DEFAULT_PARALLEL_CHUNK_COUNT,
        file_id_mode: str = "metadata",
        merge_confirm_attempts: int = 5,
        merge_confirm_interval: float = 1.0,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if parallel_limit < 1:
            raise ValueError("parallel_limit must be at least 1")
        self.client = client
        self.chunk_size = chunk_size
        self.parallel_limit = parallel_limit
        self.file_id_mode = file_id_mode
        self.merge_confirm_attempts = merge_confirm_attempts
        self.merge_confirm_interval = merge_confirm_interval

    async def _fetch_known_chunks(self, file_id: str, total_chunks: int) -> set:
        """
        Ask the server which chunks it has; any failure means "none known".
        """
        try:
            uploaded = await self.client.query_status(file_id)
        except UploadError as e:
            logger.warning(f"Could not fetch uploaded chunk status for {file_id}, proceeding with full upload: {e}")
            return set()
        return {index for index in uploaded if 0 <= index < total_chunks}

    async def upload(
        self,
        source: SourceFile,
        on_progress: Optional[Callable[[float], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArtifactDescriptor:
        """
        Upload a file in chunks, resuming from whatever the server already holds.

        Args:
            source: File to upload
            on_progress: Called with the overall percentage (non-decreasing, 100 on success)
            cancel_token: Optional token to stop scheduling further chunks

        Returns:
            ArtifactDescriptor of the merged file

        Raises:
            TransportError: If any chunk fails definitively (one aggregate error)
            UploadCancelledError: If cancelled before all chunks were sent
        """
        chunks = split_ranges(source.size, self.chunk_size)
        file_id = generate_file_id(source, self.file_id_mode, self.chunk_size)
        known = await self._fetch_known_chunks(file_id, len(chunks))

        task = UploadTask(
            file_id=file_id,
            file_size=source.size,
            chunks=chunks,
            known_indices=known,
            on_progress=on_progress,
        )
        task.move_to(UploadState.UPLOADING)
        task.publish()

        pending = task.pending_chunks
        if not pending:
            # Every chunk is on the server but it never merged them (e.g. a
            # merge failed earlier); re-send the last one to trigger the merge.
            pending = [chunks[-1]]

        logger.info(
            f"Uploading {source.name}: size={source.size} chunk_size={self.chunk_size} "
            f"total_chunks={task.total_chunks} resumed={len(known)} pending={len(pending)}"
        )

        def make_job(chunk: ChunkRange):
            async def job() -> ChunkStatus:
                status = await self.client.submit_chunk(
                    source,
                    chunk,
                    task.total_chunks,
                    file_id,
                    on_progress=lambda loaded: task.record_progress(chunk.index, loaded),
                )
                task.mark_chunk_done(chunk.index)
                return status
            return job

        try:
            results = await run_bounded(
                [make_job(chunk) for chunk in pending],
                self.parallel_limit,
                cancel_token,
            )
            artifact = await self._resolve_completion(source, task, pending, results)
        except UploadCancelledError:
            task.move_to(UploadState.FAILED)
            logger.info(f"Upload of {source.name} cancelled; stored chunks kept for resume")
            raise
        except UploadError as e:
            task.move_to(UploadState.FAILED)
            logger.error(f"Upload of {source.name} failed: {e}")
            raise

        task.move_to(UploadState.COMPLETE)
        task.publish(100.0)
        return artifact

    async def _resolve_completion(
        self,
        source: SourceFile,
        task: UploadTask,
        sent: List[ChunkRange],
        results: List[ChunkStatus],
    ) -> ArtifactDescriptor:
        """
        Decide whether the upload finished.

        A "complete" response from any chunk settles it. Otherwise, if the
        known and just-sent indices cover every chunk, the merge is confirmed
        by polling the file listing instead of being assumed.
        """
        for status in results:
            if status.is_complete:
                return ArtifactDescriptor(name=status.name or source.name, size=source.size)

        finished = set(task.known_indices) | {chunk.index for chunk in sent}
        if finished != set(range(task.total_chunks)):
            raise TransportError("Upload incomplete - not all chunks were processed")

        if await self._confirm_merge(source):
            return ArtifactDescriptor(name=source.name, size=source.size)
        raise TransportError("Upload incomplete - server did not confirm the merged file")

    async def _confirm_merge(self, source: SourceFile) -> bool:
        for attempt in range(self.merge_confirm_attempts):
            try:
                files = await self.client.list_files()
            except UploadError as e:
                logger.warning(f"Merge confirmation attempt {attempt + 1} failed: {e}")
            else:
                if any(f.name == source.name and f.size == source.size for f in files):
                    return True
            if attempt < self.merge_confirm_attempts - 1:
                await asyncio.sleep(self.merge_confirm_interval)
        return False

    async def remote_status(self, source: SourceFile) -> Tuple[str, int, List[int]]:
        """
        Report what the server holds for a local file without uploading anything.

        Returns:
            (file_id, total_chunks, sorted indices the server already stores)

        Raises:
            TransportError: If the status request fails
        """
        total_chunks = len(split_ranges(source.size, self.chunk_size))
        file_id = generate_file_id(source, self.file_id_mode, self.chunk_size)
        uploaded = await self.client.query_status(file_id)
        known = sorted({index for index in uploaded if 0 <= index < total_chunks})
        return file_id, total_chunks, known
