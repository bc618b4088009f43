"""Chooses between direct and chunked upload based on file size."""

from typing import Callable, List, Optional, Protocol, Tuple

from cli.chunk_scheduler import ChunkScheduler
from cli.config import Config
from cli.source_file import SourceFile
from cli.upload_client import UploadClient
from cli.upload_task import CancellationToken
from common.constants import DEFAULT_SINGLE_UPLOAD_THRESHOLD
from common.exceptions import UploadCancelledError
from common.types import ArtifactDescriptor

ProgressCallback = Callable[[float], None]


class UploadStrategy(Protocol):
    async def upload(
        self,
        source: SourceFile,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArtifactDescriptor:
        ...


class DirectUploadStrategy:
    """Uploads a small file in a single request."""

    def __init__(self, client: UploadClient):
        self.client = client

    async def upload(
        self,
        source: SourceFile,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArtifactDescriptor:
        if cancel_token is not None and cancel_token.cancelled:
            raise UploadCancelledError("Upload cancelled")

        last = [-1.0]

        def report(loaded: int) -> None:
            if on_progress is None or source.size <= 0:
                return
            percent = min(loaded / source.size * 100, 100.0)
            if percent > last[0]:
                last[0] = percent
                on_progress(percent)

        artifact = await self.client.upload_single(source, on_progress=report)
        if on_progress is not None and last[0] < 100.0:
            on_progress(100.0)
        return artifact


class UploadDispatcher:
    """
    Single upload entry point; picks the strategy from the file size.

    Files larger than single_threshold go through the chunked strategy,
    everything else through one direct request.
    """

    def __init__(
        self,
        single_strategy: UploadStrategy,
        chunk_strategy: ChunkScheduler,
        client: UploadClient,
        single_threshold: int = DEFAULT_SINGLE_UPLOAD_THRESHOLD,
    ):
        self.single_strategy = single_strategy
        self.chunk_strategy = chunk_strategy
        self.client = client
        self.single_threshold = single_threshold

    def choose_strategy(self, source: SourceFile) -> UploadStrategy:
        if source.size > self.single_threshold:
            return self.chunk_strategy
        return self.single_strategy

    async def upload(
        self,
        source: SourceFile,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ArtifactDescriptor:
        """
        Upload a file with whichever strategy fits its size.

        Raises:
            TransportError: If the upload fails
            UploadCancelledError: If cancelled
        """
        strategy = self.choose_strategy(source)
        return await strategy.upload(source, on_progress, cancel_token)

    async def chunk_status(self, source: SourceFile) -> Tuple[str, int, List[int]]:
        """Server-side chunk status of a local file, as the chunked strategy would see it."""
        return await self.chunk_strategy.remote_status(source)

    async def list_files(self) -> List[ArtifactDescriptor]:
        return await self.client.list_files()

    async def close(self) -> None:
        await self.client.close()

    @classmethod
    def from_config(cls, config: Config, client: Optional[UploadClient] = None) -> 'UploadDispatcher':
        """
        Build a dispatcher, its client and both strategies from CLI config.
        """
        if client is None:
            client = UploadClient(config)
        chunk_config = config.get_chunk_config()
        confirm = config.get_merge_confirm_config()
        return cls(
            single_strategy=DirectUploadStrategy(client),
            chunk_strategy=ChunkScheduler(
                client,
                chunk_size=chunk_config['chunk_size_bytes'],
                parallel_limit=chunk_config['parallel_chunk_count'],
                file_id_mode=chunk_config['file_id_mode'],
                merge_confirm_attempts=confirm['attempts'],
                merge_confirm_interval=confirm['interval'],
            ),
            client=client,
            single_threshold=chunk_config['single_upload_threshold'],
        )
