"""Drives an upload of a selection of files: validate, upload sequentially, retry."""

from typing import Callable, List, Optional, Sequence, Tuple

from cli.dispatcher import UploadDispatcher
from cli.source_file import SourceFile
from cli.upload_task import CancellationToken, UploadState, transition
from cli.validation import parse_upload_error, validate_files
from common.exceptions import UploadError
from common.logging_config import get_logger
from common.types import ArtifactDescriptor

logger = get_logger(__name__)


class FileUploader:
    """
    Upload session over the currently selected files.

    State follows idle -> validating -> uploading -> complete | failed.
    A failed session is re-driven with retry(), which reuses the selected
    files instead of asking for them again.
    """

    def __init__(
        self,
        dispatcher: UploadDispatcher,
        accepted_file_types: Optional[str] = None,
        max_allowed_files: Optional[int] = None,
        max_total_size: Optional[int] = None,
        on_progress: Optional[Callable[[SourceFile, float], None]] = None,
    ):
        self.dispatcher = dispatcher
        self.accepted_file_types = accepted_file_types
        self.max_allowed_files = max_allowed_files
        self.max_total_size = max_total_size
        self.on_progress = on_progress

        self.state = UploadState.IDLE
        self.files: List[SourceFile] = []
        self.results: List[ArtifactDescriptor] = []
        self.progress: float = 0.0
        self.error: Optional[str] = None
        self.cancel_token: Optional[CancellationToken] = None

    def _move_to(self, target: UploadState) -> None:
        self.state = transition(self.state, target)

    def cancel(self) -> None:
        """Stop scheduling further chunks of the running upload."""
        if self.cancel_token is not None:
            self.cancel_token.cancel()

    async def upload_files(self, files: Sequence[SourceFile]) -> List[ArtifactDescriptor]:
        """
        Validate and upload files one after another.

        Returns:
            ArtifactDescriptor per uploaded file; an empty list when the
            selection failed validation or an upload failed (see self.error)
        """
        self.error = None
        self.results = []
        self.progress = 0.0
        self._move_to(UploadState.VALIDATING)

        error_message = validate_files(
            files,
            accepted_file_types=self.accepted_file_types,
            max_allowed_files=self.max_allowed_files,
            max_total_size=self.max_total_size,
        )
        if error_message:
            logger.warning(f"File validation failed: {error_message}")
            self.error = error_message
            self._move_to(UploadState.FAILED)
            return []

        self.files = list(files)
        self._move_to(UploadState.UPLOADING)
        return await self._upload_selected()

    async def retry(self) -> List[ArtifactDescriptor]:
        """
        Upload the previously selected files again.

        Chunks the server already holds are skipped by the chunked strategy.
        """
        if not self.files:
            self.error = "No files selected to retry."
            return []
        if self.state == UploadState.COMPLETE:
            self._move_to(UploadState.VALIDATING)
        self._move_to(UploadState.UPLOADING)
        self.error = None
        self.results = []
        self.progress = 0.0
        return await self._upload_selected()

    async def remote_status(self, source: SourceFile) -> Tuple[str, int, List[int]]:
        return await self.dispatcher.chunk_status(source)

    async def list_files(self) -> List[ArtifactDescriptor]:
        return await self.dispatcher.list_files()

    async def _upload_selected(self) -> List[ArtifactDescriptor]:
        self.cancel_token = CancellationToken()
        try:
            for source in self.files:
                artifact = await self.dispatcher.upload(
                    source,
                    on_progress=lambda percent, source=source: self._report(source, percent),
                    cancel_token=self.cancel_token,
                )
                self.results.append(artifact)
        except UploadError as e:
            self.error = parse_upload_error(e)
            logger.error(f"Upload failed: {e}")
            self._move_to(UploadState.FAILED)
            return []

        self._move_to(UploadState.COMPLETE)
        logger.info(f"Uploaded {len(self.results)} file(s)")
        return self.results

    def _report(self, source: SourceFile, percent: float) -> None:
        self.progress = percent
        if self.on_progress is not None:
            self.on_progress(source, percent)
