"""Command handler functions for CLI operations."""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from common.exceptions import UploadError
from common.logging_config import get_logger
from common.types import ArtifactDescriptor
from cli.config import Config
from cli.dispatcher import UploadDispatcher
from cli.models import ListCommand, RetryCommand, StatusCommand, UploadCommand
from cli.source_file import SourceFile
from cli.uploader import FileUploader
from cli.utils import format_file_size
from cli.validation import parse_upload_error

logger = get_logger(__name__)


_uploader: Optional[FileUploader] = None
_loop: Optional[asyncio.AbstractEventLoop] = None
_config_path: Path = Path.home() / '.chunkferry' / 'config.json'


def set_config_path(path: Path) -> None:
    """Point later commands at another config file; drops any cached uploader."""
    global _config_path, _uploader
    _config_path = Path(path).expanduser()
    _uploader = None


def get_loop() -> asyncio.AbstractEventLoop:
    """
    Get or create the event loop shared by all commands.

    The HTTP client keeps pooled connections bound to one loop, so every
    command runs on the same loop instead of a fresh asyncio.run().
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


def print_progress(source: SourceFile, percent: float) -> None:
    """Redraw a single progress line for the file being uploaded."""
    sys.stdout.write(f"\r  {source.name}: {percent:5.1f}% of {format_file_size(source.size)}")
    if percent >= 100.0:
        sys.stdout.write("\n")
    sys.stdout.flush()


def get_uploader() -> FileUploader:
    """
    Get or create global FileUploader instance.

    Returns:
        FileUploader instance
    """
    global _uploader
    if _uploader is None:
        logger.debug("Creating new FileUploader instance")
        config = Config(_config_path)
        limits = config.get_limits()
        _uploader = FileUploader(
            UploadDispatcher.from_config(config),
            accepted_file_types=limits['accepted_file_types'],
            max_allowed_files=limits['max_allowed_files'],
            max_total_size=limits['upload_total_size'],
            on_progress=print_progress,
        )
    return _uploader


def shutdown() -> None:
    """Close the HTTP client and the shared event loop."""
    global _uploader, _loop
    if _uploader is not None:
        get_loop().run_until_complete(_uploader.dispatcher.close())
        _uploader = None
    if _loop is not None and not _loop.is_closed():
        _loop.close()
    _loop = None


def _run_upload(uploader: FileUploader, coro) -> List[ArtifactDescriptor]:
    """
    Run an upload coroutine; Ctrl+C cancels it cooperatively.

    On interrupt no new chunk is started, the ones in flight finish, and
    the uploader ends in the failed state so 'retry' can resume.
    """
    loop = get_loop()
    task = loop.create_task(coro)
    try:
        return loop.run_until_complete(task)
    except KeyboardInterrupt:
        if task.done():
            raise
        sys.stdout.write("\nCancelling, waiting for running chunk uploads to finish...\n")
        uploader.cancel()
        return loop.run_until_complete(task)


def _format_results(uploader: FileUploader, results: List[ArtifactDescriptor]) -> str:
    if uploader.error:
        return f"Error: {uploader.error}"
    lines = [f"Uploaded {len(results)} file(s):"]
    for artifact in results:
        lines.append(f"  {artifact.name} ({format_file_size(artifact.size)})")
    return "\n".join(lines)


def handle_upload(cmd: UploadCommand, uploader: Optional[FileUploader] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_list
        uploader: Optional FileUploader for dependency injection (testing)

    Returns:
        Summary of uploaded files or error message
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} files")
    sources = []
    for path in cmd.file_list:
        try:
            sources.append(SourceFile.from_path(path))
        except FileNotFoundError:
            return f"Error: File not found: {path}"
        except IsADirectoryError:
            return f"Error: Not a file: {path}"

    if uploader is None:
        uploader = get_uploader()
    results = _run_upload(uploader, uploader.upload_files(sources))
    logger.debug("Upload command completed")
    return _format_results(uploader, results)


def handle_retry(cmd: RetryCommand, uploader: Optional[FileUploader] = None) -> str:
    """
    Handle 'retry' command.

    Args:
        cmd: RetryCommand
        uploader: Optional FileUploader for dependency injection (testing)

    Returns:
        Summary of uploaded files or error message
    """
    if uploader is None:
        uploader = get_uploader()
    results = _run_upload(uploader, uploader.retry())
    return _format_results(uploader, results)


def handle_status(cmd: StatusCommand, uploader: Optional[FileUploader] = None) -> str:
    """
    Handle 'status' command.

    Args:
        cmd: StatusCommand with the local path
        uploader: Optional FileUploader for dependency injection (testing)

    Returns:
        Chunk status summary or error message
    """
    try:
        source = SourceFile.from_path(cmd.path)
    except FileNotFoundError:
        return f"Error: File not found: {cmd.path}"
    except IsADirectoryError:
        return f"Error: Not a file: {cmd.path}"

    if uploader is None:
        uploader = get_uploader()
    try:
        file_id, total_chunks, known = get_loop().run_until_complete(uploader.remote_status(source))
    except UploadError as e:
        logger.error(f"Status query failed: {e}")
        return f"Error: {parse_upload_error(e)}"

    lines = [
        f"{source.name} ({format_file_size(source.size)})",
        f"  File ID: {file_id}",
        f"  Chunks on server: {len(known)}/{total_chunks}",
    ]
    stored = set(known)
    missing = [index for index in range(total_chunks) if index not in stored]
    if known and missing:
        lines.append(f"  Missing chunks: {', '.join(str(index) for index in missing)}")
    return "\n".join(lines)


def handle_list(cmd: ListCommand, uploader: Optional[FileUploader] = None) -> str:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand
        uploader: Optional FileUploader for dependency injection (testing)

    Returns:
        Formatted list of files
    """
    logger.info("Executing list command")
    if uploader is None:
        uploader = get_uploader()
    try:
        files = get_loop().run_until_complete(uploader.list_files())
    except UploadError as e:
        logger.error(f"List command failed: {e}")
        return f"Error: {parse_upload_error(e)}"

    if not files:
        return "No files stored on the server."
    lines = [f"Found {len(files)} file(s):"]
    for artifact in files:
        lines.append(f"  {artifact.name} ({format_file_size(artifact.size)})")
    return "\n".join(lines)
