"""Tests for FileUploader state handling, validation and retry."""

from unittest.mock import AsyncMock, Mock

import pytest

from cli.source_file import SourceFile
from cli.upload_task import InvalidTransitionError, UploadState
from cli.uploader import FileUploader
from common.exceptions import TransportError
from common.types import ArtifactDescriptor


@pytest.fixture
def files(multiple_sample_files):
    return [SourceFile.from_path(p) for p in multiple_sample_files]


def make_uploader(side_effect=None, **kwargs):
    dispatcher = Mock()

    async def upload(source, on_progress=None, cancel_token=None):
        if on_progress is not None:
            on_progress(100.0)
        return ArtifactDescriptor(source.name, source.size)

    dispatcher.upload = AsyncMock(side_effect=side_effect or upload)
    return FileUploader(dispatcher, **kwargs)


@pytest.mark.asyncio
async def test_upload_files_success(files):
    progress = []
    uploader = make_uploader(on_progress=lambda source, p: progress.append((source.name, p)))

    results = await uploader.upload_files(files)

    assert [r.name for r in results] == ['test0.txt', 'test1.txt', 'test2.txt']
    assert uploader.state == UploadState.COMPLETE
    assert uploader.error is None
    assert progress[-1] == ('test2.txt', 100.0)


@pytest.mark.asyncio
async def test_validation_failure_sets_error_without_uploading(files):
    uploader = make_uploader(max_allowed_files=2)

    results = await uploader.upload_files(files)

    assert results == []
    assert uploader.state == UploadState.FAILED
    assert uploader.error == 'You can only upload up to 2 files at a time.'
    uploader.dispatcher.upload.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_failure_then_retry(files):
    calls = {'count': 0}

    async def flaky(source, on_progress=None, cancel_token=None):
        calls['count'] += 1
        if calls['count'] == 2:
            raise TransportError('Chunk 0 upload failed with status 500: Server error. Response: Error saving chunk')
        return ArtifactDescriptor(source.name, source.size)

    uploader = make_uploader(side_effect=flaky)

    assert await uploader.upload_files(files) == []
    assert uploader.state == UploadState.FAILED
    assert uploader.error.startswith('Server error while saving a file chunk')

    results = await uploader.retry()

    assert len(results) == 3
    assert uploader.state == UploadState.COMPLETE
    assert uploader.error is None


@pytest.mark.asyncio
async def test_retry_without_selection():
    uploader = make_uploader()

    assert await uploader.retry() == []
    assert uploader.error == 'No files selected to retry.'


@pytest.mark.asyncio
async def test_retry_after_success_uploads_again(files):
    uploader = make_uploader()
    await uploader.upload_files(files[:1])

    results = await uploader.retry()

    assert len(results) == 1
    assert uploader.dispatcher.upload.await_count == 2


@pytest.mark.asyncio
async def test_cancel_sets_token_of_running_upload(files):
    seen_tokens = []

    async def upload(source, on_progress=None, cancel_token=None):
        seen_tokens.append(cancel_token)
        uploader.cancel()
        return ArtifactDescriptor(source.name, source.size)

    uploader = make_uploader(side_effect=upload)
    await uploader.upload_files(files[:1])

    assert seen_tokens[0].cancelled


@pytest.mark.asyncio
async def test_remote_status_and_list_delegate_to_dispatcher(files):
    uploader = make_uploader()
    uploader.dispatcher.chunk_status = AsyncMock(return_value=('id', 3, [0]))
    uploader.dispatcher.list_files = AsyncMock(return_value=[])

    assert await uploader.remote_status(files[0]) == ('id', 3, [0])
    assert await uploader.list_files() == []


def test_state_machine_rejects_invalid_transition():
    uploader = make_uploader()

    with pytest.raises(InvalidTransitionError):
        uploader._move_to(UploadState.COMPLETE)
