"""Tests for CLI command handlers."""

import pytest
from unittest.mock import AsyncMock, Mock

from cli.commands import handle_list, handle_retry, handle_status, handle_upload
from cli.models import ListCommand, RetryCommand, StatusCommand, UploadCommand
from cli.uploader import FileUploader
from common.exceptions import TransportError
from common.types import ArtifactDescriptor


@pytest.fixture
def mock_uploader():
    """FileUploader double whose async methods return canned results."""
    uploader = Mock(spec=FileUploader)
    uploader.error = None
    uploader.upload_files = AsyncMock(return_value=[ArtifactDescriptor('test.txt', 26)])
    uploader.retry = AsyncMock(return_value=[ArtifactDescriptor('test.txt', 26)])
    uploader.list_files = AsyncMock(return_value=[])
    uploader.remote_status = AsyncMock(return_value=('test.txt-26-1', 3, [0, 2]))
    return uploader


def test_handle_upload(mock_uploader, sample_file):
    """Test upload command handler with mocked uploader."""
    result = handle_upload(UploadCommand(file_list=(str(sample_file),)), uploader=mock_uploader)

    assert 'Uploaded 1 file(s)' in result
    assert 'test.txt (26 B)' in result
    sources = mock_uploader.upload_files.await_args.args[0]
    assert [s.name for s in sources] == ['test.txt']


def test_handle_upload_missing_file(mock_uploader, tmp_path):
    result = handle_upload(UploadCommand(file_list=(str(tmp_path / 'nope.bin'),)), uploader=mock_uploader)

    assert result.startswith('Error: File not found')
    mock_uploader.upload_files.assert_not_awaited()


def test_handle_upload_directory(mock_uploader, tmp_path):
    result = handle_upload(UploadCommand(file_list=(str(tmp_path),)), uploader=mock_uploader)

    assert result.startswith('Error: Not a file')


def test_handle_upload_reports_uploader_error(mock_uploader, sample_file):
    mock_uploader.upload_files = AsyncMock(return_value=[])
    mock_uploader.error = 'File too large'

    result = handle_upload(UploadCommand(file_list=(str(sample_file),)), uploader=mock_uploader)

    assert result == 'Error: File too large'


def test_handle_retry(mock_uploader):
    result = handle_retry(RetryCommand(), uploader=mock_uploader)

    assert 'Uploaded 1 file(s)' in result
    mock_uploader.retry.assert_awaited_once()


def test_handle_list_empty(mock_uploader):
    assert handle_list(ListCommand(), uploader=mock_uploader) == 'No files stored on the server.'


def test_handle_list_files(mock_uploader):
    mock_uploader.list_files = AsyncMock(return_value=[
        ArtifactDescriptor('a.bin', 2048),
        ArtifactDescriptor('b.txt', 10),
    ])

    result = handle_list(ListCommand(), uploader=mock_uploader)

    assert 'Found 2 file(s)' in result
    assert 'a.bin (2.00 KiB)' in result
    assert 'b.txt (10 B)' in result


def test_handle_list_server_error(mock_uploader):
    mock_uploader.list_files = AsyncMock(side_effect=TransportError('Cannot connect to upload server. Is it running?'))

    result = handle_list(ListCommand(), uploader=mock_uploader)

    assert result == 'Error: Cannot connect to upload server. Is it running?'


def test_handle_status(mock_uploader, sample_file):
    result = handle_status(StatusCommand(path=str(sample_file)), uploader=mock_uploader)

    assert 'File ID: test.txt-26-1' in result
    assert 'Chunks on server: 2/3' in result
    assert 'Missing chunks: 1' in result


def test_handle_status_missing_file(mock_uploader, tmp_path):
    result = handle_status(StatusCommand(path=str(tmp_path / 'gone')), uploader=mock_uploader)

    assert result.startswith('Error: File not found')
