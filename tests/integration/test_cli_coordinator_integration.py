"""Integration tests: CLI upload stack against the coordinator app in-process."""

import io

import httpx
import pytest

from cli.dispatcher import UploadDispatcher
from cli.source_file import SourceFile, generate_file_id
from cli.upload_client import UploadClient
from cli.uploader import FileUploader
from cli.upload_task import UploadState


@pytest.fixture
def chunk_config(temp_config):
    temp_config.set('chunk_size_bytes', 8)
    temp_config.set('single_upload_threshold', 10)
    temp_config.set('parallel_chunk_count', 2)
    return temp_config


@pytest.fixture
def dispatcher(chunk_config, coordinator_app):
    client = UploadClient(chunk_config, transport=httpx.ASGITransport(app=coordinator_app))
    return UploadDispatcher.from_config(chunk_config, client=client)


@pytest.mark.asyncio
async def test_chunked_upload_end_to_end(dispatcher, store, large_sample_file):
    source = SourceFile.from_path(large_sample_file)
    progress = []

    artifact = await dispatcher.upload(source, on_progress=progress.append)
    await dispatcher.close()

    assert artifact.name == 'large.bin'
    assert artifact.size == 21
    assert (store.upload_dir / 'large.bin').read_bytes() == b'ABCDEFGHIJKLMNOPQRSTU'
    assert store.list_chunk_indices(generate_file_id(source, chunk_size=8)) == set()
    assert progress[-1] == 100.0
    assert progress == sorted(progress)


@pytest.mark.asyncio
async def test_resume_uploads_only_missing_chunks(dispatcher, store, large_sample_file):
    source = SourceFile.from_path(large_sample_file)
    file_id = generate_file_id(source, chunk_size=8)
    store.save_chunk(file_id, 0, io.BytesIO(b'ABCDEFGH'))

    _, total, known = await dispatcher.chunk_status(source)
    assert (total, known) == (3, [0])

    artifact = await dispatcher.upload(source)
    await dispatcher.close()

    assert artifact.size == 21
    assert (store.upload_dir / 'large.bin').read_bytes() == b'ABCDEFGHIJKLMNOPQRSTU'


@pytest.mark.asyncio
async def test_resume_with_different_chunk_size_ignores_old_chunks(dispatcher, store, large_sample_file):
    source = SourceFile.from_path(large_sample_file)
    old_file_id = generate_file_id(source, chunk_size=10)
    store.save_chunk(old_file_id, 0, io.BytesIO(b'ABCDEFGHIJ'))

    _, total, known = await dispatcher.chunk_status(source)
    assert (total, known) == (3, [])

    artifact = await dispatcher.upload(source)
    await dispatcher.close()

    assert artifact.size == 21
    assert (store.upload_dir / 'large.bin').read_bytes() == b'ABCDEFGHIJKLMNOPQRSTU'
    assert store.list_chunk_indices(generate_file_id(source, chunk_size=8)) == set()


@pytest.mark.asyncio
async def test_small_file_uses_direct_upload(dispatcher, store, tmp_path):
    path = tmp_path / 'tiny.txt'
    path.write_bytes(b'tiny')

    artifact = await dispatcher.upload(SourceFile.from_path(path))
    files = await dispatcher.list_files()
    await dispatcher.close()

    assert artifact.name == 'tiny.txt'
    assert [(f.name, f.size) for f in files] == [('tiny.txt', 4)]
    assert list(store.chunk_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_uploader_reports_server_rejection(chunk_config, coordinator_app, store, tmp_path):
    path = tmp_path / 'big.bin'
    path.write_bytes(b'x' * 2048)
    chunk_config.set('chunk_size_bytes', 2048)
    client = UploadClient(chunk_config, transport=httpx.ASGITransport(app=coordinator_app))
    uploader = FileUploader(UploadDispatcher.from_config(chunk_config, client=client))

    results = await uploader.upload_files([SourceFile.from_path(path)])
    await client.close()

    assert results == []
    assert uploader.state == UploadState.FAILED
    assert uploader.error == 'File too large'
