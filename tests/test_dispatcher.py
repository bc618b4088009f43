"""Tests for UploadDispatcher strategy selection and the direct strategy."""

from unittest.mock import AsyncMock, Mock

import pytest

from cli.chunk_scheduler import ChunkScheduler
from cli.dispatcher import DirectUploadStrategy, UploadDispatcher
from cli.source_file import SourceFile
from cli.upload_task import CancellationToken
from common.exceptions import UploadCancelledError
from common.types import ArtifactDescriptor


def make_source(size):
    return SourceFile(path=None, name='f.bin', size=size, last_modified=0,
                      content_type='application/octet-stream')


@pytest.fixture
def dispatcher():
    single = Mock()
    single.upload = AsyncMock(return_value=ArtifactDescriptor('f.bin', 1))
    chunked = Mock()
    chunked.upload = AsyncMock(return_value=ArtifactDescriptor('f.bin', 2))
    return UploadDispatcher(single, chunked, client=Mock(), single_threshold=100)


def test_threshold_selects_strategy(dispatcher):
    assert dispatcher.choose_strategy(make_source(0)) is dispatcher.single_strategy
    assert dispatcher.choose_strategy(make_source(100)) is dispatcher.single_strategy
    assert dispatcher.choose_strategy(make_source(101)) is dispatcher.chunk_strategy


@pytest.mark.asyncio
async def test_upload_routes_large_file_to_chunked(dispatcher):
    artifact = await dispatcher.upload(make_source(500))

    assert artifact.size == 2
    dispatcher.chunk_strategy.upload.assert_awaited_once()
    dispatcher.single_strategy.upload.assert_not_awaited()


def test_from_config_builds_strategies(temp_config):
    temp_config.set('chunk_size_bytes', 1024)
    temp_config.set('parallel_chunk_count', 4)
    temp_config.set('single_upload_threshold', 2048)

    dispatcher = UploadDispatcher.from_config(temp_config, client=Mock())

    assert isinstance(dispatcher.single_strategy, DirectUploadStrategy)
    assert isinstance(dispatcher.chunk_strategy, ChunkScheduler)
    assert dispatcher.chunk_strategy.chunk_size == 1024
    assert dispatcher.chunk_strategy.parallel_limit == 4
    assert dispatcher.single_threshold == 2048


@pytest.mark.asyncio
async def test_direct_strategy_reports_monotonic_progress():
    client = Mock()

    async def upload_single(source, on_progress=None):
        for loaded in (40, 20, 80):
            on_progress(loaded)
        return ArtifactDescriptor(source.name, source.size)

    client.upload_single = upload_single
    reported = []

    await DirectUploadStrategy(client).upload(make_source(80), on_progress=reported.append)

    assert reported == [50.0, 100.0]


@pytest.mark.asyncio
async def test_direct_strategy_honours_cancellation():
    client = Mock()
    client.upload_single = AsyncMock()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(UploadCancelledError):
        await DirectUploadStrategy(client).upload(make_source(10), cancel_token=token)

    client.upload_single.assert_not_awaited()
