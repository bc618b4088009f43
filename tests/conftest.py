"""Shared pytest fixtures for all tests."""

import pytest
from pathlib import Path
from fastapi.testclient import TestClient

from cli.config import Config
from coordinator.chunk_store import ChunkStore
from coordinator.main import app
from coordinator.services.upload_service import UploadService, get_upload_service


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .chunkferry directory
    """
    config_dir = tmp_path / '.chunkferry'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance with fast, non-retrying settings.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    config = Config(temp_config_dir / 'config.json')
    config.set('max_retries', 0)
    config.set('retry_base_delay', 0)
    config.set('merge_confirm_attempts', 2)
    config.set('merge_confirm_interval', 0)
    return config


@pytest.fixture
def store(tmp_path):
    """ChunkStore rooted in a temporary directory."""
    return ChunkStore(tmp_path / 'uploads', tmp_path / 'uploads-chunks', max_part_size=1024)


@pytest.fixture
def upload_service(store):
    return UploadService(store)


@pytest.fixture
def coordinator_app(upload_service):
    """
    Coordinator app wired to a temporary store.

    Yields:
        The FastAPI app with get_upload_service overridden
    """
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api(coordinator_app):
    """Create FastAPI test client for the coordinator API."""
    return TestClient(coordinator_app)


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def large_sample_file(tmp_path):
    """
    Create a 21-byte file that splits into three chunks of 8/8/5 bytes.

    Returns:
        Path to the file
    """
    file_path = tmp_path / 'large.bin'
    file_path.write_bytes(b'ABCDEFGHIJKLMNOPQRSTU')
    return file_path


@pytest.fixture
def multiple_sample_files(tmp_path):
    """
    Create multiple sample files for testing bulk operations.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        List of Paths to sample files
    """
    files = []
    for i in range(3):
        file_path = tmp_path / f'test{i}.txt'
        file_path.write_text(f'Sample content {i}')
        files.append(file_path)
    return files
