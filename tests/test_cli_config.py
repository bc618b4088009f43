"""Tests for CLI configuration module."""

import json
import pytest
from cli.config import Config
from common.constants import DEFAULT_CHUNK_SIZE_BYTES, DEFAULT_PARALLEL_CHUNK_COUNT


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.chunkferry' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['server_host'] == 'localhost'
    assert config.data['server_port'] == 3000
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['chunk_size_bytes'] == DEFAULT_CHUNK_SIZE_BYTES
    assert config.data['parallel_chunk_count'] == DEFAULT_PARALLEL_CHUNK_COUNT
    assert config.data['file_id_mode'] == 'metadata'


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.chunkferry' / 'config.json'
    config_path.parent.mkdir(parents=True)

    existing_data = {
        'server_host': 'uploads.example.com',
        'server_port': 9000,
        'parallel_chunk_count': 6,
    }
    with open(config_path, 'w') as f:
        json.dump(existing_data, f)

    config = Config(config_path)

    assert config.get_base_url() == 'http://uploads.example.com:9000'
    assert config.get_chunk_config()['parallel_chunk_count'] == 6

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3


def test_config_set_persists(temp_config):
    """Test saving a setting to disk."""
    temp_config.set('chunk_size_bytes', 1024)

    with open(temp_config.config_path, 'r') as f:
        data = json.load(f)
    assert data['chunk_size_bytes'] == 1024
    assert Config(temp_config.config_path).get_chunk_config()['chunk_size_bytes'] == 1024


def test_config_set_rejects_unknown_key(temp_config):
    with pytest.raises(KeyError):
        temp_config.set('api_key', 'secret')


def test_config_handles_corrupted_file(tmp_path):
    """Test recovery from corrupted config file."""
    config_path = tmp_path / '.chunkferry' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        f.write('{ invalid json content')

    config = Config(config_path)
    assert config.data['server_host'] == 'localhost'
    assert config.data['server_port'] == 3000

    backup_path = config_path.with_suffix('.json.bak')
    assert backup_path.exists()


def test_config_get_base_url(tmp_path):
    """Test base URL construction."""
    config = Config(tmp_path / 'config.json')
    assert config.get_base_url() == 'http://localhost:3000'


def test_config_retry_and_limits(temp_config):
    retry = temp_config.get_retry_config()
    assert retry['max_retries'] == 0
    assert retry['retry_backoff_multiplier'] == 2

    limits = temp_config.get_limits()
    assert limits == {
        'accepted_file_types': None,
        'max_allowed_files': None,
        'upload_total_size': None,
    }


def test_config_merge_confirm(temp_config):
    assert temp_config.get_merge_confirm_config() == {'attempts': 2, 'interval': 0}
