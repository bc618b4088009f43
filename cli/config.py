"""Configuration management for the Chunkferry CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_CHUNK_SIZE_BYTES,
    DEFAULT_PARALLEL_CHUNK_COUNT,
    DEFAULT_SINGLE_UPLOAD_THRESHOLD,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


def _env_int(key: str) -> Optional[int]:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric environment variable {key}={value!r}")
        return None


def _env_str(key: str) -> Optional[str]:
    value = os.environ.get(key)
    return value if value and value.strip() else None


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("CHUNKFERRY_SERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("CHUNKFERRY_SERVER_PORT", "3000")),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "retry_base_delay": 0.5,
        "chunk_size_bytes": _env_int("CHUNK_SIZE_BYTES") or DEFAULT_CHUNK_SIZE_BYTES,
        "parallel_chunk_count": _env_int("PARALLEL_CHUNK_COUNT") or DEFAULT_PARALLEL_CHUNK_COUNT,
        "single_upload_threshold": _env_int("SINGLE_UPLOAD_THRESHOLD") or DEFAULT_SINGLE_UPLOAD_THRESHOLD,
        "accepted_file_types": _env_str("ACCEPTED_FILE_TYPES"),
        "max_allowed_files": _env_int("MAX_ALLOWED_FILES"),
        "upload_total_size": _env_int("UPLOAD_TOTAL_SIZE"),
        "file_id_mode": "metadata",
        "merge_confirm_attempts": 5,
        "merge_confirm_interval": 1.0,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.chunkferry/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.chunkferry' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file {self.config_path} unreadable ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except IOError as copy_error:
                    logger.warning(f"Could not back up config file: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not write default config to {self.config_path}: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def set(self, key: str, value) -> None:
        """
        Set a configuration value and save to file.

        Raises:
            KeyError: If key is not a known setting
        """
        if key not in self.DEFAULT_CONFIG:
            raise KeyError(f"Unknown setting: {key}")
        self.data[key] = value
        self.save()

    def get_base_url(self) -> str:
        """
        Get coordinator base URL.

        Returns:
            Base URL string (e.g., "http://localhost:3000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', 3000)
        return f"http://{host}:{port}"

    def get_timeout(self) -> float:
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_backoff_multiplier' and 'retry_base_delay'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
            'retry_base_delay': self.data.get('retry_base_delay', 0.5),
        }

    def get_chunk_config(self) -> dict:
        """
        Get chunking configuration.

        Returns:
            Dictionary with 'chunk_size_bytes', 'parallel_chunk_count',
            'single_upload_threshold' and 'file_id_mode'
        """
        return {
            'chunk_size_bytes': self.data.get('chunk_size_bytes', DEFAULT_CHUNK_SIZE_BYTES),
            'parallel_chunk_count': self.data.get('parallel_chunk_count', DEFAULT_PARALLEL_CHUNK_COUNT),
            'single_upload_threshold': self.data.get('single_upload_threshold', DEFAULT_SINGLE_UPLOAD_THRESHOLD),
            'file_id_mode': self.data.get('file_id_mode', 'metadata'),
        }

    def get_merge_confirm_config(self) -> dict:
        return {
            'attempts': self.data.get('merge_confirm_attempts', 5),
            'interval': self.data.get('merge_confirm_interval', 1.0),
        }

    def get_limits(self) -> dict:
        """
        Get pre-upload validation limits.

        Returns:
            Dictionary with 'accepted_file_types', 'max_allowed_files' and
            'upload_total_size' (each None when unset)
        """
        return {
            'accepted_file_types': self.data.get('accepted_file_types'),
            'max_allowed_files': self.data.get('max_allowed_files'),
            'upload_total_size': self.data.get('upload_total_size'),
        }
