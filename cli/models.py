"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload one or more local files."""

    file_list: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class RetryCommand:
    """Re-drive the last upload selection."""

    command: Literal["retry"] = "retry"


@dataclass(frozen=True)
class StatusCommand:
    """Show the server-side chunk status of a local file."""

    path: str
    command: Literal["status"] = "status"


@dataclass(frozen=True)
class ListCommand:
    """List files stored on the server."""

    command: Literal["list"] = "list"


CommandRequest = UploadCommand | RetryCommand | StatusCommand | ListCommand
