"""Pre-upload file validation and user-facing upload error messages."""

from typing import List, Optional, Sequence

from cli.source_file import SourceFile


def validate_file_type(source: SourceFile, allowed_types: List[str]) -> bool:
    """
    Check a file's MIME type against allowed types.

    Args:
        source: File to check
        allowed_types: Exact MIME types or prefixes like "image/*"

    Returns:
        True if any allowed type matches
    """
    for allowed_type in allowed_types:
        if allowed_type.endswith("/*"):
            if source.content_type.startswith(allowed_type[:-1]):
                return True
        elif source.content_type == allowed_type:
            return True
    return False


def validate_files(
    files: Sequence[SourceFile],
    accepted_file_types: Optional[str] = None,
    max_allowed_files: Optional[int] = None,
    max_total_size: Optional[int] = None,
) -> Optional[str]:
    """
    Validate a selection of files against the configured limits.

    Args:
        files: Selected files
        accepted_file_types: Comma-separated MIME types, None to accept all
        max_allowed_files: Maximum number of files per upload
        max_total_size: Maximum combined size in bytes

    Returns:
        A validation error message, or None if the selection passes
    """
    if accepted_file_types:
        allowed = [t.strip() for t in accepted_file_types.split(",") if t.strip()]
        for source in files:
            if not validate_file_type(source, allowed):
                return f'File type "{source.content_type}" is not allowed.'

    if max_allowed_files and len(files) > max_allowed_files:
        return f"You can only upload up to {max_allowed_files} files at a time."

    if max_total_size:
        total_size = sum(source.size for source in files)
        if total_size > max_total_size:
            return f"Total file size exceeds the limit of {max_total_size / (1024 * 1024):.2f} MB"

    return None


def parse_upload_error(error: BaseException) -> str:
    """
    Turn an upload exception into a short message for the user.

    Known server error texts are mapped to friendlier wording; anything
    else is passed through.
    """
    message = str(error)
    if not message:
        return "Upload failed"
    if "File too large" in message:
        return "File too large"
    if "Error saving chunk" in message:
        return "Server error while saving a file chunk. Please try again or contact support."
    if "Error merging chunks" in message:
        return "Server error while merging file chunks. Please try again or contact support."
    return message
