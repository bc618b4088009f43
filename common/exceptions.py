"""Error taxonomy shared by the coordinator and the CLI client."""


class UploadError(Exception):
    """
    Base exception class for all upload-related errors.
    """
    pass


class ValidationError(UploadError):
    """
    Raised when required fields or identifiers are missing or malformed.
    Never retried; maps to a 4xx response.
    """
    pass


class PayloadTooLargeError(ValidationError):
    """
    Raised when a chunk or direct upload body exceeds the accepted part size.
    """
    pass


class StorageError(UploadError):
    """
    Raised when a disk read, write or merge fails. Chunk records are kept
    so the operation can be retried.
    """
    pass


class TransportError(UploadError):
    """
    Raised on network failure, timeout or a non-success response.
    """

    def __init__(self, message: str, status_code: int = None, code: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ResponseParseError(TransportError):
    """
    Raised when a server response body cannot be parsed.
    """
    pass


class UploadCancelledError(UploadError):
    """
    Raised when an upload is stopped through its cancellation token.
    """
    pass
