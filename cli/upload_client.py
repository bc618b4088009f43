"""Async HTTP client for the upload coordinator endpoints."""

import asyncio
import uuid
from typing import Callable, List, Optional

import httpx

from cli.config import Config
from cli.source_file import SourceFile
from cli.utils import ProgressReader
from common.exceptions import ResponseParseError, TransportError
from common.logging_config import get_logger
from common.types import ArtifactDescriptor, ChunkRange, ChunkStatus

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


class UploadClient:
    """HTTP client for the coordinator API with retry logic and error handling."""

    ERROR_MESSAGES = {
        'VALIDATION_ERROR': 'The server rejected the request',
        'FILE_TOO_LARGE': 'File too large',
        'STORAGE_ERROR': 'Server storage error',
        'INTERNAL_ERROR': 'Server error',
    }

    STATUS_MESSAGES = {
        400: 'Bad request',
        404: 'Not found',
        413: 'File too large',
        500: 'Server error',
        502: 'Bad gateway',
        503: 'Service unavailable',
    }

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            transport: Optional httpx transport (tests pass a MockTransport or ASGITransport)
        """
        self.config = config
        self.session = httpx.AsyncClient(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        logger.debug(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object (possibly a non-success one)

        Raises:
            TransportError: If the network keeps failing after all retries
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        multiplier = retry_config['retry_backoff_multiplier']
        base_delay = retry_config['retry_base_delay']

        request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = request_id

        last_exception = None
        for attempt in range(max_retries + 1):
            delay = base_delay * (multiplier ** attempt)
            try:
                response = await self.session.request(method, endpoint, headers=headers, **kwargs)
            except httpx.TransportError as e:
                last_exception = e
                if attempt < max_retries:
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e!r} [request_id={request_id}]"
                )
                break

            if response.status_code >= 500 and attempt < max_retries:
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                )
                await asyncio.sleep(delay)
                continue

            logger.debug(
                f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
            )
            return response

        if isinstance(last_exception, httpx.TimeoutException):
            raise TransportError("Request timed out. Server may be overloaded.") from last_exception
        if isinstance(last_exception, httpx.ConnectError):
            raise TransportError("Cannot connect to upload server. Is it running?") from last_exception
        raise TransportError(f"Network error occurred: {last_exception}") from last_exception

    def _format_error(self, response: httpx.Response, action: str) -> TransportError:
        """
        Build a TransportError with a user-facing message for a failed response.

        The server's detail text is kept in the message so callers can match
        known substrings (e.g. "Error saving chunk").
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', '') if isinstance(error_data, dict) else ''
            code = error_data.get('code', 'UNKNOWN') if isinstance(error_data, dict) else 'UNKNOWN'
        except ValueError:
            detail = response.text
            code = 'UNKNOWN'

        summary = self.ERROR_MESSAGES.get(code) or self.STATUS_MESSAGES.get(response.status_code, 'Request failed')
        message = f"{action} failed with status {response.status_code}: {summary}"
        if detail:
            message = f"{message}. Response: {detail}"
        return TransportError(message, status_code=response.status_code, code=code)

    def _parse_json(self, response: httpx.Response, action: str) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(f"Failed to parse server response on {action}") from e
        if not isinstance(data, dict):
            raise ResponseParseError(f"Unexpected server response on {action}: {data!r}")
        return data

    async def query_status(self, file_id: str) -> List[int]:
        """
        Ask the server which chunk indices it already holds for file_id.

        Raises:
            TransportError: On network failure or non-success response
            ResponseParseError: On a malformed body
        """
        response = await self._request_with_retry(
            'GET',
            '/upload-chunk/status',
            params={'fileId': file_id}
        )
        if response.status_code != 200:
            raise self._format_error(response, "Status query")

        data = self._parse_json(response, "status query")
        uploaded = data.get('uploadedChunks')
        if not isinstance(uploaded, list) or not all(isinstance(i, int) for i in uploaded):
            raise ResponseParseError(f"Malformed uploadedChunks in status response: {uploaded!r}")
        return uploaded

    async def submit_chunk(
        self,
        source: SourceFile,
        chunk: ChunkRange,
        total_chunks: int,
        file_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ChunkStatus:
        """
        Upload one chunk of a file.

        Args:
            source: File being uploaded (its name is sent as the part's filename)
            chunk: Byte range and index of this chunk
            total_chunks: Total number of chunks of the file
            file_id: FileIdentifier of the upload
            on_progress: Called with bytes of this chunk consumed by the transport

        Returns:
            ChunkStatus parsed from the coordinator response

        Raises:
            TransportError: On network failure or non-success response
            ResponseParseError: On a malformed body
        """
        body = ProgressReader(source.read_range(chunk.start, chunk.end), on_progress)
        response = await self._request_with_retry(
            'POST',
            '/upload-chunk',
            files={'file': (source.name, body, 'application/octet-stream')},
            data={
                'currentChunkIndex': str(chunk.index),
                'totalChunks': str(total_chunks),
                'fileId': file_id,
            },
        )
        if response.status_code != 200:
            raise self._format_error(response, f"Chunk {chunk.index} upload")

        data = self._parse_json(response, "chunk upload")
        status = data.get('status')
        if status not in ('complete', 'in-progress'):
            raise ResponseParseError(f"Unexpected chunk status in response: {status!r}")
        return ChunkStatus(
            status=status,
            chunks_received=list(data.get('chunksReceived') or []),
            name=data.get('name'),
        )

    async def upload_single(
        self,
        source: SourceFile,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ArtifactDescriptor:
        """
        Upload a whole file in one request.

        Raises:
            TransportError: On network failure or non-success response
            ResponseParseError: On a malformed body
        """
        body = ProgressReader(source.read_all(), on_progress)
        response = await self._request_with_retry(
            'POST',
            '/upload-single',
            files={'file': (source.name, body, source.content_type)},
        )
        if response.status_code != 200:
            raise self._format_error(response, "Upload")

        data = self._parse_json(response, "upload")
        return ArtifactDescriptor(name=data.get('name', source.name), size=source.size)

    async def list_files(self) -> List[ArtifactDescriptor]:
        """
        List merged files on the server.

        Raises:
            TransportError: On network failure or non-success response
            ResponseParseError: On a malformed body
        """
        response = await self._request_with_retry('GET', '/files')
        if response.status_code != 200:
            raise self._format_error(response, "Fetching files")

        data = self._parse_json(response, "file listing")
        try:
            return [ArtifactDescriptor(name=item['name'], size=item['size']) for item in data['files']]
        except (KeyError, TypeError) as e:
            raise ResponseParseError(f"Malformed file listing: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.session.aclose()
