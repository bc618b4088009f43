"""Upload API routes: direct upload, chunk upload, resumable status, file listing."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from coordinator.schemas.common import ErrorResponse
from coordinator.schemas.upload import (
    ChunkStatusResponse,
    ChunkUploadResponse,
    FileItem,
    ListFilesResponse,
    SingleUploadResponse,
)
from coordinator.services.upload_service import UploadService, get_upload_service

router = APIRouter(tags=["Uploads"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/upload-single", response_model=SingleUploadResponse, responses=ERROR_RESPONSES)
async def upload_single(
    file: Optional[UploadFile] = File(None),
    service: UploadService = Depends(get_upload_service),
):
    """
    Upload a small file in one request.

    Parameters:
        - file: File to upload (multipart/form-data)

    Returns:
        - message: Confirmation text
        - name: Stored filename

    Raises:
        - 400: Missing file or filename
        - 413: File too large
        - 500: Error saving file
    """
    artifact = await service.submit_direct(
        file.file if file is not None else None,
        file.filename if file is not None else None,
    )
    return SingleUploadResponse(message="File uploaded successfully", name=artifact.name)


@router.post(
    "/upload-chunk",
    response_model=ChunkUploadResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def upload_chunk(
    file: Optional[UploadFile] = File(None),
    current_chunk_index: Optional[str] = Form(None, alias="currentChunkIndex"),
    total_chunks: Optional[str] = Form(None, alias="totalChunks"),
    file_id: Optional[str] = Form(None, alias="fileId"),
    service: UploadService = Depends(get_upload_service),
):
    """
    Upload one chunk of a large file.

    Parameters:
        - file: Chunk bytes; the part's filename is the original filename
        - currentChunkIndex: Index of this chunk (integer string)
        - totalChunks: Total number of chunks (integer string)
        - fileId: Identifier shared by all chunks of the file

    Returns:
        - status: "complete" with name once merged, else "in-progress"
          with chunksReceived

    Raises:
        - 400: Missing or invalid parameters
        - 413: Chunk too large
        - 500: Error saving chunk
    """
    result = await service.submit_chunk(
        file_id=file_id,
        index=current_chunk_index,
        total_chunks=total_chunks,
        stream=file.file if file is not None else None,
        file_name=file.filename if file is not None else None,
    )

    if result.is_complete:
        return ChunkUploadResponse(
            message="All chunks uploaded and merged successfully",
            status=result.status,
            name=result.name,
        )
    return ChunkUploadResponse(
        message="Chunk uploaded successfully",
        status=result.status,
        chunks_received=result.chunks_received,
    )


@router.get(
    "/upload-chunk/status",
    response_model=ChunkStatusResponse,
    responses={400: {"model": ErrorResponse}},
)
async def upload_chunk_status(
    file_id: Optional[str] = Query(None, alias="fileId"),
    service: UploadService = Depends(get_upload_service),
):
    """
    Report which chunks of an upload the server already holds.

    Returns:
        - uploadedChunks: Sorted chunk indices

    Raises:
        - 400: Missing fileId
    """
    uploaded = await service.query_status(file_id)
    return ChunkStatusResponse(uploaded_chunks=uploaded)


@router.get("/files", response_model=ListFilesResponse)
async def list_files(service: UploadService = Depends(get_upload_service)):
    """
    List merged artifacts.

    Returns:
        - files: name and size of each stored file
    """
    files = await service.list_files()
    return ListFilesResponse(files=[FileItem(**item) for item in files])
