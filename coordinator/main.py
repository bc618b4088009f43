"""Entry point for the upload coordinator service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import (
    PayloadTooLargeError,
    StorageError,
    UploadError,
    ValidationError,
)
from common.logging_config import setup_logging
from coordinator.config import COORDINATOR_HOST, COORDINATOR_PORT
from coordinator.routes.upload_routes import router as upload_router
from coordinator.schemas.common import ErrorResponse

logger = setup_logging('coordinator')

app = FastAPI(
    title="Chunkferry Upload Coordinator",
    description="Resumable chunked file upload server",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.exception_handler(PayloadTooLargeError)
async def payload_too_large_handler(request: Request, exc: PayloadTooLargeError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Payload too large: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        content=ErrorResponse(detail=str(exc), code="FILE_TOO_LARGE").model_dump()
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Validation error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(detail=str(exc), code="VALIDATION_ERROR").model_dump()
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Storage error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=str(exc), code="STORAGE_ERROR").model_dump()
    )


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Upload error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=str(exc), code="INTERNAL_ERROR").model_dump()
    )


app.include_router(upload_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Chunkferry Upload Coordinator API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "coordinator"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "coordinator.main:app",
        host=COORDINATOR_HOST,
        port=COORDINATOR_PORT,
    )


if __name__ == "__main__":
    main()
