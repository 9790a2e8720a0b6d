"""
FastAPI application for the Deepgram Callback Transcription API.

This module initializes the FastAPI application with CORS configuration,
exception handlers for consistent error responses, the transcription
endpoints, and the background job cleanup scheduler.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, UploadFile, File, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from typing import AsyncGenerator, Optional
import time

from app.api_models import (
    TranscribeResponse,
    StatusResponse,
    ErrorResponse,
    WebhookAck,
    HealthResponse,
    JobStatsResponse,
)
from app.config import settings, WEBHOOK_PATH
from app.deepgram_client import ProviderDispatchError, ProviderNotConfiguredError
from app.job_manager import DuplicateJobError
from app.logging_config import setup_logging, get_logger, log_with_context
from app.reclaimer import JobReclaimer
from app.status_service import StatusKind
from app.transcription_service import TranscriptionService

setup_logging(
    log_level=settings.log_level.value,
    use_json=True
)
logger = get_logger(__name__)

MAX_FILE_SIZE_MB = settings.max_file_size_mb
MAX_FILE_SIZE_BYTES = settings.get_max_file_size_bytes()
UPLOAD_CHUNK_SIZE = 1024 * 1024

# Global service instances, created in the lifespan handler
transcription_service: Optional[TranscriptionService] = None
job_reclaimer: Optional[JobReclaimer] = None


def _error_detail(code: str, message: str, details=None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details
        }
    }


def _service_unavailable() -> HTTPException:
    logger.error("Transcription service not available")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_error_detail("SERVICE_UNAVAILABLE", "Transcription service is not available")
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifespan events.

    Creates the transcription service and starts the cleanup scheduler on
    startup; stops both on shutdown.
    """
    global transcription_service, job_reclaimer

    logger.info("Deepgram Callback Transcription API starting up...")
    logger.info(settings.display())

    if not settings.is_provider_configured():
        logger.warning(
            "DEEPGRAM_API_KEY environment variable not set. Transcription will not work."
        )

    transcription_service = TranscriptionService()
    job_reclaimer = JobReclaimer(
        transcription_service,
        interval_seconds=settings.job_cleanup_interval_seconds
    )
    job_reclaimer.start()

    logger.info("Application startup complete")

    yield

    logger.info("Deepgram Callback Transcription API shutting down...")

    job_reclaimer.shutdown()
    await transcription_service.shutdown()

    logger.info("Application shutdown complete")


app = FastAPI(
    title="Deepgram Callback Transcription API",
    description="""
    A REST API that hands uploaded audio to Deepgram for transcription and
    lets clients poll for the result, which Deepgram delivers asynchronously
    through a webhook callback.

    ## Workflow

    1. Upload an audio file to `POST /api/v1/transcribe`
    2. Receive the provider `request_id` in the response
    3. Poll `GET /api/v1/transcribe/{request_id}` until the status is
       `completed` or `failed`
    4. Deepgram calls `POST /api/v1/webhook` when it finishes; clients never
       call it themselves

    ## Job Retention

    Finished jobs stay queryable for a configurable window after completion
    (one hour by default) and are then removed. A removed job answers 404,
    exactly like an id that never existed: stop polling on 404.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    license_info={
        "name": "MIT License",
        "url": "https://opensource.org/licenses/MIT",
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log all HTTP requests and responses.

    Logs request details (method, URL, client) and response details
    (status code, processing time).
    """
    log_with_context(
        logger,
        "info",
        "Incoming request",
        method=request.method,
        url=str(request.url),
        client=request.client.host if request.client else "unknown",
        path=request.url.path
    )

    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    log_with_context(
        logger,
        "info",
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2)
    )

    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors with consistent error format.

    Returns 400 Bad Request with error details.
    """
    log_with_context(
        logger,
        "warning",
        "Validation error",
        url=str(request.url),
        method=request.method,
        errors=str(exc.errors())
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_detail("VALIDATION_ERROR", "Invalid request data", str(exc.errors()))
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(
    request: Request,
    exc: ValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent error format.

    Returns 400 Bad Request with error details.
    """
    log_with_context(
        logger,
        "warning",
        "Pydantic validation error",
        url=str(request.url),
        method=request.method,
        errors=str(exc.errors())
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_detail("VALIDATION_ERROR", "Invalid data format", str(exc.errors()))
    )


@app.exception_handler(ValueError)
async def value_error_exception_handler(
    request: Request,
    exc: ValueError
) -> JSONResponse:
    """
    Handle ValueError exceptions with consistent error format.

    Returns 400 Bad Request for client errors.
    """
    log_with_context(
        logger,
        "warning",
        "ValueError",
        url=str(request.url),
        method=request.method,
        error=exc
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_detail("INVALID_INPUT", str(exc))
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle all other exceptions with consistent error format.

    Returns 500 Internal Server Error for unexpected errors.
    """
    log_with_context(
        logger,
        "error",
        "Unexpected error",
        url=str(request.url),
        method=request.method,
        error=exc
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_detail("INTERNAL_ERROR", "An unexpected error occurred", str(exc))
    )


@app.get(
    "/api/v1/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Check service health status"
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports whether the service is up and whether a Deepgram API key is
    configured. Without a key, uploads are rejected with 500
    `PROVIDER_NOT_CONFIGURED`.

    Example:
        ```bash
        curl http://localhost:3000/api/v1/health
        ```
    """
    if not transcription_service:
        return HealthResponse(
            status="healthy",
            provider_configured=settings.is_provider_configured(),
            callback_url=settings.get_callback_url()
        )

    return HealthResponse(
        status="healthy",
        provider_configured=transcription_service.is_provider_configured(),
        callback_url=transcription_service.callback_url
    )


@app.get(
    "/api/v1/jobs/stats",
    response_model=JobStatsResponse,
    tags=["Health"],
    summary="Get live job counts"
)
async def get_job_stats() -> JobStatsResponse:
    """
    Get the number of live jobs per status.

    Finished jobs are counted until the cleanup sweep removes them.
    """
    if not transcription_service:
        raise _service_unavailable()

    return JobStatsResponse(**transcription_service.get_job_stats())


@app.post(
    "/api/v1/transcribe",
    response_model=TranscribeResponse,
    status_code=status.HTTP_200_OK,
    tags=["Transcription"],
    summary="Upload audio file for transcription",
    responses={
        413: {"model": ErrorResponse, "description": "File size exceeds maximum limit"},
        415: {"model": ErrorResponse, "description": "Upload is not an audio file"},
        500: {"model": ErrorResponse, "description": "Provider not configured"},
        502: {"model": ErrorResponse, "description": "Provider rejected the transcription request"},
        503: {"model": ErrorResponse, "description": "Service not available"},
    }
)
async def create_transcription(
    audio_file: UploadFile = File(
        ...,
        description="Audio file to transcribe (any audio/* MIME type)"
    )
) -> TranscribeResponse:
    """
    Upload an audio file for transcription.

    The file is forwarded to Deepgram together with this service's webhook
    URL. The call returns as soon as Deepgram has accepted the audio; it does
    not wait for the transcript.

    **Processing Workflow:**
    1. Upload audio file to this endpoint
    2. Receive `request_id` and status "processing"
    3. Poll GET /api/v1/transcribe/{request_id}
    4. Stop polling on "completed", "failed" or 404

    Args:
        audio_file: The audio file to transcribe (multipart/form-data)

    Returns:
        TranscribeResponse: Provider request id and initial status

    Raises:
        HTTPException 413: File size exceeds maximum limit
        HTTPException 415: Upload is not an audio file
        HTTPException 500: Provider not configured
        HTTPException 502: Provider rejected the request
        HTTPException 503: Service not available

    Example (curl):
        ```bash
        curl -X POST http://localhost:3000/api/v1/transcribe \\
             -F "audio_file=@meeting.wav"
        ```
    """
    if not transcription_service:
        raise _service_unavailable()

    content_type = audio_file.content_type or ""
    if not content_type.startswith("audio/"):
        logger.warning(f"Unsupported content type: {content_type}")
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=_error_detail(
                "UNSUPPORTED_FORMAT",
                "Only audio files are allowed",
                f"Received content type: {content_type}"
            )
        )

    if not transcription_service.is_provider_configured():
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_detail(
                "PROVIDER_NOT_CONFIGURED",
                "Deepgram API key not configured",
                "Please set the DEEPGRAM_API_KEY environment variable"
            )
        )

    buffer = bytearray()
    while True:
        chunk = await audio_file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > MAX_FILE_SIZE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=_error_detail(
                    "FILE_TOO_LARGE",
                    f"File size exceeds maximum limit of {MAX_FILE_SIZE_MB} MB"
                )
            )

    filename = audio_file.filename or "audio"

    log_with_context(
        logger,
        "info",
        "Received audio file",
        filename=filename,
        file_size=len(buffer),
        content_type=content_type
    )

    try:
        request_id = await transcription_service.submit(bytes(buffer), content_type, filename)

    except ProviderNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_detail("PROVIDER_NOT_CONFIGURED", str(e))
        )

    except ProviderDispatchError as e:
        log_with_context(
            logger,
            "error",
            "Transcription dispatch failed",
            filename=filename,
            provider_status=e.status_code,
            error_type=type(e).__name__,
            error_message=str(e)
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=_error_detail("TRANSCRIPTION_FAILED", "Transcription failed", e.details)
        )

    except DuplicateJobError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_detail("DUPLICATE_JOB", str(e))
        )

    return TranscribeResponse(request_id=request_id)


@app.post(
    WEBHOOK_PATH,
    response_model=WebhookAck,
    tags=["Transcription"],
    summary="Receive Deepgram transcription callbacks"
)
async def deepgram_webhook(request: Request) -> JSONResponse:
    """
    Receive a transcription result from Deepgram.

    Always answers 200, whatever happens to the payload (unknown request id,
    duplicate delivery, malformed body). A non-2xx answer would make
    Deepgram retry, and a retry can never help: the job is either already
    resolved or gone.
    """
    try:
        payload = await request.json()
        if transcription_service is None:
            logger.error("Webhook received before transcription service was started")
        else:
            transcription_service.handle_callback(
                payload,
                dg_token=request.headers.get("dg-token")
            )
    except Exception as e:
        log_with_context(logger, "error", "Webhook processing failed", error=e)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"error": "Webhook processing failed"}
        )

    return JSONResponse(status_code=status.HTTP_200_OK, content={"received": True})


@app.get(
    "/api/v1/transcribe/{request_id}",
    response_model=StatusResponse,
    tags=["Transcription"],
    summary="Get transcription job status and result",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown or expired request id"},
        503: {"model": ErrorResponse, "description": "Service not available"},
    }
)
async def get_transcription_status(request_id: str) -> StatusResponse:
    """
    Get the status and result of a transcription job.

    **Job Status Values:**
    - `processing`: Waiting for Deepgram's callback
    - `completed`: `result` holds the transcript and metadata
    - `failed`: `error` holds Deepgram's error detail

    A 404 means the id was never issued or the finished job has been
    cleaned up; either way, stop polling.

    Example (curl):
        ```bash
        curl http://localhost:3000/api/v1/transcribe/6b1a2e4c-3f0d-4c8e-9a51-0f2b7d9c1e11
        ```
    """
    if not transcription_service:
        raise _service_unavailable()

    query = transcription_service.get_status(request_id)

    if query.status is StatusKind.UNKNOWN:
        log_with_context(
            logger,
            "warning",
            "Job not found",
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_detail("JOB_NOT_FOUND", f"Request ID {request_id} not found")
        )

    return StatusResponse.from_query(query)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
