"""
ChartMind - FastAPI Main Application
"""

import asyncio
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from chartmind.config import settings, Environment
from chartmind.core.errors import ServiceError
from chartmind.core.logging import setup_logging, get_logger, audit_logger
from chartmind.core.security import security_manager
from chartmind.models.requests import GenerateSOAPRequest
from chartmind.models.responses import (
    ErrorResponse, HealthCheckResponse, SOAPResponse, TranscriptionResponse
)
from chartmind.services.audio_staging import AudioStaging
from chartmind.services.llm_service import LLMService
from chartmind.services.note_extractor import HeuristicReply, decode_reply, normalize_sections
from chartmind.services.stt_service import STTService

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
soap_parse_count = Counter('soap_reply_parse_total', 'SOAP replies by parse strategy', ['strategy'])

# Rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
RATE_LIMIT = f"{settings.rate_limit_requests}/minute"

# Service instances
audio_staging = AudioStaging()
stt_service = STTService()
llm_service = LLMService()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _error_response(
    status_code: int,
    error: str,
    request: Request,
    details: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    body = ErrorResponse(error=error, details=details, request_id=request_id, timestamp=_utc_now())
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def _service_error_response(request: Request, error: str, exc: ServiceError) -> JSONResponse:
    """Reports a failed upstream/configuration step as a 500 with redacted details."""
    details = security_manager.redact_secrets(str(exc))
    audit_logger.log_error(
        request_id=getattr(request.state, "request_id", "unknown"),
        error_type=type(exc).__name__,
        error_message=details,
        endpoint=request.url.path,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error, request, details=details)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("ChartMind secure backend starting...")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"Temp directory: {audio_staging.directory}")
    logger.info(f"OpenAI API configured: {'yes' if settings.openai_api_key else 'no'}")
    sweeper = asyncio.create_task(audio_staging.run_periodic_sweep())

    yield

    # Shutdown (uvicorn translates SIGTERM/SIGINT into lifespan shutdown)
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    audio_staging.flush()
    logger.info("ChartMind secure backend shut down")


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == Environment.DEVELOPMENT else None,
    redoc_url="/redoc" if settings.environment == Environment.DEVELOPMENT else None,
    debug=settings.debug,
)

# Static frontend assets, if present
if os.path.isdir(settings.static_dir):
    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Middleware for security headers
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    if "X-Content-Type-Options" not in response.headers:
        response.headers["X-Content-Type-Options"] = "nosniff"
    if "X-Frame-Options" not in response.headers:
        response.headers["X-Frame-Options"] = "DENY"
    if "Content-Security-Policy" not in response.headers:
        # 'unsafe-inline' is needed for the styles and scripts in index.html.
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self' 'unsafe-inline'; "
            "object-src 'none'"
        )
    return response


# Middleware for request tracking and metrics
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Request tracking and Prometheus metrics"""

    start_time = time.time()
    request_id = security_manager.generate_request_id()
    request.state.request_id = request_id

    audit_logger.log_api_request(
        request_id=request_id,
        endpoint=request.url.path,
        method=request.method,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
    except Exception as e:
        request_count.labels(method=request.method, endpoint=request.url.path, status=500).inc()
        logger.error(f"Request {request_id} failed: {security_manager.redact_secrets(str(e))}", exc_info=True)
        response = _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", request)
        response.headers["X-Request-ID"] = request_id
        return response

    duration = time.time() - start_time
    request_count.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()
    request_duration.observe(duration)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Processing-Time"] = f"{duration:.3f}s"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Renders HTTP errors in the {error, ...} shape used by every endpoint"""
    return _error_response(exc.status_code, str(exc.detail), request, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400)"""
    errors = exc.errors()
    details = errors[0].get("msg") if errors else None
    if request.url.path == "/api/generate-soap":
        error = "Valid transcription text required"
    else:
        error = "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, error, request, details=details)


# Health check endpoint
@app.get("/api/health", response_model=HealthCheckResponse)
async def health_check():
    """Service health check"""

    return HealthCheckResponse(
        status="healthy",
        timestamp=_utc_now(),
        version=settings.api_version,
        message="ChartMind secure backend is running",
    )


@app.get("/", include_in_schema=False)
async def read_index():
    """Serves the frontend index.html, if one is deployed."""
    index_path = os.path.join(settings.static_dir, "index.html")
    if not os.path.isfile(index_path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Frontend not available")
    return FileResponse(index_path)


# Prometheus metrics endpoint
@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post(
    "/api/transcribe",
    response_model=TranscriptionResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(RATE_LIMIT)
async def transcribe_audio(request: Request, audio: Optional[UploadFile] = File(None)):
    """
    Receives an audio upload (field "audio"), stages it on disk, transcribes it
    and deletes the staged file again.
    """
    request_id = request.state.request_id

    if audio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio file provided")

    staged = await audio_staging.stage_upload(audio)
    audit_logger.log_audio_processing(
        request_id=request_id,
        audio_size_bytes=staged.size_bytes,
        content_type=staged.content_type,
        audio_duration=staged.duration_seconds,
    )

    try:
        transcription = await stt_service.transcribe(
            request_id=request_id,
            file_path=staged.path,
            filename=os.path.basename(staged.path),
        )
    except ServiceError as e:
        logger.error(f"[{request_id}] Transcription error: {security_manager.redact_secrets(str(e))}")
        return _service_error_response(request, "Failed to transcribe audio", e)
    finally:
        # Staged audio never outlives the request
        audio_staging.cleanup(staged.path)

    logger.info(f"[{request_id}] Transcription completed successfully")
    return TranscriptionResponse(transcription=transcription, timestamp=_utc_now())


@app.post(
    "/api/generate-soap",
    response_model=SOAPResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(RATE_LIMIT)
async def generate_soap(request: Request, payload: GenerateSOAPRequest):
    """Generates a validated SOAP note from a transcription."""
    request_id = request.state.request_id
    logger.info(f"[{request_id}] Generating SOAP note from transcription ({len(payload.transcription)} characters)")

    try:
        reply = await llm_service.generate_soap_reply(request_id, payload.transcription)
    except ServiceError as e:
        logger.error(f"[{request_id}] SOAP generation error: {security_manager.redact_secrets(str(e))}")
        return _service_error_response(request, "Failed to generate SOAP note", e)

    parsed = decode_reply(reply)
    if isinstance(parsed, HeuristicReply):
        logger.warning(f"[{request_id}] JSON parsing failed, using text extraction")
    soap_parse_count.labels(strategy=type(parsed).__name__).inc()

    note = normalize_sections(parsed.sections)
    logger.info(f"[{request_id}] SOAP note generated successfully")
    return SOAPResponse(soap=note, timestamp=_utc_now())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chartmind.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == Environment.DEVELOPMENT
    )
