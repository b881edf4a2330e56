import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.analysis import analyze_samples
from app.audio_io import decode_audio_bytes
from app.config import get_settings
from app.errors import (
    AnalysisAPIError,
    DegenerateBufferError,
    InputRejectedError,
    OversizedInputError,
)
from app.models import AnalysisResponse, ErrorResponse, HealthResponse

logger = logging.getLogger("music_analysis")

settings = get_settings()

app = FastAPI(title="Music Analysis API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Content-Security-Policy": "default-src 'self'; object-src 'none'; frame-src 'none'",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def _timestamp() -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _error_response(status_code: int, error: str, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message}, headers=headers)


@app.exception_handler(AnalysisAPIError)
async def analysis_error_handler(request: Request, exc: AnalysisAPIError):
    return _error_response(exc.status_code, exc.error, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # The only declared input is the ``audio`` upload, so any validation
    # failure means it was missing or not a file part.
    logger.info("[API] Rejected upload on %s: %s", request.url.path, exc.errors())
    return _error_response(
        400,
        "No audio file provided",
        'Please upload an audio file using the "audio" field',
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error_response(404, "Not found", "The requested resource was not found")
    if exc.status_code == 405:
        allow = (exc.headers or {}).get("Allow", "")
        methods = [m.strip() for m in allow.split(",") if m.strip() and m.strip() not in {"HEAD", "OPTIONS"}]
        verb = " or ".join(methods) or "other"
        return _error_response(405, "Method not allowed", f"Only {verb} requests are allowed", headers=exc.headers)
    return _error_response(exc.status_code, "Request failed", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[API] Unhandled error on %s", request.url.path)
    return _error_response(500, "Internal server error", "An unexpected error occurred")


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Lightweight liveness check that never touches the analysis stack."""

    return HealthResponse(timestamp=_timestamp())


def _run_analysis(data: bytes, filename: str) -> dict:
    decoded = decode_audio_bytes(data, filename)
    return analyze_samples(decoded.samples).to_dict()


@app.post(
    "/api/analyze",
    response_model=AnalysisResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(audio: Optional[UploadFile] = File(default=None)):
    """Decode an uploaded audio file and return tempo/key/mood estimates.

    The upload must arrive in the multipart ``audio`` field with an
    ``audio/*`` content type and stay under the configured size ceiling.
    """

    if audio is None:
        raise InputRejectedError(
            'Please upload an audio file using the "audio" field',
            error="No audio file provided",
        )

    try:
        content_type = (audio.content_type or "").lower()
        if not content_type.startswith("audio/"):
            raise InputRejectedError("Only audio files are allowed!")

        limit = settings.max_upload_bytes
        if audio.size is not None and audio.size > limit:
            raise OversizedInputError(f"File size must be less than {settings.max_upload_mb}MB")

        data = await audio.read(limit + 1)
        if len(data) > limit:
            raise OversizedInputError(f"File size must be less than {settings.max_upload_mb}MB")
    finally:
        await audio.close()

    file_name = audio.filename or "upload"
    file_size = len(data)
    logger.info("[API] Processing audio file: %s (%d bytes)", file_name, file_size)

    try:
        analysis = await run_in_threadpool(_run_analysis, data, file_name)
    except DegenerateBufferError as exc:
        logger.info("[API] Degenerate audio in %s: %s", file_name, exc)
        raise AnalysisAPIError(str(exc), error="Invalid audio") from exc
    except AnalysisAPIError:
        raise
    except Exception as exc:
        # 500 envelope raised inside the middleware stack so CORS headers apply.
        logger.exception("[API] Analysis failed for %s", file_name)
        raise AnalysisAPIError(
            "An unexpected error occurred",
            error="Internal server error",
            status_code=500,
        ) from exc

    return AnalysisResponse(
        file_name=file_name,
        file_size=file_size,
        analysis=analysis,
        timestamp=_timestamp(),
    )


# Registered after the GET/POST routes so a wrong-method request still
# reports the real method in its 405 Allow header.
@app.options("/api/health")
@app.options("/api/analyze")
async def preflight():
    # Bare OPTIONS without CORS request headers; real preflights are
    # answered by the CORS middleware before routing.
    return Response(status_code=200)


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""

    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("[API] Music Analysis API listening on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
