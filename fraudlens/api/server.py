from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from fraudlens import __version__
from fraudlens.config import settings
from fraudlens.exceptions import InvalidUrlError, RateLimitExceededError, ScanError
from fraudlens.pipelines.scan_pipeline import ScanOrchestrator
from fraudlens.schemas.scan_schemas import ErrorResponse, HealthResponse, ScanRequest, ScanResponse
from fraudlens.api.security import REQUEST_ID_HEADER, RequestIdMiddleware, check_scan_limit, get_request_id
from fraudlens.api.admin import router as admin_router
from fraudlens.utils.logging_config import StructuredLogger, init_logging
from fraudlens.utils.preprocessing import validate_url

# Initialize structured logging
init_logging()

logger = StructuredLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    request_id = get_request_id(request)
    body = ErrorResponse(
        message=message,
        details=details or None,
        timestamp=_now_iso(),
        requestId=request_id,
    )
    # Unhandled errors are rendered outside RequestIdMiddleware, so set the header here too
    headers = {**(headers or {}), REQUEST_ID_HEADER: request_id}
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def get_orchestrator(request: Request) -> ScanOrchestrator:
    return request.app.state.orchestrator


def create_app(orchestrator: Optional[ScanOrchestrator] = None) -> FastAPI:
    """
    Build the API. The scan orchestrator is created at startup unless one is
    passed in (tests inject one wired to fakes).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.orchestrator is None:
            app.state.orchestrator = ScanOrchestrator.build()
        await app.state.orchestrator.start()
        logger.info("FraudLens started", environment=settings.environment)
        try:
            yield
        finally:
            await app.state.orchestrator.shutdown()
            logger.info("FraudLens stopped")

    app = FastAPI(
        title="FraudLens API",
        version=__version__,
        description="Website fraud-risk scanner",
        docs_url="/docs" if settings.debug else None,  # Disable docs in production
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-ID"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        if hasattr(request.state, "rate_limit_remaining"):
            response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
            response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
        return response

    # Added last so it wraps everything above
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(ScanError)
    async def scan_error_handler(request: Request, exc: ScanError):
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {
                "Retry-After": str(exc.retry_after),
                "X-RateLimit-Limit": str(settings.max_urls_per_day),
                "X-RateLimit-Remaining": "0",
            }
        if exc.status_code >= 500:
            logger.error("Scan failed", error_type=exc.error_type, details=exc.details)
        return error_response(request, exc.status_code, exc.message, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            InvalidUrlError.default_message,
            details="; ".join(str(err.get("msg")) for err in exc.errors()),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", error=str(exc), exc_info=True)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An error occurred during the scan.",
            details=str(exc) if settings.debug else None,
        )

    app.include_router(admin_router)

    @app.get("/", include_in_schema=False)
    def index():
        return FileResponse(STATIC_DIR / "index.html")

    @app.get("/health", response_model=HealthResponse)
    def health():
        """Health check endpoint - no auth required."""
        return {"status": "ok", "timestamp": _now_iso()}

    @app.get("/status")
    def status_info(orchestrator: ScanOrchestrator = Depends(get_orchestrator)):
        """
        API status and configuration info.
        Useful for debugging and monitoring.
        """
        return {
            "status": "ok",
            "version": __version__,
            "environment": settings.environment,
            "rate_limit": {
                "max_scans": settings.max_urls_per_day,
                "window_seconds": settings.rate_limit_window,
            },
            "max_concurrent_requests": orchestrator.gate.limit,
            **orchestrator.stats(),
        }

    @app.post(
        "/api/scan",
        response_model=ScanResponse,
        responses={
            code: {"model": ErrorResponse}
            for code in (400, 408, 429, 500, 503)
        },
        dependencies=[Depends(check_scan_limit)],
    )
    async def scan(
        body: ScanRequest,
        request: Request,
        orchestrator: ScanOrchestrator = Depends(get_orchestrator),
    ):
        valid, normalized, message = validate_url(body.url or "")
        if not valid:
            raise InvalidUrlError(details=message)

        result = await orchestrator.scan(normalized, get_request_id(request))
        return result.to_dict()

    return app


app = create_app()
