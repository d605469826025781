"""
FastAPI application factory and main app configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.errors import APIError, status_for_dictation_error
from .api.routers import dictation, health, notes
from .api.utils.responses import fail
from .core.config import get_settings
from .core.exceptions import ClinicScribeException
from .core.structured_logger import configure_logging
from .domain.errors import DictationError
from .middleware.request_context import RequestIDMiddleware, RequestLoggingMiddleware

logger = logging.getLogger("clinicscribe")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.app_env})")
    if not settings.notes_api.base_url:
        logger.warning("NOTES_API_BASE_URL is not set; note generation will fail")
    if not settings.records_api.enabled:
        logger.info("RECORDS_API_BASE_URL is not set; transcript auto-save is disabled")
    yield
    logger.info(f"Shutting down {settings.app_name}")


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or ""


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    app = FastAPI(
        title=settings.app_name,
        description="Live consultation dictation and AI clinical note generation",
        version=settings.app_version,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allowed_methods,
        allow_headers=settings.cors.allowed_headers,
        max_age=600,
    )
    app.add_middleware(RequestLoggingMiddleware)
    # Registered last so it runs first and the request id is bound for the logger
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(dictation.router)
    app.include_router(notes.router)

    @app.exception_handler(DictationError)
    async def dictation_error_handler(request: Request, exc: DictationError):
        status_code = status_for_dictation_error(exc.error_code)
        logging.getLogger("clinicscribe").warning(
            f"DictationError: {exc.error_code} ({status_code}) {exc.message} | request_id={_request_id(request)}"
        )
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "DICTATION_ERROR", exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(ClinicScribeException)
    async def infrastructure_error_handler(request: Request, exc: ClinicScribeException):
        logging.getLogger("clinicscribe").error(
            f"{type(exc).__name__}: {exc.message} | request_id={_request_id(request)}"
        )
        return JSONResponse(
            status_code=502,
            content=fail(request, exc.error_code or "INTERNAL_ERROR", exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logging.getLogger("clinicscribe").error(
            f"APIError: {exc.code} ({exc.http_status}) {exc.message} | request_id={_request_id(request)}"
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=fail(request, exc.code, exc.message, exc.details or {}).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        error_details = exc.errors()
        logging.getLogger("clinicscribe").error(
            f"ValidationError on {request.method} {request.url.path}: {len(error_details)} error(s) "
            f"| request_id={_request_id(request)}"
        )

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            error_messages.append(f"{loc}: {msg}")

        return JSONResponse(
            status_code=422,
            content=fail(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"errors": [{"loc": e.get("loc"), "msg": e.get("msg")} for e in error_details]},
            ).model_dump(),
        )

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "GET /health/",
                "ready": "GET /health/ready",
                "languages": "GET /dictation/languages",
                "dictation_socket": "WS /dictation/{consultation_id}/ws",
                "generate_notes": "POST /notes/generate",
            },
        }

    return app


# Create the app instance
app = create_app()
