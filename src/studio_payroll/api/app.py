"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studio_payroll import __version__
from studio_payroll.api.routes import health_router, payroll_router
from studio_payroll.config import Settings
from studio_payroll.database import Database
from studio_payroll.services.errors import (
    ExternalFailureError,
    InvalidStateError,
    NotFoundError,
    PayrollError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[PayrollError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    ExternalFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_body(error: str, code: str | None, context: dict | None = None) -> dict:
    return {"success": False, "error": error, "code": code, "context": context}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await app.state.database.create_all()
    yield
    # Shutdown
    await app.state.database.dispose()


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Studio Payroll API",
        description="Salary period, slip and sync engine for studio staff payroll",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors to HTTP status codes."""
        status_code = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
            status.HTTP_400_BAD_REQUEST,
        )
        if exc.retryable:
            logger.warning("Retryable failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(str(exc), exc.code, {"retryable": exc.retryable}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), "HTTP_ERROR"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=_error_body(
                "Request validation failed",
                "VALIDATION_ERROR",
                {"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("An unexpected error occurred", "INTERNAL_ERROR"),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")

    return app

