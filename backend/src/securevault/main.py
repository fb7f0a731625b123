"""SecureVault API - main FastAPI application

Secure document vault for regulated (KYC) workflows.

This module creates and configures the FastAPI application, including:
- Routers (auth, documents, audit, gdpr, observability)
- Middleware (request ID correlation and request logging, CORS)
- Exception handlers mapping the error taxonomy to one structured body
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.responses import error_body
from .audit.router import router as audit_router
from .auth.router import router as auth_router
from .config import get_settings
from .database import create_all_tables
from .dependencies import audit_service_for_app, storage_for_app
from .documents.router import router as documents_router
from .errors import VaultError
from .gdpr.router import router as gdpr_router
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: prepare blob storage, optionally create tables, check the OTP channel."""
    logger.info("SecureVault API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    if settings.AUTO_CREATE_TABLES:
        create_all_tables()
        logger.info("Database tables created")

    await storage_for_app(app).ensure_ready()

    if settings.is_production and settings.OTP_DELIVERY.lower() == "response":
        logger.warning(
            "OTP_DELIVERY=response in production: one-time codes are returned in login responses"
        )

    yield

    logger.info("SecureVault API shutting down...")


def _validation_details(errors) -> List[Dict[str, Any]]:
    # Raw pydantic errors may carry exception objects in "ctx"
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in errors
    ]


def _record_internal_error(request: Request, status_code: int, message: str) -> None:
    audit_service_for_app(request.app).record(
        "INTERNAL_SERVER_ERROR",
        details={
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "message": message,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
        logger.info(
            f"{exc.error} on {request.method} {request.url.path}: {exc.message}"
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                exc.status_code, exc.error, exc.message,
                request.url.path, request.method, exc.details,
            ),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = _validation_details(exc.errors())
        logger.warning(
            f"Validation error on {request.method} {request.url.path}",
            extra={"errors": details},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                400, "Bad Request", "Request validation failed",
                request.url.path, request.method, details,
            ),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        details = _validation_details(exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(
                400, "Bad Request", "Request validation failed",
                request.url.path, request.method, details,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = {404: "Not Found", 405: "Method Not Allowed"}.get(exc.status_code, "Error")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                exc.status_code, error, str(exc.detail),
                request.url.path, request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Log the full error but return a generic message."""
        logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
        message = "A database error occurred. Please try again later."
        _record_internal_error(request, 500, message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                500, "Internal Server Error", message,
                request.url.path, request.method,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        message = "An unexpected error occurred. Please try again later."
        _record_internal_error(request, 500, message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                500, "Internal Server Error", message,
                request.url.path, request.method,
            ),
        )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    docs_enabled = not settings.is_production
    application = FastAPI(
        title="SecureVault API",
        description="Secure document vault with OTP login, verified uploads and revocable sharing",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Request ID Middleware (must be first for proper correlation)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(application)

    application.include_router(observability_router)
    application.include_router(auth_router, prefix="/api/v1")
    application.include_router(documents_router, prefix="/api/v1")
    application.include_router(audit_router, prefix="/api/v1")
    application.include_router(gdpr_router, prefix="/api/v1")

    return application


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "securevault.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower(),
    )
