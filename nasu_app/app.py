"""
FastAPI application for the Minna no Nasu App backend.
Builds the app, registers the routers and turns every error into the shared JSON envelope.
"""

import sys
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .exceptions import NasuAppError
from .routers import ALL_ROUTERS
from .schemas import ErrorResponse
from .utils.validators import summarize_errors

# Configure logging
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

GENERIC_ERROR_MESSAGE = "サーバー側で予期せぬエラーが発生しました。"
SERVICE_NAME = "Minna no Nasu App API"
VERSION = "1.0.0"


def _error_body(error: str, code: str, details=None) -> dict:
    return ErrorResponse(error=error, code=code, details=details).model_dump()


async def handle_app_error(request: Request, exc: NasuAppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.details),
    )


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} invalid request: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=_error_body("入力内容に誤りがあります。", "VALIDATION_ERROR", summarize_errors(exc.errors())),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    message = GENERIC_ERROR_MESSAGE if settings.is_production() else str(exc)
    return JSONResponse(status_code=500, content=_error_body(message, "INTERNAL_ERROR"))


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=SERVICE_NAME,
        description="API routes for the Minna no Nasu community app",
        version=VERSION,
    )

    for router in ALL_ROUTERS:
        app.include_router(router)

    app.add_exception_handler(NasuAppError, handle_app_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.on_event("startup")
    async def startup_event():
        """Log configuration status (without exposing sensitive values)."""
        logger.info(f"{SERVICE_NAME} is starting up...")
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Firebase project: {settings.firebase_project_id or '(default credentials)'}")
        logger.info(f"Gemini API configured: {'Yes' if settings.get_gemini_api_key() else 'No'}")
        logger.info(f"Stripe configured: {'Yes' if settings.stripe_secret_key else 'No'}")
        logger.info(f"Stripe webhook secret configured: {'Yes' if settings.stripe_webhook_secret else 'No'}")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        logger.debug("Health check called")
        return {"status": "healthy", "service": "nasu-app-api"}

    return app


app = create_app()
