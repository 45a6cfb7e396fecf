"""
Main FastAPI application for polytrans.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog
import uvicorn

from .api.routes import router as api_router
from .config import AppConfig, load_config
from .exceptions import (
    NoUsableConfigurationError,
    ProviderError,
    RequestAbortedError,
    RequestTimeoutError,
    UnsupportedProviderError,
)
from .service import TranslationService
from .utils.http_client import HTTPClient

from . import __version__


def configure_logging(debug: bool = False) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str, error_type: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": message,
                "type": error_type,
                "code": code,
            }
        },
    )


def create_app(
    config: Optional[AppConfig] = None,
    http_client: Optional[HTTPClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Configuration; loaded from file/environment at startup if omitted
        http_client: Outbound HTTP client; created from config if omitted

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting polytrans")

        app_config = config or load_config()
        service = TranslationService(app_config, http_client=http_client)
        app.state.config = app_config
        app.state.translation_service = service
        app.state.is_shutting_down = False

        logger.info(
            "Application startup completed",
            port=app_config.port,
            configured_providers=app_config.api_keys.configured(),
            routing_depth=app_config.routing_depth(),
        )
        try:
            yield
        finally:
            logger.info("Shutting down polytrans")
            app.state.is_shutting_down = True
            await service.aclose()
            logger.info("Application shutdown completed")

    app = FastAPI(
        title="polytrans",
        description="Vendor-independent translation and linguistic analysis API",
        version=__version__,
        lifespan=lifespan,
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
        """Log all incoming requests."""
        start_time = asyncio.get_running_loop().time()

        request_id = request.headers.get("X-Request-ID", "unknown")
        method = request.method
        path = request.url.path

        logger.info("Request started", request_id=request_id, method=method, path=path)

        response = await call_next(request)
        process_time = asyncio.get_running_loop().time() - start_time

        logger.info(
            "Request completed",
            request_id=request_id,
            method=method,
            path=path,
            status_code=response.status_code,
            process_time=f"{process_time:.3f}s",
        )

        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response

    @app.exception_handler(RequestAbortedError)
    async def aborted_handler(request: Request, exc: RequestAbortedError):
        """Cancellation is a clean outcome, not an error."""
        logger.info("Operation aborted", path=request.url.path, reason=exc.reason)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "aborted", "reason": exc.reason},
        )

    @app.exception_handler(NoUsableConfigurationError)
    async def no_key_handler(request: Request, exc: NoUsableConfigurationError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), "configuration_error", "no_api_key")

    @app.exception_handler(UnsupportedProviderError)
    async def unsupported_provider_handler(request: Request, exc: UnsupportedProviderError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), "configuration_error", "unsupported_provider")

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        logger.warning(
            "Provider error",
            path=request.url.path,
            provider=exc.provider,
            status_code=exc.status_code,
            error=exc.message,
        )
        if isinstance(exc, RequestTimeoutError):
            return _error(status.HTTP_504_GATEWAY_TIMEOUT, str(exc), "timeout_error", "timeout")
        if exc.is_auth_error:
            return _error(status.HTTP_401_UNAUTHORIZED, str(exc), "authentication_error", "invalid_api_key")
        if exc.is_congestion:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, str(exc), "rate_limit_error", "rate_limited")
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "provider_error", "provider_error")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            "internal_error",
            "internal_error",
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        if getattr(request.app.state, "is_shutting_down", False):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "shutting_down"},
            )

        app_config = getattr(request.app.state, "config", None)
        return {
            "status": "healthy",
            "version": __version__,
            "services": {
                "api": "healthy",
                "config": "healthy" if app_config else "unhealthy",
                "providers": "healthy" if app_config and app_config.api_keys.configured() else "unconfigured",
            },
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "polytrans",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "translate": "/v1/translate",
                "route_translate": "/v1/route/translate",
                "route_analyze": "/v1/route/analyze",
                "cancel": "/v1/slots/{slot}",
                "providers": "/v1/providers",
            },
        }

    app.include_router(api_router, prefix="/v1")

    return app


def main():
    """Main entry point for the application."""
    import argparse
    import os

    parser = argparse.ArgumentParser(description="polytrans API server")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to run the server on (overrides config)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    if args.config:
        os.environ["POLYTRANS_CONFIG_FILE"] = args.config

    config = load_config(args.config)
    configure_logging(config.debug)

    uvicorn.run(
        "polytrans.main:create_app",
        factory=True,
        host=args.host,
        port=args.port or config.port,
        reload=args.reload,
        log_config=None,
        access_log=True,
    )


if __name__ == "__main__":
    main()
