"""
Exception handlers for the themesync service.

Maps domain errors onto JSON responses:
- ThemeNotFoundError: 404 with the candidate themes for troubleshooting
- ShopifyApiError: 502 (upstream failure)
- ConfigError: 500 (server misconfiguration)
- anything else: 500 with the error message
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from themesync.core.errors import ConfigError, ShopifyApiError, ThemeNotFoundError

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register standard exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ThemeNotFoundError)
    async def theme_not_found_handler(request: Request, exc: ThemeNotFoundError) -> Response:
        """Theme resolution failed; not retried, surfaced with diagnostics."""
        return JSONResponse(
            status_code=404,
            content={**exc.to_dict(), "message": str(exc), "timestamp": _timestamp()},
        )

    @app.exception_handler(ShopifyApiError)
    async def shopify_error_handler(request: Request, exc: ShopifyApiError) -> Response:
        logger.error("Shopify API error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={
                "error": "Shopify API error",
                "message": str(exc),
                "upstream_status": exc.status_code,
                "timestamp": _timestamp(),
            },
        )

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError) -> Response:
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Configuration error",
                "message": str(exc),
                "timestamp": _timestamp(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            content = {"error": "Not found", "path": request.url.path, "method": request.method}
        elif exc.status_code == 405:
            content = {"error": "Method not allowed", "method": request.method}
        else:
            content = {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc),
                "timestamp": _timestamp(),
            },
        )
