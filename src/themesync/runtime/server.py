"""
App factory for the themesync webhook service.

Usage::

    from themesync.config import load_config
    from themesync.runtime.server import create_app

    app = create_app(load_config())
    # uvicorn module:app

For deployment, ``themesync.runtime.server:create_app_from_env`` is an ASGI
factory (``uvicorn --factory``) that loads configuration from the environment.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from themesync.config import AppConfig, load_config
from themesync.runtime.exception_handlers import register_exception_handlers
from themesync.runtime.pipeline import ThemeSyncPipeline
from themesync.runtime.routes import router

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["Content-Type", "X-Hub-Signature-256", "X-GitHub-Event", "Authorization"]


def create_app(config: AppConfig, pipeline: ThemeSyncPipeline | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Loaded configuration
        pipeline: Pre-built pipeline (tests inject one with fake clients)

    Returns:
        FastAPI application
    """
    from themesync import __version__

    app = FastAPI(title="themesync", version=__version__)
    app.state.pipeline = pipeline or ThemeSyncPipeline(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    register_exception_handlers(app)
    app.include_router(router)

    logger.info(
        "Webhook service configured for %d stores, %d branches (sheet sink: %s)",
        len(config.stores),
        len(config.branches),
        "configured" if config.sink.is_configured else "not configured",
    )
    return app


def create_app_from_env() -> FastAPI:
    """ASGI factory: load configuration from ``$THEMESYNC_CONFIG`` / ``./themesync.toml``."""
    return create_app(load_config())


def run_app(
    config_path: Path | str | None = None,
    host: str = "127.0.0.1",
    port: int = 3000,
    log_level: str = "info",
) -> None:
    """Run the service under uvicorn."""
    import uvicorn

    app = create_app(load_config(config_path))
    uvicorn.run(app, host=host, port=port, log_level=log_level)
