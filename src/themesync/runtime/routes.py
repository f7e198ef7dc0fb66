"""
HTTP routes for the themesync service.

Provides:
- GET  /health               liveness
- GET  /config               configured branches and stores (no secrets)
- POST /webhook/github       GitHub push → sync changed theme files
- POST /webhook/theme-update Shopify theme update → sync the store's tracked files
- POST /sheet/edit           spreadsheet cell edit → write the setting to the theme
"""

from __future__ import annotations

import hmac
import json
import logging
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from themesync.core.paths import branch_from_ref, changed_files_from_push, filter_theme_files
from themesync.runtime.logging import Colors, get_logger, log_with_context
from themesync.runtime.pipeline import SheetEdit, ThemeSyncPipeline
from themesync.runtime.signature import verify_github_signature, verify_shopify_signature

logger = get_logger("WEBHOOK", Colors.WEBHOOK)

_started_at = time.monotonic()


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _pipeline(request: Request) -> ThemeSyncPipeline:
    pipeline: ThemeSyncPipeline = request.app.state.pipeline
    return pipeline


def _parse_json(body: bytes) -> dict[str, Any] | None:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


# =============================================================================
# Request Models
# =============================================================================


class SheetEditRequest(BaseModel):
    """Body of ``POST /sheet/edit``."""

    store_name: str
    theme_name: str | None = None
    file: str
    section: str
    block: str = ""
    setting: str
    value: Any = None


# =============================================================================
# Routes
# =============================================================================


router = APIRouter()


@router.get("/health")
async def health() -> dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "uptime": round(time.monotonic() - _started_at, 3),
    }


@router.get("/config")
async def config_info(request: Request) -> dict[str, Any]:
    return {**_pipeline(request).config.summary(), "timestamp": _timestamp()}


@router.post("/webhook/github")
async def github_webhook(request: Request) -> JSONResponse:
    """Handle a GitHub push: verify, map branch to store, sync changed theme files."""
    pipeline = _pipeline(request)
    body = await request.body()
    event = request.headers.get("x-github-event")
    signature = request.headers.get("x-hub-signature-256")

    logger.info("GitHub %s event received (%d bytes)", event, len(body))

    if event != "push":
        logger.info("Ignoring non-push event: %s", event)
        return JSONResponse(
            {"status": "ignored", "reason": "Not a push event", "event": event}
        )

    if not verify_github_signature(body, signature, pipeline.config.github_secret()):
        logger.warning("Webhook verification failed - responding with 401")
        return JSONResponse({"error": "Unauthorized - Invalid signature"}, status_code=401)

    payload = _parse_json(body)
    if payload is None:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    branch = branch_from_ref(payload.get("ref"))
    store = pipeline.config.store_for_branch(branch)
    if store is None:
        logger.info("No configuration found for branch: %s", branch)
        return JSONResponse(
            {"status": "ignored", "reason": "Branch not configured for sync", "branch": branch}
        )

    all_changed = changed_files_from_push(payload)
    repository = payload.get("repository")
    commits = payload.get("commits")
    theme_files = filter_theme_files(all_changed)
    log_with_context(
        logger,
        logging.INFO,
        f"Push to {branch}: {len(theme_files)} of {len(all_changed)} changed files are theme files",
        repository=repository.get("full_name") if isinstance(repository, dict) else None,
        branch=branch,
        store=store.store_name,
        commits=len(commits) if isinstance(commits, list) else 0,
        theme_files=theme_files,
    )

    if not theme_files:
        return JSONResponse(
            {
                "status": "success",
                "message": "No theme files to sync",
                "debug": {
                    "store_name": store.store_name,
                    "branch": branch,
                    "all_changed_files": len(all_changed),
                    "theme_files": 0,
                },
            }
        )

    result = await pipeline.sync_files(store, theme_files)
    return JSONResponse(
        {
            "status": "success",
            "message": "Theme files synced",
            "branch": branch,
            "result": result.to_dict(),
            "timestamp": _timestamp(),
        }
    )


@router.post("/webhook/theme-update")
async def shopify_theme_webhook(request: Request) -> JSONResponse:
    """Handle a Shopify ``themes/update`` webhook for the published theme."""
    pipeline = _pipeline(request)
    body = await request.body()
    payload = _parse_json(body) or {}
    shop_domain = (
        request.headers.get("x-shopify-shop-domain")
        or request.headers.get("x-shopify-shop")
        or payload.get("domain")
    )

    store = pipeline.config.store_for_domain(shop_domain)
    if store is None:
        logger.info("No configuration found for domain: %s", shop_domain)
        return JSONResponse(
            {"error": "Store not configured", "domain": shop_domain}, status_code=400
        )

    signature = request.headers.get("x-shopify-hmac-sha256")
    if not verify_shopify_signature(body, signature, store.webhook_secret()):
        logger.warning("Shopify webhook verification failed for %s", shop_domain)
        return JSONResponse({"error": "Unauthorized - Invalid signature"}, status_code=401)

    role = str(payload.get("role", ""))
    if role.lower() != "main":
        logger.info("Ignoring non-main theme: %s", role)
        return JSONResponse({"status": "ignored", "reason": "Not a main theme", "role": role})

    if not store.tracked_files:
        return JSONResponse({"status": "success", "message": "No relevant files to sync"})

    result = await pipeline.sync_files(
        store, store.tracked_files, theme_name=payload.get("name") or None
    )
    return JSONResponse(
        {
            "status": "success",
            "store_name": store.store_name,
            "theme_id": payload.get("id"),
            "result": result.to_dict(),
        }
    )


@router.post("/sheet/edit")
async def sheet_edit(request: Request, edit: SheetEditRequest) -> JSONResponse:
    """Write a single spreadsheet edit back to the store's theme."""
    pipeline = _pipeline(request)
    sync_config = pipeline.config.sync

    if not sync_config.sheet_edits_enabled:
        return JSONResponse(
            {"status": "disabled", "message": "Theme updates from the sheet are disabled"}
        )

    token = sync_config.sheet_token()
    auth = request.headers.get("authorization", "")
    provided = auth.removeprefix("Bearer ").strip() if auth.startswith("Bearer ") else ""
    if not token or not provided or not hmac.compare_digest(provided, token):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    store = pipeline.config.store(edit.store_name)
    if store is None:
        return JSONResponse(
            {"error": "Store not configured", "store_name": edit.store_name}, status_code=404
        )

    result = await pipeline.apply_sheet_edit(
        store,
        SheetEdit(
            store_name=edit.store_name,
            theme_name=edit.theme_name,
            file=edit.file,
            section=edit.section,
            block=edit.block,
            setting=edit.setting,
            value=edit.value,
        ),
    )
    if not result.applied:
        return JSONResponse(
            {"status": "not_found", "message": result.message}, status_code=404
        )
    return JSONResponse(
        {"status": "success", "message": result.message, "theme": result.theme.to_dict()}
    )
