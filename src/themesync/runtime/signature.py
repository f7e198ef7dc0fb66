"""
Webhook signature verification.

GitHub signs the raw body with HMAC-SHA256 and sends ``sha256=<hex digest>``
in ``X-Hub-Signature-256``. Shopify sends the base64 digest in
``X-Shopify-Hmac-Sha256``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

GITHUB_SIGNATURE_PREFIX = "sha256="


def github_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"{GITHUB_SIGNATURE_PREFIX}{digest}"


def shopify_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_github_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check ``X-Hub-Signature-256`` against the raw request body."""
    if not signature or not secret:
        logger.warning(
            "Missing signature or secret (has signature: %s, has secret: %s)",
            bool(signature),
            bool(secret),
        )
        return False

    expected = github_signature(body, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())


def verify_shopify_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Check ``X-Shopify-Hmac-Sha256`` against the raw request body."""
    if not signature or not secret:
        logger.warning("Missing Shopify signature or secret")
        return False

    expected = shopify_signature(body, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())
