"""Tests for webhook signature verification."""

from __future__ import annotations

import base64
import hashlib
import hmac as hmac_mod

from themesync.runtime.signature import (
    github_signature,
    shopify_signature,
    verify_github_signature,
    verify_shopify_signature,
)

BODY = b'{"ref": "refs/heads/main"}'
SECRET = "s3cret"


class TestGitHubSignature:
    def test_format(self) -> None:
        expected = hmac_mod.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert github_signature(BODY, SECRET) == f"sha256={expected}"

    def test_accepts_valid(self) -> None:
        assert verify_github_signature(BODY, github_signature(BODY, SECRET), SECRET)

    def test_rejects_tampered_body(self) -> None:
        signature = github_signature(BODY, SECRET)
        assert not verify_github_signature(BODY + b" ", signature, SECRET)

    def test_rejects_wrong_secret(self) -> None:
        assert not verify_github_signature(BODY, github_signature(BODY, "other"), SECRET)

    def test_rejects_missing_signature_or_secret(self) -> None:
        signature = github_signature(BODY, SECRET)
        assert not verify_github_signature(BODY, None, SECRET)
        assert not verify_github_signature(BODY, signature, None)
        assert not verify_github_signature(BODY, "", SECRET)


class TestShopifySignature:
    def test_format(self) -> None:
        digest = hmac_mod.new(SECRET.encode(), BODY, hashlib.sha256).digest()
        assert shopify_signature(BODY, SECRET) == base64.b64encode(digest).decode()

    def test_accepts_valid(self) -> None:
        assert verify_shopify_signature(BODY, shopify_signature(BODY, SECRET), SECRET)

    def test_rejects_github_style_signature(self) -> None:
        assert not verify_shopify_signature(BODY, github_signature(BODY, SECRET), SECRET)

    def test_rejects_missing_secret(self) -> None:
        assert not verify_shopify_signature(BODY, shopify_signature(BODY, SECRET), None)
