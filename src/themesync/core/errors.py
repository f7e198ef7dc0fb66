"""
Error types for theme resolution, extraction, delivery and configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from themesync.core.models import ThemeCandidate


class ThemeSyncError(Exception):
    """Base exception for all themesync errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ThemeNotFoundError(ThemeSyncError):
    """
    Raised when no candidate theme matches the requested name.

    Carries every candidate that was considered so operators can see which
    themes the store actually has.
    """

    def __init__(
        self,
        theme_name: str,
        candidates: Sequence[ThemeCandidate],
        *,
        shop_domain: str | None = None,
    ) -> None:
        self.theme_name = theme_name
        self.candidates = list(candidates)
        self.shop_domain = shop_domain
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        where = f" in store {self.shop_domain}" if self.shop_domain else ""
        if not self.candidates:
            return f'Theme "{self.theme_name}" not found{where}. No themes available.'
        available = ", ".join(f'"{c.name}" ({c.role_name})' for c in self.candidates)
        return f'Theme "{self.theme_name}" not found{where}. Available: {available}'

    def to_dict(self) -> dict[str, Any]:
        """Diagnostic payload for API responses."""
        return {
            "error": "Theme not found",
            "theme_name": self.theme_name,
            "shop_domain": self.shop_domain,
            "available_themes": [
                {"id": c.id, "name": c.name, "role": c.role_name} for c in self.candidates
            ],
        }


class ThemeFileParseError(ThemeSyncError):
    """
    Raised when a theme file's content cannot be parsed as JSON.

    Internal to the extractor: callers of ``extract_settings`` never see it.
    """

    def __init__(self, file_path: str, reason: str) -> None:
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Could not parse {file_path}: {reason}")


class DeliveryError(ThemeSyncError):
    """
    Raised when a chunk of rows could not be delivered to the sheet sink.

    ``transient`` marks rate-limit class failures that were retried.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (status: {self.status_code})"
        return self.message


class ShopifyApiError(ThemeSyncError):
    """Network, HTTP or GraphQL failure while talking to the Shopify Admin API."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConfigError(ThemeSyncError):
    """Missing or invalid configuration (unknown store, unset access token, ...)."""

    pass
