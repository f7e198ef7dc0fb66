"""
themesync - relay Shopify theme setting changes into a spreadsheet.

A push to a configured Git branch triggers a sync: changed theme files are
fetched from the store's theme, flattened into setting rows, and delivered to
the spreadsheet sink.
"""

from __future__ import annotations

import re
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .core.errors import (
    ConfigError,
    DeliveryError,
    ShopifyApiError,
    ThemeFileParseError,
    ThemeNotFoundError,
    ThemeSyncError,
)
from .core.extractor import extract_many, extract_settings
from .core.models import SettingRecord, ThemeCandidate, ThemeFileContent, ThemeRole
from .core.resolver import resolve_theme


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("themesync")
    except Exception:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ConfigError",
    "DeliveryError",
    "ShopifyApiError",
    "ThemeFileParseError",
    "ThemeNotFoundError",
    "ThemeSyncError",
    "SettingRecord",
    "ThemeCandidate",
    "ThemeFileContent",
    "ThemeRole",
    "extract_settings",
    "extract_many",
    "resolve_theme",
]
