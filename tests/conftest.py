"""Shared pytest fixtures for themesync tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from themesync.config import AppConfig, BranchConfig, SinkConfig, StoreConfig, SyncConfig
from themesync.core.models import SettingRecord, ThemeCandidate, ThemeFileContent, ThemeRole
from themesync.runtime.sheet_sink import ChunkResult, DeliveryReport

TOKEN_ENV = "THEMESYNC_TEST_TOKEN"
SHOPIFY_SECRET_ENV = "THEMESYNC_TEST_SHOPIFY_SECRET"


# =============================================================================
# Fakes
# =============================================================================


class FakeShopifyClient:
    """In-memory stand-in for ShopifyClient."""

    def __init__(self, themes: Sequence[ThemeCandidate], files: dict[str, str | None]) -> None:
        self.themes = list(themes)
        self.files = dict(files)
        self.fetched: list[tuple[str, list[str]]] = []
        self.upserts: list[tuple[str, str, dict[str, Any]]] = []

    async def list_themes(self) -> list[ThemeCandidate]:
        return list(self.themes)

    async def fetch_file_contents(
        self, theme_id: str, filenames: list[str]
    ) -> list[ThemeFileContent]:
        self.fetched.append((theme_id, list(filenames)))
        return [ThemeFileContent(name, self.files[name]) for name in filenames if name in self.files]

    async def upsert_theme_file(
        self, theme_id: str, filename: str, document: dict[str, Any]
    ) -> list[str]:
        self.upserts.append((theme_id, filename, document))
        return [filename]


class RecordingSink:
    """Sheet sink that records deliveries instead of posting them."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def deliver(
        self,
        records: Sequence[SettingRecord],
        *,
        store_name: str,
        theme_name: str,
        extra: dict[str, Any] | None = None,
    ) -> DeliveryReport:
        self.calls.append(
            {
                "records": list(records),
                "store_name": store_name,
                "theme_name": theme_name,
                "extra": extra,
            }
        )
        if not records:
            return DeliveryReport()
        return DeliveryReport(chunks=[ChunkResult(index=0, rows=len(records), attempts=1)])


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _restore_themesync_logger() -> Iterator[None]:
    """Undo handlers installed by setup_logging (CLI commands call it)."""
    logger = logging.getLogger("themesync")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


# =============================================================================
# Paths and fixture files
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def theme_files_dir(fixtures_dir: Path) -> Path:
    """Return path to sample theme files."""
    return fixtures_dir / "theme_files"


@pytest.fixture
def read_theme_file(theme_files_dir: Path) -> Callable[[str], str]:
    def _read(name: str) -> str:
        return (theme_files_dir / name).read_text(encoding="utf-8")

    return _read


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(
        store_name="DEV_STAGING",
        shop_domain="tt-dev-staging.myshopify.com",
        theme_name="tt-ca/DEV_STAGING",
        token_env=TOKEN_ENV,
        webhook_secret_env=SHOPIFY_SECRET_ENV,
        tracked_files=["templates/index.json", "config/settings_data.json"],
    )


@pytest.fixture
def app_config(store_config: StoreConfig) -> AppConfig:
    return AppConfig(
        stores=[store_config],
        branches=[BranchConfig(branch="DEV_STAGING", store="DEV_STAGING")],
        sink=SinkConfig(url="https://sheets.example.test/exec", initial_delay=0),
        sync=SyncConfig(fetch_delay_seconds=0),
    )


@pytest.fixture
def secrets_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Populate every secret the default test configuration refers to."""
    values = {
        TOKEN_ENV: "shpat_test_token",
        SHOPIFY_SECRET_ENV: "shopify-secret",
        "GITHUB_WEBHOOK_SECRET": "github-secret",
        "SHEET_EDIT_TOKEN": "sheet-token",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


# =============================================================================
# Themes
# =============================================================================


@pytest.fixture
def themes() -> list[ThemeCandidate]:
    return [
        ThemeCandidate("gid://shopify/OnlineStoreTheme/1", "Dawn", ThemeRole.MAIN),
        ThemeCandidate("gid://shopify/OnlineStoreTheme/2", "tt-ca/DEV_STAGING", ThemeRole.UNPUBLISHED),
        ThemeCandidate("gid://shopify/OnlineStoreTheme/3", "tt-ca/ROW", ThemeRole.DEVELOPMENT),
    ]


@pytest.fixture
def fake_client(
    themes: list[ThemeCandidate], read_theme_file: Callable[[str], str]
) -> FakeShopifyClient:
    return FakeShopifyClient(
        themes,
        {
            "templates/index.json": read_theme_file("index.json"),
            "config/settings_data.json": read_theme_file("settings_data.json"),
            "locales/en.default.json": read_theme_file("en.default.json"),
            "assets/logo.png": None,
        },
    )


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()
