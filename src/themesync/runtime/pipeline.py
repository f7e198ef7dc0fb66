"""
Theme sync pipeline.

Data flow::

    changed paths → filter theme files → list themes → resolve theme
        → fixed pre-fetch delay → fetch file contents → extract settings
        → deliver rows to the spreadsheet sink

Spreadsheet edits flow the other way: fetch the file, write the setting,
upsert the file.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from themesync.config import AppConfig, StoreConfig
from themesync.core.errors import ShopifyApiError, ThemeFileParseError
from themesync.core.extractor import extract_many, parse_theme_json
from themesync.core.models import SettingRecord, ThemeCandidate, ThemeFileContent
from themesync.core.paths import filter_theme_files
from themesync.core.resolver import resolve_theme
from themesync.core.writer import apply_setting
from themesync.runtime.logging import Colors, get_logger, log_with_context
from themesync.runtime.sheet_sink import DeliveryReport, SheetSink
from themesync.runtime.shopify_client import ShopifyClient

logger = get_logger("SYNC", Colors.SYNC)

ClientFactory = Callable[[StoreConfig], ShopifyClient]


@dataclass
class SyncResult:
    """Summary of one sync run."""

    store_name: str
    theme: ThemeCandidate | None
    theme_files: list[str]
    files: list[ThemeFileContent] = field(default_factory=list)
    records: list[SettingRecord] = field(default_factory=list)
    delivery: DeliveryReport | None = None

    @property
    def skipped_files(self) -> list[str]:
        """Requested files that came back without text content or not at all."""
        with_content = {f.filename for f in self.files if f.content is not None}
        return [name for name in self.theme_files if name not in with_content]

    def to_dict(self) -> dict[str, Any]:
        return {
            "store_name": self.store_name,
            "theme": self.theme.to_dict() if self.theme else None,
            "theme_files": self.theme_files,
            "files_fetched": len(self.files),
            "skipped_files": self.skipped_files,
            "records": len(self.records),
            "delivery": self.delivery.to_dict() if self.delivery else None,
        }


@dataclass
class SheetEdit:
    """A single cell edit coming from the spreadsheet."""

    store_name: str
    file: str
    section: str
    block: str
    setting: str
    value: Any
    theme_name: str | None = None


@dataclass
class EditResult:
    applied: bool
    theme: ThemeCandidate
    message: str


class ThemeSyncPipeline:
    """
    Runs syncs for configured stores.

    Args:
        config: Application configuration
        client_factory: Builds a Shopify client for a store (tests inject fakes)
        sink: Spreadsheet sink; built from ``config.sink`` when omitted and configured
        sleep: Awaitable sleep used for the pre-fetch delay
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        client_factory: ClientFactory | None = None,
        sink: SheetSink | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or self._default_client
        if sink is None and config.sink.is_configured:
            sink = SheetSink(config.sink)
        self._sink = sink
        self._sleep = sleep

    @property
    def config(self) -> AppConfig:
        return self._config

    def _default_client(self, store: StoreConfig) -> ShopifyClient:
        return ShopifyClient(
            store.shop_domain,
            store.access_token(),
            api_version=self._config.sync.api_version,
            timeout=self._config.sync.request_timeout,
        )

    async def _resolve(
        self, client: ShopifyClient, store: StoreConfig, theme_name: str | None
    ) -> ThemeCandidate:
        themes = await client.list_themes()
        return resolve_theme(
            themes, theme_name or store.theme_name, shop_domain=store.shop_domain
        )

    async def sync_files(
        self,
        store: StoreConfig,
        changed_files: Sequence[str],
        *,
        theme_name: str | None = None,
    ) -> SyncResult:
        """
        Sync changed files of one store into the spreadsheet.

        Raises:
            ThemeNotFoundError: The configured theme does not exist in the store
            ShopifyApiError: Theme listing or file fetch failed
            ConfigError: The store's access token is not set
        """
        theme_files = filter_theme_files(changed_files)
        result = SyncResult(store_name=store.store_name, theme=None, theme_files=theme_files)
        if not theme_files:
            logger.info("No theme files to sync for %s", store.store_name)
            return result

        log_with_context(
            logger,
            logging.INFO,
            f"Processing {len(theme_files)} changed theme files from {store.shop_domain}",
            store=store.store_name,
            files=theme_files,
        )

        client = self._client_factory(store)
        result.theme = await self._resolve(client, store, theme_name)

        delay = self._config.sync.fetch_delay_seconds
        if delay > 0:
            logger.info("Waiting %.1fs for Shopify to pick up the push", delay)
            await self._sleep(delay)

        result.files = await client.fetch_file_contents(result.theme.id, theme_files)
        result.records = extract_many(result.files)

        if self._sink is None:
            logger.warning("Sheet sink not configured; %d rows not delivered", len(result.records))
        else:
            result.delivery = await self._sink.deliver(
                result.records,
                store_name=store.store_name,
                theme_name=result.theme.name,
                extra={"updatedFiles": theme_files},
            )

        log_with_context(
            logger,
            logging.INFO,
            f"Processed {len(result.records)} settings from {len(theme_files)} files",
            **result.to_dict(),
        )
        return result

    async def apply_sheet_edit(self, store: StoreConfig, edit: SheetEdit) -> EditResult:
        """
        Push one spreadsheet edit back to the theme file.

        Raises:
            ThemeNotFoundError: The theme does not exist in the store
            ShopifyApiError: The file is missing, unparseable or the upsert failed
        """
        client = self._client_factory(store)
        theme = await self._resolve(client, store, edit.theme_name)

        files = await client.fetch_file_contents(theme.id, [edit.file])
        file = next((f for f in files if f.filename == edit.file), None)
        if file is None or file.content is None:
            raise ShopifyApiError(f"File {edit.file} not found or has no content")

        try:
            document = parse_theme_json(file.content, edit.file)
        except ThemeFileParseError as e:
            raise ShopifyApiError(f"File {edit.file} is not valid JSON: {e}") from e

        where = f"{edit.section}.{edit.block or 'section'}.{edit.setting}"
        if not apply_setting(
            document, edit.file, edit.section, edit.block, edit.setting, edit.value
        ):
            return EditResult(False, theme, f"{where} not found in {edit.file}")

        await client.upsert_theme_file(theme.id, edit.file, document)
        logger.info("Updated %s in theme %s - %s", edit.file, theme.name, where)
        return EditResult(True, theme, f"Updated {where} in {edit.file}")
