"""Tests for the sync pipeline."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from themesync.config import AppConfig, StoreConfig
from themesync.core.errors import ConfigError, ShopifyApiError, ThemeNotFoundError
from themesync.runtime.pipeline import SheetEdit, ThemeSyncPipeline
from themesync.runtime.shopify_client import ShopifyClient


def _pipeline(
    app_config: AppConfig, client: Any, sink: Any = None, sleep: Any = None
) -> ThemeSyncPipeline:
    kwargs: dict[str, Any] = {"client_factory": lambda store: client, "sink": sink}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return ThemeSyncPipeline(app_config, **kwargs)


class TestSyncFiles:
    @pytest.mark.asyncio
    async def test_full_sync(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        fake_client: Any,
        recording_sink: Any,
    ) -> None:
        pipeline = _pipeline(app_config, fake_client, recording_sink)

        result = await pipeline.sync_files(
            store_config,
            ["README.md", "templates/index.json", "locales/en.default.json", "assets/logo.png"],
        )

        assert result.theme is not None
        assert result.theme.name == "tt-ca/DEV_STAGING"
        assert result.theme_files == [
            "templates/index.json",
            "locales/en.default.json",
            "assets/logo.png",
        ]
        assert fake_client.fetched == [(result.theme.id, result.theme_files)]
        assert len(result.records) == 9 + 4
        assert [r.file for r in result.records][:9] == ["templates/index.json"] * 9
        assert result.skipped_files == ["assets/logo.png"]

        call = recording_sink.calls[0]
        assert call["store_name"] == "DEV_STAGING"
        assert call["theme_name"] == "tt-ca/DEV_STAGING"
        assert call["records"] == result.records
        assert call["extra"] == {"updatedFiles": result.theme_files}
        assert result.delivery is not None and result.delivery.success

    @pytest.mark.asyncio
    async def test_records_follow_changed_file_order(
        self, app_config: AppConfig, store_config: StoreConfig, recording_sink: Any
    ) -> None:
        theme_nodes = [
            {"id": "gid://shopify/OnlineStoreTheme/1", "name": "Dawn", "role": "MAIN"},
            {"id": "gid://shopify/OnlineStoreTheme/2", "name": "tt-ca/DEV_STAGING", "role": "UNPUBLISHED"},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if "themes(first" in body["query"]:
                return httpx.Response(200, json={"data": {"themes": {"nodes": theme_nodes}}})
            names = sorted(body["variables"]["filenames"])
            nodes = [
                {"filename": name, "body": {"content": json.dumps({"greeting": {"hello": name}})}}
                for name in names
            ]
            return httpx.Response(200, json={"data": {"theme": {"files": {"nodes": nodes}}}})

        pipeline = ThemeSyncPipeline(
            app_config,
            client_factory=lambda store: ShopifyClient(
                store.shop_domain, "shpat_token", transport=httpx.MockTransport(handler)
            ),
            sink=recording_sink,
        )

        result = await pipeline.sync_files(store_config, ["locales/zz.json", "locales/aa.json"])

        assert [r.file for r in result.records] == ["locales/zz.json", "locales/aa.json"]
        assert recording_sink.calls[0]["records"] == result.records

    @pytest.mark.asyncio
    async def test_no_theme_files_skips_shopify(
        self, app_config: AppConfig, store_config: StoreConfig, recording_sink: Any
    ) -> None:
        def factory(store: StoreConfig) -> Any:
            raise AssertionError("client should not be built")

        pipeline = ThemeSyncPipeline(app_config, client_factory=factory, sink=recording_sink)
        result = await pipeline.sync_files(store_config, ["README.md", "package.json"])

        assert result.theme is None
        assert result.records == []
        assert recording_sink.calls == []

    @pytest.mark.asyncio
    async def test_waits_before_fetching(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        fake_client: Any,
        recording_sink: Any,
    ) -> None:
        events: list[str] = []
        original_fetch = fake_client.fetch_file_contents

        async def sleep(delay: float) -> None:
            events.append(f"sleep {delay}")

        async def fetch(theme_id: str, filenames: list[str]) -> Any:
            events.append("fetch")
            return await original_fetch(theme_id, filenames)

        fake_client.fetch_file_contents = fetch
        app_config.sync.fetch_delay_seconds = 5.0
        pipeline = _pipeline(app_config, fake_client, recording_sink, sleep=sleep)

        await pipeline.sync_files(store_config, ["templates/index.json"])
        assert events == ["sleep 5.0", "fetch"]

    @pytest.mark.asyncio
    async def test_theme_not_found_propagates(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        fake_client: Any,
        recording_sink: Any,
    ) -> None:
        fake_client.themes = [t for t in fake_client.themes if t.name != "tt-ca/DEV_STAGING"]
        store = store_config.model_copy(update={"theme_name": "does-not-exist"})
        pipeline = _pipeline(app_config, fake_client, recording_sink)

        with pytest.raises(ThemeNotFoundError) as exc_info:
            await pipeline.sync_files(store, ["templates/index.json"])

        assert exc_info.value.shop_domain == store.shop_domain
        assert fake_client.fetched == []
        assert recording_sink.calls == []

    @pytest.mark.asyncio
    async def test_theme_name_override(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        fake_client: Any,
        recording_sink: Any,
    ) -> None:
        pipeline = _pipeline(app_config, fake_client, recording_sink)
        result = await pipeline.sync_files(
            store_config, ["templates/index.json"], theme_name="Dawn"
        )
        assert result.theme is not None
        assert result.theme.name == "Dawn"

    @pytest.mark.asyncio
    async def test_without_sink(
        self, store_config: StoreConfig, fake_client: Any
    ) -> None:
        config = AppConfig(stores=[store_config])
        config.sync.fetch_delay_seconds = 0
        pipeline = ThemeSyncPipeline(config, client_factory=lambda store: fake_client)

        result = await pipeline.sync_files(store_config, ["templates/index.json"])
        assert len(result.records) == 9
        assert result.delivery is None

    @pytest.mark.asyncio
    async def test_default_client_needs_token(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv(store_config.token_env, raising=False)
        pipeline = ThemeSyncPipeline(app_config)
        with pytest.raises(ConfigError):
            await pipeline.sync_files(store_config, ["templates/index.json"])

    @pytest.mark.asyncio
    async def test_result_to_dict(
        self,
        app_config: AppConfig,
        store_config: StoreConfig,
        fake_client: Any,
        recording_sink: Any,
    ) -> None:
        pipeline = _pipeline(app_config, fake_client, recording_sink)
        result = await pipeline.sync_files(store_config, ["config/settings_data.json"])

        data = result.to_dict()
        assert data["records"] == 7
        assert data["theme"]["role"] == "UNPUBLISHED"
        assert data["delivery"]["rows_delivered"] == 7
        json.dumps(data)


class TestApplySheetEdit:
    @pytest.mark.asyncio
    async def test_applies_and_upserts(
        self, app_config: AppConfig, store_config: StoreConfig, fake_client: Any
    ) -> None:
        pipeline = _pipeline(app_config, fake_client)
        edit = SheetEdit(
            store_name="DEV_STAGING",
            file="templates/index.json",
            section="hero",
            block="button-1",
            setting="label",
            value="Buy now",
        )

        result = await pipeline.apply_sheet_edit(store_config, edit)

        assert result.applied
        assert result.theme.name == "tt-ca/DEV_STAGING"
        theme_id, filename, document = fake_client.upserts[0]
        assert theme_id == result.theme.id
        assert filename == "templates/index.json"
        assert document["sections"]["hero"]["blocks"]["button-1"]["settings"]["label"] == "Buy now"

    @pytest.mark.asyncio
    async def test_missing_section_is_not_applied(
        self, app_config: AppConfig, store_config: StoreConfig, fake_client: Any
    ) -> None:
        pipeline = _pipeline(app_config, fake_client)
        edit = SheetEdit("DEV_STAGING", "templates/index.json", "footer", "", "x", 1)

        result = await pipeline.apply_sheet_edit(store_config, edit)

        assert not result.applied
        assert "footer" in result.message
        assert fake_client.upserts == []

    @pytest.mark.asyncio
    async def test_missing_file(
        self, app_config: AppConfig, store_config: StoreConfig, fake_client: Any
    ) -> None:
        pipeline = _pipeline(app_config, fake_client)
        edit = SheetEdit("DEV_STAGING", "templates/missing.json", "hero", "", "x", 1)
        with pytest.raises(ShopifyApiError, match="templates/missing.json"):
            await pipeline.apply_sheet_edit(store_config, edit)

    @pytest.mark.asyncio
    async def test_unparseable_file(
        self, app_config: AppConfig, store_config: StoreConfig, fake_client: Any
    ) -> None:
        fake_client.files["templates/broken.json"] = "not json"
        pipeline = _pipeline(app_config, fake_client)
        edit = SheetEdit("DEV_STAGING", "templates/broken.json", "hero", "", "x", 1)
        with pytest.raises(ShopifyApiError, match="not valid JSON"):
            await pipeline.apply_sheet_edit(store_config, edit)
