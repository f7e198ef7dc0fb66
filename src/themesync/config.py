"""
Configuration models for themesync.

Configuration is loaded once from ``themesync.toml`` at process start and
passed to the components that need it. Secrets are never stored in the file;
stores name the environment variables that hold them.

Example::

    [github]
    secret_env = "GITHUB_WEBHOOK_SECRET"

    [sink]
    url = "https://script.google.com/macros/s/.../exec"

    [[stores]]
    store_name = "DEV_STAGING_PROMO"
    shop_domain = "transformer-table-dev-staging.myshopify.com"
    theme_name = "tt-ca/DEV_STAGING_PROMO"
    token_env = "DEV_STAGING_ACCESS_TOKEN"

    [[branches]]
    branch = "DEV_STAGING_PROMO"
    store = "DEV_STAGING_PROMO"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from themesync.core.errors import ConfigError

CONFIG_ENV_VAR = "THEMESYNC_CONFIG"
SINK_URL_ENV_VAR = "APPS_SCRIPT_URL"
DEFAULT_CONFIG_PATH = Path("themesync.toml")


# =============================================================================
# Sub-configuration Models
# =============================================================================


class StoreConfig(BaseModel):
    """A Shopify store and the theme it syncs."""

    store_name: str
    shop_domain: str
    theme_name: str
    token_env: str
    webhook_secret_env: str | None = None
    # Files synced when Shopify reports a theme update (the webhook carries no file list).
    tracked_files: list[str] = Field(default_factory=list)

    def access_token(self) -> str:
        """Read the Admin API token from the environment."""
        token = os.environ.get(self.token_env)
        if not token:
            raise ConfigError(f"Access token not found in environment variable: {self.token_env}")
        return token

    @property
    def has_token(self) -> bool:
        return bool(os.environ.get(self.token_env))

    def webhook_secret(self) -> str | None:
        if not self.webhook_secret_env:
            return None
        return os.environ.get(self.webhook_secret_env) or None


class BranchConfig(BaseModel):
    """Maps a Git branch onto a configured store."""

    branch: str
    store: str


class SinkConfig(BaseModel):
    """Spreadsheet sink delivery settings."""

    url: str | None = None
    batch_size: int = Field(default=200, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)
    timeout: float = Field(default=30.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.url)


class SyncConfig(BaseModel):
    """Pipeline behaviour."""

    # Shopify's file store lags behind GitHub pushes; wait before fetching.
    fetch_delay_seconds: float = Field(default=5.0, ge=0)
    api_version: str = "2025-01"
    request_timeout: float = Field(default=30.0, gt=0)
    sheet_edits_enabled: bool = True
    # Bearer token the spreadsheet sends with edits; edits are refused while unset.
    sheet_token_env: str = "SHEET_EDIT_TOKEN"

    def sheet_token(self) -> str | None:
        return os.environ.get(self.sheet_token_env) or None


class GitHubConfig(BaseModel):
    """GitHub webhook settings."""

    secret_env: str = "GITHUB_WEBHOOK_SECRET"


# =============================================================================
# Main Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Complete themesync configuration."""

    stores: list[StoreConfig] = Field(default_factory=list)
    branches: list[BranchConfig] = Field(default_factory=list)
    sink: SinkConfig = Field(default_factory=SinkConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)

    @model_validator(mode="after")
    def _check_branch_stores(self) -> AppConfig:
        names = {s.store_name for s in self.stores}
        for branch in self.branches:
            if branch.store not in names:
                raise ValueError(
                    f"Branch '{branch.branch}' references unknown store '{branch.store}'"
                )
        return self

    def store(self, store_name: str) -> StoreConfig | None:
        for store in self.stores:
            if store.store_name == store_name:
                return store
        return None

    def store_for_branch(self, branch: str | None) -> StoreConfig | None:
        if not branch:
            return None
        for entry in self.branches:
            if entry.branch == branch:
                return self.store(entry.store)
        return None

    def store_for_domain(self, shop_domain: str | None) -> StoreConfig | None:
        if not shop_domain:
            return None
        for store in self.stores:
            if store.shop_domain == shop_domain:
                return store
        return None

    def github_secret(self) -> str | None:
        return os.environ.get(self.github.secret_env) or None

    def summary(self) -> dict[str, Any]:
        """Configuration overview without secrets."""
        branches = []
        for entry in self.branches:
            store = self.store(entry.store)
            branches.append(
                {
                    "branch": entry.branch,
                    "store_name": entry.store,
                    "shop_domain": store.shop_domain if store else None,
                    "theme_name": store.theme_name if store else None,
                }
            )
        return {
            "branches": branches,
            "stores": [
                {
                    "store_name": s.store_name,
                    "shop_domain": s.shop_domain,
                    "theme_name": s.theme_name,
                    "has_token": s.has_token,
                    "tracked_files": len(s.tracked_files),
                }
                for s in self.stores
            ],
            "webhook_type": "GitHub",
            "has_github_secret": self.github_secret() is not None,
            "sink_configured": self.sink.is_configured,
        }


def load_config(path: Path | str | None = None) -> AppConfig:
    """
    Load configuration from a TOML file.

    The path defaults to ``$THEMESYNC_CONFIG`` or ``./themesync.toml``.
    ``$APPS_SCRIPT_URL`` overrides ``sink.url``.

    Raises:
        ConfigError: File missing or invalid
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    path = Path(path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    sink_url = os.environ.get(SINK_URL_ENV_VAR)
    if sink_url:
        data.setdefault("sink", {})["url"] = sink_url

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
