"""
Shopify Admin GraphQL client.

Wraps the three theme operations the sync needs:

- list the store's themes (input to theme resolution)
- fetch the text content of theme files
- upsert a theme file (spreadsheet edits pushed back to the theme)
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from themesync.core.errors import ShopifyApiError
from themesync.core.models import ThemeCandidate, ThemeFileContent

logger = logging.getLogger(__name__)

# Admin API caps ``files(first:)`` at 50 per request.
FILES_PAGE_SIZE = 50

THEMES_QUERY = """
query getThemes {
  themes(first: 50) {
    nodes {
      id
      name
      role
    }
  }
}
"""

THEME_FILES_QUERY = """
query GetThemeFileContent($themeId: ID!, $filenames: [String!]!) {
  theme(id: $themeId) {
    id
    name
    role
    files(filenames: $filenames, first: 50) {
      nodes {
        filename
        body {
          ... on OnlineStoreThemeFileBodyText {
            content
          }
        }
      }
    }
  }
}
"""

THEME_FILES_UPSERT_MUTATION = """
mutation themeFilesUpsert($files: [OnlineStoreThemeFilesUpsertFileInput!]!, $themeId: ID!) {
  themeFilesUpsert(files: $files, themeId: $themeId) {
    upsertedThemeFiles { filename }
    userErrors { field message }
  }
}
"""


class ShopifyClient:
    """
    Async client for one store's Admin GraphQL API.

    Args:
        shop_domain: ``<store>.myshopify.com``
        access_token: Admin API access token
        api_version: Admin API version, e.g. ``2025-01``
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``)
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        *,
        api_version: str = "2025-01",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.shop_domain = shop_domain
        self._access_token = access_token
        self._api_version = api_version
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self._api_version}/graphql.json"

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run a GraphQL operation and return its ``data``.

        Raises:
            ShopifyApiError: Network failure, HTTP error status, invalid JSON
                or GraphQL ``errors``
        """
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }
        payload = {"query": query, "variables": variables or {}}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.RequestError as e:
            raise ShopifyApiError(f"Network error while calling Shopify: {e}") from e

        if response.status_code >= 400:
            raise ShopifyApiError(
                f"Shopify API request failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ShopifyApiError("Shopify API returned invalid JSON") from e

        if body.get("errors"):
            raise ShopifyApiError(f"Shopify GraphQL errors: {json.dumps(body['errors'])}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise ShopifyApiError("Shopify GraphQL response is missing data")
        return data

    async def list_themes(self) -> list[ThemeCandidate]:
        """List the store's themes in API order."""
        data = await self.graphql(THEMES_QUERY)
        nodes = (data.get("themes") or {}).get("nodes") or []
        themes = [ThemeCandidate.from_api(node) for node in nodes]
        logger.debug(
            "Available themes in %s: %s",
            self.shop_domain,
            ", ".join(f"{t.name} ({t.role_name})" for t in themes),
        )
        return themes

    async def fetch_file_contents(
        self, theme_id: str, filenames: list[str]
    ) -> list[ThemeFileContent]:
        """
        Fetch the text content of theme files.

        Files without a text body (images, fonts) come back with ``content=None``.
        Files the theme does not contain are absent from the result. The result
        follows the order of ``filenames``, whatever order the API answers in.
        """
        logger.info(
            "Fetching %d files from theme %s in store %s", len(filenames), theme_id, self.shop_domain
        )
        by_name: dict[str, ThemeFileContent] = {}
        for start in range(0, len(filenames), FILES_PAGE_SIZE):
            page = filenames[start : start + FILES_PAGE_SIZE]
            data = await self.graphql(
                THEME_FILES_QUERY, {"themeId": theme_id, "filenames": page}
            )
            theme = data.get("theme")
            if not theme:
                raise ShopifyApiError(f"Theme {theme_id} not found in store {self.shop_domain}")
            for node in (theme.get("files") or {}).get("nodes") or []:
                body = node.get("body") or {}
                filename = node["filename"]
                by_name[filename] = ThemeFileContent(filename=filename, content=body.get("content"))

        files = [by_name[name] for name in dict.fromkeys(filenames) if name in by_name]
        logger.info("Retrieved %d files from Shopify", len(files))
        return files

    async def upsert_theme_file(
        self, theme_id: str, filename: str, document: dict[str, Any]
    ) -> list[str]:
        """
        Write a JSON theme file.

        Returns:
            Filenames Shopify reports as upserted

        Raises:
            ShopifyApiError: The mutation returned ``userErrors``
        """
        body = {"type": "TEXT", "value": json.dumps(document, indent=2, ensure_ascii=False)}
        data = await self.graphql(
            THEME_FILES_UPSERT_MUTATION,
            {"themeId": theme_id, "files": [{"filename": filename, "body": body}]},
        )
        result = data.get("themeFilesUpsert") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            raise ShopifyApiError("; ".join(str(e.get("message")) for e in user_errors))
        return [f["filename"] for f in result.get("upsertedThemeFiles") or []]
