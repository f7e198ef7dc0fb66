"""
Spreadsheet sink.

Delivers extracted setting rows to the spreadsheet web app in fixed-size
chunks. Each chunk is retried with exponential backoff on rate-limit class
responses; a chunk that still fails is counted and delivery moves on to the
next one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from themesync.config import SinkConfig
from themesync.core.errors import DeliveryError
from themesync.core.models import SettingRecord

logger = logging.getLogger(__name__)

RETRY_ON_STATUS: frozenset[int] = frozenset({429, 500, 502, 503, 504})

SINK_ACTION = "webhook_theme_update"
ROW_COLUMNS = ("File Name", "Section Name", "Block Name", "Setting Name", "Setting Value")


@dataclass
class ChunkResult:
    """Outcome of delivering one chunk."""

    index: int
    rows: int
    attempts: int
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0

    @property
    def delivered(self) -> bool:
        return self.error is None


@dataclass
class DeliveryReport:
    """Partial-success summary of a delivery run."""

    chunks: list[ChunkResult] = field(default_factory=list)

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    @property
    def delivered_chunks(self) -> int:
        return sum(1 for c in self.chunks if c.delivered)

    @property
    def failed_chunks(self) -> int:
        return self.total_chunks - self.delivered_chunks

    @property
    def rows_delivered(self) -> int:
        return sum(c.rows for c in self.chunks if c.delivered)

    @property
    def errors(self) -> list[str]:
        return [f"chunk {c.index}: {c.error}" for c in self.chunks if c.error]

    @property
    def success(self) -> bool:
        return self.failed_chunks == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_chunks": self.total_chunks,
            "delivered_chunks": self.delivered_chunks,
            "failed_chunks": self.failed_chunks,
            "rows_delivered": self.rows_delivered,
            "errors": self.errors,
        }


def chunked(records: Sequence[SettingRecord], size: int) -> list[Sequence[SettingRecord]]:
    """Split records into consecutive chunks of at most ``size``."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [records[start : start + size] for start in range(0, len(records), size)]


def backoff_delay(config: SinkConfig, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``max_delay``."""
    return min(config.initial_delay * (config.exponential_base**attempt), config.max_delay)


class SheetSink:
    """
    Posts setting rows to the spreadsheet web app.

    Args:
        config: Sink settings (URL, batch size, retry policy)
        transport: Optional httpx transport for tests
        sleep: Awaitable sleep, replaced in tests to skip real backoff waits
    """

    def __init__(
        self,
        config: SinkConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not config.url:
            raise ValueError("Sheet sink URL is not configured")
        self._config = config
        self._url = config.url
        self._transport = transport
        self._sleep = sleep

    async def deliver(
        self,
        records: Sequence[SettingRecord],
        *,
        store_name: str,
        theme_name: str,
        extra: dict[str, Any] | None = None,
    ) -> DeliveryReport:
        """Deliver all records; never raises for a failed chunk."""
        report = DeliveryReport()
        chunks = chunked(records, self._config.batch_size)
        if not chunks:
            logger.info("No rows to deliver for %s", store_name)
            return report

        async with httpx.AsyncClient(
            timeout=self._config.timeout, transport=self._transport
        ) as client:
            for index, chunk in enumerate(chunks):
                payload = {
                    "action": SINK_ACTION,
                    "storeName": store_name,
                    "themeName": theme_name,
                    "columns": list(ROW_COLUMNS),
                    "rows": [r.to_row() for r in chunk],
                    "chunk": index,
                    "chunks": len(chunks),
                    "timestamp": datetime.now(UTC).isoformat(),
                    **(extra or {}),
                }
                report.chunks.append(await self._send_chunk(client, index, len(chunk), payload))

        logger.info(
            "Delivered %d/%d chunks (%d rows) for %s",
            report.delivered_chunks,
            report.total_chunks,
            report.rows_delivered,
            store_name,
        )
        return report

    async def _send_chunk(
        self,
        client: httpx.AsyncClient,
        index: int,
        rows: int,
        payload: dict[str, Any],
    ) -> ChunkResult:
        result = ChunkResult(index=index, rows=rows, attempts=0)
        start = time.monotonic()

        for attempt in range(self._config.max_attempts):
            result.attempts = attempt + 1
            try:
                await self._post(client, payload)
            except DeliveryError as e:
                result.status_code = e.status_code
                result.error = str(e)
                if not e.transient or attempt + 1 >= self._config.max_attempts:
                    break
                delay = backoff_delay(self._config, attempt)
                logger.warning(
                    "Sheet chunk %d failed (%s). Retrying in %.1fs (%d/%d)",
                    index,
                    e,
                    delay,
                    attempt + 1,
                    self._config.max_attempts,
                )
                await self._sleep(delay)
            else:
                result.error = None
                result.status_code = 200
                break

        if result.error:
            logger.error(
                "Sheet chunk %d failed after %d attempt(s): %s", index, result.attempts, result.error
            )
        result.elapsed_ms = (time.monotonic() - start) * 1000
        return result

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> None:
        try:
            response = await client.post(self._url, json=payload, follow_redirects=True)
        except httpx.TransportError as e:
            raise DeliveryError(f"Network error: {e}", transient=True) from e

        if response.status_code >= 400:
            raise DeliveryError(
                f"Sheet sink returned {response.reason_phrase or 'error'}",
                status_code=response.status_code,
                transient=response.status_code in RETRY_ON_STATUS,
            )

        # Apps Script reports handler failures as 200 with an error body.
        try:
            body = response.json()
        except ValueError:
            return
        if isinstance(body, dict) and body.get("error"):
            raise DeliveryError(
                f"Sheet sink error: {body.get('message') or body['error']}",
                status_code=response.status_code,
            )
