"""Mod metadata (Steam Workshop) client.

Batched lookups against GetPublishedFileDetails. Items are requested in
chunks, never one by one, and failures collapse to an empty result.
"""

import asyncio
import logging
import os
from typing import Any

import httpx

from server_intel.consts import (
    STEAM_API_KEY_ENV,
    WORKSHOP_API_URL,
    WORKSHOP_BATCH_SIZE,
    WORKSHOP_TIMEOUT,
)
from server_intel.models.model_mod import WorkshopItem

logger = logging.getLogger(__name__)

# Per-item result code for a published, visible file
RESULT_OK = 1


def format_file_size(size_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> "1.5 KB"."""
    if size_bytes <= 0:
        return "0 B"
    value = float(size_bytes)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{round(value, 2):g} GB"


def _to_item(raw: dict[str, Any]) -> WorkshopItem:
    return WorkshopItem(
        workshop_id=str(raw.get("publishedfileid", "")),
        title=raw.get("title") or "",
        description=raw.get("description") or "",
        tags=[t["tag"] for t in raw.get("tags") or [] if isinstance(t, dict) and t.get("tag")],
        file_size=int(raw.get("file_size") or 0),
        preview_url=raw.get("preview_url") or None,
        subscriber_count=int(raw.get("subscriptions") or raw.get("lifetime_subscriptions") or 0),
        time_created=raw.get("time_created"),
        time_updated=raw.get("time_updated"),
        creator=raw.get("creator"),
    )


class WorkshopClient:
    """Async client for workshop item metadata."""

    def __init__(
        self,
        api_key: str | None = None,
        url: str = WORKSHOP_API_URL,
        batch_size: int = WORKSHOP_BATCH_SIZE,
        timeout: float = WORKSHOP_TIMEOUT,
    ):
        """Initialize workshop client.

        Args:
            api_key: Optional key. None = read from env (STEAM_API_KEY). The
                endpoint is public, so a missing key is not an error.
            url: GetPublishedFileDetails endpoint.
            batch_size: Max ids per request.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key if api_key is not None else os.getenv(STEAM_API_KEY_ENV, "")
        self.url = url
        self.batch_size = batch_size
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _fetch_chunk(self, workshop_ids: list[str]) -> list[WorkshopItem]:
        form: dict[str, Any] = {"itemcount": str(len(workshop_ids))}
        for index, workshop_id in enumerate(workshop_ids):
            form[f"publishedfileids[{index}]"] = workshop_id
        if self.api_key:
            form["key"] = self.api_key

        client = await self._get_client()
        try:
            response = await client.post(self.url, data=form)
        except httpx.HTTPError as e:
            logger.warning(f"Workshop request failed: {e}")
            return []

        if not response.is_success:
            logger.warning(f"Workshop API returned {response.status_code}")
            return []

        try:
            details = response.json()["response"]["publishedfiledetails"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Invalid workshop response: {e}")
            return []

        return [_to_item(raw) for raw in details if raw.get("result") == RESULT_OK]

    async def get_items(self, workshop_ids: list[str]) -> list[WorkshopItem]:
        """Fetch metadata for many items in batched requests.

        Unknown, hidden or banned items are silently absent from the result.
        """
        unique_ids = list(dict.fromkeys(i for i in workshop_ids if i))
        if not unique_ids:
            return []

        chunks = [unique_ids[i : i + self.batch_size] for i in range(0, len(unique_ids), self.batch_size)]
        items: list[WorkshopItem] = []
        for chunk in chunks:
            items.extend(await self._fetch_chunk(chunk))

        logger.debug(f"Fetched {len(items)}/{len(unique_ids)} workshop items in {len(chunks)} requests")
        return items

    async def get_item(self, workshop_id: str) -> WorkshopItem | None:
        items = await self.get_items([workshop_id])
        return items[0] if items else None


async def main():
    """Example usage of WorkshopClient."""
    client = WorkshopClient()
    try:
        items = await client.get_items(["1559212036", "1828439124"])
        for item in items:
            print(f"{item.workshop_id}: {item.title} ({format_file_size(item.file_size)}, {item.subscriber_count:,} subs)")
    finally:
        await client.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
