"""Catalog fetcher — one bounded GET against the partner catalog API.

Fail-open: a non-2xx status, a timeout, a transport error or an unreadable
body all yield an empty but successful snapshot. The failure is logged for
operators and never reaches API clients. Callers cache that empty snapshot
like any other, which keeps repeated failures from hammering the partner
inside one TTL window.
"""
import asyncio
import time
from typing import Any, List

import httpx
from pydantic import ValidationError as PydanticValidationError

from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.property_schema import CatalogSnapshot, PropertyItem, normalize_item

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def parse_catalog_payload(payload: Any) -> List[PropertyItem]:
    """Validate the partner payload (`{"success", "data": [...]}` or a bare list).

    Items that fail validation are skipped; every kept item is normalized once.
    """
    if isinstance(payload, dict):
        raw_items = payload.get("data") or []
    elif isinstance(payload, list):
        raw_items = payload
    else:
        raw_items = []

    items: List[PropertyItem] = []
    for raw in raw_items:
        try:
            items.append(normalize_item(PropertyItem.model_validate(raw)))
        except PydanticValidationError as exc:
            logger.warning(
                "Skipping catalog item that failed validation: %s",
                exc.errors()[0].get("msg") if exc.errors() else str(exc),
            )
    return items


class CatalogFetcher:
    """Fetches the full partner catalog with a fixed timeout."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch(self) -> CatalogSnapshot:
        started = time.perf_counter()
        try:
            # httpx applies `timeout` per phase; the outer deadline caps the whole call
            async with asyncio.timeout(self.timeout):
                response = await self.client.get(self.url, headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except TimeoutError:
            logger.warning(
                "Catalog upstream exceeded %ss, serving empty catalog",
                self.timeout,
                extra={"url": self.url},
            )
            return CatalogSnapshot(success=True, items=[])
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Catalog upstream answered HTTP %s, serving empty catalog",
                exc.response.status_code,
                extra={"url": self.url, "status": exc.response.status_code},
            )
            return CatalogSnapshot(success=True, items=[])
        except httpx.HTTPError as exc:
            logger.warning(
                "Catalog upstream unreachable (%s), serving empty catalog",
                exc.__class__.__name__,
                extra={"url": self.url},
            )
            return CatalogSnapshot(success=True, items=[])
        except ValueError as exc:
            logger.warning(
                "Catalog upstream returned an unreadable body (%s), serving empty catalog",
                exc,
                extra={"url": self.url},
            )
            return CatalogSnapshot(success=True, items=[])

        items = parse_catalog_payload(payload)
        logger.info(
            "Catalog fetched",
            extra={
                "url": self.url,
                "items": len(items),
                "latency_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return CatalogSnapshot(success=True, items=items)
