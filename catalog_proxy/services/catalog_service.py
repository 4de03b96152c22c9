"""Catalog service — cached access to the partner catalog and shaped listings.

Two kinds of cache entries live side by side:
- RAW_CATALOG_KEY: the latest CatalogSnapshot from the fetcher
- "lite:..." keys: one QueryResult per distinct filter/mask/cursor/limit combination

Both expire after the configured TTL. A shaped page never outlives the
snapshot it was computed from; `refresh()` drops every entry.
"""
from typing import List, Optional, Tuple

from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.filter_schema import PropertyFilter, QueryResult, clamp_limit
from catalog_proxy.schemas.property_schema import CatalogSnapshot, PropertyItem
from catalog_proxy.services.catalog_cache import CatalogCache
from catalog_proxy.services.catalog_fetcher import CatalogFetcher
from catalog_proxy.services.query_service import DEFAULT_PAGE_SIZE, execute_query

logger = get_logger(__name__)

RAW_CATALOG_KEY = "all_props"

_SHAPED_KEY_FIELDS = (
    "fields", "estado", "cursor", "limit",
    "precio_min", "precio_max", "habitaciones_min", "banos_min", "area_min", "tipo",
)


def shaped_cache_key(flt: PropertyFilter) -> str:
    """Composite key for a shaped listing, e.g. 'lite:id,precio:disponible:None:20:...'."""
    return "lite:" + ":".join(str(getattr(flt, name)) for name in _SHAPED_KEY_FIELDS)


class CatalogService:
    """Read path over the cached catalog shared by every request."""

    def __init__(
        self,
        fetcher: CatalogFetcher,
        cache: CatalogCache,
        ttl_seconds: int = 90,
        default_limit: int = DEFAULT_PAGE_SIZE,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.default_limit = default_limit

    async def get_snapshot(self) -> CatalogSnapshot:
        snapshot, hit = await self.cache.get_or_load(RAW_CATALOG_KEY, self.fetcher.fetch, self.ttl_seconds)
        if not hit:
            logger.debug("Catalog cache miss", extra={"cache_key": RAW_CATALOG_KEY})
        return snapshot

    async def get_items(self) -> List[PropertyItem]:
        return (await self.get_snapshot()).items

    async def find_item(self, item_id: int) -> Optional[PropertyItem]:
        for item in await self.get_items():
            if item.id == item_id:
                return item
        return None

    async def list_properties(self, flt: PropertyFilter) -> Tuple[QueryResult, bool]:
        """Return `(page, cached)` for a structured filter."""
        flt = flt.model_copy(update={"limit": clamp_limit(flt.limit, self.default_limit)})
        key = shaped_cache_key(flt)

        async def _compute() -> QueryResult:
            snapshot = await self.get_snapshot()
            return execute_query(snapshot.items, flt, self.default_limit)

        return await self.cache.get_or_load(key, _compute, self._shaped_ttl)

    def _shaped_ttl(self) -> float:
        remaining = self.cache.ttl_remaining(RAW_CATALOG_KEY)
        return min(self.ttl_seconds, remaining) if remaining is not None else 0.0

    def refresh(self) -> None:
        """Explicit invalidation: the next read goes upstream."""
        self.cache.invalidate()
