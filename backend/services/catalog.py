# backend/services/catalog.py
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from schemas.product import CatalogProduct
from utils.bus import InvalidationBus, Topic
from utils.read_cache import ReadThroughCache, make_key
from utils.remote_client import Endpoints, RemoteClient

logger = logging.getLogger(__name__)


class CatalogReader:
    """Catalog reads (products, categories) through the read-through cache."""

    def __init__(self, remote: RemoteClient, cache: ReadThroughCache, bus: InvalidationBus):
        self.remote = remote
        self.cache = cache
        self.bus = bus

    async def _read(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        path = endpoint
        if params:
            path = f"{endpoint}?{urlencode(sorted(params.items()))}"

        async def loader():
            return await self.remote.call(path)

        return await self.cache.get(make_key(endpoint, params), loader)

    async def get_product(self, product_id: int) -> CatalogProduct:
        data = await self._read(Endpoints.product(product_id))
        return CatalogProduct.model_validate(data or {})

    async def list_products(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        data = await self._read(Endpoints.PRODUCTS, {"category": category} if category else None)
        return data if isinstance(data, list) else []

    async def list_categories(self) -> List[Dict[str, Any]]:
        data = await self._read(Endpoints.CATEGORIES)
        return data if isinstance(data, list) else []

    async def get_category(self, category_id: int) -> Dict[str, Any]:
        data = await self._read(Endpoints.category(category_id))
        return data if isinstance(data, dict) else {}

    async def refresh_categories(self) -> int:
        # Drop cached category reads and tell subscribers to re-fetch
        dropped = self.cache.invalidate(Endpoints.CATEGORIES)
        logger.info(f"Categories cache invalidated ({dropped} entries)")
        await self.bus.publish(Topic.CATEGORIES_CHANGED)
        return dropped
