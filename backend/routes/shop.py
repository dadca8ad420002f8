from typing import Optional, List, Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Query

from dependencies import get_catalog, get_read_cache
from services.catalog import CatalogReader
from services.errors import RemoteUnreachable
from utils.read_cache import ReadThroughCache


router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

def _unavailable(e: RemoteUnreachable) -> HTTPException:
    # Nothing cached to fall back on
    return HTTPException(status_code=502, detail=f"Catalog unavailable: {e.message}")

# Retrieve product categories (read-through cached)
@router.get("/categories", response_model=List[Dict[str, Any]])
async def get_categories(
    catalog: CatalogReader = Depends(get_catalog),
):
    try:
        return await catalog.list_categories()
    except RemoteUnreachable as e:
        raise _unavailable(e)

# Drop cached categories after an admin change and notify subscribers
@router.post("/categories/refresh")
async def refresh_categories(
    catalog: CatalogReader = Depends(get_catalog),
):
    dropped = await catalog.refresh_categories()
    return {"dropped": dropped}

@router.get("/categories/{category_id}", response_model=Dict[str, Any])
async def get_category(
    category_id: int,
    catalog: CatalogReader = Depends(get_catalog),
):
    try:
        return await catalog.get_category(category_id)
    except RemoteUnreachable as e:
        raise _unavailable(e)

@router.get("/products", response_model=List[Dict[str, Any]])
async def list_products(
    category: Optional[str] = Query(None, description="Filter by category"),
    catalog: CatalogReader = Depends(get_catalog),
):
    try:
        return await catalog.list_products(category=category)
    except RemoteUnreachable as e:
        raise _unavailable(e)

@router.get("/products/{product_id}", response_model=Dict[str, Any])
async def get_product(
    product_id: int,
    catalog: CatalogReader = Depends(get_catalog),
):
    try:
        product = await catalog.get_product(product_id)
    except RemoteUnreachable as e:
        raise _unavailable(e)
    return product.model_dump(by_alias=True)

@router.get("/cache/stats")
def cache_stats(cache: ReadThroughCache = Depends(get_read_cache)):
    return cache.stats()
