# backend/dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session

from database import get_db
from services.cart_sync import CommerceSynchronizer
from services.catalog import CatalogReader
from utils.bus import InvalidationBus, bus
from utils.local_store import LocalStore
from utils.read_cache import ReadThroughCache, read_cache
from utils.remote_client import RemoteClient, remote_client

# Process-wide collaborators; overridden in tests via app.dependency_overrides
def get_bus() -> InvalidationBus:
    return bus

def get_remote() -> RemoteClient:
    return remote_client

def get_read_cache() -> ReadThroughCache:
    return read_cache

def get_catalog(
    remote: RemoteClient = Depends(get_remote),
    cache: ReadThroughCache = Depends(get_read_cache),
    bus: InvalidationBus = Depends(get_bus),
) -> CatalogReader:
    return CatalogReader(remote=remote, cache=cache, bus=bus)

def get_synchronizer(
    db: Session = Depends(get_db),
    remote: RemoteClient = Depends(get_remote),
    catalog: CatalogReader = Depends(get_catalog),
    bus: InvalidationBus = Depends(get_bus),
) -> CommerceSynchronizer:
    return CommerceSynchronizer(store=LocalStore(db), remote=remote, catalog=catalog, bus=bus)
