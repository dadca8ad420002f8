# backend/utils/local_store.py
from typing import List, Optional
from sqlalchemy.orm import Session

from models.cache_entry import CacheEntry

# Keys owned by the synchronizer. Other components may read them, never write.
CART_KEY = "cart"
WISHLIST_KEY = "wishlist"
# Changes of a signed-in shopper the remote store has not acknowledged yet
CART_OUTBOX_KEY = "cart_outbox"
WISHLIST_OUTBOX_KEY = "wishlist_outbox"


class LocalStore:
    """Synchronous string key/value primitives over the cache_entries table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        # Always reload: another session may have committed since
        entry = self.db.get(CacheEntry, key, populate_existing=True)
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        entry = self.db.get(CacheEntry, key)
        if entry:
            entry.value = value
        else:
            self.db.add(CacheEntry(key=key, value=value))
        self.db.commit()

    def remove(self, key: str) -> bool:
        entry = self.db.get(CacheEntry, key)
        if not entry:
            return False
        self.db.delete(entry)
        self.db.commit()
        return True

    def keys(self, prefix: str = "") -> List[str]:
        query = self.db.query(CacheEntry.key)
        if prefix:
            query = query.filter(CacheEntry.key.startswith(prefix))
        return [k for (k,) in query.order_by(CacheEntry.key).all()]
