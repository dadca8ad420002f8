# backend/models/cache_entry.py
from sqlalchemy import Column, String, Text, DateTime, func
from database import Base

# Represents one key of the persistent local cache (cart / wishlist snapshots)
class CacheEntry(Base):
    __tablename__ = "cache_entries" # Table name

    key = Column(String(128), primary_key=True, index=True) # Cache key, e.g. "cart"
    value = Column(Text, nullable=False) # Serialized payload, stored as-is
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now()) # Last write timestamp
