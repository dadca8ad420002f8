# backend/services/counters.py
import logging
from typing import Awaitable, Callable

from services.cart_sync import CommerceSynchronizer
from services.identity import Identity
from utils.bus import InvalidationBus, Topic

logger = logging.getLogger(__name__)


class BadgeCounter:
    """
    Derived counter (cart badge, wishlist badge).

    Never trusts a pushed number: on every signal it re-reads the count from
    whichever tier is authoritative for the shopper.
    """

    def __init__(self, bus: InvalidationBus, topic: Topic, read: Callable[[], Awaitable[int]]):
        self.topic = topic
        self.value = 0
        self.refreshes = 0
        self._read = read
        self._unsubscribe = bus.subscribe(topic, self.refresh)

    async def refresh(self) -> int:
        self.value = await self._read()
        self.refreshes += 1
        logger.debug(f"{self.topic.value} badge -> {self.value}")
        return self.value

    def close(self) -> None:
        self._unsubscribe()


def cart_badge(sync: CommerceSynchronizer, identity: Identity) -> BadgeCounter:
    return BadgeCounter(sync.bus, Topic.CART_CHANGED, lambda: sync.cart_count(identity))


def wishlist_badge(sync: CommerceSynchronizer, identity: Identity) -> BadgeCounter:
    return BadgeCounter(sync.bus, Topic.WISHLIST_CHANGED, lambda: sync.wishlist_count(identity))
