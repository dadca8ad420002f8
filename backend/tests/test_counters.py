import pytest

from services.counters import cart_badge, wishlist_badge
from services.identity import ANONYMOUS, Identity


@pytest.mark.asyncio
class TestBadgeCounters:
    """Badges recompute from the authoritative tier instead of trusting pushed numbers."""

    async def test_cart_badge_follows_mutations(self, sync):
        badge = cart_badge(sync, ANONYMOUS)

        await sync.add_to_cart(ANONYMOUS, 5, "T-Shirt", 2, {"size": "M"})
        assert badge.value == 2

        await sync.add_to_cart(ANONYMOUS, 5, "T-Shirt", 1, {"size": "L"})
        assert badge.value == 3

        await sync.clear_cart(ANONYMOUS)
        assert badge.value == 0

    async def test_two_independent_badges_agree(self, sync):
        header = cart_badge(sync, ANONYMOUS)
        drawer = cart_badge(sync, ANONYMOUS)

        await sync.add_to_cart(ANONYMOUS, 42, "Jacket", 4)

        assert header.value == drawer.value == 4

    async def test_wishlist_badge(self, sync):
        badge = wishlist_badge(sync, ANONYMOUS)

        await sync.add_to_wishlist(ANONYMOUS, 1)
        await sync.add_to_wishlist(ANONYMOUS, 1)
        await sync.add_to_wishlist(ANONYMOUS, 2)

        assert badge.value == 2
        assert badge.refreshes == 3

    async def test_badge_reads_remote_for_signed_in_shopper(self, sync, fake_remote):
        shopper = Identity.authenticated(7)
        badge = cart_badge(sync, shopper)
        fake_remote.carts[7] = [{"id": 1, "productId": 5, "quantity": 6}]

        await sync.add_to_wishlist(shopper, 3)
        assert badge.value == 0

        await sync.add_to_cart(shopper, 5, "T-Shirt", 1, price_hint=40, image_hint="x")
        assert badge.value == 7

    async def test_closed_badge_stops_refreshing(self, sync, bus):
        badge = cart_badge(sync, ANONYMOUS)
        badge.close()

        await sync.add_to_cart(ANONYMOUS, 5, "T-Shirt", 2)

        assert badge.value == 0
        assert badge.refreshes == 0
