import httpx
import pytest

from services.errors import RemoteUnreachable
from utils.bus import Topic
from utils.remote_client import Endpoints, RemoteClient


def _client(handler) -> RemoteClient:
    return RemoteClient(base_url="http://remote.test/api/", timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestRemoteClient:

    async def test_returns_json_body(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json=[{"id": 1}])

        data = await _client(handler).call("/categories")

        assert data == [{"id": 1}]
        assert seen == ["http://remote.test/api/categories"]

    async def test_sends_json_payload(self):
        def handler(request):
            assert request.method == "POST"
            assert request.headers["content-type"] == "application/json"
            return httpx.Response(201, content=request.content)

        data = await _client(handler).call(Endpoints.user_cart(3), "POST", json={"productId": 1})

        assert data == {"productId": 1}

    async def test_empty_body_is_none(self):
        data = await _client(lambda request: httpx.Response(204)).call("/user/1/cart/2", "DELETE")
        assert data is None

    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    async def test_non_2xx_is_unreachable(self, status):
        with pytest.raises(RemoteUnreachable):
            await _client(lambda request: httpx.Response(status, json={"message": "no"})).call("/products")

    async def test_network_error_is_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RemoteUnreachable):
            await _client(handler).call("/products")

    async def test_timeout_is_unreachable(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(RemoteUnreachable) as exc:
            await _client(handler).call("/products")
        assert "timeout" in exc.value.message

    async def test_invalid_json_is_unreachable(self):
        with pytest.raises(RemoteUnreachable):
            await _client(lambda request: httpx.Response(200, content=b"<html>")).call("/products")

    async def test_client_error_is_a_refusal(self):
        with pytest.raises(RemoteUnreachable) as exc:
            await _client(lambda request: httpx.Response(404, json={"message": "no"})).call("/user/1/cart/9", "DELETE")
        assert exc.value.status_code == 404
        assert exc.value.rejected

    @pytest.mark.parametrize("status", [408, 429, 500, 503])
    async def test_retryable_status_is_not_a_refusal(self, status):
        with pytest.raises(RemoteUnreachable) as exc:
            await _client(lambda request: httpx.Response(status)).call("/products")
        assert exc.value.status_code == status
        assert not exc.value.rejected

    async def test_network_error_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RemoteUnreachable) as exc:
            await _client(handler).call("/products")
        assert exc.value.status_code is None
        assert not exc.value.rejected


@pytest.mark.asyncio
class TestCatalogReader:

    async def test_product_reads_are_cached(self, catalog, fake_remote):
        first = await catalog.get_product(42)
        second = await catalog.get_product(42)

        assert first.name == second.name == "Jacket"
        assert first.main_image == "/img/jacket.png"
        assert fake_remote.count("GET", "/products/42") == 1

    async def test_stale_categories_survive_outage(self, catalog, fake_remote, clock):
        await catalog.list_categories()
        clock.advance(120)
        fake_remote.fail = "network"

        categories = await catalog.list_categories()

        assert [c["name"] for c in categories] == ["Outerwear", "Accessories"]

    async def test_refresh_categories_publishes(self, catalog, fake_remote, bus):
        calls = []
        bus.subscribe(Topic.CATEGORIES_CHANGED, lambda: calls.append(1))
        await catalog.list_categories()
        fake_remote.categories.append({"id": 3, "name": "Shoes"})

        await catalog.refresh_categories()
        categories = await catalog.list_categories()

        assert calls == [1]
        assert len(categories) == 3
        assert fake_remote.count("GET", "/categories") == 2

    async def test_product_list_filters_are_separate_entries(self, catalog, fake_remote):
        await catalog.list_products()
        await catalog.list_products(category="1")
        await catalog.list_products(category="1")

        assert fake_remote.count("GET", "/products") == 2

    async def test_out_of_stock_flag(self, catalog):
        product = await catalog.get_product(9)
        assert product.out_of_stock
