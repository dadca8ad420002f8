# backend/utils/remote_client.py
import httpx
import logging
from typing import Any, Optional
from config import settings
from services.errors import RemoteUnreachable

logger = logging.getLogger(__name__)


# Endpoint paths of the authoritative store, relative to REMOTE_API_URL
class Endpoints:
    PRODUCTS = "/products"
    CATEGORIES = "/categories"

    @staticmethod
    def product(product_id) -> str:
        return f"/products/{product_id}"

    @staticmethod
    def category(category_id) -> str:
        return f"/categories/{category_id}"

    @staticmethod
    def user_cart(user_id) -> str:
        return f"/user/{user_id}/cart"

    @staticmethod
    def cart_line(user_id, line_id) -> str:
        return f"/user/{user_id}/cart/{line_id}"

    @staticmethod
    def cart_update_options(user_id) -> str:
        return f"/user/{user_id}/cart/update-options"

    @staticmethod
    def user_wishlist(user_id) -> str:
        return f"/user/{user_id}/wishlist"

    @staticmethod
    def wishlist_product(user_id, product_id) -> str:
        return f"/user/{user_id}/wishlist/product/{product_id}"


class RemoteClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        # Initialize configuration; transport is swapped out in tests
        self.base_url = (base_url or settings.REMOTE_API_URL).rstrip("/")
        self.timeout = settings.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout
        self.transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def call(self, endpoint: str, method: str = "GET", json: Any = None) -> Any:
        """
        Performs one bounded request against the remote store.

        Any network error, timeout or non-2xx status is raised as RemoteUnreachable.
        No retries: the caller decides what to do on failure.
        """
        url = self._url(endpoint)
        headers = {"Content-Type": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, url, json=json, headers=headers)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                logger.warning(f"Remote {method} {endpoint} timed out after {self.timeout}s")
                raise RemoteUnreachable(f"timeout: {method} {endpoint}") from e
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                # Log detailed error information before re-raising
                try:
                    resp_text = e.response.text if hasattr(e, 'response') and e.response is not None else str(e)
                except Exception:
                    resp_text = str(e)
                status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                logger.warning(f"Remote {method} {endpoint} failed: {resp_text}")
                raise RemoteUnreachable(f"{method} {endpoint}: {resp_text}", status_code=status_code) from e

        # Empty bodies (204, DELETE) are fine
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnreachable(f"{method} {endpoint}: invalid JSON body") from e


remote_client = RemoteClient()
