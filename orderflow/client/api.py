"""
Order API Client

Thin async wrapper over the HTTP order routes, used by the polling fallback
and by scripts. Pass ``transport`` (e.g. ``httpx.ASGITransport(app)``) to
talk to an in-process application.
"""

import logging
from typing import Any, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer from the order API."""

    def __init__(self, status_code: int, message: str, errors: Optional[list] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class OrdersApiClient:
    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "OrdersApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, **kwargs)
        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        raise ApiError(
            response.status_code,
            body.get("message") or response.reason_phrase,
            body.get("errors"),
        )

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def list_orders(
        self,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        status: Optional[str] = None,
        active: bool = False,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if user_id:
            params["userId"] = user_id
        if user_email:
            params["userEmail"] = user_email
        if status:
            params["status"] = status
        if active:
            params["active"] = "true"
        return await self._request("GET", "/api/orders", params=params)

    async def get_order(self, order_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/orders/{order_id}")

    async def occupied_tables(self) -> dict[str, list[int]]:
        return await self._request("GET", "/api/orders/occupied-tables")

    async def create_order(self, order: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("POST", "/api/orders/create", json=order)
        return body["order"]

    async def create_orders(self, orders: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        body = await self._request("POST", "/api/orders/create-multiple", json=list(orders))
        return body["orders"]

    async def update_order_status(
        self,
        order_id: str,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> dict[str, Any]:
        update = {
            "status": status,
            "paymentStatus": payment_status,
            "paymentMethod": payment_method,
        }
        body = await self._request(
            "PUT",
            f"/api/orders/{order_id}",
            json={k: v for k, v in update.items() if v is not None},
        )
        return body["order"]

    async def delete_order(self, order_id: str, is_admin: bool = False) -> str:
        headers = {"X-Admin-Request": "true"} if is_admin else None
        body = await self._request("DELETE", f"/api/orders/{order_id}", headers=headers)
        return body["deletedOrderId"]
