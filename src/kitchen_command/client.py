"""HTTP client for the product and sale record store."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

import httpx

from .config import Settings
from .exceptions import RecordStoreUnavailable
from .records import Product, Sale

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class FailureKind(str, Enum):
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a record store call: a value, or a failure message and kind."""

    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, message: str, kind: FailureKind = FailureKind.REJECTED) -> "StoreResult[T]":
        return cls(error=message, kind=kind)


class RecordStoreClient:
    """Create/read/update/delete access to products and sales.

    Expected remote errors come back as failed :class:`StoreResult` values and
    timeouts are reported with :attr:`FailureKind.TIMEOUT`. Any other transport
    fault raises :class:`RecordStoreUnavailable`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordStoreClient":
        return cls(settings.record_store_url, timeout=settings.request_timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RecordStoreClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    async def list_products(self) -> StoreResult[List[Product]]:
        result = await self._request("GET", "/products")
        return self._unwrap(
            result, lambda body: [Product.from_record(record) for record in body["products"]]
        )

    async def create_product(self, draft: Mapping[str, Any]) -> StoreResult[Product]:
        payload = {
            key: draft[key]
            for key in ("id", "name", "description", "price", "stock")
            if key in draft
        }
        result = await self._request("POST", "/products", json=payload)
        return self._unwrap(result, lambda body: Product.from_record(body["product"]))

    async def update_product(self, product_id: str, **changes: Any) -> StoreResult[Product]:
        result = await self._request(
            "PATCH", "/products", params={"id": product_id}, json=changes
        )
        return self._unwrap(result, lambda body: Product.from_record(body["product"]))

    async def delete_product(self, product_id: str) -> StoreResult[int]:
        result = await self._request("DELETE", "/products", params={"id": product_id})
        return self._unwrap(result, lambda body: int(body["deleted"]))

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------
    async def list_sales(self) -> StoreResult[List[Sale]]:
        result = await self._request("GET", "/sales")
        return self._unwrap(
            result, lambda body: [Sale.from_record(record) for record in body["sales"]]
        )

    async def create_sale(self, sale: Sale) -> StoreResult[List[Sale]]:
        result = await self._request("POST", "/sales", json=sale.to_dict())
        return self._unwrap(result, self._parse_created_sales)

    async def delete_sale(self, sale_id: str) -> StoreResult[int]:
        result = await self._request("DELETE", "/sales", params={"id": sale_id})
        return self._unwrap(result, lambda body: int(body["deleted"]))

    async def delete_sales_for_product(self, product_id: str) -> StoreResult[int]:
        result = await self._request("DELETE", "/sales", params={"productId": product_id})
        return self._unwrap(result, lambda body: int(body["deleted"]))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _parse_created_sales(body: Any) -> List[Sale]:
        records = body if isinstance(body, list) else [body]
        return [Sale.from_record(record) for record in records]

    @staticmethod
    def _unwrap(result: StoreResult[Any], parse: Callable[[Any], U]) -> StoreResult[U]:
        if not result.ok:
            return StoreResult.failure(result.error or "Unknown error", result.kind or FailureKind.REJECTED)
        try:
            return StoreResult.success(parse(result.value))
        except (KeyError, TypeError, ValueError) as exc:
            return StoreResult.failure(f"Malformed record store response: {exc}")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> StoreResult[Any]:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out: %s", method, path, exc)
            return StoreResult.failure(f"{method} {path} timed out", FailureKind.TIMEOUT)
        except httpx.TransportError as exc:
            raise RecordStoreUnavailable(f"{method} {path} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = None
            if isinstance(body, dict):
                message = body.get("error")
            message = message or response.text or f"HTTP {response.status_code}"
            logger.warning("%s %s rejected (%s): %s", method, path, response.status_code, message)
            return StoreResult.failure(str(message), FailureKind.REJECTED)
        if body is None:
            return StoreResult.failure(f"{method} {path} returned a non-JSON body")
        return StoreResult.success(body)


__all__ = ["FailureKind", "RecordStoreClient", "StoreResult"]
