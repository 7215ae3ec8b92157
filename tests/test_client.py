from __future__ import annotations

import json

import httpx
import pytest

from kitchen_command.client import FailureKind, RecordStoreClient
from kitchen_command.exceptions import RecordStoreUnavailable
from kitchen_command.records import Sale


async def test_round_trip_against_service(store_client: RecordStoreClient) -> None:
    listed = await store_client.list_products()
    assert listed.ok
    assert {product.id for product in listed.value} >= {"prod_001", "prod_007"}

    created = await store_client.create_product(
        {"name": "Dutch Oven", "description": "5 qt", "price": 89.5, "stock": 4}
    )
    assert created.ok
    assert created.value.name == "Dutch Oven"

    updated = await store_client.update_product(created.value.id, stock=9)
    assert updated.ok
    assert updated.value.stock == 9

    sale = Sale(
        id="sale_abc",
        product_id=created.value.id,
        product_name="Dutch Oven",
        quantity=2,
        total_amount=179.0,
        date="2024-06-01T08:00:00.000Z",
    )
    posted = await store_client.create_sale(sale)
    assert posted.ok
    assert posted.value == [sale]

    sales = await store_client.list_sales()
    assert sales.value == [sale]

    removed = await store_client.delete_sales_for_product(created.value.id)
    assert removed.value == 1
    deleted = await store_client.delete_product(created.value.id)
    assert deleted.value == 1


async def test_rejection_carries_error_message(make_store) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "duplicate key value"})

    store = make_store(handler)
    result = await store.create_product({"name": "Pan", "price": 1, "stock": 1})

    assert not result.ok
    assert result.kind is FailureKind.REJECTED
    assert result.error == "duplicate key value"


async def test_rejection_without_json_uses_status(make_store) -> None:
    store = make_store(lambda request: httpx.Response(500))
    result = await store.list_sales()

    assert not result.ok
    assert result.error == "HTTP 500"


async def test_timeout_is_a_distinct_failure(make_store) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    store = make_store(handler)
    result = await store.update_product("prod_001", stock=3)

    assert not result.ok
    assert result.kind is FailureKind.TIMEOUT


async def test_transport_fault_raises(make_store) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = make_store(handler)
    with pytest.raises(RecordStoreUnavailable):
        await store.list_products()


async def test_malformed_body_is_rejected(make_store) -> None:
    store = make_store(lambda request: httpx.Response(200, json={"items": []}))
    result = await store.list_products()

    assert not result.ok
    assert result.kind is FailureKind.REJECTED
    assert "Malformed" in result.error


async def test_requests_use_query_filters(make_store) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, dict(request.url.params)))
        if request.method == "PATCH":
            body = json.loads(request.content)
            product = {"id": "prod_001", "name": "Knife", "price": 1, "stock": body["stock"]}
            return httpx.Response(200, json={"product": product})
        return httpx.Response(200, json={"deleted": 2})

    store = make_store(handler)
    await store.update_product("prod_001", stock=7)
    await store.delete_sales_for_product("prod_001")
    await store.delete_sale("sale_9")

    assert seen == [
        ("PATCH", "/products", {"id": "prod_001"}),
        ("DELETE", "/sales", {"productId": "prod_001"}),
        ("DELETE", "/sales", {"id": "sale_9"}),
    ]
