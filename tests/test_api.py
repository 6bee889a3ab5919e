"""
HTTP surface: routing, status codes and the SalesError → JSON mapping.
"""
import pytest
import pytest_asyncio

API = "/api/v1"
SLOT = {"start_time": "2026-10-17T11:00:00Z", "end_time": "2026-10-17T13:00:00Z"}


@pytest_asyncio.fixture
async def open_slot(client):
    """Active slot stocking one product (price 1000, 10 units). Returns (slot_id, product_id)."""
    product = (await client.post(f"{API}/products", json={"name": "Yakisoba", "price": 1000})).json()
    slot = (await client.post(f"{API}/sales-slots", json=SLOT)).json()
    r = await client.post(
        f"{API}/sales-slots/{slot['id']}/products",
        json={"product_id": product["id"], "initial_quantity": 10},
    )
    assert r.status_code == 201, r.text
    r = await client.put(f"{API}/sales-slots/{slot['id']}/activate")
    assert r.json()["is_active"] is True
    return slot["id"], product["id"]


@pytest.mark.asyncio
async def test_root_and_health(client):
    r = await client.get("/")
    assert r.json()["service"] == "timeseats"

    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["dependencies"]["redis"] == "ok"


@pytest.mark.asyncio
async def test_product_routes(client):
    r = await client.post(f"{API}/products", json={"name": "Ramune", "price": 200})
    assert r.status_code == 201
    product_id = r.json()["id"]

    r = await client.put(f"{API}/products/{product_id}", json={"price": 250})
    assert r.json()["price"] == 250

    r = await client.delete(f"{API}/products/{product_id}")
    assert r.status_code == 204

    r = await client.get(f"{API}/products/{product_id}")
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_invalid_time_range_is_400(client):
    r = await client.post(f"{API}/sales-slots", json={"start_time": SLOT["end_time"], "end_time": SLOT["start_time"]})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_TIME_RANGE"


@pytest.mark.asyncio
async def test_order_to_delivered_ticket(client, open_slot):
    slot_id, product_id = open_slot

    r = await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": [{"product_id": product_id, "quantity": 2}]})
    assert r.status_code == 201, r.text
    order = r.json()
    assert (order["status"], order["total_amount"]) == ("RESERVED", 2000)

    r = await client.get(f"{API}/sales-slots/{slot_id}/products/{product_id}")
    assert r.json()["reserved_quantity"] == 2

    r = await client.put(f"{API}/orders/{order['id']}/confirm")
    assert r.json()["status"] == "CONFIRMED"

    r = await client.post(f"{API}/order-tickets", json={"order_id": order["id"], "ticket_number": "T1", "payment_method": "PAYPAY"})
    assert r.status_code == 201, r.text
    ticket = r.json()

    r = await client.put(f"{API}/order-tickets/{ticket['id']}/deliver", json={"is_delivered": True})
    assert r.status_code == 402
    assert r.json()["code"] == "PAYMENT_REQUIRED"

    r = await client.put(f"{API}/order-tickets/{ticket['id']}/payment", json={"is_paid": True, "transaction_id": "pp-9"})
    assert r.json()["is_paid"] is True
    r = await client.put(f"{API}/order-tickets/{ticket['id']}/payment", json={"is_paid": True})
    assert r.status_code == 409
    assert r.json()["code"] == "ALREADY_PAID"

    r = await client.put(f"{API}/order-tickets/{ticket['id']}/deliver", json={"is_delivered": True})
    assert r.json()["is_delivered"] is True

    r = await client.get(f"{API}/orders/ticket/T1")
    assert r.json()["id"] == order["id"]
    r = await client.get(f"{API}/order-tickets/number/T1")
    assert r.json()["id"] == ticket["id"]

    r = await client.put(f"{API}/orders/{order['id']}/complete")
    assert r.json()["status"] == "COMPLETED"

    r = await client.get(f"{API}/order-tickets/summary/daily")
    summary = r.json()
    assert summary["total"] == 1
    assert summary["by_payment_method"] == {"CASH": 0, "PAYPAY": 1}


@pytest.mark.asyncio
async def test_cancel_and_status_listing(client, open_slot):
    slot_id, product_id = open_slot
    order = (await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": [{"product_id": product_id, "quantity": 1}]})).json()

    r = await client.post(f"{API}/orders/{order['id']}/items", json={"items": [{"product_id": product_id, "quantity": 1}]})
    assert r.json()["total_amount"] == 2000

    r = await client.get(f"{API}/orders/status/RESERVED")
    assert [o["id"] for o in r.json()] == [order["id"]]

    r = await client.put(f"{API}/orders/{order['id']}/cancel")
    assert r.json()["status"] == "CANCELLED"

    r = await client.get(f"{API}/orders", params={"status": "CANCELLED", "slot_id": slot_id})
    assert len(r.json()) == 1
    r = await client.get(f"{API}/sales-slots/{slot_id}/products")
    assert r.json()[0]["reserved_quantity"] == 0


@pytest.mark.asyncio
async def test_order_validation_and_stock_errors(client, open_slot):
    slot_id, product_id = open_slot

    r = await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": []})
    assert r.status_code == 422

    r = await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": [{"product_id": product_id, "quantity": 11}]})
    assert r.status_code == 409
    assert r.json()["code"] == "INSUFFICIENT_STOCK"

    await client.put(f"{API}/sales-slots/{slot_id}/deactivate")
    r = await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": [{"product_id": product_id, "quantity": 1}]})
    assert r.json()["code"] == "SLOT_NOT_ACTIVE"


@pytest.mark.asyncio
async def test_slot_listing(client, open_slot):
    slot_id, _ = open_slot
    await client.post(f"{API}/sales-slots", json=SLOT)

    assert len((await client.get(f"{API}/sales-slots")).json()) == 2
    assert [s["id"] for s in (await client.get(f"{API}/sales-slots/active")).json()] == [slot_id]
    assert [s["id"] for s in (await client.get(f"{API}/sales-slots", params={"active_only": True})).json()] == [slot_id]


@pytest.mark.asyncio
async def test_restock_route(client, open_slot):
    slot_id, product_id = open_slot
    url = f"{API}/sales-slots/{slot_id}/products/{product_id}"
    r = await client.post(f"{API}/orders", json={"sales_slot_id": slot_id, "items": [{"product_id": product_id, "quantity": 4}]})
    assert r.status_code == 201

    r = await client.put(url, json={"initial_quantity": 25})
    assert r.status_code == 200, r.text
    assert (r.json()["initial_quantity"], r.json()["reserved_quantity"]) == (25, 4)

    r = await client.put(url, json={"initial_quantity": 3})
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert (await client.get(url)).json()["initial_quantity"] == 25

    assert (await client.put(url, json={"initial_quantity": -1})).status_code == 422
    assert (await client.put(f"{API}/sales-slots/{slot_id}/products/missing", json={"initial_quantity": 5})).status_code == 404
