from decimal import Decimal
from unittest.mock import patch

from fastapi.testclient import TestClient

from tableside.models.payment import BillShare
from tests.fixtures_data import BURGER_ID, FRIES_ID, SODA_ID

ORDER_BODY = {
    "tableId": 1,
    "items": [
        {"menuItemId": BURGER_ID, "quantity": 2},
        {"menuItemId": FRIES_ID, "quantity": 1, "notes": "extra crispy"},
    ],
}


def _create_order(client, body=ORDER_BODY):
    response = client.post("/api/orders", json=body)
    assert response.status_code == 201
    return response.json()


def test_order_round_trip_over_http(client, events):
    order = _create_order(client)
    fries = next(item for item in order["orderItems"] if item["menuItemId"] == FRIES_ID)

    assert order["total"] == "25.00"
    assert order["status"] == "pending"
    assert fries["notes"] == "extra crispy"
    assert fries["menuItem"]["name"] == "Fries"

    cancelled = client.patch(f"/api/orders/{order['id']}/items/{fries['id']}/cancel")
    fetched = client.get(f"/api/orders/{order['id']}")

    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert fetched.json()["total"] == "20.00"
    assert events.types() == ["order_created", "order_item_cancelled"]


def test_error_envelopes(client, events):
    missing_table = client.post("/api/orders", json={"tableId": 99, "items": [{"menuItemId": BURGER_ID}]})
    empty_items = client.post("/api/orders", json={"tableId": 1, "items": []})
    missing_order = client.patch("/api/orders/404/confirm")

    order = _create_order(client)
    item_id = order["orderItems"][0]["id"]
    bad_status = client.patch(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "pending"})
    client.patch(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "preparing"})
    too_late = client.patch(f"/api/orders/{order['id']}/items/{item_id}/cancel")

    assert missing_table.status_code == 404
    assert missing_table.json() == {"error": "Table not found"}
    assert empty_items.status_code == 400
    assert "error" in empty_items.json()
    assert missing_order.status_code == 404
    assert missing_order.json() == {"error": "Order not found"}
    assert bad_status.status_code == 400
    assert too_late.status_code == 400
    assert too_late.json() == {"error": "Cannot cancel item that is already being prepared or delivered"}
    assert events.types() == ["order_created", "order_item_status_updated"]


def test_split_bill_flow_over_http(client, events):
    order = _create_order(client, {"tableId": 1, "items": [{"menuItemId": BURGER_ID, "quantity": 3}]})
    client.patch(f"/api/orders/{order['id']}/confirm")

    mismatch = client.post(
        "/api/split-bill",
        json={
            "orderId": order["id"],
            "tableId": 1,
            "method": "card",
            "shares": [{"customerName": "Alice", "amount": 10}, {"customerName": "Bob", "amount": 15}],
        },
    )
    assert mismatch.status_code == 400
    assert mismatch.json() == {"error": "Shares total ($25.00) must equal order total ($30.00)"}

    created = client.post(
        "/api/split-bill",
        json={
            "orderId": order["id"],
            "tableId": 1,
            "method": "card",
            "shares": [{"customerName": "Alice", "amount": "15.00"}, {"customerName": "Bob", "amount": 15}],
        },
    )
    assert created.status_code == 201
    payment = created.json()["payment"]
    shares = created.json()["shares"]
    assert payment["amount"] == "30.00"
    assert [share["amount"] for share in shares] == ["15.00", "15.00"]

    listed = client.get(f"/api/bill-shares/payment/{payment['id']}")
    assert [share["customerName"] for share in listed.json()] == ["Alice", "Bob"]

    first = client.patch(f"/api/bill-shares/{shares[0]['id']}/paid")
    assert first.json()["allPaid"] is False
    assert events.of_type("split_bill_completed") == []

    last = client.patch(f"/api/bill-shares/{shares[1]['id']}/paid")
    assert last.json() == {
        "success": True,
        "share": last.json()["share"],
        "allPaid": True,
        "completed": True,
    }
    assert last.json()["share"]["paid"] is True

    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "completed"
    assert client.get("/api/tables/1").json()["status"] == "free"
    assert events.of_type("split_bill_completed") == [
        {"paymentId": payment["id"], "orderId": order["id"], "tableId": 1}
    ]

    history = client.get("/api/payments/history").json()
    assert [entry["id"] for entry in history] == [payment["id"]]


def test_oversized_amounts_are_rejected_over_http(client, events):
    order = _create_order(client, {"tableId": 1, "items": [{"menuItemId": BURGER_ID, "quantity": 3}]})
    client.patch(f"/api/orders/{order['id']}/confirm")

    split = client.post(
        "/api/split-bill",
        json={
            "orderId": order["id"],
            "tableId": 1,
            "method": "card",
            "shares": [{"customerName": "Alice", "amount": 1e30}],
        },
    )
    single = client.post(
        "/api/payments",
        json={"orderId": order["id"], "tableId": 1, "amount": "100000000.00", "method": "cash"},
    )

    assert split.status_code == 400
    assert split.json() == {"error": "Share 1: Amount must not exceed 99999999.99"}
    assert single.status_code == 400
    assert single.json() == {"error": "Amount must not exceed 99999999.99"}
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "confirmed"
    assert client.get("/api/payments/history").json() == []
    assert events.of_type("payment_processed") == []


def test_missing_share_and_payment_are_not_found(client):
    assert client.patch("/api/bill-shares/999/paid").json() == {"error": "Share not found"}
    assert client.get("/api/bill-shares/payment/999").status_code == 404


def test_share_without_payment_returns_500(client, seeded_db):
    orphan = BillShare(payment_id=4242, customer_name="Ghost", amount=Decimal("1.00"), paid=False)
    seeded_db.add(orphan)
    seeded_db.commit()

    with patch("tableside.core.errors.logger") as handler_logger, patch(
        "tableside.services.settlement.logger"
    ) as service_logger:
        response = client.patch(f"/api/bill-shares/{orphan.id}/paid")

    assert response.status_code == 500
    assert response.json() == {"error": "Payment not found or missing order/table reference"}
    # One ERROR record per anomaly, written where it is detected
    assert service_logger.error.call_count == 1
    handler_logger.error.assert_not_called()
    handler_logger.info.assert_called_once()


def test_single_payment_over_http(client, events):
    order = _create_order(client)

    mismatch = client.post("/api/payments", json={"orderId": order["id"], "tableId": 2, "amount": "25.00", "method": "cash"})
    paid = client.post("/api/payments", json={"orderId": order["id"], "tableId": 1, "amount": "25.00", "method": "cash"})
    duplicate = client.post("/api/payments", json={"orderId": order["id"], "tableId": 1, "amount": "25.00", "method": "cash"})

    assert mismatch.status_code == 400
    assert paid.status_code == 201
    assert paid.json()["amount"] == "25.00"
    assert duplicate.status_code == 400
    assert events.of_type("payment_processed")[0]["isSplitBill"] is False


def test_tables_crud_and_occupancy(client, events):
    created = client.post("/api/tables", json={"number": 7, "capacity": 6})
    duplicate = client.post("/api/tables", json={"number": 8, "qrCode": "table-1-qr"})

    assert created.status_code == 201
    assert created.json()["qrCode"]
    assert created.json()["status"] == "free"
    assert duplicate.status_code == 400

    order = _create_order(client)
    occupied = client.get("/api/tables/occupied").json()
    assert [table["id"] for table in occupied] == [1]
    assert [entry["id"] for entry in occupied[0]["orders"]] == [order["id"]]

    _create_order(client)
    paged = client.get("/api/tables/1/orders", params={"limit": 1}).json()
    assert len(paged) == 1

    assert client.delete("/api/tables/1").status_code == 400
    reserved = client.patch(f"/api/tables/{created.json()['id']}", json={"status": "reserved"})
    assert reserved.json()["status"] == "reserved"
    assert client.delete(f"/api/tables/{created.json()['id']}").status_code == 204
    assert client.get(f"/api/tables/{created.json()['id']}").status_code == 404

    assert events.of_type("table_deleted") == [{"id": created.json()["id"]}]
    assert len(events.of_type("table_created")) == 1
    assert len(events.of_type("table_updated")) == 1


def test_menu_updates_do_not_reprice_existing_orders(client, events):
    order = _create_order(client)

    updated = client.patch(f"/api/menu/{BURGER_ID}", json={"price": "12.50", "available": False})
    refetched = client.get(f"/api/orders/{order['id']}").json()
    available = client.get("/api/menu", params={"availableOnly": "true"}).json()

    assert updated.json()["price"] == "12.50"
    assert refetched["total"] == "25.00"
    assert BURGER_ID not in {item["id"] for item in available}
    assert client.delete(f"/api/menu/{BURGER_ID}").status_code == 400
    assert client.delete(f"/api/menu/{SODA_ID}").status_code == 204
    assert events.of_type("menu_item_updated")[0]["price"] == "12.50"
    assert events.of_type("menu_item_deleted") == [{"id": SODA_ID}]

    created = client.post("/api/menu", json={"name": "Lemon Pie", "category": "desserts", "price": 6})
    assert created.status_code == 201
    assert created.json()["price"] == "6.00"
    assert created.json()["preparationTimeMinutes"] == 15


def test_waiter_calls(client, events):
    first = client.post("/api/waiter-calls", json={"tableId": 1, "reason": "Water please"}).json()
    second = client.post("/api/waiter-calls", json={"tableId": 2}).json()

    assert [call["id"] for call in client.get("/api/waiter-calls").json()] == [first["id"], second["id"]]

    resolved = client.patch(f"/api/waiter-calls/{first['id']}/resolve")
    missing = client.patch("/api/waiter-calls/999/resolve")

    assert resolved.json() == {"success": True}
    assert missing.json() == {"success": True}
    assert [call["id"] for call in client.get("/api/waiter-calls").json()] == [second["id"]]
    assert events.types() == ["waiter_called", "waiter_called", "waiter_call_resolved"]


def test_reservations(client, events):
    late = client.post(
        "/api/reservations",
        json={
            "tableId": 1,
            "customerName": "Dana",
            "guestCount": 2,
            "reservationTime": "2026-10-20T21:00:00",
        },
    ).json()
    early = client.post(
        "/api/reservations",
        json={
            "tableId": 2,
            "customerName": "Eli",
            "customerPhone": "555-0101",
            "guestCount": 4,
            "reservationTime": "2026-10-20T18:30:00",
        },
    ).json()
    other_day = client.post(
        "/api/reservations",
        json={"tableId": 1, "customerName": "Fay", "guestCount": 3, "reservationTime": "2026-10-21T12:00:00"},
    ).json()

    assert late["status"] == "confirmed"
    assert [entry["id"] for entry in client.get("/api/reservations").json()] == [early["id"], late["id"], other_day["id"]]
    assert [entry["id"] for entry in client.get("/api/reservations/date/2026-10-20").json()] == [early["id"], late["id"]]

    updated = client.patch(f"/api/reservations/{late['id']}/status", json={"status": "cancelled"})
    invalid = client.patch(f"/api/reservations/{late['id']}/status", json={"status": "seated"})

    assert updated.json()["status"] == "cancelled"
    assert invalid.status_code == 400
    assert client.delete(f"/api/reservations/{other_day['id']}").status_code == 204
    assert client.delete(f"/api/reservations/{other_day['id']}").status_code == 404
    assert events.types() == [
        "reservation_created",
        "reservation_created",
        "reservation_created",
        "reservation_updated",
        "reservation_deleted",
    ]


def test_reviews_and_average(client, events):
    empty = client.get(f"/api/reviews/{BURGER_ID}").json()
    client.post("/api/reviews", json={"menuItemId": BURGER_ID, "rating": 4, "customerName": "Gus"})
    client.post("/api/reviews", json={"menuItemId": BURGER_ID, "rating": 5, "comment": "Great"})
    out_of_range = client.post("/api/reviews", json={"menuItemId": BURGER_ID, "rating": 6})

    listing = client.get(f"/api/reviews/{BURGER_ID}").json()

    assert empty == {"reviews": [], "averageRating": 0}
    assert out_of_range.status_code == 400
    assert listing["averageRating"] == 4.5
    assert len(listing["reviews"]) == 2
    assert len(events.of_type("review_created")) == 2


def test_analytics(client):
    order = _create_order(client)
    fries = next(item for item in order["orderItems"] if item["menuItemId"] == FRIES_ID)
    client.patch(f"/api/orders/{order['id']}/items/{fries['id']}/cancel")
    client.post("/api/payments", json={"orderId": order["id"], "tableId": 1, "amount": "20.00", "method": "card"})

    sales = client.get("/api/analytics/sales").json()
    popular = client.get("/api/analytics/popular-items").json()
    rate = client.get("/api/analytics/cancellation-rate").json()

    assert sales["totalRevenue"] == "20.00"
    assert sales["paymentCount"] == 1
    assert sales["revenueByMethod"] == {"card": "20.00"}
    assert popular[0]["menuItemId"] == BURGER_ID
    assert popular[0]["totalQuantity"] == 2
    assert FRIES_ID not in {entry["menuItemId"] for entry in popular}
    assert rate == {"cancellationRate": 50.0}


def test_internal_metrics_tracks_organizations(client):
    client.get("/api/tables", params={"organizationId": 5})
    client.get("/api/menu", headers={"X-Organization-ID": "6"})

    snapshot = client.get("/internal/metrics").json()

    assert snapshot["organizations"]["5"]["total_requests"] == 1
    assert snapshot["organizations"]["6"]["total_requests"] == 1
    assert snapshot["endpoints"]["GET /api/tables"]["total_requests"] == 1


def test_websocket_receives_broadcasts(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong", "data": None}

        order = _create_order(client)
        message = websocket.receive_json()

    assert message["type"] == "order_created"
    assert message["data"]["id"] == order["id"]
    assert message["data"]["total"] == "25.00"


def test_unexpected_errors_are_wrapped(seeded_db, monkeypatch):
    from tableside import main
    from tableside.core.database import get_db
    from tableside.services import storage

    def _boom(*_args, **_kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)
    monkeypatch.setattr(storage, "list_orders", _boom)
    main.app.dependency_overrides[get_db] = lambda: seeded_db
    try:
        with TestClient(main.app, raise_server_exceptions=False) as client:
            response = client.get("/api/orders")
    finally:
        main.app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
