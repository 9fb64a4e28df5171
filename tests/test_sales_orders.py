"""
Sales order lifecycle and payment tests
"""

from datetime import date, timedelta

import pytest

from conftest import api_request


def create_order(token, client_id, **extra):
    payload = {
        "client_id": client_id,
        "items": [
            {"description": "Office chair", "quantity": 4, "unit_price": 150, "tax_rate": 23},
        ],
        "shipping_cost": 20,
    }
    payload.update(extra)
    response = api_request("POST", "/sales-orders/", token, payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def order(token, client_company):
    return create_order(token, client_company["id"])


def advance(token, order_id, *steps):
    for step in steps:
        response = api_request("POST", f"/sales-orders/{order_id}/{step}", token, {})
        assert response.status_code in (200, 201), f"{step}: {response.text}"
    return response.json()


def test_create(order):
    assert order["order_number"] == f"SO-{date.today().year}-000001"
    assert order["status"] == "draft"
    assert order["payment_status"] == "unpaid"
    # 600 net + 138 tax + 20 shipping
    assert order["subtotal"] == 600.0
    assert order["total_amount"] == 758.0


def test_create_as_pending(token, client_company):
    order = create_order(token, client_company["id"], status="pending")
    assert order["status"] == "pending"


def test_full_fulfilment_flow(token, order):
    confirmed = advance(token, order["id"], "confirm")
    assert confirmed["status"] == "confirmed"
    assert confirmed["confirmed_at"] is not None

    processing = advance(token, order["id"], "process")
    assert processing["status"] == "processing"

    response = api_request("POST", f"/sales-orders/{order['id']}/ship", token, {
        "carrier": "CTT",
        "tracking_number": "RR123456789PT",
    })
    shipped = response.json()
    assert shipped["status"] == "shipped"
    assert shipped["tracking_number"] == "RR123456789PT"
    assert shipped["items"][0]["quantity_shipped"] == 4

    delivered = advance(token, order["id"], "deliver")
    assert delivered["status"] == "delivered"

    completed = advance(token, order["id"], "complete")
    assert completed["status"] == "completed"
    assert completed["completed_at"] is not None


def test_partial_shipping_and_delivery(token, order):
    advance(token, order["id"], "confirm")

    response = api_request("POST", f"/sales-orders/{order['id']}/ship", token, {"partial": True})
    assert response.json()["status"] == "partially_shipped"

    response = api_request("POST", f"/sales-orders/{order['id']}/deliver", token, {"partial": True})
    assert response.json()["status"] == "partially_delivered"

    response = api_request("POST", f"/sales-orders/{order['id']}/deliver", token, {})
    assert response.json()["status"] == "delivered"


@pytest.mark.parametrize("step, detail", [
    ("process", "Only confirmed orders can be processed"),
    ("ship", "Only confirmed or processing orders can be shipped"),
    ("deliver", "Only shipped orders can be delivered"),
    ("complete", "Only delivered orders can be completed"),
])
def test_out_of_order_transitions(token, order, step, detail):
    response = api_request("POST", f"/sales-orders/{order['id']}/{step}", token, {})
    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_confirm_only_from_pending_or_draft(token, order):
    advance(token, order["id"], "confirm")
    response = api_request("POST", f"/sales-orders/{order['id']}/confirm", token, {})
    assert response.status_code == 400
    assert response.json()["detail"] == "Only pending or draft orders can be confirmed"


def test_cancel(token, order):
    response = api_request("POST", f"/sales-orders/{order['id']}/cancel", token, {"reason": "Client request"})
    cancelled = response.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_reason"] == "Client request"

    response = api_request("POST", f"/sales-orders/{order['id']}/cancel", token, {})
    assert response.status_code == 400

    response = api_request("PUT", f"/sales-orders/{order['id']}", token, {"notes": "late"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot edit order with status: cancelled"

    response = api_request("POST", f"/sales-orders/{order['id']}/payments", token, {"amount": 10})
    assert response.status_code == 400


def test_return_creates_return_order(token, order):
    response = api_request("POST", f"/sales-orders/{order['id']}/return", token, {"reason": "Damaged"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Only delivered or completed orders can be returned"

    advance(token, order["id"], "confirm", "ship", "deliver")
    response = api_request("POST", f"/sales-orders/{order['id']}/return", token, {"reason": "Damaged"})
    assert response.status_code == 201
    return_doc = response.json()
    assert return_doc["order_number"].startswith("RET-")
    assert return_doc["original_order_id"] == order["id"]
    assert return_doc["status"] == "pending"
    assert len(return_doc["items"]) == 1

    original = api_request("GET", f"/sales-orders/{order['id']}", token).json()
    assert original["status"] == "returned"
    assert original["return_reason"] == "Damaged"


def test_payments(token, order):
    response = api_request("POST", f"/sales-orders/{order['id']}/payments", token, {"amount": 0})
    assert response.status_code == 422

    response = api_request("POST", f"/sales-orders/{order['id']}/payments", token, {
        "amount": 300,
        "payment_method": "transfer",
    })
    assert response.status_code == 201
    assert response.json() == {
        "totalPaid": 300.0,
        "totalOrder": 758.0,
        "paymentStatus": "partially_paid",
        "remainingAmount": 458.0,
    }

    response = api_request("POST", f"/sales-orders/{order['id']}/payments", token, {"amount": 458})
    assert response.json()["paymentStatus"] == "paid"
    assert response.json()["remainingAmount"] == 0.0

    payments = api_request("GET", f"/sales-orders/{order['id']}/payments", token).json()
    assert [p["amount"] for p in payments] == [300.0, 458.0]

    refreshed = api_request("GET", f"/sales-orders/{order['id']}", token).json()
    assert refreshed["total_paid"] == 758.0
    assert refreshed["payment_status"] == "paid"


def test_update_recomputes_totals(token, order):
    response = api_request("PUT", f"/sales-orders/{order['id']}", token, {"shipping_cost": 0})
    assert response.json()["total_amount"] == 738.0

    response = api_request("PUT", f"/sales-orders/{order['id']}", token, {
        "items": [{"description": "Desk", "quantity": 1, "unit_price": 400}],
    })
    assert response.json()["total_amount"] == 400.0


def test_switching_discount_mode_recomputes_totals(token, client_company):
    order = create_order(token, client_company["id"], discount_percentage=10)
    assert order["discount_amount"] == 60.0
    assert order["total_amount"] == 698.0

    updated = api_request("PUT", f"/sales-orders/{order['id']}", token, {"discount_amount": 8}).json()
    assert updated["discount_percentage"] is None
    assert updated["total_amount"] == 750.0

    updated = api_request("PUT", f"/sales-orders/{order['id']}", token, {"discount_percentage": None}).json()
    assert updated["discount_amount"] == 0.0
    assert updated["total_amount"] == 758.0


def test_null_for_required_field_is_rejected(token, order):
    for field in ("client_id", "order_date", "priority"):
        response = api_request("PUT", f"/sales-orders/{order['id']}", token, {field: None})
        assert response.status_code == 400
        assert response.json()["detail"] == f"Field '{field}' cannot be null"

    # A null shipping cost means no shipping
    response = api_request("PUT", f"/sales-orders/{order['id']}", token, {"shipping_cost": None})
    assert response.status_code == 200
    assert response.json()["total_amount"] == 738.0


def test_clone(token, order):
    advance(token, order["id"], "confirm")
    response = api_request("POST", f"/sales-orders/{order['id']}/clone", token)
    assert response.status_code == 201
    clone = response.json()
    assert clone["status"] == "draft"
    assert clone["order_number"] != order["order_number"]
    assert clone["total_amount"] == order["total_amount"]


def test_overdue(token, client_company):
    late = create_order(token, client_company["id"],
                        expected_delivery_date=(date.today() - timedelta(days=10)).isoformat())
    create_order(token, client_company["id"],
                 expected_delivery_date=(date.today() - timedelta(days=2)).isoformat())
    create_order(token, client_company["id"],
                 expected_delivery_date=(date.today() + timedelta(days=5)).isoformat())

    assert len(api_request("GET", "/sales-orders/overdue", token).json()) == 2
    overdue = api_request("GET", "/sales-orders/overdue", token, params={"days": 5}).json()
    assert [o["id"] for o in overdue] == [late["id"]]


def test_stats(token, order, client_company):
    create_order(token, client_company["id"], priority="urgent")
    api_request("POST", f"/sales-orders/{order['id']}/payments", token, {"amount": 758})

    stats = api_request("GET", "/sales-orders/stats", token).json()
    assert stats["totalOrders"] == 2
    assert stats["totalValue"] == 1516.0
    assert stats["totalPaid"] == 758.0
    assert stats["outstanding"] == 758.0
    assert stats["byPriority"] == {"normal": 1, "urgent": 1}
    assert stats["byPaymentStatus"] == {"paid": 1, "unpaid": 1}


def test_lookup_and_delete(token, order):
    response = api_request("GET", f"/sales-orders/number/{order['order_number']}", token)
    assert response.json()["id"] == order["id"]

    response = api_request("DELETE", f"/sales-orders/{order['id']}", token)
    assert response.json()["message"] == "Sales order deleted successfully"
    assert api_request("GET", f"/sales-orders/{order['id']}", token).status_code == 404
