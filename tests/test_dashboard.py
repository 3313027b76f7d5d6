from decimal import Decimal

from restaurant.db.models import Order, OrderStatus, PaymentStatus


def test_dashboard_counts_only_paid_revenue(client, db, admin, alice, menu, place_order, headers_for):
    paid = place_order(alice, items=[{"id": menu["jollof"].id, "quantity": 2}])
    place_order(alice, items=[{"id": menu["suya"].id, "quantity": 1}])
    checkout = place_order(alice, items=[{"id": menu["suya"].id, "quantity": 2}])

    row = db.get(Order, paid["id"])
    row.payment_status = PaymentStatus.PAID
    row.status = OrderStatus.PROCESSING
    db.commit()

    assert client.post(f"/api/orders/{checkout['id']}/pay", headers=headers_for(alice)).status_code == 200
    assert client.get("/api/admin/dashboard/", headers=headers_for(alice)).status_code == 403

    body = client.get("/api/admin/dashboard/", headers=headers_for(admin)).json()
    stats = {s["title"]: s["value"] for s in body["stats"]}
    assert stats["Total Orders"] == 3
    assert Decimal(str(stats["Total Revenue"])) == Decimal("5000")
    # one untouched order plus one awaiting the gateway
    assert stats["Pending Orders"] == 2
    assert stats["Menu Items"] == 3
    assert len(body["recent_orders"]) == 3
    assert body["recent_orders"][0]["customer_name"] == "Alice"
