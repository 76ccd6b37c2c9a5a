from datetime import datetime

from storefront.models import Order, OrderItem, Product
from storefront.services.order_service import OrderService

from conftest import ADDRESS


def place(client, headers, items, **overrides):
    body = {"items": items, "shippingAddress": ADDRESS, "paymentMethod": "COD"}
    body.update(overrides)
    return client.post("/orders", json=body, headers=headers)


def test_place_order_prices_from_catalog(client, db, user_headers, make_product):
    make_product("kurta-1", price=400, stock=5)
    make_product("saree-1", price=300, stock=5)

    response = place(client, user_headers, [
        {"productId": "kurta-1", "quantity": 2},
        {"productId": "saree-1", "quantity": 1},
    ])

    assert response.status_code == 201
    order = response.json()
    assert order["orderNumber"].startswith("ORD-")
    assert order["subtotal"] == 1100
    assert order["shipping"] == 0
    assert order["tax"] == 198
    assert order["total"] == 1298
    assert order["status"] == "PENDING"
    assert order["paymentStatus"] == "PENDING"
    assert order["shippingAddress"] == ADDRESS
    assert order["customerEmail"] == "shopper@example.com"
    assert order["customerName"] == "Shopper"
    assert {item["productId"]: item["price"] for item in order["items"]} == {
        "kurta-1": 400, "saree-1": 300
    }
    assert order["items"][0]["product"]["name"]

    db.expire_all()
    assert db.get(Product, "kurta-1").stock == 3
    assert db.get(Product, "saree-1").stock == 4


def test_small_order_pays_shipping(client, user_headers, make_product):
    make_product("tee-1", price=399, stock=5)

    response = place(client, user_headers, [{"productId": "tee-1", "quantity": 1}], paymentMethod="CARD")

    assert response.status_code == 201
    order = response.json()
    assert order["shipping"] == 50
    assert order["tax"] == 72  # 71.82
    assert order["total"] == 399 + 50 + 72
    assert order["paymentStatus"] == "PAID"


def test_client_price_is_ignored_on_storefront(client, user_headers, make_product):
    make_product("kurta-1", price=400, stock=5)

    response = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1, "price": 1}])

    assert response.status_code == 201
    assert response.json()["items"][0]["price"] == 400


def test_insufficient_stock_rejects_without_side_effects(client, db, user_headers, make_product):
    make_product("kurta-1", price=400, stock=5)
    make_product("saree-1", price=300, stock=1)

    response = place(client, user_headers, [
        {"productId": "kurta-1", "quantity": 1},
        {"productId": "saree-1", "quantity": 2},
    ])

    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["error"]
    db.expire_all()
    assert db.query(Order).count() == 0
    assert db.get(Product, "kurta-1").stock == 5
    assert db.get(Product, "saree-1").stock == 1


def test_stale_stock_read_cannot_oversell(client, db, user_headers, make_product, monkeypatch):
    # Another order took the last unit after this request validated stock
    make_product("kurta-1", price=400, stock=0)
    stale = Product(id="kurta-1", name="Kurta 1", price=400, stock=1, is_active=True)
    monkeypatch.setattr(OrderService, "_load_product", lambda self, db, product_id: stale)

    response = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}])

    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["error"]
    db.expire_all()
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert db.get(Product, "kurta-1").stock == 0


def test_last_unit_sells_once(client, db, user_headers, make_product):
    make_product("kurta-1", price=400, stock=1)

    first = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}])
    second = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}])

    assert first.status_code == 201
    assert second.status_code == 400
    db.expire_all()
    assert db.get(Product, "kurta-1").stock == 0
    assert db.query(Order).count() == 1


def test_missing_and_inactive_products_are_not_found(client, user_headers, make_product):
    make_product("retired-1", is_active=False)

    missing = place(client, user_headers, [{"productId": "nope", "quantity": 1}])
    inactive = place(client, user_headers, [{"productId": "retired-1", "quantity": 1}])

    assert missing.status_code == 404
    assert missing.json() == {"error": "Product nope not found"}
    assert inactive.status_code == 404


def test_order_requires_items_address_and_payment(client, user_headers, make_product):
    make_product("kurta-1")
    line = [{"productId": "kurta-1", "quantity": 1}]

    assert place(client, user_headers, []).json() == {"error": "Order items are required"}
    no_address = place(client, user_headers, line, shippingAddress=None)
    assert no_address.status_code == 400
    assert no_address.json() == {"error": "Shipping address is required"}
    no_payment = place(client, user_headers, line, paymentMethod=None)
    assert no_payment.status_code == 400
    assert no_payment.json() == {"error": "Payment method is required"}


def test_non_positive_quantity_is_rejected(client, user_headers, make_product):
    make_product("kurta-1")

    response = place(client, user_headers, [{"productId": "kurta-1", "quantity": 0}])

    assert response.status_code == 400
    assert "error" in response.json()


def test_order_requires_authentication(client, make_product):
    make_product("kurta-1")

    response = place(client, {}, [{"productId": "kurta-1", "quantity": 1}])

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


def test_my_orders_newest_first(client, db, user_headers, make_product, make_user, headers_for):
    make_product("kurta-1", stock=10)
    first = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}]).json()
    second = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}]).json()
    other = make_user(email="other@example.com")
    place(client, headers_for(other), [{"productId": "kurta-1", "quantity": 1}])
    db.query(Order).filter(Order.id == first["id"]).update({Order.created_at: datetime(2024, 1, 1)})
    db.query(Order).filter(Order.id == second["id"]).update({Order.created_at: datetime(2024, 1, 2)})
    db.commit()

    response = client.get("/orders", headers=user_headers)

    assert response.status_code == 200
    assert [order["id"] for order in response.json()] == [second["id"], first["id"]]


def test_tracking_by_number_and_id_match(client, user_headers, make_product):
    make_product("kurta-1")
    order = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}]).json()

    by_number = client.get("/orders/track", params={"orderNumber": order["orderNumber"]})
    by_id = client.get("/orders/track", params={"orderId": order["id"]})

    assert by_number.status_code == 200
    assert by_number.json() == by_id.json()
    assert by_number.json()["shippingAddress"] == ADDRESS


def test_tracking_errors(client):
    assert client.get("/orders/track").status_code == 400
    missing = client.get("/orders/track", params={"orderNumber": "ORD-0-NOPE"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Order not found"}


def test_unparsable_shipping_address_reads_as_null(client, db, user_headers, make_product):
    make_product("kurta-1")
    order = place(client, user_headers, [{"productId": "kurta-1", "quantity": 1}]).json()
    db.query(Order).filter(Order.id == order["id"]).update({Order.shipping_address: "{not json"})
    db.commit()

    response = client.get("/orders/track", params={"orderId": order["id"]})

    assert response.status_code == 200
    assert response.json()["shippingAddress"] is None


def test_snake_case_request_fields_are_accepted(client, user_headers, make_product):
    make_product("kurta-1", price=400)

    response = client.post("/orders", headers=user_headers, json={
        "items": [{"product_id": "kurta-1", "quantity": 1}],
        "shipping_address": ADDRESS,
        "payment_method": "UPI",
    })

    assert response.status_code == 201
    assert response.json()["paymentMethod"] == "UPI"
