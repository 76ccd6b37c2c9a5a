import pytest

from storefront.models import OrderTracking, Product
from storefront.services.admin_service import paginate, tracking_status_for

from conftest import ADDRESS


def place_order(client, headers, product_id="kurta-1", quantity=1):
    return client.post("/orders", headers=headers, json={
        "items": [{"productId": product_id, "quantity": quantity}],
        "shippingAddress": ADDRESS,
        "paymentMethod": "COD"
    }).json()


@pytest.mark.parametrize("path", ["/admin/products", "/admin/orders", "/admin/users", "/admin/stats"])
def test_admin_routes_require_admin_role(client, user_headers, path):
    assert client.get(path).status_code == 401
    forbidden = client.get(path, headers=user_headers)
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Admin access required"}


def test_paginate_defaults():
    assert paginate(None, None) == (1, 50, 0)
    assert paginate(3, 10) == (3, 10, 20)
    assert paginate(0, -5) == (1, 50, 0)


def test_tracking_status_mapping():
    assert tracking_status_for("SHIPPED") == "SHIPPED"
    assert tracking_status_for("DELIVERED") == "DELIVERED"
    assert tracking_status_for("PENDING") == "CREATED"
    assert tracking_status_for("CANCELLED") == "CREATED"


def test_create_update_delete_product(client, db, admin_headers):
    created = client.post("/admin/products", headers=admin_headers, json={
        "id": "sherwani-2", "name": "Ivory Sherwani", "price": 6999, "category": "men",
        "sizes": ["40", "42"], "stock": 4
    })
    assert created.status_code == 201
    assert created.json()["basePrice"] == 6999
    assert created.json()["sizes"] == ["40", "42"]

    updated = client.put("/admin/products/sherwani-2", headers=admin_headers,
                         json={"price": 5999, "isActive": False})
    assert updated.status_code == 200
    assert updated.json()["price"] == 5999
    assert updated.json()["isActive"] is False
    assert updated.json()["name"] == "Ivory Sherwani"
    assert updated.json()["sizes"] == ["40", "42"]

    deleted = client.delete("/admin/products/sherwani-2", headers=admin_headers)
    assert deleted.status_code == 200
    assert db.query(Product).count() == 0


def test_create_product_validation(client, admin_headers, make_product):
    make_product("kurta-1")

    missing = client.post("/admin/products", headers=admin_headers, json={"id": "x", "name": "X"})
    duplicate = client.post("/admin/products", headers=admin_headers, json={
        "id": "kurta-1", "name": "Again", "price": 10, "category": "men"
    })

    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing required fields"}
    assert duplicate.status_code == 400


def test_update_and_delete_missing_product(client, admin_headers):
    assert client.put("/admin/products/ghost", headers=admin_headers, json={"price": 1}).status_code == 404
    assert client.delete("/admin/products/ghost", headers=admin_headers).status_code == 404


def test_product_with_orders_cannot_be_deleted(client, admin_headers, user_headers, make_product):
    make_product("kurta-1")
    place_order(client, user_headers)

    response = client.delete("/admin/products/kurta-1", headers=admin_headers)

    assert response.status_code == 400


def test_list_products_includes_inactive_and_searches(client, admin_headers, make_product):
    make_product("kurta-1", name="Silk Kurta")
    make_product("retired-1", name="Old Shawl", is_active=False)
    make_product("saree-1", name="Cotton Saree", category="women")

    everything = client.get("/admin/products", headers=admin_headers).json()
    assert everything["total"] == 3
    assert everything["page"] == 1
    assert everything["totalPages"] == 1

    by_id = client.get("/admin/products", headers=admin_headers, params={"search": "RETIRED"}).json()
    assert [p["id"] for p in by_id["products"]] == ["retired-1"]

    paged = client.get("/admin/products", headers=admin_headers, params={"limit": 2, "page": 2}).json()
    assert len(paged["products"]) == 1
    assert paged["totalPages"] == 2


def test_order_status_update_refreshes_tracking(client, db, admin_headers, user_headers, make_product):
    make_product("kurta-1")
    order = place_order(client, user_headers)

    shipped = client.put(f"/admin/orders/{order['id']}/status", headers=admin_headers,
                         json={"status": "SHIPPED"})
    assert shipped.status_code == 200
    assert shipped.json()["status"] == "SHIPPED"
    assert shipped.json()["tracking"]["status"] == "SHIPPED"
    assert shipped.json()["user"]["email"] == "shopper@example.com"

    cancelled = client.put(f"/admin/orders/{order['id']}/status", headers=admin_headers,
                           json={"status": "CANCELLED"})
    assert cancelled.json()["tracking"]["status"] == "CREATED"
    assert db.query(OrderTracking).count() == 1


def test_order_status_validation(client, admin_headers, user_headers, make_product):
    make_product("kurta-1")
    order = place_order(client, user_headers)

    missing = client.put(f"/admin/orders/{order['id']}/status", headers=admin_headers, json={})
    invalid = client.put(f"/admin/orders/{order['id']}/status", headers=admin_headers,
                         json={"status": "LOST"})
    unknown = client.put("/admin/orders/ghost/status", headers=admin_headers, json={"status": "SHIPPED"})

    assert missing.status_code == 400
    assert invalid.json() == {"error": "Invalid status: LOST"}
    assert unknown.status_code == 404


def test_list_orders_filters_by_status(client, admin_headers, user_headers, make_product):
    make_product("kurta-1")
    first = place_order(client, user_headers)
    place_order(client, user_headers)
    client.put(f"/admin/orders/{first['id']}/status", headers=admin_headers, json={"status": "DELIVERED"})

    delivered = client.get("/admin/orders", headers=admin_headers, params={"status": "DELIVERED"}).json()
    everything = client.get("/admin/orders", headers=admin_headers).json()

    assert [o["id"] for o in delivered["orders"]] == [first["id"]]
    assert delivered["total"] == 1
    assert everything["total"] == 2
    assert everything["orders"][0]["items"][0]["product"]["id"] == "kurta-1"


def test_users_list_and_role_update(client, admin_headers, user, user_headers, make_product):
    make_product("kurta-1")
    place_order(client, user_headers)

    listing = client.get("/admin/users", headers=admin_headers, params={"search": "shopper"}).json()
    assert listing["total"] == 1
    assert listing["users"][0]["orderCount"] == 1

    promoted = client.put(f"/admin/users/{user.id}/role", headers=admin_headers, json={"role": "ADMIN"})
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "ADMIN"

    invalid = client.put(f"/admin/users/{user.id}/role", headers=admin_headers, json={"role": "ROOT"})
    assert invalid.json() == {"error": "Invalid role"}
    assert client.put("/admin/users/ghost/role", headers=admin_headers,
                      json={"role": "USER"}).status_code == 404


def test_stats(client, admin_headers, user_headers, make_product):
    make_product("kurta-1", price=1000, stock=12)
    make_product("tee-1", price=100, stock=3)
    place_order(client, user_headers, "kurta-1", 2)

    stats = client.get("/admin/stats", headers=admin_headers).json()

    assert stats["totalProducts"] == 2
    assert stats["totalUsers"] == 2
    assert stats["totalOrders"] == 1
    assert stats["pendingOrders"] == 1
    assert stats["lowStockProducts"] == 1
    assert stats["totalRevenue"] == 2360
    assert stats["recentRevenue"] == 2360
    assert stats["recentOrders"][0]["itemCount"] == 2


def test_create_product_rejects_negative_amounts(client, db, admin_headers):
    base = {"id": "kurta-5", "name": "Kurta", "category": "men"}

    negative_price = client.post("/admin/products", headers=admin_headers, json={**base, "price": -1})
    negative_base = client.post("/admin/products", headers=admin_headers,
                                json={**base, "price": 100, "basePrice": -5})

    assert negative_price.status_code == 400
    assert "error" in negative_price.json()
    assert negative_base.status_code == 400
    assert db.query(Product).count() == 0
