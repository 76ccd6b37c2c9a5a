def test_profile_includes_counts(client, user, user_headers, make_product):
    make_product("kurta-1")
    client.post("/orders", headers=user_headers, json={
        "items": [{"productId": "kurta-1", "quantity": 1}],
        "shippingAddress": {"city": "Pune"},
        "paymentMethod": "COD"
    })
    client.post("/reviews", headers=user_headers, json={"productId": "kurta-1", "rating": 5})

    response = client.get("/users/profile", headers=user_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user.id
    assert body["email"] == user.email
    assert body["isVerified"] is False
    assert body["counts"] == {"orders": 1, "reviews": 1}
    assert "password" not in body


def test_update_profile_ignores_empty_values(client, user_headers):
    updated = client.put("/users/profile", headers=user_headers, json={"name": "Asha", "phone": ""})

    assert updated.status_code == 200
    assert updated.json()["name"] == "Asha"
    assert updated.json()["phone"] is None

    again = client.put("/users/profile", headers=user_headers, json={"phone": "9876543210"})
    assert again.json()["name"] == "Asha"
    assert again.json()["phone"] == "9876543210"
