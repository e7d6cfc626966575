import database

from .factories import SHIPPING, USER_ID


def _order_body(**overrides):
    body = {
        "items": [
            {"productId": "p1", "quantity": 2, "size": "M", "color": "Black", "price": "25.00"},
            {"productId": "p2", "quantity": 1, "price": "40.00"},
        ],
        "shippingAddress": SHIPPING,
    }
    body.update(overrides)
    return body


def test_create_order_directly(client, user_headers):
    resp = client.post("/api/orders", json=_order_body(), headers=user_headers)
    assert resp.status_code == 201
    order = resp.json()
    assert order["userId"] == USER_ID
    assert order["total"] == "90.00"
    assert order["status"] == "pending"
    assert order["items"][0] == {"productId": "p1", "quantity": 2, "size": "M", "color": "Black", "price": "25.00"}
    assert order["shippingAddress"]["zipCode"] == "N1 9GU"


def test_create_order_ignores_client_user_id(client, user_headers):
    resp = client.post("/api/orders", json=_order_body(userId="someone-else"), headers=user_headers)
    assert resp.status_code == 201
    assert resp.json()["userId"] == USER_ID


def test_create_order_ignores_client_status(client, user_headers):
    resp = client.post("/api/orders", json=_order_body(status="delivered"), headers=user_headers)
    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"
    stored = database.db["order"].find_one({})
    assert stored["status"] == "pending"


def test_create_order_validation(client, user_headers):
    assert client.post("/api/orders", json=_order_body(items=[]), headers=user_headers).status_code == 400
    bad_address = dict(SHIPPING, email="not-an-email")
    resp = client.post("/api/orders", json=_order_body(shippingAddress=bad_address), headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid request data"


def test_orders_require_auth(client):
    assert client.get("/api/orders").status_code == 401
    assert client.post("/api/orders", json=_order_body()).status_code == 401


def test_user_sees_own_orders_admin_sees_all(client, user_headers, other_user_headers, admin_headers):
    client.post("/api/orders", json=_order_body(), headers=user_headers)
    client.post("/api/orders", json=_order_body(), headers=other_user_headers)

    mine = client.get("/api/orders", headers=user_headers).json()
    assert [o["userId"] for o in mine] == [USER_ID]

    everything = client.get("/api/orders", headers=admin_headers).json()
    assert len(everything) == 2


def test_get_order_owner_and_admin_only(client, user_headers, other_user_headers, admin_headers):
    order_id = client.post("/api/orders", json=_order_body(), headers=user_headers).json()["id"]

    assert client.get(f"/api/orders/{order_id}", headers=user_headers).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 200
    resp = client.get(f"/api/orders/{order_id}", headers=other_user_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Access denied"


def test_get_missing_order_is_404(client, user_headers):
    assert client.get("/api/orders/000000000000000000000000", headers=user_headers).status_code == 404


def test_admin_updates_status(client, user_headers, admin_headers):
    order_id = client.post("/api/orders", json=_order_body(), headers=user_headers).json()["id"]
    resp = client.put(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "shipped"


def test_status_update_validation(client, user_headers, admin_headers):
    order_id = client.post("/api/orders", json=_order_body(), headers=user_headers).json()["id"]
    url = f"/api/orders/{order_id}/status"
    assert client.put(url, json={}, headers=admin_headers).status_code == 400
    assert client.put(url, json={"status": "teleported"}, headers=admin_headers).status_code == 400
    assert client.put(url, json={"status": "shipped", "total": "0"}, headers=admin_headers).status_code == 400


def test_non_admin_cannot_update_status(client, user_headers):
    order_id = client.post("/api/orders", json=_order_body(), headers=user_headers).json()["id"]
    resp = client.put(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=user_headers)
    assert resp.status_code == 403
    assert database.db["order"].find_one()["status"] == "pending"


def test_status_update_missing_order_is_404(client, admin_headers):
    resp = client.put("/api/orders/000000000000000000000000/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 404
