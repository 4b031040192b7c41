import pytest


@pytest.fixture
def catalog(client, admin):
    ids = []
    for name, price, category in (("Company Registration", 1000, "Business"), ("Tax Clearance", 200, "Tax")):
        response = client.post("/api/admin/services", json={
            "name": name, "price": price, "category": category,
        }, headers=admin["headers"])
        assert response.status_code == 201
        ids.append(response.json()["id"])
    return ids


def test_catalog_lists_active_services(client, catalog):
    services = client.get("/api/services").json()
    assert [s["name"] for s in services] == ["Company Registration", "Tax Clearance"]


def test_add_twice_increments_and_totals(client, catalog, business_client):
    headers = business_client["headers"]
    registration, tax = catalog

    response = client.post("/api/cart", json={"service_id": registration}, headers=headers)
    assert response.status_code == 201
    client.post("/api/cart", json={"service_id": registration}, headers=headers)
    cart = client.post("/api/cart", json={"service_id": tax}, headers=headers).json()

    assert [(line["service_id"], line["quantity"]) for line in cart["items"]] == [(registration, 2), (tax, 1)]
    assert cart["items"][0]["subtotal"] == 2000.0
    assert cart["subtotal"] == 2200.0
    assert cart["vat"] == 330.0
    assert cart["total"] == 2530.0


def test_update_remove_and_clear(client, catalog, business_client):
    headers = business_client["headers"]
    registration, tax = catalog
    client.post("/api/cart", json={"service_id": registration}, headers=headers)
    client.post("/api/cart", json={"service_id": tax}, headers=headers)

    cart = client.put(f"/api/cart/{tax}", json={"quantity": 3}, headers=headers).json()
    assert cart["subtotal"] == 1600.0

    assert client.put("/api/cart/999", json={"quantity": 1}, headers=headers).status_code == 404
    assert client.put(f"/api/cart/{tax}", json={"quantity": 0}, headers=headers).status_code == 422

    cart = client.delete(f"/api/cart/{registration}", headers=headers).json()
    assert [line["service_id"] for line in cart["items"]] == [tax]

    assert client.delete("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/cart", headers=headers).json()["items"] == []


def test_retired_service_cannot_be_added(client, catalog, business_client, admin):
    registration, _ = catalog
    client.delete(f"/api/admin/services/{registration}", headers=admin["headers"])
    response = client.post("/api/cart", json={"service_id": registration}, headers=business_client["headers"])
    assert response.status_code == 404


def test_retired_service_drops_out_of_cart(client, catalog, business_client, admin):
    headers = business_client["headers"]
    registration, _ = catalog
    client.post("/api/cart", json={"service_id": registration}, headers=headers)
    client.delete(f"/api/admin/services/{registration}", headers=admin["headers"])

    cart = client.get("/api/cart", headers=headers).json()
    assert cart["items"] == []
    assert cart["total"] == 0.0
    response = client.post("/api/orders/checkout", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cart is empty"


def test_checkout(client, catalog, business_client):
    headers = business_client["headers"]
    registration, tax = catalog
    client.post("/api/cart", json={"service_id": registration, "quantity": 2}, headers=headers)
    client.post("/api/cart", json={"service_id": tax}, headers=headers)

    response = client.post("/api/orders/checkout", headers=headers)
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["subtotal"] == 2200.0
    assert order["vat"] == 330.0
    assert order["total_amount"] == 2530.0
    assert [(i["service_name"], i["quantity"], i["vat"], i["total"]) for i in order["items"]] == [
        ("Company Registration", 2, 300.0, 2300.0),
        ("Tax Clearance", 1, 30.0, 230.0),
    ]

    assert client.get("/api/cart", headers=headers).json()["items"] == []
    assert client.post("/api/orders/checkout", headers=headers).status_code == 400

    orders = client.get("/api/orders", headers=headers).json()
    assert [o["id"] for o in orders] == [order["id"]]
    assert client.get(f"/api/orders/{order['id']}", headers=headers).json()["total_amount"] == 2530.0


def test_orders_are_private(client, catalog, business_client, register_client):
    client.post("/api/cart", json={"service_id": catalog[0]}, headers=business_client["headers"])
    order = client.post("/api/orders/checkout", headers=business_client["headers"]).json()

    other = register_client(email="other@example.com")
    assert client.get(f"/api/orders/{order['id']}", headers=other["headers"]).status_code == 404
    assert client.get("/api/orders", headers=other["headers"]).json() == []


def test_jobseeker_has_no_cart(client, jobseeker):
    assert client.get("/api/cart", headers=jobseeker["headers"]).status_code == 403


def test_cart_total_matches_order_total(client, admin, business_client):
    headers = business_client["headers"]
    for name in ("Certified Copies", "Share Certificate"):
        service = client.post("/api/admin/services", json={"name": name, "price": 10.02}, headers=admin["headers"]).json()
        client.post("/api/cart", json={"service_id": service["id"]}, headers=headers)

    cart = client.get("/api/cart", headers=headers).json()
    assert [line["vat"] for line in cart["items"]] == [1.5, 1.5]
    assert (cart["subtotal"], cart["vat"], cart["total"]) == (20.04, 3.0, 23.04)

    order = client.post("/api/orders/checkout", headers=headers).json()
    assert (order["subtotal"], order["vat"], order["total_amount"]) == (cart["subtotal"], cart["vat"], cart["total"])
