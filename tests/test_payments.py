import base64
import hashlib
import hmac
import json
import time

import httpx
import pytest

from tmv_platform.api.routes import payment_routes
from tmv_platform.main import app
from tmv_platform.services.yoco_client import YocoClient, get_yoco_client, to_cents, verify_webhook

WEBHOOK_KEY = base64.b64encode(b"super-secret-webhook-key").decode()


@pytest.fixture
def gateway(client):
    """Yoco replaced by an in-process transport; requests are recorded."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        if request.url.path != "/checkouts":
            return httpx.Response(404)
        return httpx.Response(200, json={"id": f"ch_{len(calls)}", "redirectUrl": f"https://pay.test/ch_{len(calls)}"})

    yoco = YocoClient(secret_key="sk", base_url="https://yoco.test", client=httpx.Client(transport=httpx.MockTransport(handler)))
    app.dependency_overrides[get_yoco_client] = lambda: yoco
    return calls


@pytest.fixture
def failing_gateway(client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    yoco = YocoClient(secret_key="sk", base_url="https://yoco.test", client=httpx.Client(transport=httpx.MockTransport(handler)))
    app.dependency_overrides[get_yoco_client] = lambda: yoco


def _succeeded(transaction_id, event_id="evt_1"):
    return {
        "id": event_id,
        "type": "payment.succeeded",
        "payload": {"id": "p_123", "metadata": {"transactionId": str(transaction_id)}},
    }


def _order(client, admin, headers):
    service = client.post("/api/admin/services", json={"name": "Annual Returns", "price": 400}, headers=admin["headers"]).json()
    client.post("/api/cart", json={"service_id": service["id"], "quantity": 2}, headers=headers)
    return client.post("/api/orders/checkout", headers=headers).json()


def test_to_cents():
    assert to_cents(10) == 1000
    assert to_cents(19.99) == 1999
    assert to_cents("250.5") == 25050


def test_verify_webhook_signature():
    body = b'{"type": "payment.succeeded"}'
    now = int(time.time())
    signed = f"msg_1.{now}.".encode() + body
    signature = base64.b64encode(hmac.new(base64.b64decode(WEBHOOK_KEY), signed, hashlib.sha256).digest()).decode()
    headers = {"webhook-id": "msg_1", "webhook-timestamp": str(now), "webhook-signature": f"v1,{signature}"}

    assert verify_webhook(f"whsec_{WEBHOOK_KEY}", headers, body)
    assert not verify_webhook(f"whsec_{WEBHOOK_KEY}", headers, body + b" ")
    assert not verify_webhook(f"whsec_{WEBHOOK_KEY}", headers, body, now=now + 3600)
    assert not verify_webhook(f"whsec_{WEBHOOK_KEY}", {}, body)


def test_initialize_by_amount(client, gateway, business_client):
    response = client.post("/api/payments/initialize", json={
        "amount": 150.75,
        "description": "Consultation",
        "items": [{"name": "Consultation", "price": 150.75}],
    }, headers=business_client["headers"])
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["checkout_url"] == "https://pay.test/ch_1"

    sent = gateway[0]
    assert sent["amount"] == 15075
    assert sent["currency"] == "ZAR"
    assert sent["metadata"] == {"transactionId": str(body["transaction_id"])}
    assert sent["successUrl"].endswith(f"/payment/success?transaction_id={body['transaction_id']}")

    txn = client.get(f"/api/payments/status/{body['transaction_id']}", headers=business_client["headers"]).json()
    assert txn["status"] == "pending"
    assert txn["checkout_url"] == "https://pay.test/ch_1"
    assert txn["items"][0]["name"] == "Consultation"


@pytest.mark.parametrize("payload", [
    {},
    {"amount": 0},
    {"amount": 10, "order_id": 1},
])
def test_initialize_needs_exactly_one_source(client, gateway, business_client, payload):
    response = client.post("/api/payments/initialize", json=payload, headers=business_client["headers"])
    assert response.status_code == 422


def test_gateway_failure_leaves_failed_transaction(client, failing_gateway, business_client):
    response = client.post("/api/payments/initialize", json={"amount": 99}, headers=business_client["headers"])
    assert response.status_code == 502

    transactions = client.get("/api/payments/transactions", headers=business_client["headers"]).json()
    assert [t["status"] for t in transactions] == ["failed"]


@pytest.mark.parametrize("body", [
    {"text": "<html>Service Unavailable</html>"},
    {"json": ["not", "an", "object"]},
])
def test_malformed_checkout_reply_leaves_failed_transaction(client, business_client, body):
    yoco = YocoClient(secret_key="sk", base_url="https://yoco.test",
                      client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, **body))))
    app.dependency_overrides[get_yoco_client] = lambda: yoco

    response = client.post("/api/payments/initialize", json={"amount": 99}, headers=business_client["headers"])
    assert response.status_code == 502

    transactions = client.get("/api/payments/transactions", headers=business_client["headers"]).json()
    assert [t["status"] for t in transactions] == ["failed"]


def test_order_payment_flow(client, gateway, business_client, admin):
    headers = business_client["headers"]
    order = _order(client, admin, headers)

    init = client.post("/api/payments/initialize", json={"order_id": order["id"]}, headers=headers).json()
    assert gateway[0]["amount"] == to_cents(order["total_amount"])

    ack = client.post("/api/payments/webhook", json=_succeeded(init["transaction_id"])).json()
    assert ack == {"received": True, "duplicate": False}

    txn = client.get(f"/api/payments/status/{init['transaction_id']}", headers=headers).json()
    assert txn["status"] == "completed"
    paid = client.get(f"/api/orders/{order['id']}", headers=headers).json()
    assert paid["status"] == "paid"
    assert paid["payment_status"] == "completed"

    # Replayed event
    ack = client.post("/api/payments/webhook", json=_succeeded(init["transaction_id"])).json()
    assert ack["duplicate"] is True
    events = client.get(f"/api/payments/transactions/{init['transaction_id']}/events", headers=headers).json()
    assert len(events) == 1
    assert events[0]["event_type"] == "payment.succeeded"

    # A paid order cannot be paid again
    response = client.post("/api/payments/initialize", json={"order_id": order["id"]}, headers=headers)
    assert response.status_code == 400


def test_project_payment_flow(client, gateway, business_client):
    headers = business_client["headers"]
    project = client.post("/api/architecture/projects", json={
        "project_type": "commercial", "project_name": "Office Fit-out", "payment_amount": 12000,
    }, headers=headers).json()

    init = client.post("/api/payments/initialize", json={"project_id": project["id"]}, headers=headers).json()
    assert gateway[0]["amount"] == 1200000

    # Matched by checkout id instead of transaction id
    client.post("/api/payments/webhook", json={
        "id": "evt_9", "type": "payment.succeeded", "payload": {"metadata": {"checkoutId": "ch_1"}},
    })
    assert client.get(f"/api/architecture/projects/{project['id']}", headers=headers).json()["payment_status"] == "paid"
    assert client.post("/api/payments/initialize", json={"project_id": project["id"]}, headers=headers).status_code == 400
    assert init["status"] == "pending"


def test_project_without_amount(client, gateway, business_client):
    headers = business_client["headers"]
    project = client.post("/api/architecture/projects", json={
        "project_type": "residential", "project_name": "Granny Flat",
    }, headers=headers).json()
    response = client.post("/api/payments/initialize", json={"project_id": project["id"]}, headers=headers)
    assert response.status_code == 400


def test_failed_event(client, gateway, business_client):
    headers = business_client["headers"]
    init = client.post("/api/payments/initialize", json={"amount": 20}, headers=headers).json()
    client.post("/api/payments/webhook", json={
        "id": "evt_2", "type": "payment.failed", "payload": {"metadata": {"transactionId": str(init["transaction_id"])}},
    })
    txn = client.get(f"/api/payments/status/{init['transaction_id']}", headers=headers).json()
    assert txn["status"] == "failed"


def test_webhook_rejects_unknown_and_garbage(client):
    assert client.post("/api/payments/webhook", json=_succeeded(999)).status_code == 404
    response = client.post("/api/payments/webhook", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400


def test_events_visibility(client, gateway, business_client, register_client, admin):
    init = client.post("/api/payments/initialize", json={"amount": 20}, headers=business_client["headers"]).json()
    client.post("/api/payments/webhook", json=_succeeded(init["transaction_id"]))
    url = f"/api/payments/transactions/{init['transaction_id']}/events"

    other = register_client(email="other@example.com")
    assert client.get(url, headers=other["headers"]).status_code == 404
    assert client.get(f"/api/payments/status/{init['transaction_id']}", headers=other["headers"]).status_code == 404
    assert len(client.get(url, headers=admin["headers"]).json()) == 1


def test_signed_webhooks(client, gateway, business_client, monkeypatch):
    monkeypatch.setattr(payment_routes.settings, "yoco_webhook_secret", f"whsec_{WEBHOOK_KEY}")
    init = client.post("/api/payments/initialize", json={"amount": 20}, headers=business_client["headers"]).json()
    body = json.dumps(_succeeded(init["transaction_id"])).encode()

    response = client.post("/api/payments/webhook", content=body, headers={"Content-Type": "application/json"})
    assert response.status_code == 401

    now = str(int(time.time()))
    signed = f"msg_7.{now}.".encode() + body
    signature = base64.b64encode(hmac.new(base64.b64decode(WEBHOOK_KEY), signed, hashlib.sha256).digest()).decode()
    response = client.post("/api/payments/webhook", content=body, headers={
        "Content-Type": "application/json",
        "webhook-id": "msg_7",
        "webhook-timestamp": now,
        "webhook-signature": f"v1,{signature}",
    })
    assert response.status_code == 200
    txn = client.get(f"/api/payments/status/{init['transaction_id']}", headers=business_client["headers"]).json()
    assert txn["status"] == "completed"
