"""
Payment Routes (Yoco hosted checkout)

POST /payments/initialize - Create a transaction and a Yoco checkout
POST /payments/webhook - Yoco event callback
GET /payments/status/{transaction_id} - Transaction status
GET /payments/transactions - My transactions
GET /payments/transactions/{transaction_id}/events - Webhook events of a transaction

Flow:
1. Client calls /initialize -> pending transaction + checkout_url
2. Browser is redirected to Yoco, pays
3. Yoco calls /webhook -> transaction (and its order / project) updated
"""

import json

from fastapi import APIRouter, HTTPException, Depends, Request
from typing import List

from tmv_platform.db.database import get_db_session, fetch_all, fetch_one
from tmv_platform.core.auth import get_current_client
from tmv_platform.core.config import get_settings
from tmv_platform.core.errors import PaymentGatewayError
from tmv_platform.core.permissions import ADMIN
from tmv_platform.services.payment_service import (
    create_transaction, mark_checkout_created, set_status, load_transactions, load_transaction,
    load_events, find_event_transaction, is_duplicate_event, apply_webhook_event
)
from tmv_platform.services.yoco_client import YocoClient, get_yoco_client, verify_webhook
from tmv_platform.schemas.schemas import (
    PaymentInitRequest, PaymentInitResponse, TransactionResponse, TransactionEventResponse, WebhookAck
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/payments", tags=["Payments"])
settings = get_settings()
logger = get_logger(__name__)


def _payment_source(db, request: PaymentInitRequest, user_id: int) -> dict:
    """Resolve amount, description and items from the request, an order or a project."""
    if request.order_id is not None:
        order = fetch_one(
            db, "SELECT * FROM orders WHERE id = :id AND user_id = :uid", {"id": request.order_id, "uid": user_id}
        )
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if order["payment_status"] == "completed":
            raise HTTPException(status_code=400, detail="Order is already paid")
        lines = fetch_all(
            db,
            "SELECT service_id, service_name, total, quantity FROM order_items WHERE order_id = :id ORDER BY id",
            {"id": order["id"]}
        )
        return {
            "amount": float(order["total_amount"]),
            "description": request.description or f"Order #{order['id']}",
            "items": [
                {"type": "service", "item_id": str(l["service_id"]), "name": l["service_name"],
                 "price": float(l["total"]) / l["quantity"], "quantity": l["quantity"]}
                for l in lines
            ],
        }

    if request.project_id is not None:
        project = fetch_one(
            db,
            "SELECT * FROM architecture_projects WHERE id = :id AND client_id = :uid",
            {"id": request.project_id, "uid": user_id}
        )
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
        if project["payment_status"] == "paid":
            raise HTTPException(status_code=400, detail="Project is already paid")
        amount = float(project["payment_amount"] or 0)
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Project has no payment amount")
        return {
            "amount": amount,
            "description": request.description or f"Architecture project: {project['project_name']}",
            "items": [{"type": "architecture_project", "item_id": str(project["id"]),
                       "name": project["project_name"], "price": amount, "quantity": 1}],
        }

    return {
        "amount": request.amount,
        "description": request.description,
        "items": [item.model_dump() for item in request.items],
    }


@router.post("/initialize", response_model=PaymentInitResponse, status_code=201)
async def initialize_payment(
    request: PaymentInitRequest,
    client: dict = Depends(get_current_client),
    yoco: YocoClient = Depends(get_yoco_client)
):
    """
    Start a payment.

    The pending transaction is committed before Yoco is called, so a gateway
    failure leaves a `failed` transaction behind and answers 502.
    """
    with get_db_session() as db:
        source = _payment_source(db, request, client["user_id"])
        txn_id = create_transaction(
            db, client["user_id"], source["amount"], settings.payment_currency, source["description"],
            source["items"], order_id=request.order_id, project_id=request.project_id
        )

    base = settings.client_url.rstrip("/")
    try:
        checkout = yoco.create_checkout(
            source["amount"],
            settings.payment_currency,
            txn_id,
            success_url=f"{base}/payment/success?transaction_id={txn_id}",
            cancel_url=f"{base}/payment/cancel?transaction_id={txn_id}",
            failure_url=f"{base}/payment/failed?transaction_id={txn_id}",
        )
    except PaymentGatewayError:
        with get_db_session() as db:
            set_status(db, txn_id, "failed")
        logger.error(f"Transaction {txn_id}: checkout creation failed")
        raise

    with get_db_session() as db:
        mark_checkout_created(db, txn_id, checkout)

    logger.info(f"Transaction {txn_id}: checkout {checkout.get('id')} created for {source['amount']}")
    return PaymentInitResponse(transaction_id=txn_id, checkout_url=checkout["redirectUrl"], status="pending")


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(request: Request):
    """
    Receive a Yoco event.

    Every event is stored on its transaction; a repeated event id is
    acknowledged without being applied again.
    """
    body = await request.body()

    if settings.yoco_webhook_secret and not verify_webhook(settings.yoco_webhook_secret, request.headers, body):
        logger.warning("Rejected webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    with get_db_session() as db:
        txn = find_event_transaction(db, event)
        if not txn:
            logger.warning(f"Webhook {event.get('type')} for unknown transaction")
            raise HTTPException(status_code=404, detail="Transaction not found")

        if is_duplicate_event(db, txn["id"], event.get("id")):
            logger.info(f"Transaction {txn['id']}: duplicate event {event.get('id')} ignored")
            return WebhookAck(duplicate=True)

        apply_webhook_event(db, txn, event)

    return WebhookAck()


@router.get("/status/{transaction_id}", response_model=TransactionResponse)
async def payment_status(transaction_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        txn = load_transaction(db, transaction_id, client["user_id"])
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


@router.get("/transactions", response_model=List[TransactionResponse])
async def my_transactions(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return load_transactions(db, "user_id = :uid", {"uid": client["user_id"]})


@router.get("/transactions/{transaction_id}/events", response_model=List[TransactionEventResponse])
async def transaction_events(transaction_id: int, client: dict = Depends(get_current_client)):
    """Events of one of my transactions (admins: any transaction)."""
    owner = None if client["role"] == ADMIN else client["user_id"]
    with get_db_session() as db:
        if not load_transaction(db, transaction_id, owner):
            raise HTTPException(status_code=404, detail="Transaction not found")
        return load_events(db, transaction_id)
