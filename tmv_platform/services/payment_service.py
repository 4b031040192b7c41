"""
Payment Transaction Service

Transaction rows record every checkout attempt; items and webhook events
are child rows. Webhook events drive the status:

    payment.succeeded -> completed (linked order paid, linked project paid)
    payment.failed    -> failed
    payment.refunded  -> refunded

Other event types are stored but change nothing.
"""

import json
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_all_in, fetch_one, insert_row, utcnow
from tmv_platform.utils.logger import get_logger

logger = get_logger(__name__)

EVENT_STATUS = {
    "payment.succeeded": "completed",
    "payment.failed": "failed",
    "payment.refunded": "refunded",
}


def create_transaction(db: Session, user_id: int, amount: float, currency: str, description: str,
                       items: List[dict], order_id: int = None, project_id: int = None) -> int:
    now = utcnow()
    txn_id = insert_row(
        db,
        """
        INSERT INTO transactions (user_id, order_id, project_id, amount, currency, description,
                                  payment_method, status, created_at, updated_at)
        VALUES (:user_id, :order_id, :project_id, :amount, :currency, :description,
                'yoco', 'pending', :now, :now)
        """,
        {
            "user_id": user_id,
            "order_id": order_id,
            "project_id": project_id,
            "amount": round(float(amount), 2),
            "currency": currency,
            "description": description,
            "now": now,
        }
    )
    for item in items:
        db.execute(
            text("""
                INSERT INTO transaction_items (transaction_id, item_type, item_reference_id, item_name, price, quantity)
                VALUES (:txn, :item_type, :ref, :name, :price, :quantity)
            """),
            {
                "txn": txn_id,
                "item_type": item.get("type") or "service",
                "ref": item.get("item_id"),
                "name": item["name"],
                "price": round(float(item["price"]), 2),
                "quantity": int(item.get("quantity") or 1),
            }
        )
    return txn_id


def mark_checkout_created(db: Session, txn_id: int, checkout: dict) -> None:
    db.execute(
        text("""
            UPDATE transactions
            SET provider_checkout_id = :checkout_id, checkout_url = :url, updated_at = :now
            WHERE id = :id
        """),
        {"id": txn_id, "checkout_id": checkout.get("id"), "url": checkout.get("redirectUrl"), "now": utcnow()}
    )


def set_status(db: Session, txn_id: int, status: str, provider_payment_id: str = None) -> None:
    db.execute(
        text("""
            UPDATE transactions
            SET status = :status,
                provider_payment_id = COALESCE(:payment_id, provider_payment_id),
                updated_at = :now
            WHERE id = :id
        """),
        {"id": txn_id, "status": status, "payment_id": provider_payment_id, "now": utcnow()}
    )


def load_transactions(db: Session, where: str, params: dict) -> List[dict]:
    rows = fetch_all(db, f"SELECT * FROM transactions WHERE {where} ORDER BY created_at DESC, id DESC", params)
    items = {}
    for item in fetch_all_in(
        db,
        """
        SELECT transaction_id, item_type, item_reference_id, item_name, price, quantity
        FROM transaction_items WHERE transaction_id IN :ids ORDER BY id
        """,
        [r["id"] for r in rows]
    ):
        items.setdefault(item["transaction_id"], []).append({
            "type": item["item_type"],
            "item_id": item["item_reference_id"],
            "name": item["item_name"],
            "price": float(item["price"]),
            "quantity": item["quantity"],
        })
    for r in rows:
        r["items"] = items.get(r["id"], [])
    return rows


def load_transaction(db: Session, txn_id: int, user_id: int = None) -> Optional[dict]:
    where, params = "id = :id", {"id": txn_id}
    if user_id is not None:
        where += " AND user_id = :user_id"
        params["user_id"] = user_id
    rows = load_transactions(db, where, params)
    return rows[0] if rows else None


def load_events(db: Session, txn_id: int) -> List[dict]:
    rows = fetch_all(
        db,
        """
        SELECT id, event_type, provider_event_id, event_data, created_at
        FROM transaction_events WHERE transaction_id = :id ORDER BY created_at, id
        """,
        {"id": txn_id}
    )
    for r in rows:
        r["event_data"] = json.loads(r["event_data"])
    return rows


# ============================================================
# WEBHOOKS
# ============================================================

def _event_metadata(event: dict) -> dict:
    payload = event.get("payload") or {}
    return {**(payload.get("metadata") or {}), **(event.get("metadata") or {})}


def find_event_transaction(db: Session, event: dict) -> Optional[dict]:
    """Locate the transaction by metadata transactionId, then by checkoutId."""
    metadata = _event_metadata(event)
    txn_ref = metadata.get("transactionId")
    if txn_ref is not None and str(txn_ref).isdigit():
        row = fetch_one(db, "SELECT * FROM transactions WHERE id = :id", {"id": int(txn_ref)})
        if row:
            return row
    checkout_id = metadata.get("checkoutId")
    if checkout_id:
        return fetch_one(db, "SELECT * FROM transactions WHERE provider_checkout_id = :c", {"c": checkout_id})
    return None


def is_duplicate_event(db: Session, txn_id: int, provider_event_id: str) -> bool:
    if not provider_event_id:
        return False
    return fetch_one(
        db,
        "SELECT id FROM transaction_events WHERE transaction_id = :txn AND provider_event_id = :eid",
        {"txn": txn_id, "eid": provider_event_id}
    ) is not None


def apply_webhook_event(db: Session, txn: dict, event: dict) -> Optional[str]:
    """
    Record the event and apply its status change.

    Returns the new transaction status, or None when the event type does not
    map to one.
    """
    event_type = event.get("type") or "unknown"
    insert_row(
        db,
        """
        INSERT INTO transaction_events (transaction_id, provider_event_id, event_type, event_data, created_at)
        VALUES (:txn, :eid, :etype, :data, :now)
        """,
        {
            "txn": txn["id"],
            "eid": event.get("id"),
            "etype": event_type,
            "data": json.dumps(event),
            "now": utcnow(),
        }
    )

    new_status = EVENT_STATUS.get(event_type)
    if new_status is None:
        logger.info(f"Transaction {txn['id']}: recorded {event_type} without status change")
        return None

    payment_id = None
    if new_status == "completed":
        payment_id = (event.get("payload") or {}).get("id") or event.get("id")
    set_status(db, txn["id"], new_status, payment_id)
    logger.info(f"Transaction {txn['id']}: {txn['status']} -> {new_status} ({event_type})")

    if new_status == "completed":
        _settle_linked_records(db, txn)
    elif new_status == "failed" and txn.get("order_id"):
        db.execute(
            text("UPDATE orders SET payment_status = 'failed' WHERE id = :id AND status = 'pending'"),
            {"id": txn["order_id"]}
        )
    return new_status


def _settle_linked_records(db: Session, txn: dict) -> None:
    if txn.get("order_id"):
        db.execute(
            text("""
                UPDATE orders SET status = 'paid', payment_status = 'completed', payment_method = 'yoco'
                WHERE id = :id
            """),
            {"id": txn["order_id"]}
        )
    if txn.get("project_id"):
        db.execute(
            text("UPDATE architecture_projects SET payment_status = 'paid', updated_at = :now WHERE id = :id"),
            {"id": txn["project_id"], "now": utcnow()}
        )
