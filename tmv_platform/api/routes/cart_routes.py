"""
Service Catalog, Cart & Order Routes

GET /services - Active service catalog
GET /cart - Cart lines with subtotal, VAT and total
POST /cart - Add a service (increments an existing line)
PUT /cart/{service_id} - Set line quantity
DELETE /cart/{service_id} - Remove line
DELETE /cart - Empty cart
POST /orders/checkout - Turn the cart into an order
GET /orders - My orders
GET /orders/{order_id} - Order with items
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from typing import List

from tmv_platform.db.database import get_db_session, fetch_all, fetch_all_in, fetch_one, insert_row, utcnow
from tmv_platform.core.auth import get_current_client
from tmv_platform.core.config import get_settings
from tmv_platform.schemas.schemas import (
    ServiceResponse, CartAdd, CartQuantityUpdate, CartResponse, OrderResponse, MessageResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(tags=["Cart & Orders"])
settings = get_settings()
logger = get_logger(__name__)


def money(value) -> float:
    return round(float(value), 2)


def _cart_lines(db: Session, user_id: int) -> List[dict]:
    """
    Priced lines for the user's cart; retired services are left out.

    Per line: subtotal = price x quantity, vat = subtotal x vat_rate,
    total = subtotal + vat. Cart and order totals are sums of the lines.
    """
    rows = fetch_all(
        db,
        """
        SELECT c.service_id, s.name, s.category, s.price, c.quantity
        FROM cart_items c
        JOIN services s ON s.id = c.service_id AND s.status = 'active'
        WHERE c.user_id = :uid
        ORDER BY c.added_at, c.id
        """,
        {"uid": user_id}
    )
    for r in rows:
        r["price"] = money(r["price"])
        r["subtotal"] = money(r["price"] * r["quantity"])
        r["vat"] = money(r["subtotal"] * settings.vat_rate)
        r["total"] = money(r["subtotal"] + r["vat"])
    return rows


def _totals(lines: List[dict]) -> dict:
    return {key: money(sum(line[key] for line in lines)) for key in ("subtotal", "vat", "total")}


def _cart(db: Session, user_id: int) -> CartResponse:
    lines = _cart_lines(db, user_id)
    return CartResponse(items=lines, **_totals(lines))


def _load_orders(db: Session, user_id: int, order_id: int = None) -> List[dict]:
    sql = "SELECT * FROM orders WHERE user_id = :uid"
    params = {"uid": user_id}
    if order_id is not None:
        sql += " AND id = :id"
        params["id"] = order_id
    orders = fetch_all(db, sql + " ORDER BY order_date DESC, id DESC", params)

    items = {}
    for item in fetch_all_in(
        db,
        """
        SELECT order_id, service_id, service_name, quantity, price, vat, total
        FROM order_items WHERE order_id IN :ids ORDER BY id
        """,
        [o["id"] for o in orders]
    ):
        items.setdefault(item["order_id"], []).append(item)

    for o in orders:
        o["items"] = items.get(o["id"], [])
    return orders


@router.get("/services", response_model=List[ServiceResponse])
async def list_services():
    with get_db_session() as db:
        return fetch_all(db, "SELECT * FROM services WHERE status = 'active' ORDER BY category, name")


# ============================================================
# CART
# ============================================================

@router.get("/cart", response_model=CartResponse)
async def get_cart(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return _cart(db, client["user_id"])


@router.post("/cart", response_model=CartResponse, status_code=201)
async def add_to_cart(data: CartAdd, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        service = fetch_one(
            db, "SELECT id FROM services WHERE id = :id AND status = 'active'", {"id": data.service_id}
        )
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        line = fetch_one(
            db,
            "SELECT id FROM cart_items WHERE user_id = :uid AND service_id = :sid",
            {"uid": client["user_id"], "sid": data.service_id}
        )
        if line:
            db.execute(
                text("UPDATE cart_items SET quantity = quantity + :qty WHERE id = :id"),
                {"qty": data.quantity, "id": line["id"]}
            )
        else:
            db.execute(
                text("""
                    INSERT INTO cart_items (user_id, service_id, quantity, added_at)
                    VALUES (:uid, :sid, :qty, :now)
                """),
                {"uid": client["user_id"], "sid": data.service_id, "qty": data.quantity, "now": utcnow()}
            )
        return _cart(db, client["user_id"])


@router.put("/cart/{service_id}", response_model=CartResponse)
async def update_cart_line(service_id: int, data: CartQuantityUpdate, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE cart_items SET quantity = :qty WHERE user_id = :uid AND service_id = :sid"),
            {"qty": data.quantity, "uid": client["user_id"], "sid": service_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Service not in cart")
        return _cart(db, client["user_id"])


@router.delete("/cart/{service_id}", response_model=CartResponse)
async def remove_cart_line(service_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        db.execute(
            text("DELETE FROM cart_items WHERE user_id = :uid AND service_id = :sid"),
            {"uid": client["user_id"], "sid": service_id}
        )
        return _cart(db, client["user_id"])


@router.delete("/cart", response_model=MessageResponse)
async def clear_cart(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        db.execute(text("DELETE FROM cart_items WHERE user_id = :uid"), {"uid": client["user_id"]})
    return MessageResponse(message="Cart cleared")


# ============================================================
# ORDERS
# ============================================================

@router.post("/orders/checkout", response_model=OrderResponse, status_code=201)
async def checkout(client: dict = Depends(get_current_client)):
    """Create an order from the cart and empty it (one transaction)."""
    with get_db_session() as db:
        items = _cart_lines(db, client["user_id"])
        if not items:
            raise HTTPException(status_code=400, detail="Cart is empty")

        order_id = insert_row(
            db,
            """
            INSERT INTO orders (user_id, subtotal, vat, total_amount, status, payment_status, order_date)
            VALUES (:uid, :subtotal, :vat, :total, 'pending', 'pending', :now)
            """,
            {"uid": client["user_id"], **_totals(items), "now": utcnow()}
        )
        for item in items:
            db.execute(
                text("""
                    INSERT INTO order_items (order_id, service_id, service_name, quantity, price, vat, total)
                    VALUES (:oid, :sid, :name, :qty, :price, :vat, :total)
                """),
                {
                    "oid": order_id,
                    "sid": item["service_id"],
                    "name": item["name"],
                    "qty": item["quantity"],
                    "price": item["price"],
                    "vat": item["vat"],
                    "total": item["total"],
                }
            )
        db.execute(text("DELETE FROM cart_items WHERE user_id = :uid"), {"uid": client["user_id"]})
        order = _load_orders(db, client["user_id"], order_id)[0]

    logger.info(f"Order {order_id} created for user {client['user_id']} ({order['total_amount']})")
    return order


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return _load_orders(db, client["user_id"])


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        orders = _load_orders(db, client["user_id"], order_id)
    if not orders:
        raise HTTPException(status_code=404, detail="Order not found")
    return orders[0]
