"""
Inventory state for sellable units.

Phones (serialized units) move through a small state machine:

    in_stock --sell-------------> sold
    in_stock --sell_installment-> sold_installment
    in_stock --return-----------> returned

Every other combination is rejected. Bulk products only carry a
stock_quantity counter that a sale decrements and that can never go below 0.

The *_in_tx methods re-read the row and mutate it inside the caller's
transaction; the UPDATEs are additionally guarded on the value just read so
a stale read can never overwrite a concurrent change.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Optional

from ..transaction import immediate_tx
from ...constants import (
    PHONE_IN_STOCK,
    PHONE_RETURNED,
    PHONE_SOLD,
    PHONE_SOLD_INSTALLMENT,
)
from .errors import (
    InsufficientStockError,
    InvalidQuantityError,
    ItemNotAvailableError,
    ItemNotFoundError,
    ValidationError,
)

_log = logging.getLogger(__name__)

EVENT_SELL = "sell"
EVENT_SELL_INSTALLMENT = "sell_installment"
EVENT_RETURN = "return"

PHONE_TRANSITIONS: dict[tuple[str, str], str] = {
    (PHONE_IN_STOCK, EVENT_SELL): PHONE_SOLD,
    (PHONE_IN_STOCK, EVENT_SELL_INSTALLMENT): PHONE_SOLD_INSTALLMENT,
    (PHONE_IN_STOCK, EVENT_RETURN): PHONE_RETURNED,
}

_EVENTS = {EVENT_SELL, EVENT_SELL_INSTALLMENT, EVENT_RETURN}


def next_phone_status(current: str, event: str, *, label: str = "Phone") -> str:
    """Return the status `event` leads to from `current`, or raise."""
    if event not in _EVENTS:
        raise ValidationError(f"Unknown phone event: {event!r}")
    target = PHONE_TRANSITIONS.get((current, event))
    if target is None:
        raise ItemNotAvailableError(f"{label} is '{current}' and not available for sale.")
    return target


class InventoryRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def phone_row(self, phone_id: int) -> sqlite3.Row | None:
        return self.conn.execute("SELECT * FROM phones WHERE phone_id=?", (phone_id,)).fetchone()

    def product_row(self, product_id: int) -> sqlite3.Row | None:
        return self.conn.execute("SELECT * FROM products WHERE product_id=?", (product_id,)).fetchone()

    def sellable_items(self) -> Dict[str, List[Dict]]:
        """
        In-stock phones with a positive sale price and products with stock and
        a positive selling price, shaped for a sale picker.
        """
        phones = self.conn.execute(
            """
            SELECT phone_id AS id, model, imei, CAST(sale_price AS REAL) AS price, 1 AS stock
              FROM phones
             WHERE status = ? AND sale_price IS NOT NULL AND sale_price > 0
             ORDER BY phone_id
            """,
            (PHONE_IN_STOCK,),
        ).fetchall()
        products = self.conn.execute(
            """
            SELECT product_id AS id, name, CAST(selling_price AS REAL) AS price, stock_quantity AS stock
              FROM products
             WHERE stock_quantity > 0 AND selling_price > 0
             ORDER BY product_id
            """
        ).fetchall()
        return {
            "phones": [
                {**dict(p), "type": "phone", "name": f"{p['model']} (IMEI: {p['imei']})"}
                for p in phones
            ],
            "inventory": [{**dict(p), "type": "inventory"} for p in products],
        }

    # ------------------------------------------------------------------
    # Phone transitions
    # ------------------------------------------------------------------
    def transition_phone_in_tx(
        self,
        phone_id: int,
        event: str,
        *,
        sale_date: Optional[str] = None,
    ) -> sqlite3.Row:
        """
        Re-read the phone, apply `event`, return the row as it was BEFORE the
        change (callers need the price/model snapshot). No commit here.
        """
        row = self.phone_row(phone_id)
        if row is None:
            raise ItemNotFoundError(f"Phone {phone_id} was not found.")

        label = f"Phone \"{row['model']} (IMEI: {row['imei']})\""
        target = next_phone_status(row["status"], event, label=label)

        if event == EVENT_RETURN:
            cur = self.conn.execute(
                "UPDATE phones SET status=? WHERE phone_id=? AND status=?",
                (target, phone_id, row["status"]),
            )
        else:
            cur = self.conn.execute(
                "UPDATE phones SET status=?, sale_date=? WHERE phone_id=? AND status=?",
                (target, sale_date, phone_id, row["status"]),
            )
        if cur.rowcount != 1:
            raise ItemNotAvailableError(f"{label} changed state concurrently.")

        _log.debug("phone %s: %s -> %s", phone_id, row["status"], target)
        return row

    def mark_phone_returned(self, phone_id: int) -> None:
        """in_stock -> returned, as its own transaction."""
        with immediate_tx(self.conn):
            self.transition_phone_in_tx(phone_id, EVENT_RETURN)

    # ------------------------------------------------------------------
    # Bulk stock
    # ------------------------------------------------------------------
    def decrement_stock_in_tx(self, product_id: int, quantity: int) -> sqlite3.Row:
        """
        Re-read the product and take `quantity` off stock (adding it to the
        lifetime sale counter). Returns the row as read before the change.
        No commit here.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantityError("Quantity must be a whole number of at least 1.")

        row = self.product_row(product_id)
        if row is None:
            raise ItemNotFoundError(f"Product {product_id} was not found.")

        on_hand = int(row["stock_quantity"])
        if on_hand < quantity:
            raise InsufficientStockError(
                f"Not enough stock for \"{row['name']}\": {on_hand} on hand, {quantity} requested."
            )

        cur = self.conn.execute(
            """
            UPDATE products
               SET stock_quantity = stock_quantity - ?,
                   sale_count     = sale_count + ?
             WHERE product_id = ? AND stock_quantity >= ?
            """,
            (quantity, quantity, product_id, quantity),
        )
        if cur.rowcount != 1:
            raise InsufficientStockError(f"Stock for \"{row['name']}\" changed concurrently.")
        return row

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """Standalone decrement; returns the new stock_quantity."""
        with immediate_tx(self.conn):
            self.decrement_stock_in_tx(product_id, quantity)
            new_row = self.product_row(product_id)
        return int(new_row["stock_quantity"])
