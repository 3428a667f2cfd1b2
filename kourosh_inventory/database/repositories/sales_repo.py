from __future__ import annotations

from dataclasses import dataclass
import logging
import sqlite3
from typing import Optional

from ..transaction import immediate_tx
from ...constants import (
    ITEM_TYPE_PHONE,
    ITEM_TYPES,
    MONEY_EPS,
    PAYMENT_CASH,
    PAYMENT_CREDIT,
    PAYMENT_METHODS,
)
from ...utils.dates import format_jalali, jalali_to_iso, parse_jalali
from ...utils.helpers import fmt_money
from ...utils.loggers import log_event
from ...utils.validators import try_parse_float
from .errors import (
    DomainError,
    InvalidDiscountError,
    InvalidPriceError,
    InvalidQuantityError,
    NotFoundError,
    ValidationError,
    map_integrity_error,
    validation_guard,
)
from .inventory_repo import EVENT_SELL, InventoryRepo
from .ledger_repo import AccountKind, LedgerRepo

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleRecord:
    sale_id: int
    transaction_date: str          # Jalali YYYY/MM/DD
    item_type: str
    item_id: int
    item_name: str
    quantity: int
    price_per_item: float
    discount: float
    total_price: float
    notes: Optional[str]
    customer_id: Optional[int]
    payment_method: str
    customer_name: Optional[str] = None


def compute_total(quantity: int, unit_price: float, discount: float) -> tuple[float, float]:
    """
    (subtotal, total) for a sale line. Raises InvalidDiscountError when the
    discount is negative, exceeds the subtotal, or leaves a negative total.
    """
    subtotal = float(quantity) * float(unit_price)
    if discount < 0:
        raise InvalidDiscountError("Discount cannot be negative.")
    if discount > subtotal + MONEY_EPS:
        raise InvalidDiscountError(
            f"Discount ({fmt_money(discount)}) cannot exceed the subtotal ({fmt_money(subtotal)})."
        )
    total = subtotal - discount
    if total < -MONEY_EPS:
        raise InvalidDiscountError("Discount makes the total negative.")
    return subtotal, max(total, 0.0)


_SELECT = """
    SELECT s.sale_id, s.transaction_date, s.item_type, s.item_id, s.item_name, s.quantity,
           CAST(s.price_per_item AS REAL) AS price_per_item,
           CAST(s.discount AS REAL)       AS discount,
           CAST(s.total_price AS REAL)    AS total_price,
           s.notes, s.customer_id, s.payment_method,
           c.full_name AS customer_name
      FROM sales_transactions s
      LEFT JOIN customers c ON c.customer_id = s.customer_id
"""


class SalesRepo:
    """
    Cash/credit sales of a single phone or a quantity of a bulk product.

    record_sale() is one IMMEDIATE transaction: inventory mutation, the sale
    snapshot and the optional receivable posting commit together or not at all.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.inventory = InventoryRepo(conn)
        self.ledger = LedgerRepo(conn)

    # ---- reads ------------------------------------------------------------

    def get(self, sale_id: int) -> SaleRecord | None:
        r = self.conn.execute(_SELECT + " WHERE s.sale_id = ?", (sale_id,)).fetchone()
        return SaleRecord(**r) if r else None

    def list_sales(self, customer_id: Optional[int] = None) -> list[SaleRecord]:
        if customer_id is not None:
            rows = self.conn.execute(
                _SELECT + " WHERE s.customer_id = ? ORDER BY s.sale_id DESC", (customer_id,)
            ).fetchall()
        else:
            rows = self.conn.execute(_SELECT + " ORDER BY s.sale_id DESC").fetchall()
        return [SaleRecord(**r) for r in rows]

    # ---- validation -------------------------------------------------------

    @staticmethod
    def _validate_inputs(item_type, quantity, transaction_date, discount, payment_method):
        if item_type not in ITEM_TYPES:
            raise ValidationError(f"Unknown item type: {item_type!r}")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {payment_method!r}")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantityError("Quantity must be a whole number of at least 1.")
        if item_type == ITEM_TYPE_PHONE and quantity != 1:
            raise InvalidQuantityError("A phone sale must have quantity 1.")
        with validation_guard("Transaction date"):
            parse_jalali(transaction_date)
        ok, disc = try_parse_float(0 if discount is None else discount)
        if not ok or disc is None:
            raise InvalidDiscountError("Discount must be a number.")
        if disc < 0:
            raise InvalidDiscountError("Discount cannot be negative.")
        return disc

    # ---- orchestrator -----------------------------------------------------

    def record_sale(
        self,
        item_type: str,
        item_id: int,
        quantity: int,
        transaction_date: str,
        customer_id: Optional[int] = None,
        discount: float = 0.0,
        payment_method: str = PAYMENT_CASH,
        notes: Optional[str] = None,
    ) -> SaleRecord:
        """
        Sell one phone or `quantity` units of a product.

        Only a credit sale to a known customer with a positive total posts a
        ledger debit; cash sales settle on the spot.
        """
        disc = self._validate_inputs(item_type, quantity, transaction_date, discount, payment_method)
        tx_date = format_jalali(parse_jalali(transaction_date))
        sale_date_iso = jalali_to_iso(tx_date)

        try:
            with immediate_tx(self.conn):
                if customer_id is not None and self.conn.execute(
                    "SELECT 1 FROM customers WHERE customer_id=?", (customer_id,)
                ).fetchone() is None:
                    raise NotFoundError(f"Customer {customer_id} does not exist.")

                if item_type == ITEM_TYPE_PHONE:
                    row = self.inventory.transition_phone_in_tx(item_id, EVENT_SELL, sale_date=sale_date_iso)
                    price = row["sale_price"]
                    item_name = f"{row['model']} (IMEI: {row['imei']})"
                    if price is None or float(price) <= 0:
                        raise InvalidPriceError(f"Phone \"{item_name}\" has no valid sale price.")
                else:
                    row = self.inventory.decrement_stock_in_tx(item_id, quantity)
                    price = row["selling_price"]
                    item_name = row["name"]
                    if price is None or float(price) <= 0:
                        raise InvalidPriceError(f"Product \"{item_name}\" has no valid selling price.")

                unit_price = float(price)
                _, total = compute_total(quantity, unit_price, disc)

                cur = self.conn.execute(
                    """
                    INSERT INTO sales_transactions (
                        transaction_date, item_type, item_id, item_name, quantity,
                        price_per_item, discount, total_price, notes, customer_id, payment_method
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        tx_date, item_type, item_id, item_name, quantity,
                        unit_price, disc, total, notes, customer_id, payment_method,
                    ),
                )
                sale_id = int(cur.lastrowid)

                entry = None
                if customer_id is not None and total > 0 and payment_method == PAYMENT_CREDIT:
                    entry = self.ledger.post(
                        AccountKind.CUSTOMER,
                        customer_id,
                        f"Credit sale #{sale_id}: {quantity} x {item_name}",
                        debit=total,
                        transaction_date=sale_date_iso,
                    )
        except DomainError as e:
            log_event(
                _log, "sale", "rollback", str(e),
                {"item_type": item_type, "item_id": item_id, "error": type(e).__name__},
                level=logging.WARNING,
            )
            raise
        except sqlite3.IntegrityError as e:
            log_event(
                _log, "sale", "rollback", str(e),
                {"item_type": item_type, "item_id": item_id, "error": "IntegrityError"},
                level=logging.WARNING,
            )
            raise map_integrity_error(e, what="sale") from e

        log_event(
            _log, "sale", "commit",
            f"sale {sale_id}: {quantity} x {item_name} = {fmt_money(total)} ({payment_method})",
            {
                "sale_id": sale_id,
                "total": total,
                "customer_id": customer_id,
                "ledger_entry_id": entry.entry_id if entry else None,
            },
        )
        return self.get(sale_id)  # type: ignore[return-value]


__all__ = ["SaleRecord", "SalesRepo", "compute_total"]
