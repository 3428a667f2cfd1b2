from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from ...utils.helpers import fmt_money
from ...utils.loggers import log_event
from .ledger_repo import AccountKind, LedgerEntry, LedgerRepo

_log = logging.getLogger(__name__)


class GoodsReceiptPoster:
    """
    Credits the supplier's ledger when stock arrives with a cost (we owe them).

    Runs inside the caller's transaction: the product/phone insert and the
    ledger credit commit or roll back together.
    """

    def __init__(self, conn: sqlite3.Connection, ledger: LedgerRepo | None = None):
        self.conn = conn
        self.ledger = ledger or LedgerRepo(conn)

    @staticmethod
    def receipt_value(purchase_price: float, quantity: int = 1) -> float:
        return float(purchase_price) * int(quantity)

    def post_in_tx(
        self,
        *,
        supplier_id: Optional[int],
        purchase_price: float,
        quantity: int,
        description: str,
        transaction_date: Optional[str] = None,
    ) -> LedgerEntry | None:
        """
        Post `purchase_price * quantity` as a partner credit when a supplier is
        set and both price and quantity are positive. Returns the entry, or
        None when nothing is owed.
        """
        if not supplier_id or float(purchase_price or 0) <= 0 or int(quantity or 0) <= 0:
            return None

        amount = self.receipt_value(purchase_price, quantity)
        entry = self.ledger.post(
            AccountKind.PARTNER,
            int(supplier_id),
            description,
            debit=0.0,
            credit=amount,
            transaction_date=transaction_date,
        )
        log_event(
            _log, "goods_receipt", "post",
            f"supplier {supplier_id} credited {fmt_money(amount)}",
            {"supplier_id": supplier_id, "amount": amount, "entry_id": entry.entry_id},
        )
        return entry
