from __future__ import annotations

from dataclasses import dataclass, fields
import logging
import sqlite3

from ..transaction import immediate_tx
from ...constants import PHONE_IN_STOCK, PHONE_STATUSES
from ...utils.dates import normalize_ledger_date, utc_now_iso
from ...utils.helpers import fmt_money
from ...utils.validators import is_non_negative_number, non_empty
from .errors import (
    DuplicateIdentifierError,
    InvalidAmountError,
    ValidationError,
    map_integrity_error,
    validation_guard,
)
from .goods_receipt import GoodsReceiptPoster

_log = logging.getLogger(__name__)


@dataclass
class NewPhone:
    model: str
    imei: str
    purchase_price: float
    sale_price: float | None = None
    color: str | None = None
    storage: str | None = None
    ram: str | None = None
    battery_health: int | None = None
    condition: str | None = None
    seller_name: str | None = None
    purchase_date: str | None = None    # Jalali or ISO; stored ISO
    notes: str | None = None
    supplier_id: int | None = None


@dataclass
class Phone:
    phone_id: int
    model: str
    color: str | None
    storage: str | None
    ram: str | None
    imei: str
    battery_health: int | None
    condition: str | None
    purchase_price: float
    sale_price: float | None
    seller_name: str | None
    buyer_name: str | None
    purchase_date: str | None
    sale_date: str | None
    register_date: str
    status: str
    notes: str | None
    supplier_id: int | None
    supplier_name: str | None = None


_PHONE_FIELDS = {f.name for f in fields(Phone)}


class PhonesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.receipts = GoodsReceiptPoster(conn)

    @staticmethod
    def _to_phone(r: sqlite3.Row) -> Phone:
        return Phone(**{k: r[k] for k in r.keys() if k in _PHONE_FIELDS})

    # ---- Queries ----------------------------------------------------------

    def get(self, phone_id: int) -> Phone | None:
        r = self.conn.execute(
            """
            SELECT ph.*, pa.partner_name AS supplier_name
              FROM phones ph
              LEFT JOIN partners pa ON pa.partner_id = ph.supplier_id
             WHERE ph.phone_id = ?
            """,
            (phone_id,),
        ).fetchone()
        return self._to_phone(r) if r else None

    def list_phones(self, *, supplier_id: int | None = None, status: str | None = None) -> list[Phone]:
        where: list[str] = []
        params: list = []
        if supplier_id:
            where.append("ph.supplier_id = ?")
            params.append(supplier_id)
        if status:
            if status not in PHONE_STATUSES:
                raise ValidationError(f"Unknown phone status: {status!r}")
            where.append("ph.status = ?")
            params.append(status)

        sql = """
            SELECT ph.*, pa.partner_name AS supplier_name
              FROM phones ph
              LEFT JOIN partners pa ON pa.partner_id = ph.supplier_id
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY ph.register_date DESC, ph.phone_id DESC"
        return [self._to_phone(r) for r in self.conn.execute(sql, params).fetchall()]

    # ---- Mutations --------------------------------------------------------

    def receive_phone(self, phone: NewPhone) -> Phone:
        """
        Register a phone as in stock. A duplicate IMEI is rejected, never
        upserted. With a supplier and a positive cost, the supplier is
        credited in the same transaction.
        """
        if not non_empty(phone.model):
            raise ValidationError("Model cannot be empty.")
        if not non_empty(phone.imei):
            raise ValidationError("IMEI cannot be empty.")
        if not is_non_negative_number(phone.purchase_price):
            raise InvalidAmountError("Purchase price must be zero or more.")
        if phone.sale_price is not None and not is_non_negative_number(phone.sale_price):
            raise InvalidAmountError("Sale price cannot be negative.")

        imei = phone.imei.strip()
        purchase_price = float(phone.purchase_price)
        purchase_date = None
        if phone.purchase_date:
            with validation_guard("Purchase date"):
                purchase_date = normalize_ledger_date(phone.purchase_date)[:10]

        try:
            with immediate_tx(self.conn):
                dup = self.conn.execute("SELECT 1 FROM phones WHERE imei=?", (imei,)).fetchone()
                if dup:
                    raise DuplicateIdentifierError(f"IMEI {imei} is already registered.")

                cur = self.conn.execute(
                    """
                    INSERT INTO phones (
                        model, color, storage, ram, imei, battery_health, condition,
                        purchase_price, sale_price, seller_name, purchase_date,
                        register_date, status, notes, supplier_id
                    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    (
                        phone.model.strip(), phone.color, phone.storage, phone.ram, imei,
                        phone.battery_health, phone.condition,
                        purchase_price,
                        float(phone.sale_price) if phone.sale_price is not None else None,
                        phone.seller_name, purchase_date,
                        utc_now_iso(), PHONE_IN_STOCK, phone.notes, phone.supplier_id,
                    ),
                )
                phone_id = int(cur.lastrowid)

                self.receipts.post_in_tx(
                    supplier_id=phone.supplier_id,
                    purchase_price=purchase_price,
                    quantity=1,
                    description=(
                        f"Phone received: {phone.model.strip()} (IMEI: {imei}, phone #{phone_id}) "
                        f"valued {fmt_money(purchase_price)}"
                    ),
                    transaction_date=purchase_date,
                )
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="supplier") from e

        _log.info("phone %s received (IMEI %s)", phone_id, imei)
        return self.get(phone_id)  # type: ignore[return-value]
