from dataclasses import dataclass
import sqlite3

from ..transaction import immediate_tx
from ...constants import DEFAULT_PARTNER_TYPE
from .errors import DuplicateIdentifierError, NotFoundError, ValidationError, map_integrity_error


@dataclass
class Partner:
    partner_id: int | None
    partner_name: str
    partner_type: str
    contact_person: str | None
    phone_number: str | None
    email: str | None
    address: str | None
    notes: str | None
    date_added: str | None = None
    current_balance: float = 0.0


_SELECT = """
    SELECT p.partner_id, p.partner_name, p.partner_type, p.contact_person, p.phone_number,
           p.email, p.address, p.notes, p.date_added,
           COALESCE((SELECT l.balance FROM partner_ledger l
                      WHERE l.partner_id = p.partner_id
                      ORDER BY l.entry_id DESC LIMIT 1), 0.0) AS current_balance
      FROM partners p
"""


def _clean(s):
    if s is None:
        return None
    s = str(s).strip()
    return s or None


class PartnersRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_with_balance(self, partner_type: str | None = None) -> list[Partner]:
        if _clean(partner_type):
            rows = self.conn.execute(
                _SELECT + " WHERE p.partner_type = ? ORDER BY p.partner_name, p.partner_id",
                (_clean(partner_type),),
            ).fetchall()
        else:
            rows = self.conn.execute(_SELECT + " ORDER BY p.partner_name, p.partner_id").fetchall()
        return [Partner(**dict(r)) for r in rows]

    def get(self, partner_id: int) -> Partner | None:
        r = self.conn.execute(_SELECT + " WHERE p.partner_id = ?", (partner_id,)).fetchone()
        return Partner(**dict(r)) if r else None

    def create(
        self,
        partner_name: str,
        partner_type: str | None = None,
        contact_person: str | None = None,
        phone_number: str | None = None,
        email: str | None = None,
        address: str | None = None,
        notes: str | None = None,
    ) -> int:
        if not _clean(partner_name):
            raise ValidationError("Partner name cannot be empty.")
        phone_n = _clean(phone_number)
        try:
            with immediate_tx(self.conn):
                if phone_n and self.conn.execute(
                    "SELECT 1 FROM partners WHERE phone_number=?", (phone_n,)
                ).fetchone():
                    raise DuplicateIdentifierError(f"Phone number {phone_n} is already registered.")
                cur = self.conn.execute(
                    """
                    INSERT INTO partners(partner_name, partner_type, contact_person,
                                         phone_number, email, address, notes)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        _clean(partner_name), _clean(partner_type) or DEFAULT_PARTNER_TYPE,
                        _clean(contact_person), phone_n, _clean(email), _clean(address), _clean(notes),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="partner") from e
        return int(cur.lastrowid)

    def update(
        self,
        partner_id: int,
        partner_name: str,
        partner_type: str | None = None,
        contact_person: str | None = None,
        phone_number: str | None = None,
        email: str | None = None,
        address: str | None = None,
        notes: str | None = None,
    ) -> None:
        if not _clean(partner_name):
            raise ValidationError("Partner name cannot be empty.")
        phone_n = _clean(phone_number)
        try:
            with immediate_tx(self.conn):
                if phone_n and self.conn.execute(
                    "SELECT 1 FROM partners WHERE phone_number=? AND partner_id<>?",
                    (phone_n, partner_id),
                ).fetchone():
                    raise DuplicateIdentifierError(f"Phone number {phone_n} is already registered.")
                cur = self.conn.execute(
                    """
                    UPDATE partners
                       SET partner_name=?, partner_type=?, contact_person=?,
                           phone_number=?, email=?, address=?, notes=?
                     WHERE partner_id=?
                    """,
                    (
                        _clean(partner_name), _clean(partner_type) or DEFAULT_PARTNER_TYPE,
                        _clean(contact_person), phone_n, _clean(email), _clean(address), _clean(notes),
                        partner_id,
                    ),
                )
                if cur.rowcount != 1:
                    raise NotFoundError(f"Partner {partner_id} does not exist.")
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="partner") from e

    def delete(self, partner_id: int) -> None:
        """Removes the partner and its ledger; received goods keep their rows with no supplier."""
        with immediate_tx(self.conn):
            cur = self.conn.execute("DELETE FROM partners WHERE partner_id=?", (partner_id,))
            if cur.rowcount != 1:
                raise NotFoundError(f"Partner {partner_id} does not exist.")

    def purchased_items(self, partner_id: int) -> list[dict]:
        """
        Everything received from this partner: bulk products and phones,
        newest first.
        """
        if self.get(partner_id) is None:
            raise NotFoundError(f"Partner {partner_id} does not exist.")
        rows = self.conn.execute(
            """
            SELECT 'inventory' AS type, product_id AS id, name,
                   CAST(purchase_price AS REAL) AS purchase_price,
                   stock_quantity AS quantity, NULL AS imei, date_added AS date
              FROM products
             WHERE supplier_id = ?
            UNION ALL
            SELECT 'phone' AS type, phone_id AS id, model AS name,
                   CAST(purchase_price AS REAL) AS purchase_price,
                   1 AS quantity, imei, COALESCE(purchase_date, register_date) AS date
              FROM phones
             WHERE supplier_id = ?
             ORDER BY date DESC, id DESC
            """,
            (partner_id, partner_id),
        ).fetchall()
        return [dict(r) for r in rows]
