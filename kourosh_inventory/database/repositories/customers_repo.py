from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ..transaction import immediate_tx
from .errors import (
    DuplicateIdentifierError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    map_integrity_error,
)


@dataclass
class Customer:
    customer_id: int | None
    full_name: str
    phone_number: str | None
    address: str | None
    notes: str | None
    date_added: str | None = None
    current_balance: float = 0.0


# Latest ledger balance per customer (0 when the ledger is empty).
_SELECT = """
    SELECT c.customer_id, c.full_name, c.phone_number, c.address, c.notes, c.date_added,
           COALESCE((SELECT l.balance FROM customer_ledger l
                      WHERE l.customer_id = c.customer_id
                      ORDER BY l.entry_id DESC LIMIT 1), 0.0) AS current_balance
      FROM customers c
"""


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise ValidationError(f"{field_label} cannot be empty.")

    def _ensure_phone_free(self, phone_number: str | None, exclude_id: int | None = None) -> None:
        if not phone_number:
            return
        r = self.conn.execute(
            "SELECT customer_id FROM customers WHERE phone_number=? AND customer_id IS NOT ?",
            (phone_number, exclude_id),
        ).fetchone()
        if r:
            raise DuplicateIdentifierError(f"Phone number {phone_number} is already registered.")

    # ---- Queries ----------------------------------------------------------

    def list_with_balance(self) -> list[Customer]:
        rows = self.conn.execute(_SELECT + " ORDER BY c.full_name, c.customer_id").fetchall()
        return [Customer(**r) for r in rows]

    def search(self, term: str) -> list[Customer]:
        """LIKE match over id, name and phone number."""
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            _SELECT
            + " WHERE CAST(c.customer_id AS TEXT) LIKE ? OR c.full_name LIKE ? OR c.phone_number LIKE ?"
            + " ORDER BY c.full_name, c.customer_id",
            (pattern, pattern, pattern),
        ).fetchall()
        return [Customer(**r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(_SELECT + " WHERE c.customer_id = ?", (customer_id,)).fetchone()
        return Customer(**r) if r else None

    def exists(self, customer_id: int) -> bool:
        return self.conn.execute(
            "SELECT 1 FROM customers WHERE customer_id=?", (customer_id,)
        ).fetchone() is not None

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        full_name: str,
        phone_number: str | None = None,
        address: str | None = None,
        notes: str | None = None,
    ) -> int:
        """
        Insert a new customer. Phone numbers are unique when given.
        """
        self._ensure_non_empty(full_name, "Full name")
        name_n = self._normalize_text(full_name)
        phone_n = self._normalize_text(phone_number)

        try:
            with immediate_tx(self.conn):
                self._ensure_phone_free(phone_n)
                cur = self.conn.execute(
                    "INSERT INTO customers(full_name, phone_number, address, notes) VALUES (?,?,?,?)",
                    (name_n, phone_n, self._normalize_text(address), self._normalize_text(notes)),
                )
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="customer") from e
        return int(cur.lastrowid)

    def update(
        self,
        customer_id: int,
        full_name: str,
        phone_number: str | None = None,
        address: str | None = None,
        notes: str | None = None,
    ) -> None:
        self._ensure_non_empty(full_name, "Full name")
        phone_n = self._normalize_text(phone_number)

        try:
            with immediate_tx(self.conn):
                if not self.exists(customer_id):
                    raise NotFoundError(f"Customer {customer_id} does not exist.")
                self._ensure_phone_free(phone_n, exclude_id=customer_id)
                self.conn.execute(
                    "UPDATE customers SET full_name=?, phone_number=?, address=?, notes=? WHERE customer_id=?",
                    (
                        self._normalize_text(full_name), phone_n,
                        self._normalize_text(address), self._normalize_text(notes),
                        customer_id,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="customer") from e

    def delete(self, customer_id: int) -> None:
        """
        Delete a customer and their ledger. Cash/credit sales keep their
        snapshot with customer_id cleared; installment sales block deletion.
        """
        try:
            with immediate_tx(self.conn):
                cur = self.conn.execute("DELETE FROM customers WHERE customer_id=?", (customer_id,))
                if cur.rowcount != 1:
                    raise NotFoundError(f"Customer {customer_id} does not exist.")
        except sqlite3.IntegrityError as e:
            raise InvalidStateError(
                f"Customer {customer_id} has installment sales and cannot be deleted."
            ) from e
