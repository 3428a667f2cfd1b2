from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
import logging
import sqlite3
from typing import Optional

from ..transaction import immediate_tx
from ...utils.dates import normalize_ledger_date
from ...utils.loggers import log_event
from ...utils.validators import try_parse_float
from .errors import InvalidAmountError, NotFoundError, ValidationError, validation_guard

_log = logging.getLogger(__name__)


class AccountKind(str, Enum):
    """
    Which side of the business a ledger belongs to.

    CUSTOMER: receivable, balance = prev + debit - credit (positive = they owe us)
    PARTNER:  payable,    balance = prev + credit - debit (positive = we owe them)
    """
    CUSTOMER = "customer"
    PARTNER = "partner"


# kind -> (ledger table, account column, account table, account pk)
_TABLES: dict[AccountKind, tuple[str, str, str, str]] = {
    AccountKind.CUSTOMER: ("customer_ledger", "customer_id", "customers", "customer_id"),
    AccountKind.PARTNER: ("partner_ledger", "partner_id", "partners", "partner_id"),
}


@dataclass(frozen=True)
class LedgerEntry:
    entry_id: int
    account_kind: AccountKind
    account_id: int
    transaction_date: str
    description: str
    debit: float
    credit: float
    balance: float


def apply_entry(kind: AccountKind, previous_balance: float, debit: float, credit: float) -> float:
    """The single place the sign convention lives."""
    if kind is AccountKind.CUSTOMER:
        return previous_balance + debit - credit
    return previous_balance + credit - debit


def fold_balances(kind: AccountKind, entries) -> list[float]:
    """Running balances recomputed from scratch over (debit, credit) pairs."""
    out: list[float] = []
    bal = 0.0
    for e in entries:
        debit, credit = (e.debit, e.credit) if isinstance(e, LedgerEntry) else e
        bal = apply_entry(kind, bal, float(debit), float(credit))
        out.append(bal)
    return out


class LedgerRepo:
    """
    Append-only, per-account running-balance ledger.

    Each entry stores the post-transaction balance. The latest balance is read
    (ORDER BY entry_id DESC LIMIT 1) inside the same IMMEDIATE transaction as
    the insert, so two concurrent postings can never build on the same stale
    tail. There is no update or delete.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- internals --------------------------------------------------------

    @staticmethod
    def _kind(kind: AccountKind | str) -> AccountKind:
        try:
            return AccountKind(kind)
        except ValueError as e:
            raise ValidationError(f"Unknown account kind: {kind!r}") from e

    @staticmethod
    def _amount(value, label: str) -> float:
        if value is None:
            return 0.0
        ok, v = try_parse_float(value)
        if not ok or v is None:
            raise InvalidAmountError(f"{label} must be a number.")
        if v < 0:
            raise InvalidAmountError(f"{label} cannot be negative.")
        return v

    @staticmethod
    def _row_to_entry(kind: AccountKind, r: sqlite3.Row) -> LedgerEntry:
        _, account_col, _, _ = _TABLES[kind]
        return LedgerEntry(
            entry_id=int(r["entry_id"]),
            account_kind=kind,
            account_id=int(r[account_col]),
            transaction_date=r["transaction_date"],
            description=r["description"],
            debit=float(r["debit"]),
            credit=float(r["credit"]),
            balance=float(r["balance"]),
        )

    def _ensure_account(self, kind: AccountKind, account_id: int) -> None:
        _, _, account_table, account_pk = _TABLES[kind]
        row = self.conn.execute(
            f"SELECT 1 FROM {account_table} WHERE {account_pk}=?", (account_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"{kind.value.title()} {account_id} does not exist.")

    # ---- reads ------------------------------------------------------------

    def current_balance(self, kind: AccountKind | str, account_id: int) -> float:
        """Balance of the most recent entry, 0.0 when the ledger is empty."""
        k = self._kind(kind)
        table, account_col, _, _ = _TABLES[k]
        row = self.conn.execute(
            f"SELECT balance FROM {table} WHERE {account_col}=? ORDER BY entry_id DESC LIMIT 1",
            (account_id,),
        ).fetchone()
        return float(row["balance"]) if row is not None else 0.0

    def get_ledger(self, kind: AccountKind | str, account_id: int) -> list[LedgerEntry]:
        """All entries for the account in insertion order."""
        k = self._kind(kind)
        table, account_col, _, _ = _TABLES[k]
        rows = self.conn.execute(
            f"SELECT * FROM {table} WHERE {account_col}=? ORDER BY entry_id ASC",
            (account_id,),
        ).fetchall()
        return [self._row_to_entry(k, r) for r in rows]

    # ---- writes -----------------------------------------------------------

    def post(
        self,
        kind: AccountKind | str,
        account_id: int,
        description: str,
        debit: float = 0.0,
        credit: float = 0.0,
        transaction_date: Optional[str | date | datetime] = None,
    ) -> LedgerEntry:
        """
        Append one entry. Must run inside an open transaction (orchestrators
        call this from within immediate_tx); use append_entry() otherwise.
        """
        if not self.conn.in_transaction:
            raise RuntimeError("LedgerRepo.post() requires an open transaction; use append_entry().")

        k = self._kind(kind)
        d = self._amount(debit, "Debit")
        c = self._amount(credit, "Credit")
        if not description or not str(description).strip():
            raise ValidationError("Ledger description cannot be empty.")
        with validation_guard("Transaction date"):
            when = normalize_ledger_date(transaction_date)

        self._ensure_account(k, account_id)
        table, account_col, _, _ = _TABLES[k]

        prev = self.current_balance(k, account_id)
        new_balance = apply_entry(k, prev, d, c)

        cur = self.conn.execute(
            f"INSERT INTO {table} ({account_col}, transaction_date, description, debit, credit, balance) "
            f"VALUES (?, ?, ?, ?, ?, ?)",
            (account_id, when, str(description).strip(), d, c, new_balance),
        )
        entry = LedgerEntry(
            entry_id=int(cur.lastrowid),
            account_kind=k,
            account_id=int(account_id),
            transaction_date=when,
            description=str(description).strip(),
            debit=d,
            credit=c,
            balance=new_balance,
        )
        log_event(
            _log, "ledger", "append",
            f"{k.value} {account_id}: {prev} -> {new_balance}",
            {"entry_id": entry.entry_id, "debit": d, "credit": c},
            level=logging.DEBUG,
        )
        return entry

    def append_entry(
        self,
        kind: AccountKind | str,
        account_id: int,
        description: str,
        debit: float = 0.0,
        credit: float = 0.0,
        transaction_date: Optional[str | date | datetime] = None,
    ) -> LedgerEntry:
        """
        Manual ledger posting (payment received, payment made, adjustment) as
        its own atomic unit.
        """
        with immediate_tx(self.conn):
            return self.post(kind, account_id, description, debit, credit, transaction_date)
