from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging
import sqlite3
from typing import Iterable, Optional

from ..transaction import immediate_tx
from ...constants import (
    CHECK_HELD_BY_CUSTOMER,
    INSTALLMENT_PAID,
    INSTALLMENT_UNPAID,
    MONEY_EPS,
)
from ...utils.dates import add_jalali_months, format_jalali, jalali_to_iso, parse_jalali, today_jalali
from ...utils.helpers import fmt_money
from ...utils.installment_status import (
    InstallmentSummary,
    derive_installment_status,
    ensure_valid_check_status,
    total_installment_price,
)
from ...utils.loggers import log_event
from ...utils.validators import (
    is_non_negative_number,
    is_positive_int,
    is_strictly_positive_number,
    non_empty,
)
from .errors import (
    DomainError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
    map_integrity_error,
    validation_guard,
)
from .inventory_repo import EVENT_SELL_INSTALLMENT, InventoryRepo
from .ledger_repo import AccountKind, LedgerRepo

_log = logging.getLogger(__name__)


@dataclass
class NewCheck:
    check_number: str
    bank_name: str
    due_date: str                 # Jalali YYYY/MM/DD
    amount: float
    status: Optional[str] = None  # defaults to held_by_customer


@dataclass
class InstallmentPayment:
    payment_id: int
    installment_sale_id: int
    installment_number: int
    due_date: str
    amount_due: float
    payment_date: Optional[str]
    status: str


@dataclass
class InstallmentCheck:
    check_id: int
    installment_sale_id: int
    check_number: str
    bank_name: str
    due_date: str
    amount: float
    status: str


@dataclass
class InstallmentSale:
    installment_sale_id: int
    customer_id: int
    phone_id: int
    actual_sale_price: float
    down_payment: float
    number_of_installments: int
    installment_amount: float
    installments_start_date: str
    notes: Optional[str]
    date_created: str
    customer_full_name: Optional[str] = None
    phone_model: Optional[str] = None
    phone_imei: Optional[str] = None
    # derived on every read
    remaining_amount: float = 0.0
    overall_status: str = ""
    next_due_date: Optional[str] = None
    total_installment_price: float = 0.0
    payments: list[InstallmentPayment] = field(default_factory=list)
    checks: list[InstallmentCheck] = field(default_factory=list)


_SELECT_SALE = """
    SELECT s.installment_sale_id, s.customer_id, s.phone_id,
           CAST(s.actual_sale_price AS REAL)  AS actual_sale_price,
           CAST(s.down_payment AS REAL)       AS down_payment,
           s.number_of_installments,
           CAST(s.installment_amount AS REAL) AS installment_amount,
           s.installments_start_date, s.notes, s.date_created,
           c.full_name AS customer_full_name,
           p.model     AS phone_model,
           p.imei      AS phone_imei
      FROM installment_sales s
      JOIN customers c ON c.customer_id = s.customer_id
      JOIN phones p    ON p.phone_id    = s.phone_id
"""


class InstallmentSalesRepo:
    """
    Phone sales paid as a down payment plus N monthly installments,
    optionally backed by checks.

    The customer ledger gets one debit for the full sale price at creation.
    Marking installments paid and changing check status never touch the
    ledger.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.inventory = InventoryRepo(conn)
        self.ledger = LedgerRepo(conn)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _payments(self, sale_id: int) -> list[InstallmentPayment]:
        rows = self.conn.execute(
            """
            SELECT payment_id, installment_sale_id, installment_number, due_date,
                   CAST(amount_due AS REAL) AS amount_due, payment_date, status
              FROM installment_payments
             WHERE installment_sale_id = ?
             ORDER BY installment_number ASC
            """,
            (sale_id,),
        ).fetchall()
        return [InstallmentPayment(**r) for r in rows]

    def _checks(self, sale_id: int) -> list[InstallmentCheck]:
        rows = self.conn.execute(
            """
            SELECT check_id, installment_sale_id, check_number, bank_name, due_date,
                   CAST(amount AS REAL) AS amount, status
              FROM installment_checks
             WHERE installment_sale_id = ?
             ORDER BY due_date ASC, check_id ASC
            """,
            (sale_id,),
        ).fetchall()
        return [InstallmentCheck(**r) for r in rows]

    @staticmethod
    def _with_summary(sale: InstallmentSale, summary: InstallmentSummary) -> InstallmentSale:
        sale.remaining_amount = summary.remaining_amount
        sale.overall_status = summary.overall_status
        sale.next_due_date = summary.next_due_date
        sale.total_installment_price = summary.total_installment_price
        return sale

    def get_installment_sale(self, sale_id: int, *, today: Optional[date] = None) -> InstallmentSale | None:
        """Detail view: the sale with its payments, checks and derived fields."""
        r = self.conn.execute(_SELECT_SALE + " WHERE s.installment_sale_id = ?", (sale_id,)).fetchone()
        if r is None:
            return None
        sale = InstallmentSale(**r)
        sale.payments = self._payments(sale_id)
        sale.checks = self._checks(sale_id)
        return self._with_summary(sale, derive_installment_status(sale, sale.payments, today))

    def list_installment_sales(self, *, today: Optional[date] = None) -> list[InstallmentSale]:
        """List view: derived fields only; payments are read for the derivation and dropped."""
        rows = self.conn.execute(
            _SELECT_SALE + " ORDER BY s.date_created DESC, s.installment_sale_id DESC"
        ).fetchall()
        out: list[InstallmentSale] = []
        for r in rows:
            sale = InstallmentSale(**r)
            payments = self._payments(sale.installment_sale_id)
            out.append(self._with_summary(sale, derive_installment_status(sale, payments, today)))
        return out

    def get_payment(self, payment_id: int) -> InstallmentPayment | None:
        r = self.conn.execute(
            """
            SELECT payment_id, installment_sale_id, installment_number, due_date,
                   CAST(amount_due AS REAL) AS amount_due, payment_date, status
              FROM installment_payments WHERE payment_id = ?
            """,
            (payment_id,),
        ).fetchone()
        return InstallmentPayment(**r) if r else None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    @staticmethod
    def _validate(actual_sale_price, down_payment, number_of_installments, installment_amount, start_date):
        if not is_strictly_positive_number(actual_sale_price):
            raise InvalidAmountError("Actual sale price must be greater than zero.")
        if not is_non_negative_number(down_payment):
            raise InvalidAmountError("Down payment must be zero or more.")
        if not is_positive_int(number_of_installments):
            raise ValidationError("Number of installments must be a whole number of at least 1.")
        if not is_strictly_positive_number(installment_amount):
            raise InvalidAmountError("Installment amount must be greater than zero.")
        with validation_guard("Installments start date"):
            return format_jalali(parse_jalali(start_date))

    @staticmethod
    def _validate_checks(checks: Iterable[NewCheck]) -> list[tuple]:
        out = []
        for i, c in enumerate(checks, start=1):
            if not non_empty(c.check_number):
                raise ValidationError(f"Check {i}: check number cannot be empty.")
            if not non_empty(c.bank_name):
                raise ValidationError(f"Check {i}: bank name cannot be empty.")
            if not is_strictly_positive_number(c.amount):
                raise InvalidAmountError(f"Check {i}: amount must be greater than zero.")
            with validation_guard(f"Check {i} due date"):
                due = format_jalali(parse_jalali(c.due_date))
                status = ensure_valid_check_status(c.status) if c.status else CHECK_HELD_BY_CUSTOMER
            out.append((c.check_number.strip(), c.bank_name.strip(), due, float(c.amount), status))
        return out

    # ------------------------------------------------------------------
    # Orchestrator
    # ------------------------------------------------------------------
    def create_installment_sale(
        self,
        customer_id: int,
        phone_id: int,
        actual_sale_price: float,
        down_payment: float,
        number_of_installments: int,
        installment_amount: float,
        start_date: str,
        checks: Iterable[NewCheck] = (),
        notes: Optional[str] = None,
    ) -> InstallmentSale:
        """
        One IMMEDIATE transaction: phone -> sold_installment, parent row,
        N unpaid payments due start_date + i months (i = 0..N-1), the checks,
        and a customer ledger debit of actual_sale_price.
        """
        start = self._validate(
            actual_sale_price, down_payment, number_of_installments, installment_amount, start_date
        )
        check_rows = self._validate_checks(checks)
        price = float(actual_sale_price)
        down = float(down_payment)
        n = int(number_of_installments)
        amount = float(installment_amount)

        scheduled = total_installment_price(down, n, amount)
        if abs(scheduled - price) > MONEY_EPS:
            log_event(
                _log, "installment_sale", "mismatch",
                f"down payment + installments ({fmt_money(scheduled)}) != sale price ({fmt_money(price)})",
                {"customer_id": customer_id, "phone_id": phone_id, "scheduled": scheduled, "price": price},
                level=logging.WARNING,
            )

        start_iso = jalali_to_iso(start)
        try:
            with immediate_tx(self.conn):
                if self.conn.execute(
                    "SELECT 1 FROM customers WHERE customer_id=?", (customer_id,)
                ).fetchone() is None:
                    raise NotFoundError(f"Customer {customer_id} does not exist.")

                phone = self.inventory.transition_phone_in_tx(
                    phone_id, EVENT_SELL_INSTALLMENT, sale_date=start_iso
                )

                cur = self.conn.execute(
                    """
                    INSERT INTO installment_sales (
                        customer_id, phone_id, actual_sale_price, down_payment,
                        number_of_installments, installment_amount, installments_start_date, notes
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (customer_id, phone_id, price, down, n, amount, start, notes),
                )
                sale_id = int(cur.lastrowid)

                self.conn.executemany(
                    """
                    INSERT INTO installment_payments (
                        installment_sale_id, installment_number, due_date, amount_due, status
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        (sale_id, i + 1, add_jalali_months(start, i), amount, INSTALLMENT_UNPAID)
                        for i in range(n)
                    ],
                )

                self.conn.executemany(
                    """
                    INSERT INTO installment_checks (
                        installment_sale_id, check_number, bank_name, due_date, amount, status
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [(sale_id, *row) for row in check_rows],
                )

                entry = self.ledger.post(
                    AccountKind.CUSTOMER,
                    customer_id,
                    f"Installment sale #{sale_id}: {phone['model']} (IMEI: {phone['imei']})",
                    debit=price,
                    transaction_date=start_iso,
                )
        except DomainError as e:
            log_event(
                _log, "installment_sale", "rollback", str(e),
                {"customer_id": customer_id, "phone_id": phone_id, "error": type(e).__name__},
                level=logging.WARNING,
            )
            raise
        except sqlite3.IntegrityError as e:
            log_event(
                _log, "installment_sale", "rollback", str(e),
                {"customer_id": customer_id, "phone_id": phone_id, "error": "IntegrityError"},
                level=logging.WARNING,
            )
            raise map_integrity_error(e, what="installment sale") from e

        log_event(
            _log, "installment_sale", "commit",
            f"installment sale {sale_id}: {n} x {fmt_money(amount)} from {start}",
            {"installment_sale_id": sale_id, "ledger_entry_id": entry.entry_id, "debit": price},
        )
        return self.get_installment_sale(sale_id)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Status flips (no ledger interaction)
    # ------------------------------------------------------------------
    def set_installment_paid(
        self,
        payment_id: int,
        paid: bool,
        payment_date: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> bool:
        """
        Paid: status 'paid' with payment_date (today's Jalali date if not
        given). Unpaid: status 'unpaid' and the date cleared.
        Returns False when the payment does not exist.
        """
        if paid:
            if payment_date:
                with validation_guard("Payment date"):
                    when = format_jalali(parse_jalali(payment_date))
            else:
                when = today_jalali(today)
            params = (INSTALLMENT_PAID, when, payment_id)
        else:
            params = (INSTALLMENT_UNPAID, None, payment_id)

        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE installment_payments SET status=?, payment_date=? WHERE payment_id=?", params
            )
        _log.info("installment payment %s -> %s", payment_id, params[0])
        return cur.rowcount > 0

    def set_check_status(self, check_id: int, status: str) -> bool:
        """Any of the check statuses may follow any other."""
        with validation_guard("Check status"):
            s = ensure_valid_check_status(status)
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE installment_checks SET status=? WHERE check_id=?", (s, check_id)
            )
        _log.info("check %s -> %s", check_id, s)
        return cur.rowcount > 0
