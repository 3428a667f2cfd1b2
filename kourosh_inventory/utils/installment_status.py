from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..constants import (
    CHECK_STATUSES,
    INSTALLMENT_PAID,
    INSTALLMENT_UNPAID,
    MONEY_EPS,
    SALE_COMPLETED,
    SALE_IN_PROGRESS,
    SALE_OVERDUE,
)
from .dates import jalali_to_gregorian


@dataclass(frozen=True)
class InstallmentSummary:
    remaining_amount: float
    overall_status: str
    next_due_date: Optional[str]
    total_installment_price: float
    paid_count: int
    unpaid_count: int


def _field(obj, name):
    """Attribute or key access, so dataclasses and sqlite3.Row both work."""
    if hasattr(obj, name):
        return getattr(obj, name)
    return obj[name]


# ---------- API ----------

def total_installment_price(down_payment: float, number_of_installments: int, installment_amount: float) -> float:
    """N*A + D: what the customer pays in total under the schedule."""
    return float(number_of_installments) * float(installment_amount) + float(down_payment)


def remaining_amount(actual_sale_price: float, down_payment: float, payments: Iterable) -> float:
    """actual_sale_price - down_payment - sum(amount_due of paid payments)."""
    paid = sum(
        float(_field(p, "amount_due"))
        for p in payments
        if _field(p, "status") == INSTALLMENT_PAID
    )
    return float(actual_sale_price) - float(down_payment) - paid


def next_due_date(payments: Iterable) -> Optional[str]:
    """Due date of the lowest-numbered unpaid payment, or None when all are paid."""
    unpaid = [p for p in payments if _field(p, "status") == INSTALLMENT_UNPAID]
    if not unpaid:
        return None
    return _field(min(unpaid, key=lambda p: int(_field(p, "installment_number"))), "due_date")


def is_overdue(payment, today: date) -> bool:
    return (
        _field(payment, "status") == INSTALLMENT_UNPAID
        and jalali_to_gregorian(_field(payment, "due_date")) < today
    )


def derive_installment_status(sale, payments: Iterable, today: Optional[date] = None) -> InstallmentSummary:
    """
    Every read path (list and detail) goes through here.

        remaining <= 0                      -> completed
        any unpaid payment due before today -> overdue
        otherwise                           -> in_progress
    """
    payments = list(payments)
    today = today or date.today()

    remaining = remaining_amount(_field(sale, "actual_sale_price"), _field(sale, "down_payment"), payments)
    if remaining <= MONEY_EPS:
        status = SALE_COMPLETED
    elif any(is_overdue(p, today) for p in payments):
        status = SALE_OVERDUE
    else:
        status = SALE_IN_PROGRESS

    paid_count = sum(1 for p in payments if _field(p, "status") == INSTALLMENT_PAID)
    return InstallmentSummary(
        remaining_amount=remaining,
        overall_status=status,
        next_due_date=next_due_date(payments),
        total_installment_price=total_installment_price(
            _field(sale, "down_payment"),
            _field(sale, "number_of_installments"),
            _field(sale, "installment_amount"),
        ),
        paid_count=paid_count,
        unpaid_count=len(payments) - paid_count,
    )


# ---------- Check status ----------

def normalize_check_status(state: Optional[str]) -> Optional[str]:
    """Lowercase, strip, spaces/dashes to underscores; None if empty."""
    if state is None:
        return None
    s = str(state).strip().lower().replace("-", "_").replace(" ", "_")
    return s or None


def ensure_valid_check_status(state: str) -> str:
    """Return the normalized status if valid; raise ValueError if not."""
    s = normalize_check_status(state)
    if s not in CHECK_STATUSES:
        raise ValueError("check status must be one of: " + ", ".join(CHECK_STATUSES))
    return s  # type: ignore[return-value]

