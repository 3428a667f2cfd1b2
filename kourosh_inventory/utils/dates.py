"""
Jalali (Shamsi) calendar helpers.

Sale, installment and check dates travel as Jalali strings ('1403/01/01');
ledger timestamps and phone purchase/sale dates are stored Gregorian ISO.
Everything here is pure and raises ValueError on malformed input; the
repositories turn that into their own ValidationError.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

import jdatetime

from ..constants import ISO_DATETIME_FORMAT

__all__ = [
    "parse_jalali",
    "format_jalali",
    "jalali_to_iso",
    "jalali_to_gregorian",
    "iso_to_jalali",
    "add_jalali_months",
    "jalali_month_length",
    "today_jalali",
    "utc_now_iso",
    "normalize_ledger_date",
]

_JALALI_RX = re.compile(r"^\s*(\d{4})/(\d{1,2})/(\d{1,2})\s*$")
# Gregorian 1821..2221; a slash date such as 2024/03/20 falls outside.
JALALI_YEARS = range(1200, 1600)


def parse_jalali(value: str) -> jdatetime.date:
    """'1403/1/5' or '1403/01/05' -> jdatetime.date. ValueError otherwise."""
    m = _JALALI_RX.match(str(value or ""))
    if not m:
        raise ValueError(f"'{value}' is not a Jalali date (expected YYYY/MM/DD).")
    y, mo, d = (int(g) for g in m.groups())
    if y not in JALALI_YEARS:
        raise ValueError(
            f"'{value}' is outside the Jalali years {JALALI_YEARS.start}-{JALALI_YEARS.stop - 1}; "
            "Gregorian dates must be ISO (YYYY-MM-DD)."
        )
    try:
        return jdatetime.date(y, mo, d)
    except ValueError as e:
        raise ValueError(f"'{value}' is not a valid Jalali date: {e}") from e


def format_jalali(d: jdatetime.date) -> str:
    return f"{d.year:04d}/{d.month:02d}/{d.day:02d}"


def jalali_to_gregorian(value: str) -> date:
    return parse_jalali(value).togregorian()


def jalali_to_iso(value: str) -> str:
    """'1403/01/01' -> '2024-03-20'."""
    return jalali_to_gregorian(value).isoformat()


def iso_to_jalali(value: str | date) -> str:
    """'2024-03-20' (or a date) -> '1403/01/01'."""
    g = value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    return format_jalali(jdatetime.date.fromgregorian(date=g))


def jalali_month_length(year: int, month: int) -> int:
    if month <= 6:
        return 31
    if month <= 11:
        return 30
    return 30 if jdatetime.date(year, 1, 1).isleap() else 29


def add_jalali_months(value: str, months: int) -> str:
    """
    Calendar-month arithmetic in the Jalali calendar.

    The day is clamped to the target month's length, so 1403/06/31 + 1
    is 1403/07/30 and an Esfand 30th lands on the 29th in a common year.
    """
    d = parse_jalali(value)
    idx = d.month - 1 + int(months)
    year = d.year + idx // 12
    month = idx % 12 + 1
    day = min(d.day, jalali_month_length(year, month))
    return format_jalali(jdatetime.date(year, month, day))


def today_jalali(today: Optional[date] = None) -> str:
    return iso_to_jalali(today or date.today())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime(ISO_DATETIME_FORMAT)


def normalize_ledger_date(value: Optional[str | date | datetime]) -> str:
    """
    Ledger timestamps accept both caller conventions:
      - None                       -> now, UTC ISO timestamp
      - '1403/01/01' (Jalali)      -> '2024-03-20'
      - '2024-03-20' / ISO datetime -> kept (validated)
      - date / datetime objects    -> ISO text
    """
    if value is None:
        return utc_now_iso()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(ISO_DATETIME_FORMAT)
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if _JALALI_RX.match(text):
        return jalali_to_iso(text)
    try:
        if len(text) == 10:
            return date.fromisoformat(text).isoformat()
        datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"'{value}' is neither a Jalali nor an ISO date.") from e
    return text
