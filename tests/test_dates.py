# tests/test_dates.py
from datetime import date, datetime, timezone

import pytest

from kourosh_inventory.utils.dates import (
    add_jalali_months,
    format_jalali,
    iso_to_jalali,
    jalali_month_length,
    jalali_to_iso,
    normalize_ledger_date,
    parse_jalali,
    today_jalali,
)


def test_nowruz_round_trip():
    assert jalali_to_iso("1403/01/01") == "2024-03-20"
    assert iso_to_jalali("2024-03-20") == "1403/01/01"
    assert iso_to_jalali(date(2024, 3, 20)) == "1403/01/01"


def test_parse_accepts_unpadded_and_formats_padded():
    assert format_jalali(parse_jalali("1403/1/5")) == "1403/01/05"
    assert format_jalali(parse_jalali(" 1403/02/31 ")) == "1403/02/31"


@pytest.mark.parametrize(
    "bad", ["2024-03-20", "1403-01-01", "", None, "1403/13/01", "1403/07/31", "abc", "2024/03/20", "0999/01/01"]
)
def test_parse_rejects_malformed(bad):
    with pytest.raises(ValueError):
        parse_jalali(bad)


def test_month_lengths():
    assert jalali_month_length(1403, 1) == 31
    assert jalali_month_length(1403, 6) == 31
    assert jalali_month_length(1403, 7) == 30
    assert jalali_month_length(1403, 11) == 30
    assert jalali_month_length(1402, 12) == 29


def test_add_months_schedule():
    assert [add_jalali_months("1403/01/01", i) for i in range(4)] == [
        "1403/01/01", "1403/02/01", "1403/03/01", "1403/04/01",
    ]


def test_add_months_clamps_day_and_rolls_year():
    assert add_jalali_months("1403/06/31", 1) == "1403/07/30"
    assert add_jalali_months("1402/11/30", 1) == "1402/12/29"
    assert add_jalali_months("1403/10/15", 4) == "1404/02/15"
    assert add_jalali_months("1403/05/10", 0) == "1403/05/10"


def test_today_jalali_is_injectable():
    assert today_jalali(date(2024, 3, 20)) == "1403/01/01"


def test_normalize_ledger_date_conventions():
    assert normalize_ledger_date("1403/01/01") == "2024-03-20"
    assert normalize_ledger_date("2024-03-20") == "2024-03-20"
    assert normalize_ledger_date("2024-03-20T10:00:00Z") == "2024-03-20T10:00:00Z"
    assert normalize_ledger_date(date(2024, 3, 20)) == "2024-03-20"
    assert normalize_ledger_date(datetime(2024, 3, 20, 8, 30, tzinfo=timezone.utc)) == "2024-03-20T08:30:00Z"
    now = normalize_ledger_date(None)
    assert now.endswith("Z") and "T" in now


def test_normalize_ledger_date_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_ledger_date("yesterday")
    with pytest.raises(ValueError):
        normalize_ledger_date("2024-13-40")
    with pytest.raises(ValueError, match="ISO"):
        normalize_ledger_date("2024/03/20")
