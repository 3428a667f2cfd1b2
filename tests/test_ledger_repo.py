# tests/test_ledger_repo.py
import sqlite3

import pytest

from kourosh_inventory.database.repositories import (
    AccountKind,
    InvalidAmountError,
    LedgerRepo,
    NotFoundError,
    ValidationError,
    apply_entry,
    fold_balances,
)


# -------------------------
# Sign convention
# -------------------------

def test_apply_entry_sign_convention():
    assert apply_entry(AccountKind.CUSTOMER, 100.0, 50.0, 0.0) == 150.0
    assert apply_entry(AccountKind.CUSTOMER, 100.0, 0.0, 30.0) == 70.0
    assert apply_entry(AccountKind.PARTNER, 100.0, 0.0, 50.0) == 150.0
    assert apply_entry(AccountKind.PARTNER, 100.0, 30.0, 0.0) == 70.0


def test_fold_balances_over_pairs():
    assert fold_balances(AccountKind.CUSTOMER, [(1000, 0), (0, 300), (50, 0)]) == [1000, 700, 750]
    assert fold_balances(AccountKind.PARTNER, [(0, 500), (200, 0)]) == [500, 300]


# -------------------------
# Running balance
# -------------------------

def test_customer_ledger_running_balance(conn, ids):
    repo = LedgerRepo(conn)
    cid = ids["customer_id"]
    assert repo.current_balance(AccountKind.CUSTOMER, cid) == 0.0

    repo.append_entry(AccountKind.CUSTOMER, cid, "Opening debt", debit=1000)
    repo.append_entry(AccountKind.CUSTOMER, cid, "Payment received", credit=300)
    e3 = repo.append_entry("customer", cid, "Accessory on account", debit=50)

    assert e3.balance == 750.0
    entries = repo.get_ledger(AccountKind.CUSTOMER, cid)
    assert [e.balance for e in entries] == fold_balances(AccountKind.CUSTOMER, entries)
    assert [e.entry_id for e in entries] == sorted(e.entry_id for e in entries)
    assert repo.current_balance(AccountKind.CUSTOMER, cid) == 750.0


def test_partner_ledger_running_balance(conn, ids):
    repo = LedgerRepo(conn)
    pid = ids["partner_id"]
    repo.append_entry(AccountKind.PARTNER, pid, "Invoice 17", credit=500)
    e2 = repo.append_entry(AccountKind.PARTNER, pid, "Paid by transfer", debit=200)
    assert e2.balance == 300.0
    assert repo.current_balance(AccountKind.PARTNER, pid) == 300.0


def test_ledgers_are_independent_per_account(conn, ids):
    repo = LedgerRepo(conn)
    other = conn.execute("INSERT INTO customers(full_name) VALUES ('Sara')").lastrowid
    repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "A", debit=100)
    repo.append_entry(AccountKind.CUSTOMER, other, "B", debit=7)
    assert repo.current_balance(AccountKind.CUSTOMER, ids["customer_id"]) == 100.0
    assert repo.current_balance(AccountKind.CUSTOMER, other) == 7.0


def test_get_ledger_is_idempotent(conn, ids):
    repo = LedgerRepo(conn)
    repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "x", debit=10)
    assert repo.get_ledger(AccountKind.CUSTOMER, ids["customer_id"]) == repo.get_ledger(
        AccountKind.CUSTOMER, ids["customer_id"]
    )


def test_transaction_date_accepts_both_conventions(conn, ids):
    repo = LedgerRepo(conn)
    e1 = repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "jalali", debit=1, transaction_date="1403/01/01")
    e2 = repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "iso", debit=1, transaction_date="2024-03-21")
    assert e1.transaction_date == "2024-03-20"
    assert e2.transaction_date == "2024-03-21"


# -------------------------
# Rejections
# -------------------------

def test_unknown_account_is_not_found(conn, ids):
    with pytest.raises(NotFoundError):
        LedgerRepo(conn).append_entry(AccountKind.PARTNER, 9999, "nobody", credit=1)


def test_negative_amount_rejected_without_insert(conn, ids, count):
    with pytest.raises(InvalidAmountError):
        LedgerRepo(conn).append_entry(AccountKind.CUSTOMER, ids["customer_id"], "neg", debit=-5)
    assert count("SELECT COUNT(*) FROM customer_ledger") == 0


@pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan"), "nan", "Infinity"])
def test_non_finite_amount_rejected(conn, ids, count, amount):
    repo = LedgerRepo(conn)
    with pytest.raises(InvalidAmountError):
        repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "bad", debit=amount)
    with pytest.raises(InvalidAmountError):
        repo.append_entry(AccountKind.PARTNER, ids["partner_id"], "bad", credit=amount)
    assert count("SELECT COUNT(*) FROM customer_ledger") == 0
    assert count("SELECT COUNT(*) FROM partner_ledger") == 0

    repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "ok", debit=100)
    assert repo.current_balance(AccountKind.CUSTOMER, ids["customer_id"]) == 100.0


def test_empty_description_and_bad_kind(conn, ids):
    repo = LedgerRepo(conn)
    with pytest.raises(ValidationError):
        repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "  ", debit=1)
    with pytest.raises(ValidationError):
        repo.append_entry("supplier", ids["partner_id"], "x", credit=1)
    with pytest.raises(ValidationError):
        repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "x", debit=1, transaction_date="soon")


def test_post_requires_open_transaction(conn, ids):
    with pytest.raises(RuntimeError):
        LedgerRepo(conn).post(AccountKind.CUSTOMER, ids["customer_id"], "x", debit=1)


def test_entries_are_immutable(conn, ids):
    repo = LedgerRepo(conn)
    e = repo.append_entry(AccountKind.CUSTOMER, ids["customer_id"], "x", debit=1)
    with pytest.raises(sqlite3.DatabaseError):
        conn.execute("UPDATE customer_ledger SET debit=999 WHERE entry_id=?", (e.entry_id,))
    assert repo.get_ledger(AccountKind.CUSTOMER, ids["customer_id"])[0].debit == 1.0
