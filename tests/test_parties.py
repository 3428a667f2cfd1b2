# tests/test_parties.py
import pytest

from kourosh_inventory.constants import DEFAULT_PARTNER_TYPE
from kourosh_inventory.database.repositories import (
    AccountKind,
    CustomersRepo,
    DuplicateIdentifierError,
    InstallmentSalesRepo,
    InvalidStateError,
    LedgerRepo,
    NotFoundError,
    PartnersRepo,
    SalesRepo,
    ValidationError,
)


# -------------------------
# Customers
# -------------------------

def test_customer_crud_and_balance(conn, ids):
    repo = CustomersRepo(conn)
    c = repo.get(ids["customer_id"])
    assert c.full_name == "Ali Rezaei"
    assert c.current_balance == 0.0

    LedgerRepo(conn).append_entry(AccountKind.CUSTOMER, c.customer_id, "Old debt", debit=1500)
    other = repo.create("Sara Ahmadi", "09120000002")

    listed = {x.customer_id: x.current_balance for x in repo.list_with_balance()}
    assert listed == {c.customer_id: 1500.0, other: 0.0}

    repo.update(other, "Sara A.", "09120000003", address="Shiraz")
    assert repo.get(other).phone_number == "09120000003"
    assert [x.customer_id for x in repo.search("Sara")] == [other]


def test_customer_phone_number_unique(conn, ids):
    repo = CustomersRepo(conn)
    with pytest.raises(DuplicateIdentifierError):
        repo.create("Copycat", "09120000001")
    second = repo.create("Reza", "09120000002")
    with pytest.raises(DuplicateIdentifierError):
        repo.update(second, "Reza", "09120000001")
    # same number on the same customer is fine
    repo.update(ids["customer_id"], "Ali R.", "09120000001")


def test_customer_validation_and_missing(conn):
    repo = CustomersRepo(conn)
    with pytest.raises(ValidationError):
        repo.create("   ")
    with pytest.raises(NotFoundError):
        repo.update(404, "Nobody")
    with pytest.raises(NotFoundError):
        repo.delete(404)


def test_delete_customer_keeps_sale_snapshot(conn, ids, count):
    sale = SalesRepo(conn).record_sale(
        "inventory", ids["product_id"], 1, "1403/01/01",
        customer_id=ids["customer_id"], payment_method="credit",
    )
    CustomersRepo(conn).delete(ids["customer_id"])

    assert CustomersRepo(conn).get(ids["customer_id"]) is None
    assert count("SELECT COUNT(*) FROM customer_ledger") == 0
    kept = SalesRepo(conn).get(sale.sale_id)
    assert kept.customer_id is None
    assert kept.total_price == sale.total_price


def test_delete_customer_with_installments_blocked(conn, ids):
    InstallmentSalesRepo(conn).create_installment_sale(
        ids["customer_id"], ids["phone_id"], 1000, 0, 1, 1000, "1403/01/01",
    )
    with pytest.raises(InvalidStateError):
        CustomersRepo(conn).delete(ids["customer_id"])
    assert CustomersRepo(conn).get(ids["customer_id"]) is not None


# -------------------------
# Partners
# -------------------------

def test_partner_crud_and_balance(conn, ids):
    repo = PartnersRepo(conn)
    p = repo.get(ids["partner_id"])
    assert p.partner_type == DEFAULT_PARTNER_TYPE
    assert p.contact_person == "Reza"

    LedgerRepo(conn).append_entry(AccountKind.PARTNER, p.partner_id, "Invoice", credit=700)
    assert repo.get(p.partner_id).current_balance == 700.0

    svc = repo.create("Fix-It Repairs", partner_type="Service", email="fix@example.com")
    repo.update(svc, "Fix-It Repairs", partner_type="Repair Shop", phone_number="02100000009")
    assert repo.get(svc).partner_type == "Repair Shop"
    assert [x.partner_name for x in repo.list_with_balance()] == ["Fix-It Repairs", "Mobile Wholesale"]
    assert [x.partner_name for x in repo.list_with_balance(partner_type="Repair Shop")] == ["Fix-It Repairs"]
    assert [x.partner_id for x in repo.list_with_balance(DEFAULT_PARTNER_TYPE)] == [p.partner_id]
    assert repo.list_with_balance("Courier") == []


def test_partner_unique_phone_and_delete(conn, ids, count):
    repo = PartnersRepo(conn)
    with pytest.raises(DuplicateIdentifierError):
        repo.create("Clone", phone_number="02100000001")
    with pytest.raises(NotFoundError):
        repo.update(404, "Ghost")
    with pytest.raises(ValidationError):
        repo.create("")

    LedgerRepo(conn).append_entry(AccountKind.PARTNER, ids["partner_id"], "Invoice", credit=1)
    repo.delete(ids["partner_id"])
    assert repo.get(ids["partner_id"]) is None
    assert count("SELECT COUNT(*) FROM partner_ledger") == 0
    with pytest.raises(NotFoundError):
        repo.purchased_items(ids["partner_id"])
