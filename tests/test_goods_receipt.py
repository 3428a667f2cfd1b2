# tests/test_goods_receipt.py
import pytest

from kourosh_inventory.constants import PHONE_IN_STOCK
from kourosh_inventory.database.repositories import (
    AccountKind,
    DuplicateIdentifierError,
    GoodsReceiptPoster,
    InvalidAmountError,
    InvalidQuantityError,
    LedgerRepo,
    NewPhone,
    NewProduct,
    NotFoundError,
    PartnersRepo,
    PhonesRepo,
    ProductsRepo,
    ValidationError,
)


def _phone(imei="111111111111111", **kw) -> NewPhone:
    base = dict(model="iPhone 13", imei=imei, purchase_price=30_000_000, sale_price=36_000_000)
    base.update(kw)
    return NewPhone(**base)


# -------------------------
# Phones
# -------------------------

def test_phone_receipt_credits_supplier(conn, ids):
    phone = PhonesRepo(conn).receive_phone(
        _phone(supplier_id=ids["partner_id"], purchase_date="1403/01/15")
    )
    assert phone.status == PHONE_IN_STOCK
    assert phone.supplier_name == "Mobile Wholesale"
    assert phone.purchase_date == "2024-04-03"

    entries = LedgerRepo(conn).get_ledger(AccountKind.PARTNER, ids["partner_id"])
    assert len(entries) == 1
    assert entries[0].credit == 30_000_000
    assert entries[0].debit == 0
    assert entries[0].balance == 30_000_000
    assert entries[0].transaction_date == "2024-04-03"
    assert "111111111111111" in entries[0].description


def test_phone_without_supplier_or_cost_posts_nothing(conn, ids, count):
    repo = PhonesRepo(conn)
    repo.receive_phone(_phone(imei="222"))
    repo.receive_phone(_phone(imei="333", purchase_price=0, supplier_id=ids["partner_id"]))
    assert count("SELECT COUNT(*) FROM partner_ledger") == 0


def test_duplicate_imei_rejected_and_nothing_posted(conn, ids, count):
    repo = PhonesRepo(conn)
    repo.receive_phone(_phone(supplier_id=ids["partner_id"]))
    phones_before = count("SELECT COUNT(*) FROM phones")

    with pytest.raises(DuplicateIdentifierError):
        repo.receive_phone(_phone(supplier_id=ids["partner_id"], model="Other"))

    assert count("SELECT COUNT(*) FROM phones") == phones_before
    assert count("SELECT COUNT(*) FROM partner_ledger") == 1
    assert LedgerRepo(conn).current_balance(AccountKind.PARTNER, ids["partner_id"]) == 30_000_000


def test_phone_with_unknown_supplier(conn, ids, count):
    with pytest.raises(NotFoundError):
        PhonesRepo(conn).receive_phone(_phone(supplier_id=777))
    assert count("SELECT COUNT(*) FROM phones WHERE imei='111111111111111'") == 0


def test_ledger_failure_rolls_back_phone_insert(conn, ids, count, monkeypatch):
    repo = PhonesRepo(conn)

    def boom(**kwargs):
        raise RuntimeError("ledger down")

    monkeypatch.setattr(repo.receipts, "post_in_tx", boom)
    with pytest.raises(RuntimeError):
        repo.receive_phone(_phone(supplier_id=ids["partner_id"]))
    assert count("SELECT COUNT(*) FROM phones WHERE imei='111111111111111'") == 0


def test_phone_validation(conn, ids):
    repo = PhonesRepo(conn)
    with pytest.raises(ValidationError):
        repo.receive_phone(_phone(imei="  "))
    with pytest.raises(InvalidAmountError):
        repo.receive_phone(_phone(purchase_price=-1))
    with pytest.raises(ValidationError):
        repo.receive_phone(_phone(purchase_date="next week"))


# -------------------------
# Products
# -------------------------

def test_product_batch_credits_price_times_quantity(conn, ids):
    product = ProductsRepo(conn).receive_product(
        NewProduct(name="Charger", purchase_price=400, selling_price=900, stock_quantity=5,
                   supplier_id=ids["partner_id"])
    )
    assert product.stock_quantity == 5
    assert product.supplier_name == "Mobile Wholesale"
    entries = LedgerRepo(conn).get_ledger(AccountKind.PARTNER, ids["partner_id"])
    assert [(e.credit, e.balance) for e in entries] == [(2000.0, 2000.0)]


def test_product_zero_quantity_posts_nothing(conn, ids, count):
    ProductsRepo(conn).receive_product(
        NewProduct(name="Cable", purchase_price=100, selling_price=200, stock_quantity=0,
                   supplier_id=ids["partner_id"])
    )
    assert count("SELECT COUNT(*) FROM partner_ledger") == 0


def test_product_validation(conn, ids):
    repo = ProductsRepo(conn)
    with pytest.raises(InvalidQuantityError):
        repo.receive_product(NewProduct(name="X", purchase_price=1, selling_price=1, stock_quantity=-2))
    with pytest.raises(ValidationError):
        repo.receive_product(NewProduct(name="", purchase_price=1, selling_price=1, stock_quantity=1))
    with pytest.raises(NotFoundError):
        repo.receive_product(NewProduct(name="X", purchase_price=1, selling_price=1, stock_quantity=1,
                                        category_id=55))


def test_categories(conn):
    repo = ProductsRepo(conn)
    c = repo.create_category("Accessories")
    repo.create_category("Chargers")
    assert [x.name for x in repo.list_categories()] == ["Accessories", "Chargers"]
    with pytest.raises(DuplicateIdentifierError):
        repo.create_category(" Accessories ")

    p = repo.receive_product(
        NewProduct(name="Glass", purchase_price=50, selling_price=150, stock_quantity=3, category_id=c.category_id)
    )
    assert p.category_name == "Accessories"


def test_category_rename_and_delete(conn):
    repo = ProductsRepo(conn)
    acc = repo.create_category("Accessories")
    chg = repo.create_category("Chargers")

    assert repo.update_category(acc.category_id, " Cases ").name == "Cases"
    repo.update_category(acc.category_id, "Cases")
    with pytest.raises(DuplicateIdentifierError):
        repo.update_category(acc.category_id, "Chargers")
    with pytest.raises(NotFoundError):
        repo.update_category(404, "Ghost")
    with pytest.raises(ValidationError):
        repo.update_category(chg.category_id, "  ")

    p = repo.receive_product(
        NewProduct(name="Cable", purchase_price=20, selling_price=60, stock_quantity=5, category_id=chg.category_id)
    )
    repo.delete_category(chg.category_id)
    kept = repo.get(p.product_id)
    assert kept.category_id is None
    assert kept.category_name is None
    assert [x.name for x in repo.list_categories()] == ["Cases"]
    with pytest.raises(NotFoundError):
        repo.delete_category(chg.category_id)


def test_poster_skips_when_nothing_owed(conn, ids):
    poster = GoodsReceiptPoster(conn)
    assert poster.post_in_tx(supplier_id=None, purchase_price=10, quantity=1, description="x") is None
    assert GoodsReceiptPoster.receipt_value(400, 5) == 2000.0


# -------------------------
# Purchased items per partner
# -------------------------

def test_purchased_items(conn, ids):
    pid = ids["partner_id"]
    PhonesRepo(conn).receive_phone(_phone(supplier_id=pid))
    ProductsRepo(conn).receive_product(
        NewProduct(name="Charger", purchase_price=400, selling_price=900, stock_quantity=5, supplier_id=pid)
    )
    items = PartnersRepo(conn).purchased_items(pid)
    assert sorted(i["type"] for i in items) == ["inventory", "phone"]
    assert {i["name"] for i in items} == {"iPhone 13", "Charger"}

    assert len(ProductsRepo(conn).list_products(supplier_id=pid)) == 1
    assert len(PhonesRepo(conn).list_phones(supplier_id=pid)) == 1
