# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (WAL, FK ON)
# - conn fixture is built through get_connection(), same as production
# - ids fixture seeds one customer, one partner, one phone, one product
# - Concurrency tests open extra connections on the same db_path
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from kourosh_inventory.database import get_connection
from kourosh_inventory.database.repositories import (
    CustomersRepo,
    NewPhone,
    NewProduct,
    PartnersRepo,
    PhonesRepo,
    ProductsRepo,
)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "shop.db"


@pytest.fixture()
def conn(db_path: Path):
    """Fresh database per test; closed afterwards."""
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def open_conn(db_path: Path):
    """Factory for additional connections to the same file (one per thread)."""
    opened: list[sqlite3.Connection] = []

    def _open() -> sqlite3.Connection:
        c = get_connection(db_path)
        opened.append(c)
        return c

    yield _open
    for c in opened:
        c.close()


# ---------- Handy seed ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common rows used throughout the tests (no supplier, so no ledger rows yet)."""
    customer_id = CustomersRepo(conn).create("Ali Rezaei", "09120000001", "Tehran")
    partner_id = PartnersRepo(conn).create("Mobile Wholesale", contact_person="Reza", phone_number="02100000001")
    phone = PhonesRepo(conn).receive_phone(
        NewPhone(
            model="Galaxy A54",
            imei="356789012345678",
            purchase_price=9_000_000,
            sale_price=12_000_000,
            color="Black",
            storage="128GB",
        )
    )
    product = ProductsRepo(conn).receive_product(
        NewProduct(name="Phone Case", purchase_price=400, selling_price=1000, stock_quantity=10)
    )
    return {
        "customer_id": customer_id,
        "partner_id": partner_id,
        "phone_id": phone.phone_id,
        "product_id": product.product_id,
    }


@pytest.fixture()
def count(conn: sqlite3.Connection):
    """count("SELECT COUNT(*) ...", *params) -> int"""
    def _count(sql: str, *params) -> int:
        return int(conn.execute(sql, params).fetchone()[0])
    return _count
