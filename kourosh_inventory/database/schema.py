from pathlib import Path
import logging
import sqlite3
import sys

from ..constants import PHONE_STATUSES, CHECK_STATUSES

_log = logging.getLogger(__name__)


def _in_list(values) -> str:
    return ",".join(f"'{v}'" for v in values)


SQL = rf"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- categories -------- */
CREATE TABLE IF NOT EXISTS categories (
    category_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL UNIQUE
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS customers (
    customer_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    full_name    TEXT NOT NULL,
    phone_number TEXT UNIQUE,
    address      TEXT,
    notes        TEXT,
    date_added   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE TABLE IF NOT EXISTS partners (
    partner_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    partner_name   TEXT NOT NULL,
    partner_type   TEXT NOT NULL DEFAULT 'Supplier',
    contact_person TEXT,
    phone_number   TEXT UNIQUE,
    email          TEXT,
    address        TEXT,
    notes          TEXT,
    date_added     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

/* -------- running-balance ledgers (one per account kind) -------- */
/* customer: balance = prev + debit - credit  (positive = customer owes us) */
CREATE TABLE IF NOT EXISTS customer_ledger (
    entry_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id      INTEGER NOT NULL,
    transaction_date TEXT    NOT NULL,
    description      TEXT    NOT NULL,
    debit            REAL    NOT NULL DEFAULT 0 CHECK (debit  >= 0),
    credit           REAL    NOT NULL DEFAULT 0 CHECK (credit >= 0),
    balance          REAL    NOT NULL,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_customer_ledger_tail ON customer_ledger(customer_id, entry_id);

/* partner: balance = prev + credit - debit  (positive = we owe the partner) */
CREATE TABLE IF NOT EXISTS partner_ledger (
    entry_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    partner_id       INTEGER NOT NULL,
    transaction_date TEXT    NOT NULL,
    description      TEXT    NOT NULL,
    debit            REAL    NOT NULL DEFAULT 0 CHECK (debit  >= 0),
    credit           REAL    NOT NULL DEFAULT 0 CHECK (credit >= 0),
    balance          REAL    NOT NULL,
    FOREIGN KEY (partner_id) REFERENCES partners(partner_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_partner_ledger_tail ON partner_ledger(partner_id, entry_id);

/* -------- bulk products -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT    NOT NULL,
    purchase_price REAL    NOT NULL DEFAULT 0 CHECK (purchase_price >= 0),
    selling_price  REAL    NOT NULL DEFAULT 0 CHECK (selling_price  >= 0),
    stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
    sale_count     INTEGER NOT NULL DEFAULT 0 CHECK (sale_count     >= 0),
    category_id    INTEGER,
    supplier_id    INTEGER,
    date_added     TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    FOREIGN KEY (category_id) REFERENCES categories(category_id) ON DELETE SET NULL,
    FOREIGN KEY (supplier_id) REFERENCES partners(partner_id)    ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_products_supplier ON products(supplier_id);

/* -------- serialized units (phones) -------- */
CREATE TABLE IF NOT EXISTS phones (
    phone_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    model          TEXT NOT NULL,
    color          TEXT,
    storage        TEXT,
    ram            TEXT,
    imei           TEXT NOT NULL UNIQUE,
    battery_health INTEGER,
    condition      TEXT,
    purchase_price REAL NOT NULL CHECK (purchase_price >= 0),
    sale_price     REAL,
    seller_name    TEXT,
    buyer_name     TEXT,
    purchase_date  TEXT,            -- ISO YYYY-MM-DD
    sale_date      TEXT,            -- ISO YYYY-MM-DD
    register_date  TEXT NOT NULL,   -- ISO timestamp
    status         TEXT NOT NULL DEFAULT 'in_stock' CHECK (status IN ({_in_list(PHONE_STATUSES)})),
    notes          TEXT,
    supplier_id    INTEGER,
    FOREIGN KEY (supplier_id) REFERENCES partners(partner_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_phones_status   ON phones(status);
CREATE INDEX IF NOT EXISTS idx_phones_supplier ON phones(supplier_id);

/* -------- sales (immutable snapshots) -------- */
CREATE TABLE IF NOT EXISTS sales_transactions (
    sale_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_date TEXT    NOT NULL,   -- Jalali YYYY/MM/DD
    item_type        TEXT    NOT NULL CHECK (item_type IN ('phone','inventory')),
    item_id          INTEGER NOT NULL,
    item_name        TEXT    NOT NULL,
    quantity         INTEGER NOT NULL CHECK (quantity > 0),
    price_per_item   REAL    NOT NULL CHECK (price_per_item > 0),
    discount         REAL    NOT NULL DEFAULT 0 CHECK (discount >= 0),
    total_price      REAL    NOT NULL CHECK (total_price >= 0),
    notes            TEXT,
    customer_id      INTEGER,
    payment_method   TEXT    NOT NULL DEFAULT 'cash' CHECK (payment_method IN ('cash','credit')),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_sales_customer ON sales_transactions(customer_id);

/* -------- installment sales -------- */
CREATE TABLE IF NOT EXISTS installment_sales (
    installment_sale_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id             INTEGER NOT NULL,
    phone_id                INTEGER NOT NULL,
    actual_sale_price       REAL    NOT NULL CHECK (actual_sale_price > 0),
    down_payment            REAL    NOT NULL CHECK (down_payment >= 0),
    number_of_installments  INTEGER NOT NULL CHECK (number_of_installments > 0),
    installment_amount      REAL    NOT NULL CHECK (installment_amount > 0),
    installments_start_date TEXT    NOT NULL,   -- Jalali YYYY/MM/DD
    notes                   TEXT,
    date_created            TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    FOREIGN KEY (phone_id)    REFERENCES phones(phone_id)
);

CREATE TABLE IF NOT EXISTS installment_payments (
    payment_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    installment_sale_id INTEGER NOT NULL,
    installment_number  INTEGER NOT NULL,
    due_date            TEXT    NOT NULL,   -- Jalali YYYY/MM/DD
    amount_due          REAL    NOT NULL CHECK (amount_due >= 0),
    payment_date        TEXT,               -- Jalali YYYY/MM/DD
    status              TEXT    NOT NULL DEFAULT 'unpaid' CHECK (status IN ('unpaid','paid')),
    UNIQUE (installment_sale_id, installment_number),
    FOREIGN KEY (installment_sale_id) REFERENCES installment_sales(installment_sale_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS installment_checks (
    check_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    installment_sale_id INTEGER NOT NULL,
    check_number        TEXT    NOT NULL,
    bank_name           TEXT    NOT NULL,
    due_date            TEXT    NOT NULL,   -- Jalali YYYY/MM/DD
    amount              REAL    NOT NULL CHECK (amount > 0),
    status              TEXT    NOT NULL DEFAULT 'held_by_customer' CHECK (status IN ({_in_list(CHECK_STATUSES)})),
    FOREIGN KEY (installment_sale_id) REFERENCES installment_sales(installment_sale_id) ON DELETE CASCADE
);


/* ======================== IMMUTABILITY GUARDS ======================== */

DROP TRIGGER IF EXISTS trg_customer_ledger_no_update;
CREATE TRIGGER trg_customer_ledger_no_update
BEFORE UPDATE ON customer_ledger
BEGIN
  SELECT RAISE(ABORT, 'Ledger entries are immutable');
END;

DROP TRIGGER IF EXISTS trg_partner_ledger_no_update;
CREATE TRIGGER trg_partner_ledger_no_update
BEFORE UPDATE ON partner_ledger
BEGIN
  SELECT RAISE(ABORT, 'Ledger entries are immutable');
END;

DROP TRIGGER IF EXISTS trg_sales_no_update;
CREATE TRIGGER trg_sales_no_update
BEFORE UPDATE ON sales_transactions
WHEN NEW.customer_id IS OLD.customer_id   /* allow ON DELETE SET NULL */
BEGIN
  SELECT RAISE(ABORT, 'Sale records are immutable');
END;
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "kourosh_inventory.db"
    target.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(target) as c:
        init_schema(c)
    _log.info("schema applied to %s", target)
