# kourosh_inventory/database/repositories/products_repo.py
from dataclasses import dataclass
from typing import Optional
import logging
import sqlite3

from ..transaction import immediate_tx
from ...utils.dates import normalize_ledger_date
from ...utils.helpers import fmt_money
from ...utils.validators import is_non_negative_number, non_empty, try_parse_int
from .errors import (
    DuplicateIdentifierError,
    InvalidAmountError,
    InvalidQuantityError,
    NotFoundError,
    ValidationError,
    map_integrity_error,
    validation_guard,
)
from .goods_receipt import GoodsReceiptPoster

_log = logging.getLogger(__name__)


@dataclass
class Category:
    category_id: int
    name: str


@dataclass
class NewProduct:
    name: str
    purchase_price: float
    selling_price: float
    stock_quantity: int
    category_id: int | None = None
    supplier_id: int | None = None
    received_date: str | None = None   # Jalali or ISO; ledger date of the receipt


@dataclass
class Product:
    product_id: int
    name: str
    purchase_price: float
    selling_price: float
    stock_quantity: int
    sale_count: int
    category_id: int | None
    supplier_id: int | None
    date_added: str
    category_name: str | None = None
    supplier_name: str | None = None


_SELECT = """
    SELECT p.product_id, p.name,
           CAST(p.purchase_price AS REAL) AS purchase_price,
           CAST(p.selling_price AS REAL)  AS selling_price,
           p.stock_quantity, p.sale_count, p.category_id, p.supplier_id, p.date_added,
           c.name          AS category_name,
           pa.partner_name AS supplier_name
      FROM products p
      LEFT JOIN categories c ON c.category_id = p.category_id
      LEFT JOIN partners pa  ON pa.partner_id = p.supplier_id
"""


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.receipts = GoodsReceiptPoster(conn)

    # ---------------------------- Categories ----------------------------

    def create_category(self, name: str) -> Category:
        if not non_empty(name):
            raise ValidationError("Category name cannot be empty.")
        with immediate_tx(self.conn):
            exists = self.conn.execute(
                "SELECT 1 FROM categories WHERE name=?", (name.strip(),)
            ).fetchone()
            if exists:
                raise DuplicateIdentifierError(f"Category '{name.strip()}' already exists.")
            cur = self.conn.execute("INSERT INTO categories(name) VALUES (?)", (name.strip(),))
        return Category(int(cur.lastrowid), name.strip())

    def list_categories(self) -> list[Category]:
        rows = self.conn.execute("SELECT category_id, name FROM categories ORDER BY name").fetchall()
        return [Category(**r) for r in rows]

    def update_category(self, category_id: int, name: str) -> Category:
        if not non_empty(name):
            raise ValidationError("Category name cannot be empty.")
        name = name.strip()
        with immediate_tx(self.conn):
            if self.conn.execute(
                "SELECT 1 FROM categories WHERE name=? AND category_id<>?", (name, category_id)
            ).fetchone():
                raise DuplicateIdentifierError(f"Category '{name}' already exists.")
            cur = self.conn.execute(
                "UPDATE categories SET name=? WHERE category_id=?", (name, category_id)
            )
            if cur.rowcount != 1:
                raise NotFoundError(f"Category {category_id} does not exist.")
        return Category(category_id, name)

    def delete_category(self, category_id: int) -> None:
        """Products in the category stay, with no category."""
        with immediate_tx(self.conn):
            cur = self.conn.execute("DELETE FROM categories WHERE category_id=?", (category_id,))
            if cur.rowcount != 1:
                raise NotFoundError(f"Category {category_id} does not exist.")
        _log.info("category %s deleted", category_id)

    # ---------------------------- Products ----------------------------

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(_SELECT + " WHERE p.product_id = ?", (product_id,)).fetchone()
        return Product(**r) if r else None

    def list_products(self, supplier_id: Optional[int] = None) -> list[Product]:
        if supplier_id:
            rows = self.conn.execute(
                _SELECT + " WHERE p.supplier_id = ? ORDER BY p.date_added DESC, p.product_id DESC",
                (supplier_id,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                _SELECT + " ORDER BY p.date_added DESC, p.product_id DESC"
            ).fetchall()
        return [Product(**r) for r in rows]

    def receive_product(self, product: NewProduct) -> Product:
        """
        Create a product batch with its opening stock. With a supplier, a
        positive purchase price and a positive quantity, the supplier ledger
        is credited purchase_price * quantity in the same transaction.
        """
        if not non_empty(product.name):
            raise ValidationError("Product name cannot be empty.")
        if not is_non_negative_number(product.purchase_price):
            raise InvalidAmountError("Purchase price must be zero or more.")
        if not is_non_negative_number(product.selling_price):
            raise InvalidAmountError("Selling price must be zero or more.")
        ok, qty = try_parse_int(product.stock_quantity)
        if not ok or qty is None or qty < 0:
            raise InvalidQuantityError("Stock quantity must be a whole number of zero or more.")

        received = None
        if product.received_date:
            with validation_guard("Received date"):
                received = normalize_ledger_date(product.received_date)

        name = product.name.strip()
        purchase_price = float(product.purchase_price)
        try:
            with immediate_tx(self.conn):
                cur = self.conn.execute(
                    """
                    INSERT INTO products (
                        name, purchase_price, selling_price, stock_quantity,
                        category_id, supplier_id, sale_count
                    ) VALUES (?, ?, ?, ?, ?, ?, 0)
                    """,
                    (
                        name, purchase_price, float(product.selling_price), qty,
                        product.category_id, product.supplier_id,
                    ),
                )
                product_id = int(cur.lastrowid)

                self.receipts.post_in_tx(
                    supplier_id=product.supplier_id,
                    purchase_price=purchase_price,
                    quantity=qty,
                    description=(
                        f"Goods received: {qty} x {name} (product #{product_id}) "
                        f"at {fmt_money(purchase_price)} each"
                    ),
                    transaction_date=received,
                )
        except sqlite3.IntegrityError as e:
            raise map_integrity_error(e, what="category or supplier") from e

        _log.info("product %s received: %s x %s", product_id, qty, name)
        return self.get(product_id)  # type: ignore[return-value]
