# kourosh_inventory/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from kourosh_inventory.database.repositories import (
        # Ledgers
        LedgerRepo, LedgerEntry, AccountKind,
        # Parties
        CustomersRepo, Customer, PartnersRepo, Partner,
        # Inventory
        InventoryRepo, PhonesRepo, Phone, NewPhone, ProductsRepo, Product, NewProduct,
        # Sales
        SalesRepo, SaleRecord, InstallmentSalesRepo, InstallmentSale, NewCheck,
        # Errors
        DomainError, NotFoundError, ...
    )
"""

# ---------------- Errors -------------------
from .errors import (
    DomainError,
    NotFoundError,
    ItemNotFoundError,
    InvalidStateError,
    ItemNotAvailableError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidPriceError,
    InvalidDiscountError,
    DuplicateIdentifierError,
    ValidationError,
    InvalidQuantityError,
)

# ---------------- Ledgers ------------------
from .ledger_repo import (
    AccountKind,
    LedgerEntry,
    LedgerRepo,
    apply_entry,
    fold_balances,
)

# ---------------- Parties ------------------
from .customers_repo import CustomersRepo, Customer
from .partners_repo import PartnersRepo, Partner

# ---------------- Inventory ----------------
from .inventory_repo import InventoryRepo, next_phone_status
from .goods_receipt import GoodsReceiptPoster
from .phones_repo import PhonesRepo, Phone, NewPhone
from .products_repo import ProductsRepo, Product, NewProduct, Category

# ---------------- Sales --------------------
from .sales_repo import SalesRepo, SaleRecord, compute_total
from .installment_sales_repo import (
    InstallmentSalesRepo,
    InstallmentSale,
    InstallmentPayment,
    InstallmentCheck,
    NewCheck,
)

__all__ = [
    # Errors
    "DomainError",
    "NotFoundError",
    "ItemNotFoundError",
    "InvalidStateError",
    "ItemNotAvailableError",
    "InsufficientStockError",
    "InvalidAmountError",
    "InvalidPriceError",
    "InvalidDiscountError",
    "DuplicateIdentifierError",
    "ValidationError",
    "InvalidQuantityError",
    # Ledgers
    "AccountKind",
    "LedgerEntry",
    "LedgerRepo",
    "apply_entry",
    "fold_balances",
    # Parties
    "CustomersRepo",
    "Customer",
    "PartnersRepo",
    "Partner",
    # Inventory
    "InventoryRepo",
    "next_phone_status",
    "GoodsReceiptPoster",
    "PhonesRepo",
    "Phone",
    "NewPhone",
    "ProductsRepo",
    "Product",
    "NewProduct",
    "Category",
    # Sales
    "SalesRepo",
    "SaleRecord",
    "compute_total",
    "InstallmentSalesRepo",
    "InstallmentSale",
    "InstallmentPayment",
    "InstallmentCheck",
    "NewCheck",
]
