"""
Entry point for the HTTP/UI collaborator.

ShopService wires the repositories around one explicit connection; build one
per request/thread with `ShopService.open()` or hand it a connection you own.
"""
from __future__ import annotations

from datetime import date, datetime
import sqlite3
from typing import Iterable, Optional, Union

from .database import get_connection
from .database.repositories import (
    AccountKind,
    CustomersRepo,
    InstallmentSale,
    InstallmentSalesRepo,
    InventoryRepo,
    LedgerEntry,
    LedgerRepo,
    NewCheck,
    NewPhone,
    NewProduct,
    PartnersRepo,
    Phone,
    PhonesRepo,
    Product,
    ProductsRepo,
    SaleRecord,
    SalesRepo,
    ValidationError,
)
from .constants import PAYMENT_CASH
from .utils.loggers import get_logger

_log = get_logger(__name__)


class ShopService:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.ledger = LedgerRepo(conn)
        self.inventory = InventoryRepo(conn)
        self.phones = PhonesRepo(conn)
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.partners = PartnersRepo(conn)
        self.sales = SalesRepo(conn)
        self.installments = InstallmentSalesRepo(conn)

    @classmethod
    def open(cls, db_path=None) -> "ShopService":
        return cls(get_connection(db_path))

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "ShopService":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- sales ------------------------------------------------------------

    def record_sale(
        self,
        item_type: str,
        item_id: int,
        quantity: int,
        transaction_date: str,
        customer_id: Optional[int] = None,
        discount: float = 0.0,
        payment_method: str = PAYMENT_CASH,
        notes: Optional[str] = None,
    ) -> SaleRecord:
        return self.sales.record_sale(
            item_type, item_id, quantity, transaction_date,
            customer_id=customer_id, discount=discount,
            payment_method=payment_method, notes=notes,
        )

    def create_installment_sale(
        self,
        customer_id: int,
        phone_id: int,
        actual_sale_price: float,
        down_payment: float,
        number_of_installments: int,
        installment_amount: float,
        start_date: str,
        checks: Iterable[NewCheck] = (),
        notes: Optional[str] = None,
    ) -> InstallmentSale:
        return self.installments.create_installment_sale(
            customer_id, phone_id, actual_sale_price, down_payment,
            number_of_installments, installment_amount, start_date,
            checks=checks, notes=notes,
        )

    def set_installment_paid(self, payment_id: int, paid: bool, payment_date: Optional[str] = None) -> bool:
        return self.installments.set_installment_paid(payment_id, paid, payment_date)

    def set_check_status(self, check_id: int, status: str) -> bool:
        return self.installments.set_check_status(check_id, status)

    # ---- ledgers ----------------------------------------------------------

    def append_ledger_entry(
        self,
        kind: AccountKind | str,
        account_id: int,
        description: str,
        debit: float = 0.0,
        credit: float = 0.0,
        transaction_date: Optional[Union[str, date, datetime]] = None,
    ) -> LedgerEntry:
        return self.ledger.append_entry(kind, account_id, description, debit, credit, transaction_date)

    def get_ledger(self, kind: AccountKind | str, account_id: int) -> list[LedgerEntry]:
        return self.ledger.get_ledger(kind, account_id)

    # ---- receiving --------------------------------------------------------

    def receive_inventory(self, unit: Union[NewPhone, NewProduct]) -> Union[Phone, Product]:
        """A single phone or a product batch; the supplier is credited as a side effect."""
        if isinstance(unit, NewPhone):
            return self.phones.receive_phone(unit)
        if isinstance(unit, NewProduct):
            return self.products.receive_product(unit)
        raise ValidationError(f"Cannot receive {type(unit).__name__}; expected NewPhone or NewProduct.")

    def return_phone(self, phone_id: int) -> Phone:
        self.inventory.mark_phone_returned(phone_id)
        _log.info("phone %s marked returned", phone_id)
        return self.phones.get(phone_id)  # type: ignore[return-value]
