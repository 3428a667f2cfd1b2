from __future__ import annotations

from contextlib import contextmanager
import sqlite3


# ----------------------------
# Domain errors (friendly)
# ----------------------------
class DomainError(Exception):
    """Domain-level error the HTTP/UI layer can surface directly."""


class NotFoundError(DomainError):
    """Referenced account, unit or sale does not exist."""


class ItemNotFoundError(NotFoundError):
    """The phone or product being sold does not exist."""


class InvalidStateError(DomainError):
    """Inventory unit is not in a state that allows the operation."""


class ItemNotAvailableError(InvalidStateError):
    """Phone is sold, sold on installment, or returned."""


class InsufficientStockError(DomainError):
    """Requested quantity exceeds stock_quantity."""


class InvalidAmountError(DomainError):
    """Negative/zero where positive is required, or a total that would go negative."""


class InvalidPriceError(InvalidAmountError):
    """Missing or non-positive sale price on the item being sold."""


class InvalidDiscountError(InvalidAmountError):
    """Discount exceeds the subtotal or makes the total negative."""


class DuplicateIdentifierError(DomainError):
    """Unique identifier collision (IMEI, phone number, category name)."""


class ValidationError(DomainError):
    """Malformed input that reached the core."""


class InvalidQuantityError(ValidationError):
    """Phone sales must have quantity 1; bulk quantities must be >= 1."""


@contextmanager
def validation_guard(field_label: str):
    """Turn ValueError from parsers (dates, numbers) into ValidationError."""
    try:
        yield
    except ValueError as e:
        raise ValidationError(f"{field_label}: {e}") from e


def map_integrity_error(e: sqlite3.IntegrityError, *, what: str = "record") -> DomainError:
    """
    Map well-known SQLite constraint messages to domain errors.
    Callers raise the returned error `from e`.
    """
    msg = str(e)
    if "UNIQUE constraint failed: phones.imei" in msg:
        return DuplicateIdentifierError("IMEI is already registered.")
    if "UNIQUE constraint failed" in msg:
        field = msg.rsplit(":", 1)[-1].strip()
        return DuplicateIdentifierError(f"Duplicate value for {field}.")
    if "FOREIGN KEY constraint failed" in msg:
        return NotFoundError(f"Referenced {what} does not exist.")
    return ValidationError(f"Constraint violation on {what}: {msg}")


__all__ = [
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
    "validation_guard",
    "map_integrity_error",
]
