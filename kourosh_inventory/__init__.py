"""Shop inventory, sales and ledger core backed by SQLite."""

__version__ = "1.0.0"
