DATA_DIR = "data"
DB_FILE_NAME = "kourosh_inventory.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- date formats ----
ISO_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# ---- phones ----
PHONE_IN_STOCK = "in_stock"
PHONE_SOLD = "sold"
PHONE_SOLD_INSTALLMENT = "sold_installment"
PHONE_RETURNED = "returned"
PHONE_STATUSES: tuple[str, ...] = (
    PHONE_IN_STOCK,
    PHONE_SOLD,
    PHONE_SOLD_INSTALLMENT,
    PHONE_RETURNED,
)

# ---- sales ----
ITEM_TYPE_PHONE = "phone"
ITEM_TYPE_INVENTORY = "inventory"
ITEM_TYPES: tuple[str, ...] = (ITEM_TYPE_PHONE, ITEM_TYPE_INVENTORY)

PAYMENT_CASH = "cash"
PAYMENT_CREDIT = "credit"
PAYMENT_METHODS: tuple[str, ...] = (PAYMENT_CASH, PAYMENT_CREDIT)

# ---- installments ----
INSTALLMENT_UNPAID = "unpaid"
INSTALLMENT_PAID = "paid"

CHECK_IN_COLLECTION = "in_collection"
CHECK_COLLECTED = "collected"
CHECK_BOUNCED = "bounced"
CHECK_HELD_BY_CUSTOMER = "held_by_customer"
CHECK_VOIDED = "voided"
CHECK_STATUSES: tuple[str, ...] = (
    CHECK_IN_COLLECTION,
    CHECK_COLLECTED,
    CHECK_BOUNCED,
    CHECK_HELD_BY_CUSTOMER,
    CHECK_VOIDED,
)

SALE_COMPLETED = "completed"
SALE_OVERDUE = "overdue"
SALE_IN_PROGRESS = "in_progress"

# ---- partners ----
DEFAULT_PARTNER_TYPE = "Supplier"

# float tolerance used in money comparisons
MONEY_EPS = 1e-9
