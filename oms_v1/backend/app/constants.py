ORDER_STATUS_RECEIVED = "RECEIVED"
ORDER_STATUS_ASSIGNED = "ASSIGNED"
ORDER_STATUS_PROCESSING = "PROCESSING"
ORDER_STATUS_FULFILLED = "FULFILLED"
ORDER_STATUS_PARTIALLY_FULFILLED = "PARTIALLY_FULFILLED"
ORDER_STATUS_CLOSED = "CLOSED"
ORDER_STATUS_CANCELLED = "CANCELLED"

ORDER_STATUSES = {
    ORDER_STATUS_RECEIVED,
    ORDER_STATUS_ASSIGNED,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_FULFILLED,
    ORDER_STATUS_PARTIALLY_FULFILLED,
    ORDER_STATUS_CLOSED,
    ORDER_STATUS_CANCELLED,
}

ORDER_SOURCES = {"API", "EXCEL_UPLOAD", "MANUAL_ENTRY"}

ASSIGNMENT_PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
ASSIGNMENT_VENDOR_CONFIRMED_FULL = "VENDOR_CONFIRMED_FULL"
ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL = "VENDOR_CONFIRMED_PARTIAL"
ASSIGNMENT_VENDOR_DECLINED = "VENDOR_DECLINED"
ASSIGNMENT_INVOICED = "INVOICED"
ASSIGNMENT_DISPATCHED = "DISPATCHED"
ASSIGNMENT_STORE_RECEIVED = "STORE_RECEIVED"
ASSIGNMENT_VERIFIED_OK = "VERIFIED_OK"
ASSIGNMENT_VERIFIED_MISMATCH = "VERIFIED_MISMATCH"
ASSIGNMENT_COMPLETED = "COMPLETED"

ASSIGNMENT_STATUSES = {
    ASSIGNMENT_PENDING_CONFIRMATION,
    ASSIGNMENT_VENDOR_CONFIRMED_FULL,
    ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL,
    ASSIGNMENT_VENDOR_DECLINED,
    ASSIGNMENT_INVOICED,
    ASSIGNMENT_DISPATCHED,
    ASSIGNMENT_STORE_RECEIVED,
    ASSIGNMENT_VERIFIED_OK,
    ASSIGNMENT_VERIFIED_MISMATCH,
    ASSIGNMENT_COMPLETED,
}

PURCHASE_ORDER_STATUSES = {"DRAFT", "ISSUED", "ACCEPTED", "PARTIALLY_PAID", "PAID", "CANCELLED"}

PAYMENT_PENDING = "PENDING"
PAYMENT_PROCESSING = "PROCESSING"
PAYMENT_COMPLETED = "COMPLETED"
PAYMENT_FAILED = "FAILED"

GRN_STATUSES = {"PENDING_VERIFICATION", "VERIFIED_OK", "VERIFIED_MISMATCH", "PARTIALLY_VERIFIED"}

GRN_ITEM_VERIFIED_OK = "VERIFIED_OK"
GRN_ITEM_QUANTITY_MISMATCH = "QUANTITY_MISMATCH"
GRN_ITEM_DAMAGE_REPORTED = "DAMAGE_REPORTED"
GRN_ITEM_SHORTAGE_REPORTED = "SHORTAGE_REPORTED"
GRN_ITEM_EXCESS_RECEIVED = "EXCESS_RECEIVED"

# goods receipt outcomes that count as a completed verification
GRN_ITEM_VERIFIED_STATUSES = {GRN_ITEM_VERIFIED_OK, GRN_ITEM_QUANTITY_MISMATCH}

# user-facing tracking labels, in lifecycle order
TRACKING_RECEIVED = "Received"
TRACKING_ASSIGNED = "Assigned"
TRACKING_CONFIRMED = "Confirmed"
TRACKING_INVOICED = "Invoiced"
TRACKING_DISPATCHED = "Dispatched"
TRACKING_VERIFIED = "Verified"
TRACKING_PAID = "Paid"

TRACKING_STATUSES = (
    TRACKING_RECEIVED,
    TRACKING_ASSIGNED,
    TRACKING_CONFIRMED,
    TRACKING_INVOICED,
    TRACKING_DISPATCHED,
    TRACKING_VERIFIED,
    TRACKING_PAID,
)

ROLE_PERMISSIONS = {
    "admin": [
        "order.tracking.read",
        "order.tracking.update",
        "order.tracking.export",
        "user.read",
        "user.create",
        "user.role.update",
        "cache.manage",
    ],
    "ops": ["order.tracking.read", "order.tracking.update", "order.tracking.export"],
    "accounts": ["order.tracking.read", "order.tracking.export"],
    "vendor": [],
}

PERMISSION_CODES = sorted({code for codes in ROLE_PERMISSIONS.values() for code in codes})
