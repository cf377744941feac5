"""
Tracking status derivation.

An order item's fulfilment lifecycle is spread over assignment, goods receipt
and payment rows. These helpers reduce that state to one of the seven labels
shown on the admin tracking board:

    Received -> Assigned -> Confirmed -> Invoiced -> Dispatched -> Verified -> Paid

Nothing here touches the database; callers pass loaded model instances (or any
objects with the same attributes).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.constants import (
    ASSIGNMENT_COMPLETED,
    ASSIGNMENT_DISPATCHED,
    ASSIGNMENT_INVOICED,
    ASSIGNMENT_PENDING_CONFIRMATION,
    ASSIGNMENT_STORE_RECEIVED,
    ASSIGNMENT_VENDOR_CONFIRMED_FULL,
    ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL,
    ASSIGNMENT_VERIFIED_MISMATCH,
    ASSIGNMENT_VERIFIED_OK,
    GRN_ITEM_VERIFIED_STATUSES,
    ORDER_STATUS_ASSIGNED,
    ORDER_STATUS_CLOSED,
    ORDER_STATUS_FULFILLED,
    ORDER_STATUS_PARTIALLY_FULFILLED,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_RECEIVED,
    PAYMENT_COMPLETED,
    TRACKING_ASSIGNED,
    TRACKING_CONFIRMED,
    TRACKING_DISPATCHED,
    TRACKING_INVOICED,
    TRACKING_PAID,
    TRACKING_RECEIVED,
    TRACKING_STATUSES,
    TRACKING_VERIFIED,
)

_ASSIGNMENT_TO_TRACKING = {
    ASSIGNMENT_PENDING_CONFIRMATION: TRACKING_ASSIGNED,
    ASSIGNMENT_VENDOR_CONFIRMED_FULL: TRACKING_CONFIRMED,
    ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL: TRACKING_CONFIRMED,
    ASSIGNMENT_INVOICED: TRACKING_INVOICED,
    ASSIGNMENT_DISPATCHED: TRACKING_DISPATCHED,
    ASSIGNMENT_STORE_RECEIVED: TRACKING_DISPATCHED,
    ASSIGNMENT_VERIFIED_OK: TRACKING_VERIFIED,
    ASSIGNMENT_VERIFIED_MISMATCH: TRACKING_VERIFIED,
    ASSIGNMENT_COMPLETED: TRACKING_PAID,
}

_TRACKING_TO_ASSIGNMENT = {
    TRACKING_ASSIGNED: ASSIGNMENT_PENDING_CONFIRMATION,
    TRACKING_CONFIRMED: ASSIGNMENT_VENDOR_CONFIRMED_FULL,
    TRACKING_INVOICED: ASSIGNMENT_INVOICED,
    TRACKING_DISPATCHED: ASSIGNMENT_DISPATCHED,
    TRACKING_VERIFIED: ASSIGNMENT_VERIFIED_OK,
    TRACKING_PAID: ASSIGNMENT_COMPLETED,
}

_ORDER_TO_TRACKING = {
    ORDER_STATUS_RECEIVED: TRACKING_RECEIVED,
    ORDER_STATUS_ASSIGNED: TRACKING_ASSIGNED,
    ORDER_STATUS_PROCESSING: TRACKING_CONFIRMED,
    ORDER_STATUS_FULFILLED: TRACKING_DISPATCHED,
    ORDER_STATUS_PARTIALLY_FULFILLED: TRACKING_VERIFIED,
    ORDER_STATUS_CLOSED: TRACKING_PAID,
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def latest_assignment(order_item: Any) -> Any | None:
    """Return the most recent assignment (by ``assigned_at``, then id) or None."""
    assignments = list(getattr(order_item, "assigned_items", None) or [])
    if not assignments:
        return None
    return max(assignments, key=lambda row: (_as_utc(row.assigned_at), row.id or 0))


def has_verified_goods_receipt(assignment: Any) -> bool:
    return any(
        item.status in GRN_ITEM_VERIFIED_STATUSES
        for item in (getattr(assignment, "goods_receipt_items", None) or [])
    )


def has_completed_payment(assignment: Any) -> bool:
    po_item = getattr(assignment, "purchase_order_item", None)
    if po_item is None or po_item.purchase_order is None:
        return False
    payment = po_item.purchase_order.payment
    return payment is not None and payment.status == PAYMENT_COMPLETED


def determine_tracking_status(order_item: Any) -> str:
    assignment = latest_assignment(order_item)
    if assignment is None:
        return TRACKING_RECEIVED

    if has_verified_goods_receipt(assignment):
        if has_completed_payment(assignment):
            return TRACKING_PAID
        return TRACKING_VERIFIED

    # declined or unrecognised assignments fall back to the unassigned pool
    return _ASSIGNMENT_TO_TRACKING.get(assignment.status, TRACKING_RECEIVED)


def map_order_status(order_status: str | None) -> str:
    return _ORDER_TO_TRACKING.get(order_status or "", TRACKING_RECEIVED)


def assignment_status_for(tracking_status: str) -> str | None:
    return _TRACKING_TO_ASSIGNMENT.get(tracking_status)


def status_rank(tracking_status: str) -> int:
    return TRACKING_STATUSES.index(tracking_status)


def empty_status_counts() -> dict[str, int]:
    return {status: 0 for status in TRACKING_STATUSES}
