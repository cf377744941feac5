from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.constants import (
    ASSIGNMENT_COMPLETED,
    ASSIGNMENT_DISPATCHED,
    ASSIGNMENT_INVOICED,
    ASSIGNMENT_PENDING_CONFIRMATION,
    ASSIGNMENT_STORE_RECEIVED,
    ASSIGNMENT_VENDOR_CONFIRMED_FULL,
    ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL,
    ASSIGNMENT_VENDOR_DECLINED,
    ASSIGNMENT_VERIFIED_MISMATCH,
    ASSIGNMENT_VERIFIED_OK,
    GRN_ITEM_DAMAGE_REPORTED,
    GRN_ITEM_QUANTITY_MISMATCH,
    GRN_ITEM_VERIFIED_OK,
    PAYMENT_COMPLETED,
    PAYMENT_PENDING,
    TRACKING_STATUSES,
)
from app.services.tracking_status import (
    assignment_status_for,
    determine_tracking_status,
    empty_status_counts,
    latest_assignment,
    map_order_status,
    status_rank,
)

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _assignment(status, *, id=1, assigned_at=NOW, grn_statuses=(), payment_status=None):
    purchase_order_item = None
    if payment_status is not None:
        payment = None if payment_status == "none" else SimpleNamespace(status=payment_status)
        purchase_order_item = SimpleNamespace(purchase_order=SimpleNamespace(payment=payment))
    return SimpleNamespace(
        id=id,
        status=status,
        assigned_at=assigned_at,
        goods_receipt_items=[SimpleNamespace(status=grn) for grn in grn_statuses],
        purchase_order_item=purchase_order_item,
    )


def _item(*assignments):
    return SimpleNamespace(assigned_items=list(assignments))


def test_item_without_assignment_is_received():
    assert determine_tracking_status(_item()) == "Received"


@pytest.mark.parametrize(
    ("assignment_status", "expected"),
    [
        (ASSIGNMENT_PENDING_CONFIRMATION, "Assigned"),
        (ASSIGNMENT_VENDOR_CONFIRMED_FULL, "Confirmed"),
        (ASSIGNMENT_VENDOR_CONFIRMED_PARTIAL, "Confirmed"),
        (ASSIGNMENT_INVOICED, "Invoiced"),
        (ASSIGNMENT_DISPATCHED, "Dispatched"),
        (ASSIGNMENT_STORE_RECEIVED, "Dispatched"),
        (ASSIGNMENT_VERIFIED_OK, "Verified"),
        (ASSIGNMENT_VERIFIED_MISMATCH, "Verified"),
        (ASSIGNMENT_COMPLETED, "Paid"),
        (ASSIGNMENT_VENDOR_DECLINED, "Received"),
        ("SOMETHING_NEW", "Received"),
    ],
)
def test_assignment_status_maps_to_tracking_label(assignment_status, expected):
    assert determine_tracking_status(_item(_assignment(assignment_status))) == expected


def test_verified_goods_receipt_overrides_assignment_status():
    assignment = _assignment(ASSIGNMENT_DISPATCHED, grn_statuses=[GRN_ITEM_QUANTITY_MISMATCH])
    assert determine_tracking_status(_item(assignment)) == "Verified"


def test_verified_goods_receipt_with_completed_payment_is_paid():
    assignment = _assignment(
        ASSIGNMENT_DISPATCHED, grn_statuses=[GRN_ITEM_VERIFIED_OK], payment_status=PAYMENT_COMPLETED
    )
    assert determine_tracking_status(_item(assignment)) == "Paid"


def test_completed_payment_without_goods_receipt_does_not_mark_paid():
    assignment = _assignment(ASSIGNMENT_INVOICED, payment_status=PAYMENT_COMPLETED)
    assert determine_tracking_status(_item(assignment)) == "Invoiced"


@pytest.mark.parametrize("payment_status", [PAYMENT_PENDING, "none"])
def test_pending_or_missing_payment_stays_verified(payment_status):
    assignment = _assignment(
        ASSIGNMENT_DISPATCHED, grn_statuses=[GRN_ITEM_VERIFIED_OK], payment_status=payment_status
    )
    assert determine_tracking_status(_item(assignment)) == "Verified"


def test_unverified_goods_receipt_is_ignored():
    assignment = _assignment(ASSIGNMENT_DISPATCHED, grn_statuses=[GRN_ITEM_DAMAGE_REPORTED])
    assert determine_tracking_status(_item(assignment)) == "Dispatched"


def test_latest_assignment_wins():
    older = _assignment(ASSIGNMENT_VENDOR_DECLINED, id=1, assigned_at=NOW - timedelta(days=2))
    newer = _assignment(ASSIGNMENT_VENDOR_CONFIRMED_FULL, id=2, assigned_at=NOW)
    item = _item(newer, older)

    assert latest_assignment(item) is newer
    assert determine_tracking_status(item) == "Confirmed"


def test_latest_assignment_breaks_ties_by_id_and_handles_naive_datetimes():
    first = _assignment(ASSIGNMENT_PENDING_CONFIRMATION, id=3, assigned_at=NOW.replace(tzinfo=None))
    second = _assignment(ASSIGNMENT_INVOICED, id=4, assigned_at=NOW)
    assert latest_assignment(_item(first, second)) is second
    assert latest_assignment(_item()) is None


def test_map_order_status_defaults_to_received():
    assert map_order_status("CLOSED") == "Paid"
    assert map_order_status("PROCESSING") == "Confirmed"
    assert map_order_status("CANCELLED") == "Received"
    assert map_order_status(None) == "Received"


def test_assignment_status_for_round_trips_through_derivation():
    for label in TRACKING_STATUSES[1:]:
        status = assignment_status_for(label)
        assert determine_tracking_status(_item(_assignment(status))) == label
    assert assignment_status_for("Received") is None


def test_status_rank_and_empty_counts_follow_lifecycle_order():
    assert [status_rank(label) for label in TRACKING_STATUSES] == list(range(len(TRACKING_STATUSES)))
    assert list(empty_status_counts()) == list(TRACKING_STATUSES)
    assert set(empty_status_counts().values()) == {0}
