from __future__ import annotations

import csv
import io
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from app.constants import (
    ASSIGNMENT_PENDING_CONFIRMATION,
    TRACKING_ASSIGNED,
    TRACKING_CONFIRMED,
    TRACKING_RECEIVED,
)
from app.extensions import db
from app.models import AssignedOrderItem, AuditLog, Order, OrderItem, PurchaseOrder, PurchaseOrderItem, VendorProfile
from app.services.tracking_status import (
    assignment_status_for,
    determine_tracking_status,
    empty_status_counts,
    latest_assignment,
    map_order_status,
    status_rank,
)
from app.validators.order_tracking import TrackingFilters, TrackingQuery

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10

CSV_HEADERS = [
    "Order Item ID",
    "Order Number",
    "Client Order ID",
    "Product Name",
    "SKU",
    "Quantity",
    "Price Per Unit",
    "Total Price",
    "Vendor",
    "Status",
    "Assigned Quantity",
    "Confirmed Quantity",
    "Vendor Remarks",
    "Assigned At",
    "Vendor Action At",
    "Created At",
    "Updated At",
]


class OrderItemNotFoundError(LookupError):
    pass


class StatusUpdateError(ValueError):
    pass


def _item_load_options():
    assignments = selectinload(OrderItem.assigned_items)
    return [
        selectinload(OrderItem.order).joinedload(Order.primary_vendor),
        assignments.selectinload(AssignedOrderItem.goods_receipt_items),
        assignments.selectinload(AssignedOrderItem.purchase_order_item)
        .selectinload(PurchaseOrderItem.purchase_order)
        .selectinload(PurchaseOrder.payment),
    ]


def _filtered_statement(filters: TrackingFilters):
    stmt = (
        select(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .outerjoin(VendorProfile, Order.primary_vendor_id == VendorProfile.id)
    )
    if filters.vendor:
        stmt = stmt.where(VendorProfile.company_name.icontains(filters.vendor, autoescape=True))
    if filters.qty_min is not None:
        stmt = stmt.where(OrderItem.quantity >= filters.qty_min)
    if filters.qty_max is not None:
        stmt = stmt.where(OrderItem.quantity <= filters.qty_max)
    if filters.date_from is not None:
        stmt = stmt.where(Order.created_at >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(Order.created_at <= filters.date_to)
    if filters.search:
        stmt = stmt.where(
            or_(
                OrderItem.product_name.icontains(filters.search, autoescape=True),
                OrderItem.sku.icontains(filters.search, autoescape=True),
                Order.order_number.icontains(filters.search, autoescape=True),
                Order.client_order_id.icontains(filters.search, autoescape=True),
            )
        )
    return stmt


def _ordering(sort_by: str, sort_order: str):
    column = {
        "quantity": OrderItem.quantity,
        "updated_at": Order.updated_at,
    }.get(sort_by, Order.created_at)
    if sort_order == "asc":
        return [column.asc(), OrderItem.id.asc()]
    return [column.desc(), OrderItem.id.desc()]


def _total_pages(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size


def _query_items(query: TrackingQuery, *, paginate: bool, limit: int | None = None) -> tuple[list[tuple[OrderItem, str]], int]:
    """Run the filtered query and derive statuses.

    Filtering or sorting on the derived status cannot happen in SQL, so those
    queries load every matching row and paginate after derivation.
    """
    base = _filtered_statement(query.filters)
    derived_only = query.filters.status is not None or query.sort_by == "status"
    sql_sort = "created_at" if query.sort_by == "status" else query.sort_by
    stmt = base.options(*_item_load_options()).order_by(*_ordering(sql_sort, query.sort_order))

    if paginate and not derived_only:
        total = db.session.scalar(select(func.count()).select_from(base.subquery())) or 0
        offset = (query.page - 1) * query.page_size
        rows = db.session.execute(stmt.offset(offset).limit(query.page_size)).scalars().all()
        return [(item, determine_tracking_status(item)) for item in rows], total

    if not derived_only and limit is not None:
        total = db.session.scalar(select(func.count()).select_from(base.subquery())) or 0
        rows = db.session.execute(stmt.limit(limit)).scalars().all()
        return [(item, determine_tracking_status(item)) for item in rows], total

    rows = [(item, determine_tracking_status(item)) for item in db.session.execute(stmt).scalars().all()]
    if query.filters.status is not None:
        rows = [row for row in rows if row[1] == query.filters.status]
    if query.sort_by == "status":
        rows.sort(key=lambda row: status_rank(row[1]), reverse=query.sort_order == "desc")

    total = len(rows)
    if paginate:
        offset = (query.page - 1) * query.page_size
        rows = rows[offset:offset + query.page_size]
    elif limit is not None:
        rows = rows[:limit]
    return rows, total


def get_order_tracking(query: TrackingQuery) -> dict[str, object]:
    rows, total = _query_items(query, paginate=True)
    return {
        "items": [build_tracking_item(item, status) for item, status in rows],
        "pagination": {
            "page": query.page,
            "page_size": query.page_size,
            "total": total,
            "total_pages": _total_pages(total, query.page_size),
        },
        "summary": get_order_tracking_summary(),
    }


def calculate_status_counts() -> dict[str, int]:
    counts = empty_status_counts()
    stmt = select(OrderItem).options(*_item_load_options()[1:])
    for item in db.session.execute(stmt).scalars():
        counts[determine_tracking_status(item)] += 1
    return counts


def get_order_tracking_summary() -> dict[str, object]:
    total_orders = db.session.scalar(select(func.count(Order.id))) or 0
    recent = (
        db.session.execute(
            select(Order)
            .options(selectinload(Order.items).options(*_item_load_options()[1:]))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(RECENT_ORDERS_LIMIT)
        )
        .scalars()
        .all()
    )
    return {
        "total_orders": total_orders,
        "status_counts": calculate_status_counts(),
        "recent_orders": [_build_recent_order(order) for order in recent],
    }


def _load_item(order_item_id: int) -> OrderItem | None:
    stmt = select(OrderItem).where(OrderItem.id == order_item_id).options(*_item_load_options())
    return db.session.execute(stmt).scalar_one_or_none()


def get_order_by_id(order_item_id: int) -> dict[str, object] | None:
    item = _load_item(order_item_id)
    if item is None:
        return None
    return build_tracking_item(item)


def update_order_status(
    order_item_id: int,
    new_status: str,
    *,
    actor_user_id: int | None,
    remarks: str | None = None,
    ip_address: str | None = None,
) -> dict[str, object]:
    item = _load_item(order_item_id)
    if item is None:
        raise OrderItemNotFoundError(order_item_id)

    previous_status = determine_tracking_status(item)
    assignment = latest_assignment(item)

    if new_status == TRACKING_RECEIVED:
        if assignment is not None:
            item.assigned_items.remove(assignment)
    elif assignment is None:
        if new_status != TRACKING_ASSIGNED:
            raise StatusUpdateError(f"order item has no vendor assignment; assign it before moving to {new_status}")
        vendor_id = item.order.primary_vendor_id
        if vendor_id is None:
            raise StatusUpdateError("order has no primary vendor to assign")
        item.assigned_items.append(
            AssignedOrderItem(
                vendor_id=vendor_id,
                status=ASSIGNMENT_PENDING_CONFIRMATION,
                assigned_quantity=item.quantity,
                assigned_by_id=actor_user_id,
                vendor_remarks=remarks,
            )
        )
    else:
        assignment.status = assignment_status_for(new_status)
        if new_status == TRACKING_ASSIGNED:
            assignment.confirmed_quantity = None
            assignment.vendor_action_at = None
        elif new_status == TRACKING_CONFIRMED:
            assignment.confirmed_quantity = assignment.assigned_quantity
            assignment.vendor_action_at = datetime.now(timezone.utc)
        if remarks:
            assignment.vendor_remarks = remarks

    db.session.flush()
    # a verified receipt or an older assignment can outrank the requested label
    resulting_status = determine_tracking_status(item)

    db.session.add(
        AuditLog(
            actor_user_id=actor_user_id,
            entity_type="order_item",
            entity_id=str(item.id),
            action="tracking_status.update",
            before_json={"status": previous_status},
            after_json={"status": resulting_status, "requested": new_status, "remarks": remarks},
            ip_address=ip_address,
        )
    )
    db.session.commit()

    logger.info(
        f"Order item {order_item_id} moved from {previous_status} to {resulting_status} "
        f"(requested {new_status}) by user {actor_user_id}"
    )

    updated = get_order_by_id(order_item_id)
    if updated is None:
        raise OrderItemNotFoundError(order_item_id)
    return updated


def export_tracking_items(query: TrackingQuery) -> tuple[list[dict[str, object]], int]:
    limit = current_app.config.get("ORDER_TRACKING_EXPORT_LIMIT", 10000)
    export_query = replace(query, page=1)
    rows, total = _query_items(export_query, paginate=False, limit=limit)
    return [build_tracking_item(item, status) for item, status in rows], total


def render_csv(items: list[dict[str, object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for row in items:
        vendor = row["vendor"]
        writer.writerow(
            [
                row["id"],
                row["order_number"],
                row["client_order_id"],
                row["product_name"],
                row["sku"] or "",
                row["quantity"],
                row["price_per_unit"] or "",
                row["total_price"] or "",
                vendor["company_name"],
                row["status"],
                _blank_if_none(row["assigned_quantity"]),
                _blank_if_none(row["confirmed_quantity"]),
                row["vendor_remarks"] or "",
                row["assigned_at"] or "",
                row["vendor_action_at"] or "",
                row["created_at"],
                row["updated_at"],
            ]
        )
    return buffer.getvalue()


def render_text_report(items: list[dict[str, object]], total: int, generated_at: datetime) -> str:
    lines = [
        "ORDER TRACKING REPORT",
        f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        f"Total Orders: {total}",
        "",
        "ORDER DETAILS:",
        "=" * 80,
    ]
    for row in items:
        lines.extend(
            [
                f"Order Item ID: {row['id']}",
                f"Order Number: {row['order_number']}",
                f"Product: {row['product_name']}",
                f"Vendor: {row['vendor']['company_name']}",
                f"Quantity: {row['quantity']}",
                f"Status: {row['status']}",
                f"Created: {row['created_at']}",
                "-" * 40,
            ]
        )
    return "\n".join(lines) + "\n"


def build_tracking_item(item: OrderItem, status: str | None = None) -> dict[str, object]:
    order = item.order
    assignment = latest_assignment(item)
    return {
        "id": item.id,
        "order_id": order.id,
        "order_number": order.order_number or "N/A",
        "client_order_id": order.client_order_id or "N/A",
        "product_name": item.product_name or "N/A",
        "sku": item.sku,
        "quantity": item.quantity or 0,
        "price_per_unit": _decimal_str(item.price_per_unit),
        "total_price": _decimal_str(item.total_price),
        "vendor": _build_vendor(order.primary_vendor),
        "status": status or determine_tracking_status(item),
        "assigned_quantity": assignment.assigned_quantity if assignment else None,
        "confirmed_quantity": assignment.confirmed_quantity if assignment else None,
        "vendor_remarks": assignment.vendor_remarks if assignment else None,
        "assigned_at": _isoformat(assignment.assigned_at) if assignment else None,
        "vendor_action_at": _isoformat(assignment.vendor_action_at) if assignment else None,
        "created_at": _isoformat(item.created_at),
        "updated_at": _isoformat(item.updated_at),
    }


def _build_recent_order(order: Order) -> dict[str, object]:
    if order.items:
        return build_tracking_item(order.items[0])
    return {
        "id": None,
        "order_id": order.id,
        "order_number": order.order_number or "N/A",
        "client_order_id": order.client_order_id or "N/A",
        "product_name": "N/A",
        "sku": None,
        "quantity": 0,
        "price_per_unit": None,
        "total_price": None,
        "vendor": _build_vendor(order.primary_vendor),
        "status": map_order_status(order.status),
        "assigned_quantity": None,
        "confirmed_quantity": None,
        "vendor_remarks": None,
        "assigned_at": None,
        "vendor_action_at": None,
        "created_at": _isoformat(order.created_at),
        "updated_at": _isoformat(order.updated_at),
    }


def _build_vendor(vendor: VendorProfile | None) -> dict[str, object]:
    if vendor is None:
        return {"id": None, "company_name": "No Vendor", "contact_person_name": "", "contact_phone": ""}
    return {
        "id": vendor.id,
        "company_name": vendor.company_name,
        "contact_person_name": vendor.contact_person_name,
        "contact_phone": vendor.contact_phone,
    }


def _decimal_str(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _blank_if_none(value: object) -> object:
    return "" if value is None else value


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
