import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import click
from flask.cli import with_appcontext
from sqlalchemy import select

from app.constants import (
    ASSIGNMENT_DISPATCHED,
    ASSIGNMENT_INVOICED,
    ASSIGNMENT_PENDING_CONFIRMATION,
    ASSIGNMENT_VENDOR_CONFIRMED_FULL,
    ASSIGNMENT_VERIFIED_OK,
    GRN_ITEM_VERIFIED_OK,
    PAYMENT_COMPLETED,
    PAYMENT_PENDING,
)
from app.extensions import db
from app.models import (
    AssignedOrderItem,
    GoodsReceiptItem,
    GoodsReceiptNote,
    Order,
    OrderItem,
    Payment,
    PurchaseOrder,
    PurchaseOrderItem,
    VendorProfile,
)
from app.services.auth_service import seed_roles_and_permissions

logger = logging.getLogger(__name__)

# (product, sku, quantity, unit price, assignment status, with PO, GRN verified, payment status)
DEMO_ITEMS = [
    ("Basmati Rice 5kg", "RICE-5", 40, "450.00", None, False, False, None),
    ("Toor Dal 1kg", "DAL-1", 60, "140.00", ASSIGNMENT_PENDING_CONFIRMATION, False, False, None),
    ("Sunflower Oil 1L", "OIL-1", 30, "165.00", ASSIGNMENT_VENDOR_CONFIRMED_FULL, False, False, None),
    ("Wheat Flour 10kg", "ATTA-10", 25, "420.00", ASSIGNMENT_INVOICED, True, False, PAYMENT_PENDING),
    ("Sugar 1kg", "SUGAR-1", 80, "48.00", ASSIGNMENT_DISPATCHED, True, False, PAYMENT_PENDING),
    ("Green Tea 100g", "TEA-100", 50, "210.00", ASSIGNMENT_VERIFIED_OK, True, True, PAYMENT_PENDING),
    ("Rock Salt 1kg", "SALT-1", 70, "35.00", ASSIGNMENT_VERIFIED_OK, True, True, PAYMENT_COMPLETED),
]


@click.command("seed-roles")
@with_appcontext
def seed_roles_command() -> None:
    """Create the default roles and permissions."""
    roles_created, permissions_created = seed_roles_and_permissions()
    click.echo(f"Created {roles_created} roles and {permissions_created} permissions.")


@click.command("seed-demo")
@click.option("--prefix", default="DEMO", show_default=True, help="Order number prefix.")
@with_appcontext
def seed_demo_command(prefix: str) -> None:
    """Insert one vendor and an order with an item at every tracking stage."""
    order_number = f"{prefix}-0001"
    if db.session.scalar(select(Order.id).where(Order.order_number == order_number)) is not None:
        click.echo(f"Order {order_number} already exists; nothing to do.")
        return

    vendor = VendorProfile(
        company_name="Demo Wholesale Traders",
        contact_person_name="Demo Contact",
        contact_phone="9000000000",
        warehouse_location="Demo Warehouse",
        pincode="560001",
        verified=True,
    )
    order = Order(
        client_order_id=f"{prefix}-CLIENT-0001",
        order_number=order_number,
        source="MANUAL_ENTRY",
        primary_vendor=vendor,
    )
    db.session.add_all([vendor, order])

    now = datetime.now(timezone.utc)
    grn = None
    total_value = Decimal("0")
    for index, (name, sku, quantity, price, assignment_status, with_po, verified, payment_status) in enumerate(
        DEMO_ITEMS, start=1
    ):
        unit_price = Decimal(price)
        item = OrderItem(
            product_name=name,
            sku=sku,
            quantity=quantity,
            price_per_unit=unit_price,
            total_price=unit_price * quantity,
        )
        order.items.append(item)
        total_value += item.total_price
        if assignment_status is None:
            continue

        assignment = AssignedOrderItem(
            vendor=vendor,
            status=assignment_status,
            assigned_quantity=quantity,
            confirmed_quantity=None if assignment_status == ASSIGNMENT_PENDING_CONFIRMATION else quantity,
            assigned_at=now - timedelta(days=len(DEMO_ITEMS) - index),
        )
        item.assigned_items.append(assignment)

        if with_po:
            purchase_order = PurchaseOrder(
                po_number=f"{prefix}-PO-{index:04d}",
                vendor=vendor,
                status="ISSUED",
                total_amount=item.total_price,
                issued_at=now,
            )
            purchase_order.items.append(
                PurchaseOrderItem(
                    assigned_order_item=assignment,
                    quantity=quantity,
                    price_per_unit=unit_price,
                    total_price=item.total_price,
                )
            )
            purchase_order.payment = Payment(
                amount=item.total_price,
                status=payment_status,
                processed_at=now if payment_status == PAYMENT_COMPLETED else None,
            )
            db.session.add(purchase_order)

        if verified:
            if grn is None:
                grn = GoodsReceiptNote(grn_number=f"{prefix}-GRN-0001", status="VERIFIED_OK", verified_at=now)
                db.session.add(grn)
            grn.items.append(
                GoodsReceiptItem(
                    assigned_order_item=assignment,
                    assigned_quantity=quantity,
                    confirmed_quantity=quantity,
                    received_quantity=quantity,
                    status=GRN_ITEM_VERIFIED_OK,
                )
            )

    order.total_value = total_value
    db.session.commit()
    logger.info(f"Seeded demo order {order_number} with {len(DEMO_ITEMS)} items")
    click.echo(f"Created order {order_number} with {len(DEMO_ITEMS)} items.")
