from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.constants import ASSIGNMENT_PENDING_CONFIRMATION, ORDER_STATUS_RECEIVED
from app.extensions import db


class Order(db.Model):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    client_order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ORDER_STATUS_RECEIVED, index=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="API")
    total_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    primary_vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendor_profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    primary_vendor: Mapped["VendorProfile | None"] = relationship(lazy="joined")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", lazy="selectin", order_by="OrderItem.id"
    )


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    total_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    order: Mapped[Order] = relationship(back_populates="items")
    assigned_items: Mapped[list["AssignedOrderItem"]] = relationship(
        back_populates="order_item",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=lambda: [AssignedOrderItem.assigned_at.desc(), AssignedOrderItem.id.desc()],
    )


class AssignedOrderItem(db.Model):
    __tablename__ = "assigned_order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendor_profiles.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ASSIGNMENT_PENDING_CONFIRMATION, index=True
    )
    assigned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    confirmed_quantity: Mapped[int | None] = mapped_column(Integer)
    vendor_remarks: Mapped[str | None] = mapped_column(Text)
    assigned_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    vendor_action_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    order_item: Mapped[OrderItem] = relationship(back_populates="assigned_items")
    vendor: Mapped["VendorProfile"] = relationship(lazy="joined")
    purchase_order_item: Mapped["PurchaseOrderItem | None"] = relationship(
        back_populates="assigned_order_item", uselist=False, lazy="selectin", cascade="all, delete-orphan"
    )
    goods_receipt_items: Mapped[list["GoodsReceiptItem"]] = relationship(
        back_populates="assigned_order_item", lazy="selectin", cascade="all, delete-orphan"
    )


from .goods_receipt import GoodsReceiptItem  # noqa: E402
from .purchase_order import PurchaseOrderItem  # noqa: E402
from .vendor import VendorProfile  # noqa: E402
