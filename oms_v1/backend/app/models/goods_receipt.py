from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.constants import GRN_ITEM_VERIFIED_OK
from app.extensions import db


class GoodsReceiptNote(db.Model):
    __tablename__ = "goods_receipt_notes"

    id: Mapped[int] = mapped_column(primary_key=True)
    grn_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PENDING_VERIFICATION")
    operator_remarks: Mapped[str | None] = mapped_column(Text)
    verified_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    items: Mapped[list["GoodsReceiptItem"]] = relationship(
        back_populates="goods_receipt_note", cascade="all, delete-orphan"
    )


class GoodsReceiptItem(db.Model):
    __tablename__ = "goods_receipt_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    goods_receipt_note_id: Mapped[int] = mapped_column(
        ForeignKey("goods_receipt_notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_order_item_id: Mapped[int] = mapped_column(
        ForeignKey("assigned_order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    confirmed_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    discrepancy_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=GRN_ITEM_VERIFIED_OK)
    item_remarks: Mapped[str | None] = mapped_column(Text)
    damage_reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    goods_receipt_note: Mapped[GoodsReceiptNote] = relationship(back_populates="items")
    assigned_order_item: Mapped["AssignedOrderItem"] = relationship(back_populates="goods_receipt_items")


from .order import AssignedOrderItem  # noqa: E402
