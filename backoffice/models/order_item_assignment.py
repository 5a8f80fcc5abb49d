"""OrderItemAssignment model: a quantity of one order item held by one vendor assignment."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from backoffice.models.order_item import OrderItem
    from backoffice.models.vendor_assignment import VendorAssignment


class OrderItemAssignment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_item_assignments"

    vendor_assignment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendor_assignments.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Snapshot of unit_price * quantity at assignment time
    assigned_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Relationships
    vendor_assignment: Mapped[VendorAssignment] = relationship(
        "VendorAssignment", back_populates="item_assignments", lazy="noload"
    )
    order_item: Mapped[OrderItem] = relationship("OrderItem", lazy="noload", viewonly=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_assignments_quantity_positive"),
        Index("ix_order_item_assignments_vendor_assignment_id", "vendor_assignment_id"),
        Index("ix_order_item_assignments_order_item_id", "order_item_id"),
    )
