"""VendorAssignment model: a vendor's claim on all or part of an order."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type, utcnow
from backoffice.models.enums import AssignmentStatus, AssignmentType

if TYPE_CHECKING:
    from backoffice.models.order import Order
    from backoffice.models.order_item_assignment import OrderItemAssignment
    from backoffice.models.vendor import Vendor


class VendorAssignment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "vendor_assignments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    assignment_type: Mapped[AssignmentType] = mapped_column(
        enum_type(AssignmentType, "assignmenttype"),
        nullable=False,
        default=AssignmentType.FULL,
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        enum_type(AssignmentStatus, "assignmentstatus"),
        nullable=False,
        default=AssignmentStatus.ASSIGNED,
    )
    notes: Mapped[str | None] = mapped_column(Text)

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    order: Mapped[Order] = relationship("Order", lazy="noload", viewonly=True)
    vendor: Mapped[Vendor] = relationship("Vendor", lazy="noload", viewonly=True)
    item_assignments: Mapped[list[OrderItemAssignment]] = relationship(
        "OrderItemAssignment",
        back_populates="vendor_assignment",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_vendor_assignments_order_id", "order_id"),
        Index("ix_vendor_assignments_vendor_id", "vendor_id"),
        Index("ix_vendor_assignments_status", "status"),
    )
