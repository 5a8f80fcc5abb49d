"""Order model: an order ingested from a storefront platform."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type, utcnow
from backoffice.models.enums import OrderPlatform, OrderStatus

if TYPE_CHECKING:
    from backoffice.models.order_item import OrderItem
    from backoffice.models.vendor_assignment import VendorAssignment


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    platform: Mapped[OrderPlatform] = mapped_column(
        enum_type(OrderPlatform, "orderplatform"),
        nullable=False,
        default=OrderPlatform.MANUAL,
    )
    external_order_id: Mapped[str | None] = mapped_column(String(100))
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    order_status: Mapped[OrderStatus] = mapped_column(
        enum_type(OrderStatus, "orderstatus"),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem", back_populates="order", lazy="noload", cascade="all, delete-orphan"
    )
    vendor_assignments: Mapped[list[VendorAssignment]] = relationship(
        "VendorAssignment", lazy="noload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_orders_order_date", "order_date"),
        Index("ix_orders_platform_external_id", "platform", "external_order_id"),
    )
