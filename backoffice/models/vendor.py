"""Vendor model: only the fields the assignment engine consumes."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from backoffice.models.enums import VendorStatus


class Vendor(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "vendors"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[VendorStatus] = mapped_column(
        enum_type(VendorStatus, "vendorstatus"),
        nullable=False,
        default=VendorStatus.PENDING,
    )
    # Percentage, 0-100
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_vendors_commission_rate_range",
        ),
    )
