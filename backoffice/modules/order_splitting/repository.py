"""Assignment store interface and its SQLAlchemy implementation.

The services in this package only talk to :class:`AssignmentRepository`, so the
relational store can be swapped for the in-memory implementation in
``memory.py`` (tests, demos) without touching allocation logic.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import case, delete, desc, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.models.enums import AssignmentStatus
from backoffice.models.order import Order
from backoffice.models.order_item import OrderItem
from backoffice.models.order_item_assignment import OrderItemAssignment
from backoffice.models.vendor import Vendor
from backoffice.models.vendor_assignment import VendorAssignment
from backoffice.modules.order_splitting.commission import to_money
from backoffice.modules.order_splitting.schemas import (
    ItemAssignmentDetail,
    SplittingStats,
    VendorAssignmentStats,
    VendorDistributionEntry,
)


@dataclass
class OrderDetails:
    order: Order
    items: list[OrderItem] = field(default_factory=list)
    vendor_assignments: list[VendorAssignment] = field(default_factory=list)


def order_date_window(
    date_from: date | None, date_to: date | None
) -> tuple[datetime | None, datetime | None]:
    """Translate inclusive calendar days into ``[start, end)`` UTC datetimes."""
    start = datetime.combine(date_from, time.min, tzinfo=UTC) if date_from else None
    end = (
        datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=UTC)
        if date_to
        else None
    )
    return start, end


def completion_rate(completed: int, total: int) -> Decimal:
    if total <= 0:
        return Decimal("0.00")
    return to_money(Decimal(completed) * 100 / Decimal(total))


class AssignmentRepository(ABC):
    """Persistence operations needed by the allocator and the report builder."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Async context manager; everything inside commits or rolls back together."""

    # -- orders / items / vendors ------------------------------------------

    @abstractmethod
    async def get_order(self, order_id: uuid.UUID) -> Order | None:
        """Return the order or None."""

    @abstractmethod
    async def get_order_details(self, order_id: uuid.UUID) -> OrderDetails | None:
        """Return the order with its items and vendor assignments (vendor loaded)."""

    @abstractmethod
    async def get_order_item(
        self, order_item_id: uuid.UUID, order_id: uuid.UUID, *, for_update: bool = False
    ) -> OrderItem | None:
        """Return the item only if it belongs to ``order_id``."""

    @abstractmethod
    async def get_assigned_quantity(self, order_item_id: uuid.UUID) -> int:
        """Sum of quantities currently held by item assignments for this item."""

    @abstractmethod
    async def get_vendor(self, vendor_id: uuid.UUID) -> Vendor | None:
        """Return the vendor or None."""

    # -- vendor assignments -------------------------------------------------

    @abstractmethod
    async def find_assignment(
        self, order_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> VendorAssignment | None:
        """Existing assignment of ``vendor_id`` on ``order_id``, if any."""

    @abstractmethod
    async def create_assignment(self, **fields) -> VendorAssignment:
        """Insert a vendor assignment row."""

    @abstractmethod
    async def get_assignment(self, assignment_id: uuid.UUID) -> VendorAssignment | None:
        """Return the assignment or None."""

    @abstractmethod
    async def update_assignment(self, assignment_id: uuid.UUID, **fields) -> VendorAssignment:
        """Apply ``fields`` to the assignment and return it."""

    @abstractmethod
    async def delete_assignment(self, assignment_id: uuid.UUID) -> None:
        """Delete the assignment and, by cascade, its item assignments."""

    # -- item assignments ---------------------------------------------------

    @abstractmethod
    async def insert_item_assignments(self, rows: list[dict]) -> list[OrderItemAssignment]:
        """Insert item assignment rows."""

    @abstractmethod
    async def get_item_assignment(
        self, item_assignment_id: uuid.UUID
    ) -> OrderItemAssignment | None:
        """Return the item assignment or None."""

    @abstractmethod
    async def list_item_assignments(
        self, vendor_assignment_id: uuid.UUID
    ) -> list[OrderItemAssignment]:
        """Item assignments under one vendor assignment."""

    @abstractmethod
    async def delete_item_assignment(self, item_assignment_id: uuid.UUID) -> None:
        """Delete a single item assignment."""

    @abstractmethod
    async def list_order_item_assignments(
        self, order_id: uuid.UUID
    ) -> list[ItemAssignmentDetail]:
        """Item assignments of an order's items, enriched with item/vendor columns."""

    # -- aggregates ---------------------------------------------------------

    @abstractmethod
    async def get_splitting_stats(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SplittingStats:
        """Totals over all item assignments, filtered by order date."""

    @abstractmethod
    async def get_vendor_distribution(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[VendorDistributionEntry]:
        """Per-vendor item assignment counts and amounts, most assignments first."""

    @abstractmethod
    async def list_vendor_assignments(
        self,
        vendor_id: uuid.UUID,
        status: AssignmentStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[VendorAssignment], int]:
        """A vendor's assignments (order loaded), newest first, with the total count."""

    @abstractmethod
    async def get_vendor_stats(
        self,
        vendor_id: uuid.UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> VendorAssignmentStats:
        """Assignment counts and commission totals for one vendor."""


class SqlAssignmentRepository(AssignmentRepository):
    """AssignmentRepository backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        # SAVEPOINT inside the request transaction opened by get_db
        async with self.db.begin_nested():
            yield

    # ------------------------------------------------------------------
    # Orders / items / vendors
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID) -> Order | None:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def get_order_details(self, order_id: uuid.UUID) -> OrderDetails | None:
        order = await self.get_order(order_id)
        if order is None:
            return None

        items_result = await self.db.execute(
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at, OrderItem.id)
        )
        assignments_result = await self.db.execute(
            select(VendorAssignment)
            .options(selectinload(VendorAssignment.vendor))
            .where(VendorAssignment.order_id == order_id)
            .order_by(VendorAssignment.assigned_at)
        )
        return OrderDetails(
            order=order,
            items=list(items_result.scalars().all()),
            vendor_assignments=list(assignments_result.scalars().all()),
        )

    async def get_order_item(
        self, order_item_id: uuid.UUID, order_id: uuid.UUID, *, for_update: bool = False
    ) -> OrderItem | None:
        query = select(OrderItem).where(
            OrderItem.id == order_item_id, OrderItem.order_id == order_id
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_assigned_quantity(self, order_item_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(OrderItemAssignment.quantity), 0)).where(
                OrderItemAssignment.order_item_id == order_item_id
            )
        )
        return int(result.scalar() or 0)

    async def get_vendor(self, vendor_id: uuid.UUID) -> Vendor | None:
        result = await self.db.execute(select(Vendor).where(Vendor.id == vendor_id))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Vendor assignments
    # ------------------------------------------------------------------

    async def find_assignment(
        self, order_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> VendorAssignment | None:
        result = await self.db.execute(
            select(VendorAssignment)
            .where(
                VendorAssignment.order_id == order_id,
                VendorAssignment.vendor_id == vendor_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_assignment(self, **fields) -> VendorAssignment:
        assignment = VendorAssignment(**fields)
        self.db.add(assignment)
        await self.db.flush()
        return assignment

    async def get_assignment(self, assignment_id: uuid.UUID) -> VendorAssignment | None:
        result = await self.db.execute(
            select(VendorAssignment).where(VendorAssignment.id == assignment_id)
        )
        return result.scalar_one_or_none()

    async def update_assignment(self, assignment_id: uuid.UUID, **fields) -> VendorAssignment:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            raise LookupError(f"Vendor assignment {assignment_id} disappeared during update")
        for name, value in fields.items():
            setattr(assignment, name, value)
        await self.db.flush()
        return assignment

    async def delete_assignment(self, assignment_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(VendorAssignment).where(VendorAssignment.id == assignment_id)
        )
        await self.db.flush()

    # ------------------------------------------------------------------
    # Item assignments
    # ------------------------------------------------------------------

    async def insert_item_assignments(self, rows: list[dict]) -> list[OrderItemAssignment]:
        created = [OrderItemAssignment(**row) for row in rows]
        self.db.add_all(created)
        await self.db.flush()
        return created

    async def get_item_assignment(
        self, item_assignment_id: uuid.UUID
    ) -> OrderItemAssignment | None:
        result = await self.db.execute(
            select(OrderItemAssignment).where(OrderItemAssignment.id == item_assignment_id)
        )
        return result.scalar_one_or_none()

    async def list_item_assignments(
        self, vendor_assignment_id: uuid.UUID
    ) -> list[OrderItemAssignment]:
        result = await self.db.execute(
            select(OrderItemAssignment)
            .where(OrderItemAssignment.vendor_assignment_id == vendor_assignment_id)
            .order_by(OrderItemAssignment.created_at)
        )
        return list(result.scalars().all())

    async def delete_item_assignment(self, item_assignment_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(OrderItemAssignment).where(OrderItemAssignment.id == item_assignment_id)
        )
        await self.db.flush()

    async def list_order_item_assignments(
        self, order_id: uuid.UUID
    ) -> list[ItemAssignmentDetail]:
        result = await self.db.execute(
            select(
                OrderItemAssignment,
                OrderItem.product_name,
                OrderItem.sku,
                OrderItem.quantity.label("total_quantity"),
                OrderItem.unit_price,
                Vendor.id.label("vendor_id"),
                Vendor.company_name.label("vendor_name"),
                VendorAssignment.status.label("assignment_status"),
            )
            .join(OrderItem, OrderItemAssignment.order_item_id == OrderItem.id)
            .join(
                VendorAssignment,
                OrderItemAssignment.vendor_assignment_id == VendorAssignment.id,
            )
            .outerjoin(Vendor, VendorAssignment.vendor_id == Vendor.id)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItemAssignment.created_at)
        )
        details: list[ItemAssignmentDetail] = []
        for row in result.all():
            item_assignment = row[0]
            details.append(
                ItemAssignmentDetail(
                    id=item_assignment.id,
                    vendor_assignment_id=item_assignment.vendor_assignment_id,
                    order_item_id=item_assignment.order_item_id,
                    quantity=item_assignment.quantity,
                    assigned_amount=item_assignment.assigned_amount,
                    created_at=item_assignment.created_at,
                    product_name=row.product_name,
                    sku=row.sku,
                    total_quantity=row.total_quantity,
                    unit_price=row.unit_price,
                    vendor_id=row.vendor_id,
                    vendor_name=row.vendor_name,
                    assignment_status=row.assignment_status,
                )
            )
        return details

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_order_date(query, date_from: date | None, date_to: date | None):
        start, end = order_date_window(date_from, date_to)
        if start is not None:
            query = query.where(Order.order_date >= start)
        if end is not None:
            query = query.where(Order.order_date < end)
        return query

    async def get_splitting_stats(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SplittingStats:
        query = (
            select(
                func.count(distinct(VendorAssignment.order_id)),
                func.count(distinct(VendorAssignment.vendor_id)),
                func.coalesce(func.sum(OrderItemAssignment.assigned_amount), 0),
                func.avg(OrderItemAssignment.quantity),
            )
            .select_from(OrderItemAssignment)
            .join(
                VendorAssignment,
                OrderItemAssignment.vendor_assignment_id == VendorAssignment.id,
            )
            .join(Order, VendorAssignment.order_id == Order.id)
        )
        query = self._filter_order_date(query, date_from, date_to)
        split_orders, vendors_involved, total_amount, avg_quantity = (
            await self.db.execute(query)
        ).one()
        return SplittingStats(
            split_orders=int(split_orders or 0),
            vendors_involved=int(vendors_involved or 0),
            total_split_amount=to_money(total_amount or 0),
            avg_split_quantity=float(avg_quantity or 0),
        )

    async def get_vendor_distribution(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[VendorDistributionEntry]:
        assignments_count = func.count(OrderItemAssignment.id).label("assignments_count")
        query = (
            select(
                Vendor.id,
                Vendor.company_name,
                assignments_count,
                func.sum(OrderItemAssignment.assigned_amount).label("total_amount"),
            )
            .select_from(OrderItemAssignment)
            .join(
                VendorAssignment,
                OrderItemAssignment.vendor_assignment_id == VendorAssignment.id,
            )
            .join(Vendor, VendorAssignment.vendor_id == Vendor.id)
            .join(Order, VendorAssignment.order_id == Order.id)
            .group_by(Vendor.id, Vendor.company_name)
            .order_by(desc(assignments_count), Vendor.company_name)
        )
        query = self._filter_order_date(query, date_from, date_to)
        result = await self.db.execute(query)
        return [
            VendorDistributionEntry(
                vendor_id=vendor_id,
                company_name=company_name,
                assignments_count=int(count),
                total_amount=to_money(total or 0),
            )
            for vendor_id, company_name, count, total in result.all()
        ]

    async def list_vendor_assignments(
        self,
        vendor_id: uuid.UUID,
        status: AssignmentStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[VendorAssignment], int]:
        query = (
            select(VendorAssignment)
            .join(Order, VendorAssignment.order_id == Order.id)
            .where(VendorAssignment.vendor_id == vendor_id)
        )
        count_query = (
            select(func.count())
            .select_from(VendorAssignment)
            .join(Order, VendorAssignment.order_id == Order.id)
            .where(VendorAssignment.vendor_id == vendor_id)
        )
        if status is not None:
            query = query.where(VendorAssignment.status == status)
            count_query = count_query.where(VendorAssignment.status == status)
        query = self._filter_order_date(query, date_from, date_to)
        count_query = self._filter_order_date(count_query, date_from, date_to)

        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.options(selectinload(VendorAssignment.order))
            .order_by(VendorAssignment.assigned_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_vendor_stats(
        self,
        vendor_id: uuid.UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> VendorAssignmentStats:
        query = (
            select(
                func.count(VendorAssignment.id),
                func.coalesce(func.sum(VendorAssignment.commission_amount), 0),
                func.count(
                    case((VendorAssignment.status == AssignmentStatus.COMPLETED, 1))
                ),
                func.count(
                    case((VendorAssignment.status == AssignmentStatus.ASSIGNED, 1))
                ),
                func.avg(Order.total_amount),
            )
            .select_from(VendorAssignment)
            .join(Order, VendorAssignment.order_id == Order.id)
            .where(VendorAssignment.vendor_id == vendor_id)
        )
        query = self._filter_order_date(query, date_from, date_to)
        total, commission, completed, pending, avg_order = (
            await self.db.execute(query)
        ).one()
        total = int(total or 0)
        completed = int(completed or 0)
        return VendorAssignmentStats(
            total_assignments=total,
            total_commission=to_money(commission or 0),
            completed_assignments=completed,
            pending_assignments=int(pending or 0),
            completion_rate=completion_rate(completed, total),
            average_order_value=to_money(avg_order or 0),
        )
