"""In-memory AssignmentRepository.

Holds transient ORM instances in dictionaries. This is the store used by
the test suite and demo setups; it is injected explicitly in place of a
:class:`SqlAssignmentRepository` and nothing here is module-level state.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal

from backoffice.database.base import utcnow
from backoffice.models.enums import (
    AssignmentStatus,
    AssignmentType,
    OrderPlatform,
    OrderStatus,
    VendorStatus,
)
from backoffice.models.order import Order
from backoffice.models.order_item import OrderItem
from backoffice.models.order_item_assignment import OrderItemAssignment
from backoffice.models.vendor import Vendor
from backoffice.models.vendor_assignment import VendorAssignment
from backoffice.modules.order_splitting.commission import line_amount, sum_amounts, to_money
from backoffice.modules.order_splitting.repository import (
    AssignmentRepository,
    OrderDetails,
    completion_rate,
    order_date_window,
)
from backoffice.modules.order_splitting.schemas import (
    ItemAssignmentDetail,
    SplittingStats,
    VendorAssignmentStats,
    VendorDistributionEntry,
)


def _in_window(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and moment < start:
        return False
    if end is not None and moment >= end:
        return False
    return True


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self) -> None:
        self.orders: dict[uuid.UUID, Order] = {}
        self.order_items: dict[uuid.UUID, OrderItem] = {}
        self.vendors: dict[uuid.UUID, Vendor] = {}
        self.assignments: dict[uuid.UUID, VendorAssignment] = {}
        self.item_assignments: dict[uuid.UUID, OrderItemAssignment] = {}
        self._in_transaction = False
        self._undo: list[tuple[object, str, object]] = []

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_vendor(
        self,
        company_name: str,
        commission_rate: Decimal | str | int = 0,
        *,
        vendor_id: uuid.UUID | None = None,
        status: VendorStatus = VendorStatus.APPROVED,
    ) -> Vendor:
        now = utcnow()
        vendor = Vendor(
            id=vendor_id or uuid.uuid4(),
            company_name=company_name,
            commission_rate=Decimal(str(commission_rate)),
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.vendors[vendor.id] = vendor
        return vendor

    def add_order(
        self,
        order_number: str,
        items: list[dict],
        *,
        order_id: uuid.UUID | None = None,
        order_date: datetime | None = None,
        platform: OrderPlatform = OrderPlatform.MANUAL,
        customer_name: str | None = None,
    ) -> Order:
        """Store an order; each item dict needs ``product_name``, ``quantity``, ``unit_price``."""
        now = utcnow()
        order = Order(
            id=order_id or uuid.uuid4(),
            order_number=order_number,
            platform=platform,
            customer_name=customer_name,
            order_status=OrderStatus.PENDING,
            currency="USD",
            order_date=order_date or now,
            created_at=now,
            updated_at=now,
        )
        line_totals = []
        for data in items:
            unit_price = Decimal(str(data["unit_price"]))
            total_price = line_amount(unit_price, data["quantity"])
            item = OrderItem(
                id=data.get("id") or uuid.uuid4(),
                order_id=order.id,
                product_name=data["product_name"],
                sku=data.get("sku"),
                quantity=data["quantity"],
                unit_price=unit_price,
                total_price=total_price,
                created_at=now,
                updated_at=now,
            )
            self.order_items[item.id] = item
            line_totals.append(total_price)
        order.total_amount = sum_amounts(line_totals)
        self.orders[order.id] = order
        return order

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._in_transaction:
            yield
            return

        assignments = dict(self.assignments)
        item_assignments = dict(self.item_assignments)
        self._in_transaction = True
        self._undo = []
        try:
            yield
        except BaseException:
            self.assignments = assignments
            self.item_assignments = item_assignments
            for obj, name, old_value in reversed(self._undo):
                setattr(obj, name, old_value)
            raise
        finally:
            self._in_transaction = False
            self._undo = []

    # ------------------------------------------------------------------
    # Orders / items / vendors
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID) -> Order | None:
        return self.orders.get(order_id)

    async def get_order_details(self, order_id: uuid.UUID) -> OrderDetails | None:
        order = self.orders.get(order_id)
        if order is None:
            return None
        assignments = [a for a in self.assignments.values() if a.order_id == order_id]
        for assignment in assignments:
            assignment.vendor = self.vendors.get(assignment.vendor_id)
        return OrderDetails(
            order=order,
            items=[i for i in self.order_items.values() if i.order_id == order_id],
            vendor_assignments=assignments,
        )

    async def get_order_item(
        self, order_item_id: uuid.UUID, order_id: uuid.UUID, *, for_update: bool = False
    ) -> OrderItem | None:
        item = self.order_items.get(order_item_id)
        if item is None or item.order_id != order_id:
            return None
        return item

    async def get_assigned_quantity(self, order_item_id: uuid.UUID) -> int:
        return sum(
            ia.quantity
            for ia in self.item_assignments.values()
            if ia.order_item_id == order_item_id
        )

    async def get_vendor(self, vendor_id: uuid.UUID) -> Vendor | None:
        return self.vendors.get(vendor_id)

    # ------------------------------------------------------------------
    # Vendor assignments
    # ------------------------------------------------------------------

    async def find_assignment(
        self, order_id: uuid.UUID, vendor_id: uuid.UUID
    ) -> VendorAssignment | None:
        for assignment in self.assignments.values():
            if assignment.order_id == order_id and assignment.vendor_id == vendor_id:
                return assignment
        return None

    async def create_assignment(self, **fields) -> VendorAssignment:
        now = utcnow()
        fields.setdefault("assignment_type", AssignmentType.FULL)
        fields.setdefault("status", AssignmentStatus.ASSIGNED)
        fields.setdefault("commission_amount", to_money(0))
        fields.setdefault("assigned_at", now)
        assignment = VendorAssignment(id=uuid.uuid4(), created_at=now, updated_at=now, **fields)
        assignment.vendor = self.vendors.get(assignment.vendor_id)
        self.assignments[assignment.id] = assignment
        return assignment

    async def get_assignment(self, assignment_id: uuid.UUID) -> VendorAssignment | None:
        return self.assignments.get(assignment_id)

    async def update_assignment(self, assignment_id: uuid.UUID, **fields) -> VendorAssignment:
        assignment = self.assignments.get(assignment_id)
        if assignment is None:
            raise LookupError(f"Vendor assignment {assignment_id} disappeared during update")
        fields["updated_at"] = utcnow()
        for name, value in fields.items():
            if self._in_transaction:
                self._undo.append((assignment, name, getattr(assignment, name)))
            setattr(assignment, name, value)
        return assignment

    async def delete_assignment(self, assignment_id: uuid.UUID) -> None:
        self.assignments.pop(assignment_id, None)
        self.item_assignments = {
            ia_id: ia
            for ia_id, ia in self.item_assignments.items()
            if ia.vendor_assignment_id != assignment_id
        }

    # ------------------------------------------------------------------
    # Item assignments
    # ------------------------------------------------------------------

    async def insert_item_assignments(self, rows: list[dict]) -> list[OrderItemAssignment]:
        created = []
        for row in rows:
            now = utcnow()
            item_assignment = OrderItemAssignment(
                id=uuid.uuid4(), created_at=now, updated_at=now, **row
            )
            self.item_assignments[item_assignment.id] = item_assignment
            created.append(item_assignment)
        return created

    async def get_item_assignment(
        self, item_assignment_id: uuid.UUID
    ) -> OrderItemAssignment | None:
        return self.item_assignments.get(item_assignment_id)

    async def list_item_assignments(
        self, vendor_assignment_id: uuid.UUID
    ) -> list[OrderItemAssignment]:
        return [
            ia
            for ia in self.item_assignments.values()
            if ia.vendor_assignment_id == vendor_assignment_id
        ]

    async def delete_item_assignment(self, item_assignment_id: uuid.UUID) -> None:
        self.item_assignments.pop(item_assignment_id, None)

    async def list_order_item_assignments(
        self, order_id: uuid.UUID
    ) -> list[ItemAssignmentDetail]:
        details = []
        for ia in self.item_assignments.values():
            item = self.order_items.get(ia.order_item_id)
            parent = self.assignments.get(ia.vendor_assignment_id)
            if item is None or parent is None or item.order_id != order_id:
                continue
            vendor = self.vendors.get(parent.vendor_id)
            details.append(
                ItemAssignmentDetail(
                    id=ia.id,
                    vendor_assignment_id=ia.vendor_assignment_id,
                    order_item_id=ia.order_item_id,
                    quantity=ia.quantity,
                    assigned_amount=ia.assigned_amount,
                    created_at=ia.created_at,
                    product_name=item.product_name,
                    sku=item.sku,
                    total_quantity=item.quantity,
                    unit_price=item.unit_price,
                    vendor_id=vendor.id if vendor else None,
                    vendor_name=vendor.company_name if vendor else None,
                    assignment_status=parent.status,
                )
            )
        return details

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def _split_rows(
        self, date_from: date | None, date_to: date | None
    ) -> list[tuple[OrderItemAssignment, VendorAssignment]]:
        start, end = order_date_window(date_from, date_to)
        rows = []
        for ia in self.item_assignments.values():
            parent = self.assignments.get(ia.vendor_assignment_id)
            if parent is None:
                continue
            order = self.orders.get(parent.order_id)
            if order is None or not _in_window(order.order_date, start, end):
                continue
            rows.append((ia, parent))
        return rows

    async def get_splitting_stats(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SplittingStats:
        rows = self._split_rows(date_from, date_to)
        if not rows:
            return SplittingStats()
        return SplittingStats(
            split_orders=len({parent.order_id for _, parent in rows}),
            vendors_involved=len({parent.vendor_id for _, parent in rows}),
            total_split_amount=sum_amounts(ia.assigned_amount for ia, _ in rows),
            avg_split_quantity=sum(ia.quantity for ia, _ in rows) / len(rows),
        )

    async def get_vendor_distribution(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[VendorDistributionEntry]:
        grouped: dict[uuid.UUID, list[OrderItemAssignment]] = defaultdict(list)
        for ia, parent in self._split_rows(date_from, date_to):
            grouped[parent.vendor_id].append(ia)

        entries = []
        for vendor_id, rows in grouped.items():
            vendor = self.vendors.get(vendor_id)
            entries.append(
                VendorDistributionEntry(
                    vendor_id=vendor_id,
                    company_name=vendor.company_name if vendor else None,
                    assignments_count=len(rows),
                    total_amount=sum_amounts(ia.assigned_amount for ia in rows),
                )
            )
        entries.sort(key=lambda e: (-e.assignments_count, e.company_name or ""))
        return entries

    def _vendor_assignments(
        self,
        vendor_id: uuid.UUID,
        date_from: date | None,
        date_to: date | None,
    ) -> list[VendorAssignment]:
        start, end = order_date_window(date_from, date_to)
        selected = []
        for assignment in self.assignments.values():
            if assignment.vendor_id != vendor_id:
                continue
            order = self.orders.get(assignment.order_id)
            if order is None or not _in_window(order.order_date, start, end):
                continue
            selected.append(assignment)
        return selected

    async def list_vendor_assignments(
        self,
        vendor_id: uuid.UUID,
        status: AssignmentStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[VendorAssignment], int]:
        selected = [
            a
            for a in self._vendor_assignments(vendor_id, date_from, date_to)
            if status is None or a.status == status
        ]
        selected.sort(key=lambda a: a.assigned_at, reverse=True)
        page = selected[offset : offset + limit]
        for assignment in page:
            assignment.order = self.orders.get(assignment.order_id)
        return page, len(selected)

    async def get_vendor_stats(
        self,
        vendor_id: uuid.UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> VendorAssignmentStats:
        selected = self._vendor_assignments(vendor_id, date_from, date_to)
        total = len(selected)
        completed = sum(1 for a in selected if a.status == AssignmentStatus.COMPLETED)
        return VendorAssignmentStats(
            total_assignments=total,
            total_commission=sum_amounts(a.commission_amount for a in selected),
            completed_assignments=completed,
            pending_assignments=sum(
                1 for a in selected if a.status == AssignmentStatus.ASSIGNED
            ),
            completion_rate=completion_rate(completed, total),
            average_order_value=(
                to_money(
                    sum_amounts(self.orders[a.order_id].total_amount for a in selected) / total
                )
                if total
                else to_money(0)
            ),
        )
