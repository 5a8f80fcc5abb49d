"""Splitting report builder: per-item allocation breakdown and aggregate analytics."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date

from backoffice.exceptions import NotFoundException, ValidationException
from backoffice.modules.order_splitting.repository import AssignmentRepository
from backoffice.modules.order_splitting.schemas import (
    ItemAssignmentDetail,
    ItemAssignmentSummary,
    OrderResponse,
    OrderSplittingReport,
    SplittingAnalytics,
    VendorAssignmentResponse,
    VendorAssignmentStats,
)

logger = logging.getLogger(__name__)


def _check_date_range(date_from: date | None, date_to: date | None) -> None:
    if date_from and date_to and date_from > date_to:
        raise ValidationException("date_from must not be after date_to")


class SplittingReportService:
    """Read-only views over vendor assignments. Never mutates the store."""

    def __init__(self, repo: AssignmentRepository) -> None:
        self.repo = repo

    async def get_order_splitting(self, order_id: uuid.UUID) -> OrderSplittingReport:
        """Return how much of each order item is assigned, and to whom."""
        details = await self.repo.get_order_details(order_id)
        if details is None:
            raise NotFoundException("Order not found")

        rows = await self.repo.list_order_item_assignments(order_id)
        by_item: dict[uuid.UUID, list[ItemAssignmentDetail]] = defaultdict(list)
        for row in rows:
            by_item[row.order_item_id].append(row)

        summary: list[ItemAssignmentSummary] = []
        for item in details.items:
            assignments = by_item.get(item.id, [])
            assigned_quantity = sum(row.quantity for row in assignments)
            remaining_quantity = item.quantity - assigned_quantity
            if remaining_quantity < 0:
                logger.warning(
                    "Order item %s on order %s is over-allocated: %d assigned of %d",
                    item.id, order_id, assigned_quantity, item.quantity,
                )
            summary.append(
                ItemAssignmentSummary(
                    order_item_id=item.id,
                    product_name=item.product_name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                    assigned_quantity=assigned_quantity,
                    remaining_quantity=remaining_quantity,
                    is_fully_assigned=remaining_quantity == 0,
                    assignments=assignments,
                )
            )

        return OrderSplittingReport(
            order=OrderResponse.model_validate(details.order),
            assignment_summary=summary,
            vendor_assignments=[
                VendorAssignmentResponse.model_validate(a) for a in details.vendor_assignments
            ],
        )

    async def get_splitting_analytics(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SplittingAnalytics:
        _check_date_range(date_from, date_to)
        stats = await self.repo.get_splitting_stats(date_from, date_to)
        distribution = await self.repo.get_vendor_distribution(date_from, date_to)
        return SplittingAnalytics(stats=stats, vendor_distribution=distribution)

    async def get_vendor_stats(
        self,
        vendor_id: uuid.UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> VendorAssignmentStats:
        _check_date_range(date_from, date_to)
        if await self.repo.get_vendor(vendor_id) is None:
            raise NotFoundException("Vendor not found")
        return await self.repo.get_vendor_stats(vendor_id, date_from, date_to)
