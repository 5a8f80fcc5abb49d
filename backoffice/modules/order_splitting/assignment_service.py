"""Vendor assignment allocator: partial/full assignments, removals, status changes."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime

from backoffice.config import settings
from backoffice.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from backoffice.models.enums import ActorType, AssignmentStatus, AssignmentType
from backoffice.models.vendor import Vendor
from backoffice.models.vendor_assignment import VendorAssignment
from backoffice.modules.activity.service import ActivityLogger
from backoffice.modules.order_splitting.commission import (
    commission_for,
    line_amount,
    sum_amounts,
    to_money,
)
from backoffice.modules.order_splitting.constants import (
    ACTION_ASSIGNMENT_STATUS_UPDATE,
    ACTION_FULL_ASSIGNMENT,
    ACTION_ITEM_ASSIGNMENT_REMOVED,
    ACTION_PARTIAL_ASSIGNMENT,
    ASSIGNMENT_TRANSITIONS,
    ENTITY_ITEM_ASSIGNMENT,
    ENTITY_ORDER,
    ENTITY_VENDOR_ASSIGNMENT,
    QUANTITY_POLICY_NOMINAL,
    QUANTITY_POLICY_REMAINING,
)
from backoffice.modules.order_splitting.repository import AssignmentRepository
from backoffice.modules.order_splitting.schemas import (
    AssignmentItemInput,
    AssignmentRemovalResult,
    AssignmentResult,
    ValidatedItem,
    VendorAssignmentListResponse,
    VendorAssignmentResponse,
    VendorSummary,
)

logger = logging.getLogger(__name__)


class AssignmentService:
    """Allocates order items to vendors and keeps commission in sync.

    ``quantity_policy`` decides how requested quantities are checked:

    * ``nominal`` compares against the order item's total quantity only, so
      two vendors can be handed the same units;
    * ``remaining`` also subtracts what existing item assignments already
      hold and raises :class:`ConflictException` on over-allocation. The
      order item row is locked while checking.
    """

    def __init__(
        self,
        repo: AssignmentRepository,
        activity: ActivityLogger,
        *,
        quantity_policy: str | None = None,
    ) -> None:
        self.repo = repo
        self.activity = activity
        self.quantity_policy = quantity_policy or settings.assignment_quantity_policy
        if self.quantity_policy not in (QUANTITY_POLICY_NOMINAL, QUANTITY_POLICY_REMAINING):
            raise ValueError(f"Unknown quantity policy: {self.quantity_policy}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        vendor = await self.repo.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundException("Vendor not found")
        return vendor

    async def _validate_items(
        self, order_id: uuid.UUID, items: list[AssignmentItemInput]
    ) -> list[ValidatedItem]:
        """Check every requested line against the order and price it.

        Nothing is written here; callers persist only after the whole list
        validates.
        """
        if not items:
            raise ValidationException("Items array is required for partial assignment")

        strict = self.quantity_policy == QUANTITY_POLICY_REMAINING
        seen: set[uuid.UUID] = set()
        validated: list[ValidatedItem] = []

        for item in items:
            if item.order_item_id in seen:
                raise ValidationException(
                    f"Order item {item.order_item_id} is listed more than once"
                )
            seen.add(item.order_item_id)

            order_item = await self.repo.get_order_item(
                item.order_item_id, order_id, for_update=strict
            )
            if order_item is None:
                raise NotFoundException(
                    f"Order item {item.order_item_id} not found in this order"
                )

            if item.quantity > order_item.quantity:
                raise ValidationException(
                    f"Quantity {item.quantity} exceeds available quantity "
                    f"{order_item.quantity} for item {order_item.product_name}"
                )

            if strict:
                already_assigned = await self.repo.get_assigned_quantity(order_item.id)
                remaining = order_item.quantity - already_assigned
                if item.quantity > remaining:
                    raise ConflictException(
                        f"Quantity {item.quantity} exceeds remaining unassigned quantity "
                        f"{max(remaining, 0)} for item {order_item.product_name} "
                        f"({already_assigned} already assigned)"
                    )

            validated.append(
                ValidatedItem(
                    order_item_id=order_item.id,
                    quantity=item.quantity,
                    assigned_amount=line_amount(order_item.unit_price, item.quantity),
                    product_name=order_item.product_name,
                    sku=order_item.sku,
                )
            )

        return validated

    @staticmethod
    def _to_response(
        assignment: VendorAssignment, vendor: Vendor | None = None
    ) -> VendorAssignmentResponse:
        response = VendorAssignmentResponse.model_validate(assignment)
        if vendor is not None:
            response = response.model_copy(
                update={"vendor": VendorSummary.model_validate(vendor)}
            )
        return response

    async def _create_assignment(
        self,
        order_id: uuid.UUID,
        vendor: Vendor,
        assignment_type: AssignmentType,
        validated: list[ValidatedItem],
        base_amount,
        assigned_by: uuid.UUID | None,
        notes: str | None,
    ) -> VendorAssignment:
        assignment = await self.repo.create_assignment(
            order_id=order_id,
            vendor_id=vendor.id,
            assigned_by=assigned_by,
            assignment_type=assignment_type,
            commission_amount=commission_for(base_amount, vendor.commission_rate),
            status=AssignmentStatus.ASSIGNED,
            notes=notes,
            assigned_at=datetime.now(UTC),
            accepted_at=None,
            completed_at=None,
        )
        if validated:
            await self.repo.insert_item_assignments(
                [
                    {
                        "vendor_assignment_id": assignment.id,
                        "order_item_id": item.order_item_id,
                        "quantity": item.quantity,
                        "assigned_amount": item.assigned_amount,
                    }
                    for item in validated
                ]
            )
        return assignment

    # ------------------------------------------------------------------
    # Partial assignment
    # ------------------------------------------------------------------

    async def create_partial_assignment(
        self,
        order_id: uuid.UUID,
        vendor_id: uuid.UUID,
        items: list[AssignmentItemInput],
        *,
        assigned_by: uuid.UUID | None = None,
        notes: str | None = None,
    ) -> AssignmentResult:
        """Assign specific item quantities of an order to one vendor."""
        async with self.repo.transaction():
            order = await self.repo.get_order(order_id)
            if order is None:
                raise NotFoundException("Order not found")
            vendor = await self._get_vendor(vendor_id)

            validated = await self._validate_items(order_id, items)
            total_amount = sum_amounts(item.assigned_amount for item in validated)

            assignment = await self._create_assignment(
                order_id,
                vendor,
                AssignmentType.PARTIAL,
                validated,
                total_amount,
                assigned_by,
                notes,
            )
            response = self._to_response(assignment, vendor)

        await self.activity.log_admin_action(
            assigned_by,
            ACTION_PARTIAL_ASSIGNMENT,
            ENTITY_ORDER,
            order_id,
            {
                "vendor_id": str(vendor_id),
                "vendor_name": vendor.company_name,
                "items_count": len(validated),
                "total_amount": str(total_amount),
                "commission_amount": str(response.commission_amount),
            },
        )
        logger.info(
            "Partial assignment %s: order %s -> vendor %s, %d item(s), total %s, commission %s",
            response.id, order_id, vendor_id, len(validated),
            total_amount, response.commission_amount,
        )
        return AssignmentResult(assignment=response, items=validated, total_amount=total_amount)

    # ------------------------------------------------------------------
    # Full assignment
    # ------------------------------------------------------------------

    async def create_full_assignment(
        self,
        order_id: uuid.UUID,
        vendor_id: uuid.UUID,
        *,
        assigned_by: uuid.UUID | None = None,
        items: list[AssignmentItemInput] | None = None,
        notes: str | None = None,
    ) -> AssignmentResult:
        """Assign a whole order to a vendor.

        Without ``items`` the commission base is the order total and no item
        rows are written. With ``items`` they are validated and stored exactly
        as for a partial assignment.
        """
        async with self.repo.transaction():
            order = await self.repo.get_order(order_id)
            if order is None:
                raise NotFoundException("Order not found")
            vendor = await self._get_vendor(vendor_id)

            if await self.repo.find_assignment(order_id, vendor_id) is not None:
                raise ConflictException("Vendor is already assigned to this order")

            if items:
                validated = await self._validate_items(order_id, items)
                total_amount = sum_amounts(item.assigned_amount for item in validated)
            else:
                validated = []
                total_amount = to_money(order.total_amount)

            assignment = await self._create_assignment(
                order_id,
                vendor,
                AssignmentType.FULL,
                validated,
                total_amount,
                assigned_by,
                notes,
            )
            response = self._to_response(assignment, vendor)

        await self.activity.log_admin_action(
            assigned_by,
            ACTION_FULL_ASSIGNMENT,
            ENTITY_ORDER,
            order_id,
            {
                "vendor_id": str(vendor_id),
                "vendor_name": vendor.company_name,
                "assignment_type": AssignmentType.FULL.value,
                "commission_amount": str(response.commission_amount),
            },
        )
        logger.info(
            "Full assignment %s: order %s -> vendor %s, commission %s",
            response.id, order_id, vendor_id, response.commission_amount,
        )
        return AssignmentResult(assignment=response, items=validated, total_amount=total_amount)

    # ------------------------------------------------------------------
    # Item assignment removal
    # ------------------------------------------------------------------

    async def remove_item_assignment(
        self,
        item_assignment_id: uuid.UUID,
        *,
        removed_by: uuid.UUID | None = None,
    ) -> AssignmentRemovalResult:
        """Delete one item assignment and recompute (or drop) its parent."""
        async with self.repo.transaction():
            item_assignment = await self.repo.get_item_assignment(item_assignment_id)
            if item_assignment is None:
                raise NotFoundException("Item assignment not found")

            vendor_assignment_id = item_assignment.vendor_assignment_id
            order_item_id = item_assignment.order_item_id
            quantity = item_assignment.quantity

            parent = await self.repo.get_assignment(vendor_assignment_id)
            if parent is None:
                raise NotFoundException("Assignment not found")
            vendor_id = parent.vendor_id

            await self.repo.delete_item_assignment(item_assignment_id)
            remaining = await self.repo.list_item_assignments(vendor_assignment_id)

            if not remaining:
                await self.repo.delete_assignment(vendor_assignment_id)
                assignment_deleted = True
                commission_amount = None
            else:
                vendor = await self._get_vendor(vendor_id)
                new_total = sum_amounts(row.assigned_amount for row in remaining)
                commission_amount = commission_for(new_total, vendor.commission_rate)
                await self.repo.update_assignment(
                    vendor_assignment_id, commission_amount=commission_amount
                )
                assignment_deleted = False

        await self.activity.log_admin_action(
            removed_by,
            ACTION_ITEM_ASSIGNMENT_REMOVED,
            ENTITY_ITEM_ASSIGNMENT,
            item_assignment_id,
            {
                "vendor_assignment_id": str(vendor_assignment_id),
                "order_item_id": str(order_item_id),
                "quantity": quantity,
            },
        )
        if assignment_deleted:
            logger.info(
                "Removed item assignment %s; vendor assignment %s had no items left and was deleted",
                item_assignment_id, vendor_assignment_id,
            )
        else:
            logger.info(
                "Removed item assignment %s; vendor assignment %s commission now %s",
                item_assignment_id, vendor_assignment_id, commission_amount,
            )

        return AssignmentRemovalResult(
            item_assignment_id=item_assignment_id,
            vendor_assignment_id=vendor_assignment_id,
            order_item_id=order_item_id,
            quantity=quantity,
            assignment_deleted=assignment_deleted,
            commission_amount=commission_amount,
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def update_assignment_status(
        self,
        assignment_id: uuid.UUID,
        new_status: AssignmentStatus,
        *,
        changed_by: uuid.UUID | None = None,
        actor_type: ActorType = ActorType.ADMIN,
        actor_vendor_id: uuid.UUID | None = None,
    ) -> VendorAssignmentResponse:
        """Move an assignment along its lifecycle with transition validation."""
        async with self.repo.transaction():
            assignment = await self.repo.get_assignment(assignment_id)
            if assignment is None:
                raise NotFoundException("Assignment not found")

            if actor_type == ActorType.VENDOR and assignment.vendor_id != actor_vendor_id:
                raise ForbiddenException("You can only update your own assignments")

            old_status = assignment.status
            allowed = ASSIGNMENT_TRANSITIONS.get(old_status, set())
            if new_status not in allowed:
                raise ConflictException(
                    f"Cannot transition assignment from '{old_status.value}' "
                    f"to '{new_status.value}'. "
                    f"Allowed: {sorted(s.value for s in allowed)}"
                )

            fields: dict = {"status": new_status}
            if new_status == AssignmentStatus.ACCEPTED:
                fields["accepted_at"] = datetime.now(UTC)
            elif new_status == AssignmentStatus.COMPLETED:
                fields["completed_at"] = datetime.now(UTC)

            assignment = await self.repo.update_assignment(assignment_id, **fields)
            response = self._to_response(assignment)

        await self.activity.log(
            user_id=changed_by,
            user_type=actor_type,
            action=ACTION_ASSIGNMENT_STATUS_UPDATE,
            entity_type=ENTITY_VENDOR_ASSIGNMENT,
            entity_id=assignment_id,
            metadata={
                "old_status": old_status.value,
                "new_status": new_status.value,
                "order_id": str(response.order_id),
            },
        )
        logger.info(
            "Vendor assignment %s transitioned %s -> %s",
            assignment_id, old_status.value, new_status.value,
        )
        return response

    # ------------------------------------------------------------------
    # Vendor views
    # ------------------------------------------------------------------

    async def list_vendor_assignments(
        self,
        vendor_id: uuid.UUID,
        status: AssignmentStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> VendorAssignmentListResponse:
        await self._get_vendor(vendor_id)
        if date_from and date_to and date_from > date_to:
            raise ValidationException("date_from must not be after date_to")

        assignments, total = await self.repo.list_vendor_assignments(
            vendor_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
        return VendorAssignmentListResponse(
            items=[self._to_response(a) for a in assignments],
            total=total,
            limit=limit,
            offset=offset,
        )
