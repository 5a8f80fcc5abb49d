"""Unit tests for AssignmentService against the in-memory repository."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from backoffice.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from backoffice.models.enums import ActorType, AssignmentStatus, AssignmentType
from backoffice.modules.order_splitting.assignment_service import AssignmentService
from backoffice.modules.order_splitting.schemas import AssignmentItemInput


def _items(*pairs) -> list[AssignmentItemInput]:
    return [AssignmentItemInput(order_item_id=item.id, quantity=qty) for item, qty in pairs]


def test_unknown_quantity_policy_rejected(repo, activity):
    with pytest.raises(ValueError):
        AssignmentService(repo, activity, quantity_policy="optimistic")


# ── Partial assignment ───────────────────────────────────────────────────


class TestCreatePartialAssignment:
    @pytest.mark.asyncio
    async def test_prices_items_and_commission(self, service, repo, order, vendor, widget):
        result = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4))
        )

        assert result.total_amount == Decimal("20.00")
        assert result.assignment.commission_amount == Decimal("2.00")
        assert result.assignment.assignment_type == AssignmentType.PARTIAL
        assert result.assignment.status == AssignmentStatus.ASSIGNED
        assert result.assignment.vendor.company_name == "Acme Supplies"
        assert result.items[0].assigned_amount == Decimal("20.00")
        assert result.items[0].product_name == "Widget"

        (stored,) = repo.item_assignments.values()
        assert stored.quantity == 4
        assert stored.assigned_amount == Decimal("20.00")
        assert stored.vendor_assignment_id == result.assignment.id

    @pytest.mark.asyncio
    async def test_multiple_items(self, service, order, vendor, widget, gadget):
        result = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4), (gadget, 2))
        )

        assert result.total_amount == Decimal("45.00")
        assert result.assignment.commission_amount == Decimal("4.50")
        assert len(result.items) == 2

    @pytest.mark.asyncio
    async def test_logs_admin_action(self, service, activity, order, vendor, widget):
        admin_id = uuid.uuid4()
        await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4)), assigned_by=admin_id
        )

        activity.log_admin_action.assert_awaited_once()
        args = activity.log_admin_action.await_args.args
        assert args[0] == admin_id
        assert args[1] == "order_partial_assignment"
        assert args[2] == "order"
        assert args[3] == order.id
        assert args[4]["total_amount"] == "20.00"
        assert args[4]["items_count"] == 1

    @pytest.mark.asyncio
    async def test_failed_audit_write_keeps_assignment(
        self, service, repo, activity, order, vendor, widget
    ):
        activity.log_admin_action.return_value = False

        result = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4))
        )

        assert result.assignment.id in repo.assignments

    @pytest.mark.asyncio
    async def test_vendor_without_rate_earns_nothing(self, service, repo, order, widget):
        vendor = repo.add_vendor("Free Rider")
        result = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 2))
        )
        assert result.assignment.commission_amount == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_quantity_above_item_total_rejected(
        self, service, repo, activity, order, vendor, widget
    ):
        with pytest.raises(ValidationException, match="exceeds available quantity"):
            await service.create_partial_assignment(order.id, vendor.id, _items((widget, 11)))

        assert repo.assignments == {}
        assert repo.item_assignments == {}
        activity.log_admin_action.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exact_item_total_allowed(self, service, order, vendor, widget):
        result = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 10))
        )
        assert result.total_amount == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_order_not_found(self, service, vendor, widget):
        with pytest.raises(NotFoundException, match="Order not found"):
            await service.create_partial_assignment(uuid.uuid4(), vendor.id, _items((widget, 1)))

    @pytest.mark.asyncio
    async def test_vendor_not_found(self, service, order, widget):
        with pytest.raises(NotFoundException, match="Vendor not found"):
            await service.create_partial_assignment(order.id, uuid.uuid4(), _items((widget, 1)))

    @pytest.mark.asyncio
    async def test_item_from_another_order(self, service, repo, order, vendor):
        other = repo.add_order(
            "ORD-2002", [{"product_name": "Bolt", "quantity": 5, "unit_price": "1.00"}]
        )
        foreign = next(i for i in repo.order_items.values() if i.order_id == other.id)

        with pytest.raises(NotFoundException, match="not found in this order"):
            await service.create_partial_assignment(order.id, vendor.id, _items((foreign, 1)))

    @pytest.mark.asyncio
    async def test_empty_items(self, service, order, vendor):
        with pytest.raises(ValidationException, match="Items array is required"):
            await service.create_partial_assignment(order.id, vendor.id, [])

    @pytest.mark.asyncio
    async def test_duplicate_item_rejected(self, service, order, vendor, widget):
        with pytest.raises(ValidationException, match="more than once"):
            await service.create_partial_assignment(
                order.id, vendor.id, _items((widget, 1), (widget, 2))
            )

    @pytest.mark.asyncio
    async def test_one_bad_line_writes_nothing(
        self, service, repo, order, vendor, widget, gadget
    ):
        with pytest.raises(ValidationException):
            await service.create_partial_assignment(
                order.id, vendor.id, _items((widget, 4), (gadget, 5))
            )

        assert repo.assignments == {}
        assert repo.item_assignments == {}


# ── Quantity policies ────────────────────────────────────────────────────


class TestQuantityPolicy:
    @pytest.mark.asyncio
    async def test_remaining_policy_rejects_over_allocation(
        self, service, repo, order, vendor, widget
    ):
        second = repo.add_vendor("Beta Traders", "5")
        await service.create_partial_assignment(order.id, vendor.id, _items((widget, 6)))

        with pytest.raises(ConflictException, match="remaining unassigned quantity 4"):
            await service.create_partial_assignment(order.id, second.id, _items((widget, 5)))

        assert len(repo.assignments) == 1

    @pytest.mark.asyncio
    async def test_remaining_policy_allows_the_rest(self, service, repo, order, vendor, widget):
        second = repo.add_vendor("Beta Traders", "5")
        await service.create_partial_assignment(order.id, vendor.id, _items((widget, 6)))
        result = await service.create_partial_assignment(
            order.id, second.id, _items((widget, 4))
        )

        assert result.total_amount == Decimal("20.00")
        assert result.assignment.commission_amount == Decimal("1.00")

    @pytest.mark.asyncio
    async def test_nominal_policy_only_checks_item_total(
        self, nominal_service, repo, order, vendor, widget
    ):
        second = repo.add_vendor("Beta Traders", "5")
        await nominal_service.create_partial_assignment(order.id, vendor.id, _items((widget, 6)))
        await nominal_service.create_partial_assignment(order.id, second.id, _items((widget, 5)))

        assert await repo.get_assigned_quantity(widget.id) == 11

    @pytest.mark.asyncio
    async def test_nominal_policy_still_rejects_above_total(
        self, nominal_service, order, vendor, widget
    ):
        with pytest.raises(ValidationException, match="exceeds available quantity 10"):
            await nominal_service.create_partial_assignment(
                order.id, vendor.id, _items((widget, 11))
            )


# ── Full assignment ──────────────────────────────────────────────────────


class TestCreateFullAssignment:
    @pytest.mark.asyncio
    async def test_without_items_uses_order_total(self, service, repo, order, vendor):
        result = await service.create_full_assignment(order.id, vendor.id)

        assert order.total_amount == Decimal("87.50")
        assert result.total_amount == Decimal("87.50")
        assert result.assignment.commission_amount == Decimal("8.75")
        assert result.assignment.assignment_type == AssignmentType.FULL
        assert result.items == []
        assert repo.item_assignments == {}

    @pytest.mark.asyncio
    async def test_with_items_stores_rows(self, service, repo, order, vendor, widget):
        result = await service.create_full_assignment(
            order.id, vendor.id, items=_items((widget, 10))
        )

        assert result.total_amount == Decimal("50.00")
        assert result.assignment.commission_amount == Decimal("5.00")
        assert len(repo.item_assignments) == 1

    @pytest.mark.asyncio
    async def test_same_vendor_twice_conflicts(self, service, repo, order, vendor):
        await service.create_full_assignment(order.id, vendor.id)

        with pytest.raises(ConflictException, match="already assigned"):
            await service.create_full_assignment(order.id, vendor.id)
        assert len(repo.assignments) == 1

    @pytest.mark.asyncio
    async def test_logs_assign_vendor_action(self, service, activity, order, vendor):
        await service.create_full_assignment(order.id, vendor.id)

        args = activity.log_admin_action.await_args.args
        assert args[1] == "order_assign_vendor"
        assert args[4]["assignment_type"] == "full"


# ── Removal ──────────────────────────────────────────────────────────────


class TestRemoveItemAssignment:
    @pytest.mark.asyncio
    async def test_recomputes_commission(self, service, repo, order, vendor, widget, gadget):
        created = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4), (gadget, 2))
        )
        gadget_row = next(
            ia for ia in repo.item_assignments.values() if ia.order_item_id == gadget.id
        )

        result = await service.remove_item_assignment(gadget_row.id)

        assert result.assignment_deleted is False
        assert result.commission_amount == Decimal("2.00")
        assert result.quantity == 2
        parent = await repo.get_assignment(created.assignment.id)
        assert parent.commission_amount == Decimal("2.00")
        assert len(repo.item_assignments) == 1

    @pytest.mark.asyncio
    async def test_recompute_uses_current_vendor_rate(
        self, service, repo, order, vendor, widget, gadget
    ):
        created = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4), (gadget, 2))
        )
        vendor.commission_rate = Decimal("20")
        gadget_row = next(
            ia for ia in repo.item_assignments.values() if ia.order_item_id == gadget.id
        )

        await service.remove_item_assignment(gadget_row.id)

        parent = await repo.get_assignment(created.assignment.id)
        assert parent.commission_amount == Decimal("4.00")

    @pytest.mark.asyncio
    async def test_last_item_deletes_assignment(self, service, repo, activity, order, vendor, widget):
        created = await service.create_partial_assignment(
            order.id, vendor.id, _items((widget, 4))
        )
        (row,) = repo.item_assignments.values()

        result = await service.remove_item_assignment(row.id, removed_by=uuid.uuid4())

        assert result.assignment_deleted is True
        assert result.commission_amount is None
        assert await repo.get_assignment(created.assignment.id) is None
        assert repo.item_assignments == {}
        assert activity.log_admin_action.await_args.args[1] == "order_item_assignment_removed"

    @pytest.mark.asyncio
    async def test_unknown_item_assignment(self, service):
        with pytest.raises(NotFoundException, match="Item assignment not found"):
            await service.remove_item_assignment(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_freed_quantity_can_be_reassigned(
        self, service, repo, order, vendor, widget
    ):
        await service.create_partial_assignment(order.id, vendor.id, _items((widget, 10)))
        (row,) = repo.item_assignments.values()
        await service.remove_item_assignment(row.id)

        second = repo.add_vendor("Beta Traders", "5")
        result = await service.create_partial_assignment(
            order.id, second.id, _items((widget, 10))
        )
        assert result.total_amount == Decimal("50.00")


# ── Status transitions ───────────────────────────────────────────────────


class TestUpdateAssignmentStatus:
    @pytest.mark.asyncio
    async def test_accept_sets_timestamp(self, service, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)

        updated = await service.update_assignment_status(
            created.assignment.id, AssignmentStatus.ACCEPTED
        )

        assert updated.status == AssignmentStatus.ACCEPTED
        assert updated.accepted_at is not None
        assert updated.completed_at is None

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, service, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)
        assignment_id = created.assignment.id

        await service.update_assignment_status(assignment_id, AssignmentStatus.ACCEPTED)
        await service.update_assignment_status(assignment_id, AssignmentStatus.IN_PROGRESS)
        done = await service.update_assignment_status(assignment_id, AssignmentStatus.COMPLETED)

        assert done.status == AssignmentStatus.COMPLETED
        assert done.completed_at is not None

    @pytest.mark.asyncio
    async def test_skipping_a_step_conflicts(self, service, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)

        with pytest.raises(ConflictException, match="Cannot transition"):
            await service.update_assignment_status(
                created.assignment.id, AssignmentStatus.COMPLETED
            )

    @pytest.mark.asyncio
    async def test_terminal_status_is_final(self, service, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)
        await service.update_assignment_status(created.assignment.id, AssignmentStatus.REJECTED)

        with pytest.raises(ConflictException):
            await service.update_assignment_status(
                created.assignment.id, AssignmentStatus.ACCEPTED
            )

    @pytest.mark.asyncio
    async def test_vendor_updates_own_assignment(self, service, activity, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)
        user_id = uuid.uuid4()

        await service.update_assignment_status(
            created.assignment.id,
            AssignmentStatus.ACCEPTED,
            changed_by=user_id,
            actor_type=ActorType.VENDOR,
            actor_vendor_id=vendor.id,
        )

        kwargs = activity.log.await_args.kwargs
        assert kwargs["user_id"] == user_id
        assert kwargs["user_type"] == ActorType.VENDOR
        assert kwargs["action"] == "vendor_assignment_status_update"
        assert kwargs["metadata"] == {
            "old_status": "assigned",
            "new_status": "accepted",
            "order_id": str(order.id),
        }

    @pytest.mark.asyncio
    async def test_vendor_cannot_touch_other_vendor(self, service, order, vendor):
        created = await service.create_full_assignment(order.id, vendor.id)

        with pytest.raises(ForbiddenException):
            await service.update_assignment_status(
                created.assignment.id,
                AssignmentStatus.ACCEPTED,
                actor_type=ActorType.VENDOR,
                actor_vendor_id=uuid.uuid4(),
            )

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, service):
        with pytest.raises(NotFoundException, match="Assignment not found"):
            await service.update_assignment_status(uuid.uuid4(), AssignmentStatus.ACCEPTED)


# ── Vendor listing ───────────────────────────────────────────────────────


class TestListVendorAssignments:
    @pytest.mark.asyncio
    async def test_lists_with_order_summary(self, service, repo, order, vendor):
        other = repo.add_order(
            "ORD-2002", [{"product_name": "Bolt", "quantity": 5, "unit_price": "1.00"}]
        )
        await service.create_full_assignment(order.id, vendor.id)
        await service.create_full_assignment(other.id, vendor.id)

        page = await service.list_vendor_assignments(vendor.id)

        assert page.total == 2
        assert {a.order.order_number for a in page.items} == {"ORD-1001", "ORD-2002"}

    @pytest.mark.asyncio
    async def test_status_filter_and_paging(self, service, repo, order, vendor):
        other = repo.add_order(
            "ORD-2002", [{"product_name": "Bolt", "quantity": 5, "unit_price": "1.00"}]
        )
        first = await service.create_full_assignment(order.id, vendor.id)
        await service.create_full_assignment(other.id, vendor.id)
        await service.update_assignment_status(first.assignment.id, AssignmentStatus.ACCEPTED)

        accepted = await service.list_vendor_assignments(
            vendor.id, status=AssignmentStatus.ACCEPTED
        )
        page = await service.list_vendor_assignments(vendor.id, limit=1, offset=1)

        assert accepted.total == 1
        assert accepted.items[0].id == first.assignment.id
        assert page.total == 2
        assert len(page.items) == 1

    @pytest.mark.asyncio
    async def test_unknown_vendor(self, service):
        with pytest.raises(NotFoundException, match="Vendor not found"):
            await service.list_vendor_assignments(uuid.uuid4())
