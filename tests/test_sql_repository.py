"""Unit tests for SqlAssignmentRepository using a mocked AsyncSession."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from backoffice.models.enums import AssignmentStatus
from backoffice.models.vendor_assignment import VendorAssignment
from backoffice.modules.order_splitting.repository import (
    SqlAssignmentRepository,
    completion_rate,
    order_date_window,
)


def _nested_cm():
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=None)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def _make_db():
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.begin_nested = MagicMock(return_value=_nested_cm())
    return db


def _sql(db) -> str:
    statement = db.execute.await_args.args[0]
    return str(statement.compile(dialect=postgresql.dialect()))


# ── Helpers ──────────────────────────────────────────────────────────────


def test_order_date_window_inclusive_days():
    start, end = order_date_window(date(2026, 3, 1), date(2026, 3, 31))

    assert start.isoformat() == "2026-03-01T00:00:00+00:00"
    assert end.isoformat() == "2026-04-01T00:00:00+00:00"


def test_order_date_window_open_ended():
    assert order_date_window(None, None) == (None, None)


def test_completion_rate():
    assert completion_rate(1, 3) == Decimal("33.33")
    assert completion_rate(0, 0) == Decimal("0.00")


# ── Queries ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_transaction_opens_savepoint():
    db = _make_db()
    repo = SqlAssignmentRepository(db)

    async with repo.transaction():
        pass

    db.begin_nested.assert_called_once()


@pytest.mark.asyncio
async def test_get_order_returns_none_when_missing():
    db = _make_db()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db.execute.return_value = result

    assert await SqlAssignmentRepository(db).get_order(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_get_order_item_locks_row_when_requested():
    db = _make_db()
    item = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = item
    db.execute.return_value = result
    repo = SqlAssignmentRepository(db)

    assert await repo.get_order_item(uuid.uuid4(), uuid.uuid4(), for_update=True) is item
    assert "FOR UPDATE" in _sql(db)

    await repo.get_order_item(uuid.uuid4(), uuid.uuid4())
    assert "FOR UPDATE" not in _sql(db)


@pytest.mark.asyncio
async def test_get_assigned_quantity_defaults_to_zero():
    db = _make_db()
    result = MagicMock()
    result.scalar.return_value = None
    db.execute.return_value = result

    assert await SqlAssignmentRepository(db).get_assigned_quantity(uuid.uuid4()) == 0


@pytest.mark.asyncio
async def test_create_assignment_adds_and_flushes():
    db = _make_db()
    order_id, vendor_id = uuid.uuid4(), uuid.uuid4()

    assignment = await SqlAssignmentRepository(db).create_assignment(
        order_id=order_id, vendor_id=vendor_id, commission_amount=Decimal("2.00")
    )

    assert isinstance(assignment, VendorAssignment)
    assert assignment.order_id == order_id
    db.add.assert_called_once_with(assignment)
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_assignment_applies_fields():
    db = _make_db()
    assignment = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = assignment
    db.execute.return_value = result

    updated = await SqlAssignmentRepository(db).update_assignment(
        uuid.uuid4(), status=AssignmentStatus.ACCEPTED
    )

    assert updated is assignment
    assert assignment.status == AssignmentStatus.ACCEPTED
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_missing_assignment_raises():
    db = _make_db()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db.execute.return_value = result

    with pytest.raises(LookupError):
        await SqlAssignmentRepository(db).update_assignment(uuid.uuid4(), notes="x")


@pytest.mark.asyncio
async def test_splitting_stats_empty():
    db = _make_db()
    result = MagicMock()
    result.one.return_value = (0, 0, 0, None)
    db.execute.return_value = result

    stats = await SqlAssignmentRepository(db).get_splitting_stats()

    assert stats.split_orders == 0
    assert stats.total_split_amount == Decimal("0.00")
    assert stats.avg_split_quantity == 0.0


@pytest.mark.asyncio
async def test_splitting_stats_filters_by_order_date():
    db = _make_db()
    result = MagicMock()
    result.one.return_value = (2, 1, Decimal("50"), Decimal("3.5"))
    db.execute.return_value = result

    stats = await SqlAssignmentRepository(db).get_splitting_stats(
        date_from=date(2026, 3, 1), date_to=date(2026, 3, 31)
    )

    assert stats.total_split_amount == Decimal("50.00")
    assert stats.avg_split_quantity == pytest.approx(3.5)
    assert "orders.order_date >=" in _sql(db)
    assert "orders.order_date <" in _sql(db)


@pytest.mark.asyncio
async def test_vendor_distribution_rows():
    db = _make_db()
    vendor_id = uuid.uuid4()
    result = MagicMock()
    result.all.return_value = [(vendor_id, "Acme Supplies", 2, Decimal("50"))]
    db.execute.return_value = result

    (entry,) = await SqlAssignmentRepository(db).get_vendor_distribution()

    assert entry.vendor_id == vendor_id
    assert entry.assignments_count == 2
    assert entry.total_amount == Decimal("50.00")


@pytest.mark.asyncio
async def test_vendor_stats():
    db = _make_db()
    result = MagicMock()
    result.one.return_value = (4, Decimal("12.5"), 1, 2, Decimal("87.5"))
    db.execute.return_value = result

    stats = await SqlAssignmentRepository(db).get_vendor_stats(uuid.uuid4())

    assert stats.total_assignments == 4
    assert stats.total_commission == Decimal("12.50")
    assert stats.completed_assignments == 1
    assert stats.pending_assignments == 2
    assert stats.completion_rate == Decimal("25.00")
    assert stats.average_order_value == Decimal("87.50")
