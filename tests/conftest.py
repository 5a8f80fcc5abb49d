"""Shared fixtures: an in-memory assignment store seeded with one vendor and one order."""

from unittest.mock import AsyncMock

import pytest

from backoffice.modules.order_splitting.assignment_service import AssignmentService
from backoffice.modules.order_splitting.memory import InMemoryAssignmentRepository
from backoffice.modules.order_splitting.report_service import SplittingReportService


@pytest.fixture
def repo() -> InMemoryAssignmentRepository:
    return InMemoryAssignmentRepository()


@pytest.fixture
def vendor(repo):
    return repo.add_vendor("Acme Supplies", "10")


@pytest.fixture
def order(repo):
    return repo.add_order(
        "ORD-1001",
        [
            {"product_name": "Widget", "sku": "W-1", "quantity": 10, "unit_price": "5.00"},
            {"product_name": "Gadget", "sku": "G-1", "quantity": 3, "unit_price": "12.50"},
        ],
        customer_name="Jane Buyer",
    )


@pytest.fixture
def widget(repo, order):
    return next(
        i for i in repo.order_items.values()
        if i.order_id == order.id and i.product_name == "Widget"
    )


@pytest.fixture
def gadget(repo, order):
    return next(
        i for i in repo.order_items.values()
        if i.order_id == order.id and i.product_name == "Gadget"
    )


@pytest.fixture
def activity() -> AsyncMock:
    logger = AsyncMock()
    logger.log.return_value = True
    logger.log_admin_action.return_value = True
    return logger


@pytest.fixture
def service(repo, activity) -> AssignmentService:
    return AssignmentService(repo, activity, quantity_policy="remaining")


@pytest.fixture
def nominal_service(repo, activity) -> AssignmentService:
    return AssignmentService(repo, activity, quantity_policy="nominal")


@pytest.fixture
def reports(repo) -> SplittingReportService:
    return SplittingReportService(repo)
