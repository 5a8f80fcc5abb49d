"""Pydantic v2 schemas for order splitting and vendor assignment endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from backoffice.models.enums import (
    AssignmentStatus,
    AssignmentType,
    OrderPlatform,
    OrderStatus,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AssignmentItemInput(BaseModel):
    order_item_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class PartialAssignmentCreate(BaseModel):
    order_id: uuid.UUID
    vendor_id: uuid.UUID
    items: list[AssignmentItemInput] = Field(..., min_length=1)
    notes: str | None = Field(None, max_length=2000)


class FullAssignmentCreate(BaseModel):
    order_id: uuid.UUID
    vendor_id: uuid.UUID
    items: list[AssignmentItemInput] | None = None
    notes: str | None = Field(None, max_length=2000)


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VendorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_name: str
    commission_rate: Decimal | None = None


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_name: str | None = None
    total_amount: Decimal
    order_date: datetime
    order_status: OrderStatus
    platform: OrderPlatform


class OrderResponse(OrderSummary):
    external_order_id: str | None = None
    customer_email: str | None = None
    currency: str
    created_at: datetime
    updated_at: datetime


class VendorAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    vendor_id: uuid.UUID
    assigned_by: uuid.UUID | None = None
    assignment_type: AssignmentType
    commission_amount: Decimal
    status: AssignmentStatus
    notes: str | None = None
    assigned_at: datetime
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    vendor: VendorSummary | None = None
    order: OrderSummary | None = None


class ValidatedItem(BaseModel):
    order_item_id: uuid.UUID
    quantity: int
    assigned_amount: Decimal
    product_name: str
    sku: str | None = None


class AssignmentResult(BaseModel):
    """Outcome of a partial or full assignment."""

    assignment: VendorAssignmentResponse
    items: list[ValidatedItem] = Field(default_factory=list)
    total_amount: Decimal


class AssignmentRemovalResult(BaseModel):
    item_assignment_id: uuid.UUID
    vendor_assignment_id: uuid.UUID
    order_item_id: uuid.UUID
    quantity: int
    assignment_deleted: bool
    commission_amount: Decimal | None = None


class ItemAssignmentDetail(BaseModel):
    """An item assignment joined with its order item, parent assignment and vendor."""

    id: uuid.UUID
    vendor_assignment_id: uuid.UUID
    order_item_id: uuid.UUID
    quantity: int
    assigned_amount: Decimal
    created_at: datetime
    product_name: str
    sku: str | None = None
    total_quantity: int
    unit_price: Decimal
    vendor_id: uuid.UUID | None = None
    vendor_name: str | None = None
    assignment_status: AssignmentStatus


class ItemAssignmentSummary(BaseModel):
    order_item_id: uuid.UUID
    product_name: str
    sku: str | None = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    assigned_quantity: int
    remaining_quantity: int
    is_fully_assigned: bool
    assignments: list[ItemAssignmentDetail] = Field(default_factory=list)


class OrderSplittingReport(BaseModel):
    order: OrderResponse
    assignment_summary: list[ItemAssignmentSummary]
    vendor_assignments: list[VendorAssignmentResponse]


class SplittingStats(BaseModel):
    split_orders: int = 0
    vendors_involved: int = 0
    total_split_amount: Decimal = Decimal("0.00")
    avg_split_quantity: float = 0.0


class VendorDistributionEntry(BaseModel):
    vendor_id: uuid.UUID
    company_name: str | None = None
    assignments_count: int
    total_amount: Decimal


class SplittingAnalytics(BaseModel):
    stats: SplittingStats
    vendor_distribution: list[VendorDistributionEntry]


class VendorAssignmentStats(BaseModel):
    total_assignments: int = 0
    total_commission: Decimal = Decimal("0.00")
    completed_assignments: int = 0
    pending_assignments: int = 0
    completion_rate: Decimal = Decimal("0.00")
    average_order_value: Decimal = Decimal("0.00")


class VendorAssignmentListResponse(BaseModel):
    items: list[VendorAssignmentResponse]
    total: int
    limit: int
    offset: int
