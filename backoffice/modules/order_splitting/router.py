"""Order splitting and vendor assignment API routers."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database.session import get_db
from backoffice.exceptions import ForbiddenException
from backoffice.models.enums import AssignmentStatus
from backoffice.modules.access.auth import (
    AuthenticatedUser,
    get_current_user,
    require_admin,
    require_vendor_access,
)
from backoffice.modules.activity.service import ActivityLogger
from backoffice.modules.order_splitting.assignment_service import AssignmentService
from backoffice.modules.order_splitting.report_service import SplittingReportService
from backoffice.modules.order_splitting.repository import (
    AssignmentRepository,
    SqlAssignmentRepository,
)
from backoffice.modules.order_splitting.schemas import (
    AssignmentRemovalResult,
    AssignmentResult,
    AssignmentStatusUpdate,
    FullAssignmentCreate,
    OrderSplittingReport,
    PartialAssignmentCreate,
    SplittingAnalytics,
    VendorAssignmentListResponse,
    VendorAssignmentResponse,
    VendorAssignmentStats,
)
from backoffice.schemas.responses import ApiResponse

router = APIRouter(prefix="/order-splitting", tags=["order-splitting"])
assignment_router = APIRouter(prefix="/assignments", tags=["assignments"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_assignment_repository(db: AsyncSession = Depends(get_db)) -> AssignmentRepository:
    return SqlAssignmentRepository(db)


def get_activity_logger(
    request: Request, db: AsyncSession = Depends(get_db)
) -> ActivityLogger:
    return ActivityLogger(db, request)


def get_assignment_service(
    repo: AssignmentRepository = Depends(get_assignment_repository),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> AssignmentService:
    return AssignmentService(repo, activity)


def get_report_service(
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> SplittingReportService:
    return SplittingReportService(repo)


# ---------------------------------------------------------------------------
# Order splitting
# ---------------------------------------------------------------------------


@router.post(
    "/assign-partial",
    response_model=ApiResponse[AssignmentResult],
    status_code=201,
)
async def create_partial_assignment(
    body: PartialAssignmentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: AssignmentService = Depends(get_assignment_service),
):
    """Assign item quantities of an order to a vendor (admin only)."""
    require_admin(user)
    result = await svc.create_partial_assignment(
        order_id=body.order_id,
        vendor_id=body.vendor_id,
        items=body.items,
        assigned_by=user.id,
        notes=body.notes,
    )
    return ApiResponse(message="Partial assignment created successfully", data=result)


@router.get("/order/{order_id}", response_model=ApiResponse[OrderSplittingReport])
async def get_order_splitting(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: SplittingReportService = Depends(get_report_service),
):
    """Per-item assigned/remaining quantities for one order."""
    report = await svc.get_order_splitting(order_id)
    if not user.is_admin and all(
        a.vendor_id != user.vendor_id for a in report.vendor_assignments
    ):
        raise ForbiddenException("This order is not assigned to you")
    return ApiResponse(data=report)


@router.delete(
    "/item-assignment/{item_assignment_id}",
    response_model=ApiResponse[AssignmentRemovalResult],
)
async def remove_item_assignment(
    item_assignment_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: AssignmentService = Depends(get_assignment_service),
):
    """Remove one item assignment (admin only)."""
    require_admin(user)
    result = await svc.remove_item_assignment(item_assignment_id, removed_by=user.id)
    return ApiResponse(message="Item assignment removed successfully", data=result)


@router.get("/analytics", response_model=ApiResponse[SplittingAnalytics])
async def get_splitting_analytics(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    svc: SplittingReportService = Depends(get_report_service),
):
    """Aggregate splitting figures, optionally limited to an order date range (admin only)."""
    require_admin(user)
    analytics = await svc.get_splitting_analytics(date_from=date_from, date_to=date_to)
    return ApiResponse(data=analytics)


# ---------------------------------------------------------------------------
# Vendor assignments
# ---------------------------------------------------------------------------


@assignment_router.post("", response_model=ApiResponse[AssignmentResult], status_code=201)
async def create_full_assignment(
    body: FullAssignmentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: AssignmentService = Depends(get_assignment_service),
):
    """Assign a whole order to a vendor (admin only)."""
    require_admin(user)
    result = await svc.create_full_assignment(
        order_id=body.order_id,
        vendor_id=body.vendor_id,
        assigned_by=user.id,
        items=body.items,
        notes=body.notes,
    )
    return ApiResponse(message="Vendor assigned successfully", data=result)


@assignment_router.patch(
    "/{assignment_id}/status", response_model=ApiResponse[VendorAssignmentResponse]
)
async def update_assignment_status(
    assignment_id: uuid.UUID,
    body: AssignmentStatusUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    svc: AssignmentService = Depends(get_assignment_service),
):
    """Advance an assignment's status (admin, or the vendor that owns it)."""
    assignment = await svc.update_assignment_status(
        assignment_id,
        body.status,
        changed_by=user.id,
        actor_type=user.user_type,
        actor_vendor_id=user.vendor_id,
    )
    return ApiResponse(message="Assignment status updated successfully", data=assignment)


@assignment_router.get(
    "/vendor/{vendor_id}", response_model=ApiResponse[VendorAssignmentListResponse]
)
async def list_vendor_assignments(
    vendor_id: uuid.UUID,
    status: AssignmentStatus | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    svc: AssignmentService = Depends(get_assignment_service),
):
    """List a vendor's assignments, newest first."""
    require_vendor_access(user, vendor_id)
    page = await svc.list_vendor_assignments(
        vendor_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(data=page)


@assignment_router.get(
    "/vendor/{vendor_id}/stats", response_model=ApiResponse[VendorAssignmentStats]
)
async def get_vendor_stats(
    vendor_id: uuid.UUID,
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    svc: SplittingReportService = Depends(get_report_service),
):
    """Assignment counts and commission totals for a vendor."""
    require_vendor_access(user, vendor_id)
    stats = await svc.get_vendor_stats(vendor_id, date_from=date_from, date_to=date_to)
    return ApiResponse(data=stats)
