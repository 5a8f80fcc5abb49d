"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from backoffice.modules.order_splitting.router import assignment_router
from backoffice.modules.order_splitting.router import router as order_splitting_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(order_splitting_router)
v1_router.include_router(assignment_router)
