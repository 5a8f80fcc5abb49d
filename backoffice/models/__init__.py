# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from backoffice.models.activity_log import ActivityLog
from backoffice.models.enums import (
    ActorType,
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

__all__ = [
    "ActivityLog",
    "ActorType",
    "AssignmentStatus",
    "AssignmentType",
    "Order",
    "OrderItem",
    "OrderItemAssignment",
    "OrderPlatform",
    "OrderStatus",
    "Vendor",
    "VendorAssignment",
    "VendorStatus",
]
