"""Assignment status transitions and audit action names."""

from __future__ import annotations

from backoffice.models.enums import AssignmentStatus

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, set[AssignmentStatus]] = {
    AssignmentStatus.ASSIGNED: {
        AssignmentStatus.ACCEPTED,
        AssignmentStatus.REJECTED,
        AssignmentStatus.CANCELLED,
    },
    AssignmentStatus.ACCEPTED: {
        AssignmentStatus.IN_PROGRESS,
        AssignmentStatus.CANCELLED,
    },
    AssignmentStatus.IN_PROGRESS: {
        AssignmentStatus.COMPLETED,
        AssignmentStatus.CANCELLED,
    },
}

# ---------------------------------------------------------------------------
# Quantity policies
# ---------------------------------------------------------------------------

QUANTITY_POLICY_NOMINAL = "nominal"
QUANTITY_POLICY_REMAINING = "remaining"

# ---------------------------------------------------------------------------
# Audit action names
# ---------------------------------------------------------------------------

ACTION_PARTIAL_ASSIGNMENT = "order_partial_assignment"
ACTION_FULL_ASSIGNMENT = "order_assign_vendor"
ACTION_ITEM_ASSIGNMENT_REMOVED = "order_item_assignment_removed"
ACTION_ASSIGNMENT_STATUS_UPDATE = "vendor_assignment_status_update"

ENTITY_ORDER = "order"
ENTITY_ITEM_ASSIGNMENT = "order_item_assignment"
ENTITY_VENDOR_ASSIGNMENT = "vendor_assignment"
