from decimal import Decimal
from typing import Optional

from src.core.money_requests.models import (
    MoneyRequestAction,
    MoneyRequestRecord,
    MoneyRequestStatus,
    RoutingSnapshot,
)

REVIEW_STATUSES: set[MoneyRequestStatus] = {"Pending", "CEO Review", "Finance Review"}
TERMINAL_STATUSES: set[MoneyRequestStatus] = {"Rejected", "Disbursed"}

# Pending -> approve is resolved by route_after_manager_approval.
VALID_TRANSITIONS: dict[tuple[MoneyRequestStatus, MoneyRequestAction], MoneyRequestStatus] = {
    ("Pending", "reject"): "Rejected",
    ("CEO Review", "approve"): "Finance Review",
    ("CEO Review", "reject"): "Rejected",
    ("Finance Review", "approve"): "Approved",
    ("Finance Review", "reject"): "Rejected",
    ("Approved", "disburse"): "Disbursed",
}

MANAGER_STEP = "Manager Review"
CEO_STEP = "CEO Approval"
FINANCE_STEP = "Finance Review"
APPROVED_STEP = "Approved"
DISBURSED_STEP = "Disbursed"


def is_action_allowed(*, status: MoneyRequestStatus, action: MoneyRequestAction) -> bool:
    if status in TERMINAL_STATUSES:
        return False
    if status == "Pending" and action == "approve":
        return True
    return (status, action) in VALID_TRANSITIONS


def resolve_transition(
    *,
    status: MoneyRequestStatus,
    action: MoneyRequestAction,
    routing: Optional[RoutingSnapshot] = None,
) -> Optional[MoneyRequestStatus]:
    if status == "Pending" and action == "approve":
        if routing is None:
            return None
        return "CEO Review" if routing.ceo_review_required else "Finance Review"
    return VALID_TRANSITIONS.get((status, action))


def route_after_manager_approval(*, amount: Decimal, approval_threshold: Decimal) -> RoutingSnapshot:
    return RoutingSnapshot(
        approval_threshold=approval_threshold,
        amount=amount,
        ceo_review_required=amount > approval_threshold,
    )


def routing_snapshot(request: MoneyRequestRecord) -> Optional[RoutingSnapshot]:
    for entry in request.approval_history:
        if entry.routing is not None:
            return entry.routing
    return None


def required_steps(
    request: MoneyRequestRecord, *, approval_threshold: Decimal
) -> tuple[list[str], bool]:
    """Ordered approval chain for display.

    Uses the snapshot taken at manager approval when one exists, so the chain
    shown for an in-flight request never drifts with the live threshold.
    """
    snapshot = routing_snapshot(request)
    if snapshot is not None:
        ceo_required = snapshot.ceo_review_required
    else:
        ceo_required = request.amount > approval_threshold
    steps = [MANAGER_STEP]
    if ceo_required:
        steps.append(CEO_STEP)
    steps.extend([FINANCE_STEP, APPROVED_STEP, DISBURSED_STEP])
    return steps, ceo_required
