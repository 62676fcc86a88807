import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from src.core.money_requests.errors import (
    InvalidStateError,
    MissingReasonError,
    MoneyRequestValidationError,
    NoApproverAvailableError,
    NotAuthorizedError,
)
from src.core.money_requests.models import (
    ApprovalHistoryEntry,
    MoneyRequestAction,
    MoneyRequestRecord,
    MoneyRequestStatus,
    RoutingPolicy,
    RoutingSnapshot,
)
from src.core.money_requests.workflow import (
    REVIEW_STATUSES,
    is_action_allowed,
    required_steps,
    resolve_transition,
    route_after_manager_approval,
)


class ApprovalWorkflowEngine:
    """Pure state machine for money request approval routing.

    Every operation takes a record and returns a new one; inputs are never
    mutated and no I/O happens here. Persisting the result, including the
    optimistic version check, belongs to the caller.
    """

    def __init__(
        self,
        *,
        policy: RoutingPolicy,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._policy = policy
        self._clock = clock or _utc_now

    @property
    def policy(self) -> RoutingPolicy:
        return self._policy

    def submit(
        self,
        *,
        requested_by: str,
        amount: Decimal,
        currency: str = "XAF",
        title: str = "",
        description: str = "",
        category: str = "Normal",
        budget_line: str = "General",
        attachments: Iterable[str] = (),
        request_id: Optional[str] = None,
    ) -> MoneyRequestRecord:
        if not amount.is_finite() or amount <= 0:
            raise MoneyRequestValidationError("amount must be positive")
        manager = self._policy.manager_resolver(requested_by)
        if not manager:
            raise NoApproverAvailableError(f"no manager resolved for {requested_by}")

        now = self._clock()
        entry = _history_entry(
            actor_id=requested_by,
            actor_role=None,
            action="submit",
            from_status=None,
            to_status="Pending",
            timestamp=now,
        )
        return MoneyRequestRecord(
            request_id=request_id or f"mr_{uuid.uuid4().hex[:12]}",
            amount=amount,
            currency=currency,
            requested_by=requested_by,
            title=title,
            description=description,
            category=category,
            budget_line=budget_line,
            attachments=tuple(attachments),
            status="Pending",
            current_approver=manager,
            approval_history=(entry,),
            version=1,
            created_at=now,
            updated_at=now,
        )

    def approve(
        self,
        request: MoneyRequestRecord,
        actor_id: str,
        actor_role: Optional[str] = None,
        *,
        comment: Optional[str] = None,
    ) -> MoneyRequestRecord:
        self._require_action_allowed(request, "approve")
        self._require_current_approver(request, actor_id)

        routing: Optional[RoutingSnapshot] = None
        if request.status == "Pending":
            routing = route_after_manager_approval(
                amount=request.amount,
                approval_threshold=self._policy.approval_threshold,
            )
        to_status = resolve_transition(status=request.status, action="approve", routing=routing)
        next_approver = self._resolve_approver(request, to_status)

        return self._apply(
            request,
            actor_id=actor_id,
            actor_role=actor_role,
            action="approve",
            to_status=to_status,
            current_approver=next_approver,
            comment=comment,
            routing=routing,
        )

    def reject(
        self,
        request: MoneyRequestRecord,
        actor_id: str,
        reason: Optional[str],
        actor_role: Optional[str] = None,
    ) -> MoneyRequestRecord:
        self._require_action_allowed(request, "reject")
        self._require_current_approver(request, actor_id)
        normalized_reason = (reason or "").strip()
        if not normalized_reason:
            raise MissingReasonError("rejection reason is required", request=request)

        return self._apply(
            request,
            actor_id=actor_id,
            actor_role=actor_role,
            action="reject",
            to_status="Rejected",
            current_approver=None,
            comment=normalized_reason,
            rejection_reason=normalized_reason,
        )

    def disburse(
        self,
        request: MoneyRequestRecord,
        actor_id: str,
        actor_role: Optional[str] = None,
        *,
        comment: Optional[str] = None,
    ) -> MoneyRequestRecord:
        self._require_action_allowed(request, "disburse")
        if not self._policy.disbursement_authorizer(actor_id):
            raise NotAuthorizedError(
                f"{actor_id} does not hold the disbursement role", request=request
            )
        return self._apply(
            request,
            actor_id=actor_id,
            actor_role=actor_role,
            action="disburse",
            to_status="Disbursed",
            current_approver=None,
            comment=comment,
        )

    def pending_for(self, request: MoneyRequestRecord, actor_id: str) -> bool:
        return request.status in REVIEW_STATUSES and request.current_approver == actor_id

    def required_steps(self, request: MoneyRequestRecord) -> tuple[list[str], bool]:
        return required_steps(request, approval_threshold=self._policy.approval_threshold)

    def _require_action_allowed(
        self, request: MoneyRequestRecord, action: MoneyRequestAction
    ) -> None:
        if not is_action_allowed(status=request.status, action=action):
            raise InvalidStateError(
                f"cannot {action} from status {request.status}", request=request
            )

    def _require_current_approver(self, request: MoneyRequestRecord, actor_id: str) -> None:
        if not actor_id or actor_id != request.current_approver:
            raise NotAuthorizedError(
                f"{actor_id} is not the current approver", request=request
            )

    def _resolve_approver(
        self, request: MoneyRequestRecord, to_status: MoneyRequestStatus
    ) -> Optional[str]:
        if to_status == "CEO Review":
            resolver = self._policy.ceo_resolver
        elif to_status == "Finance Review":
            resolver = self._policy.finance_approver_resolver
        else:
            return None
        approver = resolver(request.requested_by)
        if not approver:
            raise NoApproverAvailableError(
                f"no approver resolved for {to_status}", request=request
            )
        return approver

    def _apply(
        self,
        request: MoneyRequestRecord,
        *,
        actor_id: str,
        actor_role: Optional[str],
        action: MoneyRequestAction,
        to_status: MoneyRequestStatus,
        current_approver: Optional[str],
        comment: Optional[str] = None,
        routing: Optional[RoutingSnapshot] = None,
        rejection_reason: Optional[str] = None,
    ) -> MoneyRequestRecord:
        now = self._clock()
        entry = _history_entry(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            from_status=request.status,
            to_status=to_status,
            timestamp=now,
            comment=comment,
            routing=routing,
        )
        return request.model_copy(
            update={
                "status": to_status,
                "current_approver": current_approver,
                "approval_history": request.approval_history + (entry,),
                "rejection_reason": rejection_reason,
                "version": request.version + 1,
                "updated_at": now,
            }
        )


def _history_entry(
    *,
    actor_id: str,
    actor_role: Optional[str],
    action: MoneyRequestAction,
    from_status: Optional[MoneyRequestStatus],
    to_status: MoneyRequestStatus,
    timestamp: datetime,
    comment: Optional[str] = None,
    routing: Optional[RoutingSnapshot] = None,
) -> ApprovalHistoryEntry:
    return ApprovalHistoryEntry(
        entry_id=f"mrh_{uuid.uuid4().hex[:12]}",
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        from_status=from_status,
        to_status=to_status,
        timestamp=timestamp,
        comment=comment,
        routing=routing,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
