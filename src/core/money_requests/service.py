import logging
from decimal import Decimal
from typing import Callable, Optional

from src.core.money_requests.engine import ApprovalWorkflowEngine
from src.core.money_requests.errors import (
    MoneyRequestConflictError,
    MoneyRequestNotFoundError,
)
from src.core.money_requests.models import (
    MoneyRequestApproveRequest,
    MoneyRequestCreateRequest,
    MoneyRequestDetailResponse,
    MoneyRequestDisburseRequest,
    MoneyRequestHistoryResponse,
    MoneyRequestListResponse,
    MoneyRequestRecord,
    MoneyRequestRejectRequest,
    MoneyRequestStatus,
    MoneyRequestSummaryResponse,
)
from src.core.money_requests.repository import MoneyRequestRepository
from src.core.money_requests.workflow import REVIEW_STATUSES

logger = logging.getLogger(__name__)

_SUMMARY_PAGE_SIZE = 500


class MoneyRequestWorkflowService:
    def __init__(
        self,
        *,
        repository: MoneyRequestRepository,
        engine: ApprovalWorkflowEngine,
        default_currency: str = "XAF",
        conflict_retries: int = 1,
    ) -> None:
        self._repository = repository
        self._engine = engine
        self._default_currency = default_currency
        self._conflict_retries = max(conflict_retries, 0)

    def create_request(self, *, payload: MoneyRequestCreateRequest) -> MoneyRequestRecord:
        request = self._engine.submit(
            requested_by=payload.requested_by,
            amount=payload.amount,
            currency=payload.currency or self._default_currency,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            budget_line=payload.budget_line,
            attachments=payload.attachments,
        )
        self._repository.create(request)
        logger.info(
            "Money request submitted. RequestID=%s Amount=%s Approver=%s",
            request.request_id,
            request.amount,
            request.current_approver,
            extra={
                "extra_fields": {
                    "money_request_id": request.request_id,
                    "action": "submit",
                    "actor_id": request.requested_by,
                    "to_status": request.status,
                }
            },
        )
        return request

    def get_request(self, *, request_id: str) -> MoneyRequestRecord:
        request = self._repository.get(request_id=request_id)
        if request is None:
            raise MoneyRequestNotFoundError(request_id)
        return request

    def get_request_detail(self, *, request_id: str) -> MoneyRequestDetailResponse:
        request = self.get_request(request_id=request_id)
        steps, ceo_review_required = self._engine.required_steps(request)
        return MoneyRequestDetailResponse(
            request=request,
            required_steps=steps,
            ceo_review_required=ceo_review_required,
        )

    def list_requests(
        self,
        *,
        status: Optional[str] = None,
        requested_by: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
    ) -> MoneyRequestListResponse:
        rows, next_cursor = self._repository.list_requests(
            status=status,
            requested_by=requested_by,
            current_approver=None,
            search=search,
            limit=limit,
            cursor=cursor,
        )
        return MoneyRequestListResponse(items=rows, next_cursor=next_cursor)

    def list_pending_for(
        self, *, actor_id: str, limit: int = 20, cursor: Optional[str] = None
    ) -> MoneyRequestListResponse:
        rows, next_cursor = self._repository.list_requests(
            status=None,
            requested_by=None,
            current_approver=actor_id,
            search=None,
            limit=limit,
            cursor=cursor,
        )
        items = [row for row in rows if self._engine.pending_for(row, actor_id)]
        return MoneyRequestListResponse(items=items, next_cursor=next_cursor)

    def get_history(self, *, request_id: str) -> MoneyRequestHistoryResponse:
        request = self.get_request(request_id=request_id)
        return MoneyRequestHistoryResponse(
            request_id=request.request_id,
            status=request.status,
            entries=list(request.approval_history),
        )

    def get_summary(self) -> MoneyRequestSummaryResponse:
        total = 0
        pending = 0
        awaiting_disbursement = 0
        pending_amount = Decimal("0")
        approved_amount = Decimal("0")
        cursor: Optional[str] = None
        while True:
            rows, cursor = self._repository.list_requests(
                status=None,
                requested_by=None,
                current_approver=None,
                search=None,
                limit=_SUMMARY_PAGE_SIZE,
                cursor=cursor,
            )
            for row in rows:
                total += 1
                if row.status in REVIEW_STATUSES:
                    pending += 1
                    pending_amount += row.amount
                if row.status == "Approved":
                    awaiting_disbursement += 1
                if row.status in {"Approved", "Disbursed"}:
                    approved_amount += row.amount
            if cursor is None:
                break
        return MoneyRequestSummaryResponse(
            total_requests=total,
            pending_requests=pending,
            pending_amount=pending_amount,
            awaiting_disbursement=awaiting_disbursement,
            approved_amount=approved_amount,
        )

    def approve_request(
        self, *, request_id: str, payload: MoneyRequestApproveRequest
    ) -> MoneyRequestRecord:
        return self._transition(
            request_id=request_id,
            expected_status=payload.expected_status,
            action_name="approve",
            actor_id=payload.actor_id,
            apply=lambda request: self._engine.approve(
                request,
                payload.actor_id,
                payload.actor_role,
                comment=payload.comment,
            ),
        )

    def reject_request(
        self, *, request_id: str, payload: MoneyRequestRejectRequest
    ) -> MoneyRequestRecord:
        return self._transition(
            request_id=request_id,
            expected_status=payload.expected_status,
            action_name="reject",
            actor_id=payload.actor_id,
            apply=lambda request: self._engine.reject(
                request,
                payload.actor_id,
                payload.reason,
                payload.actor_role,
            ),
        )

    def disburse_request(
        self, *, request_id: str, payload: MoneyRequestDisburseRequest
    ) -> MoneyRequestRecord:
        return self._transition(
            request_id=request_id,
            expected_status=payload.expected_status,
            action_name="disburse",
            actor_id=payload.actor_id,
            apply=lambda request: self._engine.disburse(
                request,
                payload.actor_id,
                payload.actor_role,
                comment=payload.comment,
            ),
        )

    def _transition(
        self,
        *,
        request_id: str,
        expected_status: Optional[MoneyRequestStatus],
        action_name: str,
        actor_id: str,
        apply: Callable[[MoneyRequestRecord], MoneyRequestRecord],
    ) -> MoneyRequestRecord:
        attempts = 0
        while True:
            current = self.get_request(request_id=request_id)
            if expected_status is not None and expected_status != current.status:
                raise MoneyRequestConflictError("expected_status mismatch", request=current)

            updated = apply(current)
            try:
                saved = self._repository.save(
                    updated,
                    expected_version=current.version,
                    expected_status=current.status,
                    expected_approver=current.current_approver,
                )
            except MoneyRequestConflictError:
                attempts += 1
                logger.warning(
                    "Money request write conflict. RequestID=%s Action=%s Attempt=%s",
                    request_id,
                    action_name,
                    attempts,
                    extra={
                        "extra_fields": {
                            "money_request_id": request_id,
                            "action": action_name,
                            "actor_id": actor_id,
                            "attempt": attempts,
                        }
                    },
                )
                if attempts > self._conflict_retries:
                    raise
                continue

            logger.info(
                "Money request transitioned. RequestID=%s Action=%s Actor=%s From=%s To=%s",
                request_id,
                action_name,
                actor_id,
                current.status,
                saved.status,
                extra={
                    "extra_fields": {
                        "money_request_id": request_id,
                        "action": action_name,
                        "actor_id": actor_id,
                        "from_status": current.status,
                        "to_status": saved.status,
                        "version": saved.version,
                    }
                },
            )
            return saved
