from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

MoneyRequestStatus = Literal[
    "Pending",
    "CEO Review",
    "Finance Review",
    "Approved",
    "Rejected",
    "Disbursed",
]

MoneyRequestAction = Literal["submit", "approve", "reject", "disburse"]

ApproverResolver = Callable[[str], Optional[str]]


class RoutingSnapshot(BaseModel):
    model_config = {"frozen": True}

    approval_threshold: Decimal = Field(
        description="Threshold in force when the manager approved.", examples=["2000"]
    )
    amount: Decimal = Field(description="Request amount compared to threshold.", examples=["5000"])
    ceo_review_required: bool = Field(
        description="Whether CEO review was inserted into the approval chain.", examples=[True]
    )


class ApprovalHistoryEntry(BaseModel):
    model_config = {"frozen": True}

    entry_id: str = Field(description="Audit entry identifier.", examples=["mrh_001"])
    actor_id: str = Field(description="Actor that performed the action.", examples=["emp_mgr"])
    actor_role: Optional[str] = Field(
        default=None, description="Role claimed by the actor at action time.", examples=["Manager"]
    )
    action: MoneyRequestAction = Field(description="Workflow action.", examples=["approve"])
    from_status: Optional[MoneyRequestStatus] = Field(
        default=None, description="Status before the action.", examples=["Pending"]
    )
    to_status: MoneyRequestStatus = Field(
        description="Status after the action.", examples=["Finance Review"]
    )
    timestamp: datetime = Field(
        description="UTC action timestamp.", examples=["2026-02-19T12:00:00+00:00"]
    )
    comment: Optional[str] = Field(
        default=None, description="Optional comment or rejection reason.", examples=["ok"]
    )
    routing: Optional[RoutingSnapshot] = Field(
        default=None,
        description="Routing decision captured on the manager approval.",
        examples=[{"approval_threshold": "2000", "amount": "1500", "ceo_review_required": False}],
    )


class MoneyRequestRecord(BaseModel):
    model_config = {"frozen": True}

    request_id: str = Field(description="Money request identifier.", examples=["mr_001"])
    amount: Decimal = Field(description="Requested amount.", examples=["1500"])
    currency: str = Field(default="XAF", description="Amount currency.", examples=["XAF"])
    requested_by: str = Field(description="Requester identity.", examples=["emp_001"])
    title: str = Field(default="", description="Short purpose.", examples=["Site visit fuel"])
    description: str = Field(default="", description="Free-text description.", examples=[""])
    category: str = Field(default="Normal", description="Urgency level.", examples=["Urgent"])
    budget_line: str = Field(default="General", description="Budget line.", examples=["General"])
    attachments: Tuple[str, ...] = Field(
        default=(), description="Opaque attachment references.", examples=[["att_1"]]
    )
    status: MoneyRequestStatus = Field(description="Workflow status.", examples=["Pending"])
    current_approver: Optional[str] = Field(
        default=None, description="Identity whose action is required.", examples=["emp_mgr"]
    )
    approval_history: Tuple[ApprovalHistoryEntry, ...] = Field(
        default=(), description="Append-only audit trail."
    )
    rejection_reason: Optional[str] = Field(
        default=None, description="Reason recorded on rejection.", examples=["over budget"]
    )
    version: int = Field(default=1, description="Optimistic concurrency version.", examples=[1])
    created_at: datetime = Field(
        description="UTC creation timestamp.", examples=["2026-02-19T12:00:00+00:00"]
    )
    updated_at: datetime = Field(
        description="UTC last-transition timestamp.", examples=["2026-02-19T12:00:00+00:00"]
    )


@dataclass(frozen=True)
class RoutingPolicy:
    approval_threshold: Decimal
    manager_resolver: ApproverResolver
    ceo_resolver: ApproverResolver
    finance_approver_resolver: ApproverResolver
    disbursement_authorizer: Callable[[str], bool]


class MoneyRequestCreateRequest(BaseModel):
    requested_by: str = Field(
        description="Requester identity supplied by the session layer.", examples=["emp_001"]
    )
    amount: Decimal = Field(description="Requested amount.", examples=["1500"])
    currency: Optional[str] = Field(
        default=None,
        description="Amount currency; defaults to the configured currency.",
        examples=["XAF"],
    )
    title: str = Field(default="", description="Short request purpose.", examples=["Fuel"])
    description: str = Field(
        default="",
        description="Free-text request description.",
        examples=["Fuel for the Douala site visit."],
    )
    category: str = Field(default="Normal", description="Urgency level.", examples=["Normal"])
    budget_line: str = Field(
        default="General", description="Budget line or project id.", examples=["General"]
    )
    attachments: List[str] = Field(
        default_factory=list,
        description="Opaque attachment references stored elsewhere.",
        examples=[["att_invoice_01"]],
    )


class MoneyRequestApproveRequest(BaseModel):
    actor_id: str = Field(description="Acting identity.", examples=["emp_mgr"])
    actor_role: Optional[str] = Field(
        default=None, description="Acting role, recorded for audit.", examples=["Manager"]
    )
    comment: Optional[str] = Field(
        default=None, description="Optional approval comment.", examples=["Looks fine"]
    )
    expected_status: Optional[MoneyRequestStatus] = Field(
        default=None,
        description="Optimistic concurrency check against current request status.",
        examples=["Pending"],
    )


class MoneyRequestRejectRequest(BaseModel):
    actor_id: str = Field(description="Acting identity.", examples=["emp_ceo"])
    actor_role: Optional[str] = Field(
        default=None, description="Acting role, recorded for audit.", examples=["CEO"]
    )
    reason: str = Field(description="Mandatory rejection reason.", examples=["over budget"])
    expected_status: Optional[MoneyRequestStatus] = Field(
        default=None,
        description="Optimistic concurrency check against current request status.",
        examples=["CEO Review"],
    )


class MoneyRequestDisburseRequest(BaseModel):
    actor_id: str = Field(description="Acting identity.", examples=["emp_fin"])
    actor_role: Optional[str] = Field(
        default=None, description="Acting role, recorded for audit.", examples=["Finance"]
    )
    comment: Optional[str] = Field(
        default=None, description="Optional disbursement note.", examples=["Paid in cash"]
    )
    expected_status: Optional[MoneyRequestStatus] = Field(
        default=None,
        description="Optimistic concurrency check against current request status.",
        examples=["Approved"],
    )


class MoneyRequestDetailResponse(BaseModel):
    request: MoneyRequestRecord = Field(description="Authoritative money request state.")
    required_steps: List[str] = Field(
        description="Ordered approval chain for this request.",
        examples=[["Manager Review", "CEO Approval", "Finance Review", "Approved", "Disbursed"]],
    )
    ceo_review_required: bool = Field(
        description="Whether the chain includes CEO approval.", examples=[True]
    )


class MoneyRequestListResponse(BaseModel):
    items: List[MoneyRequestRecord] = Field(description="Money requests, newest first.")
    next_cursor: Optional[str] = Field(
        default=None, description="Cursor for the next page.", examples=["mr_001"]
    )


class MoneyRequestHistoryResponse(BaseModel):
    request_id: str = Field(description="Money request identifier.", examples=["mr_001"])
    status: MoneyRequestStatus = Field(description="Current status.", examples=["Approved"])
    entries: List[ApprovalHistoryEntry] = Field(description="Audit trail in append order.")


class MoneyRequestSummaryResponse(BaseModel):
    total_requests: int = Field(description="All money requests.", examples=[12])
    pending_requests: int = Field(
        description="Requests awaiting a reviewer decision.", examples=[3]
    )
    pending_amount: Decimal = Field(description="Sum of pending amounts.", examples=["4500"])
    awaiting_disbursement: int = Field(
        description="Approved requests not yet disbursed.", examples=[1]
    )
    approved_amount: Decimal = Field(
        description="Sum of approved and disbursed amounts.", examples=["9000"]
    )


class MoneyRequestErrorDetail(BaseModel):
    code: str = Field(description="Error code.", examples=["NOT_AUTHORIZED"])
    message: str = Field(description="Error message.", examples=["NOT_AUTHORIZED: ..."])
    status: Optional[MoneyRequestStatus] = Field(
        default=None, description="Authoritative current status.", examples=["Pending"]
    )
    current_approver: Optional[str] = Field(
        default=None, description="Authoritative current approver.", examples=["emp_mgr"]
    )
    details: Dict[str, Any] = Field(default_factory=dict, description="Extra error context.")
