from src.core.money_requests.directory import (
    OrgDirectory,
    OrgDirectoryDefinition,
    StaticOrgDirectory,
    build_routing_policy,
    parse_org_directory,
)
from src.core.money_requests.engine import ApprovalWorkflowEngine
from src.core.money_requests.errors import (
    InvalidStateError,
    MissingReasonError,
    MoneyRequestConflictError,
    MoneyRequestNotFoundError,
    MoneyRequestValidationError,
    MoneyRequestWorkflowError,
    NoApproverAvailableError,
    NotAuthorizedError,
)
from src.core.money_requests.models import (
    ApprovalHistoryEntry,
    MoneyRequestApproveRequest,
    MoneyRequestCreateRequest,
    MoneyRequestDetailResponse,
    MoneyRequestDisburseRequest,
    MoneyRequestHistoryResponse,
    MoneyRequestListResponse,
    MoneyRequestRecord,
    MoneyRequestRejectRequest,
    MoneyRequestSummaryResponse,
    RoutingPolicy,
    RoutingSnapshot,
)
from src.core.money_requests.repository import MoneyRequestRepository
from src.core.money_requests.service import MoneyRequestWorkflowService

__all__ = [
    "ApprovalHistoryEntry",
    "ApprovalWorkflowEngine",
    "InvalidStateError",
    "MissingReasonError",
    "MoneyRequestApproveRequest",
    "MoneyRequestConflictError",
    "MoneyRequestCreateRequest",
    "MoneyRequestDetailResponse",
    "MoneyRequestDisburseRequest",
    "MoneyRequestHistoryResponse",
    "MoneyRequestListResponse",
    "MoneyRequestNotFoundError",
    "MoneyRequestRecord",
    "MoneyRequestRejectRequest",
    "MoneyRequestRepository",
    "MoneyRequestSummaryResponse",
    "MoneyRequestValidationError",
    "MoneyRequestWorkflowError",
    "MoneyRequestWorkflowService",
    "NoApproverAvailableError",
    "NotAuthorizedError",
    "OrgDirectory",
    "OrgDirectoryDefinition",
    "RoutingPolicy",
    "RoutingSnapshot",
    "StaticOrgDirectory",
    "build_routing_policy",
    "parse_org_directory",
]
