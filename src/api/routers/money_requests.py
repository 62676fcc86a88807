from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from src.api.routers import money_requests_config
from src.api.routers.money_request_http_errors import raise_money_request_http_exception
from src.api.routers.runtime_utils import assert_feature_enabled
from src.core.money_requests import (
    MoneyRequestApproveRequest,
    MoneyRequestCreateRequest,
    MoneyRequestDetailResponse,
    MoneyRequestDisburseRequest,
    MoneyRequestHistoryResponse,
    MoneyRequestListResponse,
    MoneyRequestRecord,
    MoneyRequestRejectRequest,
    MoneyRequestRepository,
    MoneyRequestSummaryResponse,
    MoneyRequestWorkflowError,
    MoneyRequestWorkflowService,
)

router = APIRouter(tags=["Money Requests"])

_REPOSITORY: Optional[MoneyRequestRepository] = None
_SERVICE: Optional[MoneyRequestWorkflowService] = None

_ERROR_RESPONSES = {
    403: {"description": "Actor is not the current approver or lacks the disbursement role."},
    404: {"description": "Money request not found."},
    409: {"description": "Request changed since it was read (optimistic concurrency)."},
    422: {"description": "Action illegal for current status, missing reason, or no approver."},
}


def get_money_request_repository() -> MoneyRequestRepository:
    global _REPOSITORY
    if _REPOSITORY is None:
        try:
            _REPOSITORY = money_requests_config.build_repository()
        except (RuntimeError, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(exc) or "MONEY_REQUEST_STORE_UNAVAILABLE",
            ) from exc
    return _REPOSITORY


def get_money_request_workflow_service() -> MoneyRequestWorkflowService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = MoneyRequestWorkflowService(
            repository=get_money_request_repository(),
            engine=money_requests_config.build_engine(),
            default_currency=money_requests_config.default_currency(),
            conflict_retries=money_requests_config.conflict_retries(),
        )
    return _SERVICE


def reset_money_request_workflow_service_for_tests() -> None:
    global _REPOSITORY
    global _SERVICE
    _REPOSITORY = None
    _SERVICE = None


def _assert_workflow_enabled() -> None:
    assert_feature_enabled(
        name="MONEY_REQUEST_WORKFLOW_ENABLED",
        default=True,
        detail="MONEY_REQUEST_WORKFLOW_DISABLED",
    )


ServiceDependency = Annotated[
    MoneyRequestWorkflowService, Depends(get_money_request_workflow_service)
]
RequestIdPath = Annotated[
    str,
    Path(description="Money request identifier.", examples=["mr_0a1b2c3d4e5f"]),
]


@router.post(
    "/money/requests",
    response_model=MoneyRequestRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Money Request",
    description=(
        "Creates a money request in `Pending` with the requester's manager as the "
        "current approver."
    ),
    responses={422: _ERROR_RESPONSES[422]},
)
def create_money_request(
    payload: MoneyRequestCreateRequest,
    service: ServiceDependency,
) -> MoneyRequestRecord:
    _assert_workflow_enabled()
    try:
        return service.create_request(payload=payload)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)


@router.get(
    "/money/requests",
    response_model=MoneyRequestListResponse,
    status_code=status.HTTP_200_OK,
    summary="List Money Requests",
    description="Lists money requests newest first with optional filters and cursor pagination.",
)
def list_money_requests(
    service: ServiceDependency,
    request_status: Annotated[
        Optional[str],
        Query(alias="status", description="Workflow status filter.", examples=["Pending"]),
    ] = None,
    requested_by: Annotated[
        Optional[str],
        Query(description="Requester identity filter.", examples=["emp_001"]),
    ] = None,
    search: Annotated[
        Optional[str],
        Query(description="Case-insensitive title/description search.", examples=["fuel"]),
    ] = None,
    limit: Annotated[
        int,
        Query(description="Page size.", ge=1, le=100, examples=[20]),
    ] = 20,
    cursor: Annotated[
        Optional[str],
        Query(description="Opaque cursor from previous list response.", examples=["mr_001"]),
    ] = None,
) -> MoneyRequestListResponse:
    _assert_workflow_enabled()
    return service.list_requests(
        status=request_status,
        requested_by=requested_by,
        search=search,
        limit=limit,
        cursor=cursor,
    )


@router.get(
    "/money/requests/summary",
    response_model=MoneyRequestSummaryResponse,
    status_code=status.HTTP_200_OK,
    summary="Money Request Statistics",
    description="Pending, awaiting-disbursement and approved totals for the dashboard.",
)
def get_money_request_summary(service: ServiceDependency) -> MoneyRequestSummaryResponse:
    _assert_workflow_enabled()
    return service.get_summary()


@router.get(
    "/money/requests/pending/{actor_id}",
    response_model=MoneyRequestListResponse,
    status_code=status.HTTP_200_OK,
    summary="Approver Queue",
    description="Lists requests on which the given actor is the current approver.",
)
def list_pending_money_requests(
    actor_id: Annotated[
        str,
        Path(description="Approver identity.", examples=["emp_mgr"]),
    ],
    service: ServiceDependency,
    limit: Annotated[
        int,
        Query(description="Page size.", ge=1, le=100, examples=[20]),
    ] = 20,
    cursor: Annotated[
        Optional[str],
        Query(description="Opaque cursor from previous list response.", examples=["mr_001"]),
    ] = None,
) -> MoneyRequestListResponse:
    _assert_workflow_enabled()
    return service.list_pending_for(actor_id=actor_id, limit=limit, cursor=cursor)


@router.get(
    "/money/requests/{request_id}",
    response_model=MoneyRequestDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Money Request",
    description="Returns the request with its resolved approval chain.",
    responses={404: _ERROR_RESPONSES[404]},
)
def get_money_request(
    request_id: RequestIdPath,
    service: ServiceDependency,
) -> MoneyRequestDetailResponse:
    _assert_workflow_enabled()
    try:
        return service.get_request_detail(request_id=request_id)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)


@router.get(
    "/money/requests/{request_id}/history",
    response_model=MoneyRequestHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Money Request History",
    description="Returns the append-only approval history for audit.",
    responses={404: _ERROR_RESPONSES[404]},
)
def get_money_request_history(
    request_id: RequestIdPath,
    service: ServiceDependency,
) -> MoneyRequestHistoryResponse:
    _assert_workflow_enabled()
    try:
        return service.get_history(request_id=request_id)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)


@router.post(
    "/money/requests/{request_id}/approve",
    response_model=MoneyRequestRecord,
    status_code=status.HTTP_200_OK,
    summary="Approve Money Request",
    description=(
        "Approves on behalf of the current approver. A manager approval routes to "
        "`CEO Review` above the approval threshold and to `Finance Review` otherwise."
    ),
    responses=_ERROR_RESPONSES,
)
def approve_money_request(
    request_id: RequestIdPath,
    payload: MoneyRequestApproveRequest,
    service: ServiceDependency,
) -> MoneyRequestRecord:
    _assert_workflow_enabled()
    try:
        return service.approve_request(request_id=request_id, payload=payload)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)


@router.post(
    "/money/requests/{request_id}/reject",
    response_model=MoneyRequestRecord,
    status_code=status.HTTP_200_OK,
    summary="Reject Money Request",
    description="Rejects with a mandatory reason. Rejection is terminal.",
    responses=_ERROR_RESPONSES,
)
def reject_money_request(
    request_id: RequestIdPath,
    payload: MoneyRequestRejectRequest,
    service: ServiceDependency,
) -> MoneyRequestRecord:
    _assert_workflow_enabled()
    try:
        return service.reject_request(request_id=request_id, payload=payload)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)


@router.post(
    "/money/requests/{request_id}/disburse",
    response_model=MoneyRequestRecord,
    status_code=status.HTTP_200_OK,
    summary="Disburse Money Request",
    description="Releases funds for an `Approved` request. Requires the disbursement role.",
    responses=_ERROR_RESPONSES,
)
def disburse_money_request(
    request_id: RequestIdPath,
    payload: MoneyRequestDisburseRequest,
    service: ServiceDependency,
) -> MoneyRequestRecord:
    _assert_workflow_enabled()
    try:
        return service.disburse_request(request_id=request_id, payload=payload)
    except MoneyRequestWorkflowError as exc:
        raise_money_request_http_exception(exc)
