from typing import NoReturn

from fastapi import HTTPException, status

from src.core.money_requests import (
    InvalidStateError,
    MissingReasonError,
    MoneyRequestConflictError,
    MoneyRequestNotFoundError,
    MoneyRequestValidationError,
    MoneyRequestWorkflowError,
    NoApproverAvailableError,
    NotAuthorizedError,
)
from src.core.money_requests.models import MoneyRequestErrorDetail

HTTP_422_UNPROCESSABLE = getattr(
    status,
    "HTTP_422_UNPROCESSABLE_CONTENT",
    status.HTTP_422_UNPROCESSABLE_ENTITY,
)


def _status_code_for(exc: MoneyRequestWorkflowError) -> int:
    if isinstance(exc, MoneyRequestNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, NotAuthorizedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, MoneyRequestConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(
        exc,
        (
            InvalidStateError,
            MissingReasonError,
            NoApproverAvailableError,
            MoneyRequestValidationError,
        ),
    ):
        return HTTP_422_UNPROCESSABLE
    return status.HTTP_400_BAD_REQUEST


def raise_money_request_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, MoneyRequestWorkflowError):
        detail = MoneyRequestErrorDetail(
            code=exc.code,
            message=str(exc),
            status=exc.status,
            current_approver=exc.current_approver,
        )
        raise HTTPException(
            status_code=_status_code_for(exc),
            detail=detail.model_dump(mode="json"),
        ) from exc
    raise exc
