from typing import Optional

from src.core.money_requests.models import MoneyRequestRecord, MoneyRequestStatus


class MoneyRequestWorkflowError(Exception):
    """Base for workflow failures.

    Carries the unchanged request so callers can re-render the authoritative
    status and approver without another read.
    """

    code = "MONEY_REQUEST_WORKFLOW_ERROR"

    def __init__(self, message: str, *, request: Optional[MoneyRequestRecord] = None) -> None:
        super().__init__(f"{self.code}: {message}")
        self.request = request

    @property
    def status(self) -> Optional[MoneyRequestStatus]:
        return self.request.status if self.request is not None else None

    @property
    def current_approver(self) -> Optional[str]:
        return self.request.current_approver if self.request is not None else None


class NotAuthorizedError(MoneyRequestWorkflowError):
    code = "NOT_AUTHORIZED"


class InvalidStateError(MoneyRequestWorkflowError):
    code = "INVALID_STATE"


class MissingReasonError(MoneyRequestWorkflowError):
    code = "MISSING_REASON"


class NoApproverAvailableError(MoneyRequestWorkflowError):
    code = "NO_APPROVER_AVAILABLE"


class MoneyRequestValidationError(MoneyRequestWorkflowError):
    code = "VALIDATION_FAILED"


class MoneyRequestConflictError(MoneyRequestWorkflowError):
    code = "STATE_CONFLICT"


class MoneyRequestNotFoundError(MoneyRequestWorkflowError):
    code = "MONEY_REQUEST_NOT_FOUND"
