from typing import Optional, Protocol

from src.core.money_requests.models import MoneyRequestRecord


class MoneyRequestRepository(Protocol):
    """Get/put store for money requests.

    `save` is a compare-and-swap: it must raise MoneyRequestConflictError when
    the stored row no longer has `expected_version`, `expected_status` and
    `expected_approver`.
    """

    def create(self, request: MoneyRequestRecord) -> None: ...

    def get(self, *, request_id: str) -> Optional[MoneyRequestRecord]: ...

    def save(
        self,
        request: MoneyRequestRecord,
        *,
        expected_version: int,
        expected_status: str,
        expected_approver: Optional[str],
    ) -> MoneyRequestRecord: ...

    def list_requests(
        self,
        *,
        status: Optional[str],
        requested_by: Optional[str],
        current_approver: Optional[str],
        search: Optional[str],
        limit: int,
        cursor: Optional[str],
    ) -> tuple[list[MoneyRequestRecord], Optional[str]]: ...
