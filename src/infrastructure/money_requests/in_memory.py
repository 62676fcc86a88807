from threading import Lock
from typing import Optional

from src.core.money_requests.errors import MoneyRequestConflictError
from src.core.money_requests.models import MoneyRequestRecord
from src.core.money_requests.repository import MoneyRequestRepository


class InMemoryMoneyRequestRepository(MoneyRequestRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._requests: dict[str, MoneyRequestRecord] = {}

    def create(self, request: MoneyRequestRecord) -> None:
        with self._lock:
            if request.request_id in self._requests:
                raise MoneyRequestConflictError(
                    "request already exists", request=self._requests[request.request_id]
                )
            self._requests[request.request_id] = request

    def get(self, *, request_id: str) -> Optional[MoneyRequestRecord]:
        with self._lock:
            return self._requests.get(request_id)

    def save(
        self,
        request: MoneyRequestRecord,
        *,
        expected_version: int,
        expected_status: str,
        expected_approver: Optional[str],
    ) -> MoneyRequestRecord:
        with self._lock:
            stored = self._requests.get(request.request_id)
            if (
                stored is None
                or stored.version != expected_version
                or stored.status != expected_status
                or stored.current_approver != expected_approver
            ):
                raise MoneyRequestConflictError("stored request changed", request=stored)
            self._requests[request.request_id] = request
            return request

    def list_requests(
        self,
        *,
        status: Optional[str],
        requested_by: Optional[str],
        current_approver: Optional[str],
        search: Optional[str],
        limit: int,
        cursor: Optional[str],
    ) -> tuple[list[MoneyRequestRecord], Optional[str]]:
        with self._lock:
            rows = list(self._requests.values())

        rows = sorted(rows, key=lambda x: (x.created_at, x.request_id), reverse=True)

        if status is not None:
            rows = [row for row in rows if row.status == status]
        if requested_by is not None:
            rows = [row for row in rows if row.requested_by == requested_by]
        if current_approver is not None:
            rows = [row for row in rows if row.current_approver == current_approver]
        if search:
            needle = search.lower()
            rows = [
                row
                for row in rows
                if needle in row.title.lower() or needle in row.description.lower()
            ]

        if cursor:
            row_ids = [row.request_id for row in rows]
            if cursor in row_ids:
                start = row_ids.index(cursor) + 1
                rows = rows[start:]

        page = rows[:limit]
        next_cursor = page[-1].request_id if len(rows) > limit else None
        return page, next_cursor
