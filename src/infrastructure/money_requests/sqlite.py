import sqlite3
from contextlib import closing
from pathlib import Path
from threading import Lock
from typing import Optional

from src.core.money_requests.errors import MoneyRequestConflictError
from src.core.money_requests.models import MoneyRequestRecord
from src.core.money_requests.repository import MoneyRequestRepository

_SELECT_COLUMNS = "request_id, record_json"


class SqliteMoneyRequestRepository(MoneyRequestRepository):
    def __init__(self, *, database_path: str) -> None:
        self._lock = Lock()
        self._database_path = database_path
        self._init_db()

    def create(self, request: MoneyRequestRecord) -> None:
        query = """
            INSERT INTO money_requests (
                request_id,
                requested_by,
                status,
                current_approver,
                title,
                description,
                version,
                created_at,
                updated_at,
                record_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        with self._lock, closing(self._connect()) as connection:
            try:
                connection.execute(query, _insert_args(request))
            except sqlite3.IntegrityError as exc:
                raise MoneyRequestConflictError("request already exists") from exc
            connection.commit()

    def get(self, *, request_id: str) -> Optional[MoneyRequestRecord]:
        query = f"""
            SELECT {_SELECT_COLUMNS}
            FROM money_requests
            WHERE request_id = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (request_id,)).fetchone()
        return _to_record(row)

    def save(
        self,
        request: MoneyRequestRecord,
        *,
        expected_version: int,
        expected_status: str,
        expected_approver: Optional[str],
    ) -> MoneyRequestRecord:
        query = """
            UPDATE money_requests SET
                status = ?,
                current_approver = ?,
                version = ?,
                updated_at = ?,
                record_json = ?
            WHERE request_id = ?
              AND version = ?
              AND status = ?
              AND current_approver IS ?
        """
        with self._lock, closing(self._connect()) as connection:
            cursor = connection.execute(
                query,
                (
                    request.status,
                    request.current_approver,
                    request.version,
                    request.updated_at.isoformat(),
                    request.model_dump_json(),
                    request.request_id,
                    expected_version,
                    expected_status,
                    expected_approver,
                ),
            )
            connection.commit()
            updated = cursor.rowcount
        if updated == 0:
            raise MoneyRequestConflictError(
                "stored request changed", request=self.get(request_id=request.request_id)
            )
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
        where_clauses = []
        args: list[object] = []
        if status is not None:
            where_clauses.append("status = ?")
            args.append(status)
        if requested_by is not None:
            where_clauses.append("requested_by = ?")
            args.append(requested_by)
        if current_approver is not None:
            where_clauses.append("current_approver = ?")
            args.append(current_approver)
        if search:
            where_clauses.append("(LOWER(title) LIKE ? OR LOWER(description) LIKE ?)")
            pattern = f"%{search.lower()}%"
            args.extend([pattern, pattern])
        with closing(self._connect()) as connection:
            if cursor:
                anchor = connection.execute(
                    "SELECT created_at FROM money_requests WHERE request_id = ?",
                    (cursor,),
                ).fetchone()
                if anchor is None:
                    return [], None
                where_clauses.append("(created_at < ? OR (created_at = ? AND request_id < ?))")
                args.extend([anchor["created_at"], anchor["created_at"], cursor])
            where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
            query = f"""
                SELECT {_SELECT_COLUMNS}
                FROM money_requests
                {where_sql}
                ORDER BY created_at DESC, request_id DESC
                LIMIT ?
            """
            rows = connection.execute(query, tuple(args + [limit + 1])).fetchall()
        records = [record for record in (_to_record(row) for row in rows) if record is not None]
        page = records[:limit]
        next_cursor = page[-1].request_id if len(records) > limit else None
        return page, next_cursor

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path)
        connection.row_factory = sqlite3.Row
        return connection

    def _init_db(self) -> None:
        Path(self._database_path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS money_requests (
                    request_id TEXT PRIMARY KEY,
                    requested_by TEXT NOT NULL,
                    status TEXT NOT NULL,
                    current_approver TEXT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    record_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_money_requests_approver
                    ON money_requests (current_approver);
                """
            )
            connection.commit()


def _insert_args(request: MoneyRequestRecord) -> tuple:
    return (
        request.request_id,
        request.requested_by,
        request.status,
        request.current_approver,
        request.title,
        request.description,
        request.version,
        request.created_at.isoformat(),
        request.updated_at.isoformat(),
        request.model_dump_json(),
    )


def _to_record(row) -> Optional[MoneyRequestRecord]:
    if row is None:
        return None
    return MoneyRequestRecord.model_validate_json(row["record_json"])
