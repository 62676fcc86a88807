from contextlib import closing
from importlib.util import find_spec
from typing import Optional

from src.core.money_requests.errors import MoneyRequestConflictError
from src.core.money_requests.models import MoneyRequestRecord

_SCHEMA_STATEMENTS = (
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
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_money_requests_approver
        ON money_requests (current_approver)
    """,
)


class PostgresMoneyRequestRepository:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("MONEY_REQUEST_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("MONEY_REQUEST_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
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
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (request_id) DO NOTHING
        """
        with closing(self._connect()) as connection:
            cursor = connection.execute(
                query,
                (
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
                ),
            )
            connection.commit()
            inserted = cursor.rowcount
        if inserted == 0:
            raise MoneyRequestConflictError("request already exists")

    def get(self, *, request_id: str) -> Optional[MoneyRequestRecord]:
        query = """
            SELECT
                request_id,
                record_json
            FROM money_requests
            WHERE request_id = %s
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
                status = %s,
                current_approver = %s,
                version = %s,
                updated_at = %s,
                record_json = %s
            WHERE request_id = %s
              AND version = %s
              AND status = %s
              AND current_approver IS NOT DISTINCT FROM %s
        """
        with closing(self._connect()) as connection:
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
            where_clauses.append("status = %s")
            args.append(status)
        if requested_by is not None:
            where_clauses.append("requested_by = %s")
            args.append(requested_by)
        if current_approver is not None:
            where_clauses.append("current_approver = %s")
            args.append(current_approver)
        if search:
            where_clauses.append("(LOWER(title) LIKE %s OR LOWER(description) LIKE %s)")
            pattern = f"%{search.lower()}%"
            args.extend([pattern, pattern])
        with closing(self._connect()) as connection:
            if cursor:
                anchor = connection.execute(
                    "SELECT created_at FROM money_requests WHERE request_id = %s",
                    (cursor,),
                ).fetchone()
                if anchor is None:
                    return [], None
                where_clauses.append(
                    "(created_at < %s OR (created_at = %s AND request_id < %s))"
                )
                args.extend([anchor["created_at"], anchor["created_at"], cursor])
            where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
            query = f"""
                SELECT
                    request_id,
                    record_json
                FROM money_requests
                {where_sql}
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
            """
            rows = connection.execute(query, tuple(args + [limit + 1])).fetchall()
        records = [record for record in (_to_record(row) for row in rows) if record is not None]
        page = records[:limit]
        next_cursor = page[-1].request_id if len(records) > limit else None
        return page, next_cursor

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            for statement in _SCHEMA_STATEMENTS:
                connection.execute(statement)
            connection.commit()


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _to_record(row) -> Optional[MoneyRequestRecord]:
    if row is None:
        return None
    return MoneyRequestRecord.model_validate_json(row["record_json"])
