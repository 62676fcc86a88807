import os
from decimal import Decimal
from typing import cast

from src.api.routers.runtime_utils import env_decimal, env_int
from src.core.money_requests import (
    ApprovalWorkflowEngine,
    MoneyRequestRepository,
    build_routing_policy,
    parse_org_directory,
)
from src.infrastructure.money_requests import (
    InMemoryMoneyRequestRepository,
    PostgresMoneyRequestRepository,
    SqliteMoneyRequestRepository,
)

DEFAULT_APPROVAL_THRESHOLD = Decimal("2000")
DEFAULT_CURRENCY = "XAF"
DEFAULT_SQLITE_PATH = ".data/money_requests.sqlite"


def money_request_store_backend_name() -> str:
    backend = os.getenv("MONEY_REQUEST_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend in {"SQLITE", "POSTGRES"}:
        return backend
    return "IN_MEMORY"


def money_request_sqlite_path() -> str:
    return os.getenv("MONEY_REQUEST_SQLITE_PATH", DEFAULT_SQLITE_PATH).strip()


def money_request_postgres_dsn() -> str:
    return os.getenv("MONEY_REQUEST_POSTGRES_DSN", "").strip()


def approval_threshold() -> Decimal:
    return env_decimal("MONEY_REQUEST_APPROVAL_THRESHOLD", DEFAULT_APPROVAL_THRESHOLD)


def default_currency() -> str:
    currency = os.getenv("MONEY_REQUEST_DEFAULT_CURRENCY", DEFAULT_CURRENCY).strip().upper()
    return currency or DEFAULT_CURRENCY


def conflict_retries() -> int:
    return env_int("MONEY_REQUEST_CONFLICT_RETRIES", 1)


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> MoneyRequestRepository:
    backend = money_request_store_backend_name()
    if backend == "POSTGRES":
        dsn = money_request_postgres_dsn()
        if not dsn:
            raise RuntimeError("MONEY_REQUEST_POSTGRES_DSN_REQUIRED")
        try:
            return cast(MoneyRequestRepository, PostgresMoneyRequestRepository(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("MONEY_REQUEST_POSTGRES_CONNECTION_FAILED") from exc
    if backend == "SQLITE":
        path = money_request_sqlite_path()
        if not path:
            raise RuntimeError("MONEY_REQUEST_SQLITE_PATH_REQUIRED")
        return cast(MoneyRequestRepository, SqliteMoneyRequestRepository(database_path=path))
    return cast(MoneyRequestRepository, InMemoryMoneyRequestRepository())


def build_engine() -> ApprovalWorkflowEngine:
    directory = parse_org_directory(os.getenv("ORG_DIRECTORY_JSON"))
    policy = build_routing_policy(directory=directory, approval_threshold=approval_threshold())
    return ApprovalWorkflowEngine(policy=policy)
