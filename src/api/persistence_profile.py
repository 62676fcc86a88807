from __future__ import annotations

import os

from src.api.routers.money_requests_config import (
    money_request_postgres_dsn,
    money_request_sqlite_path,
    money_request_store_backend_name,
)

_PRODUCTION_PROFILE = "PRODUCTION"
_LOCAL_PROFILE = "LOCAL"
_DURABLE_BACKENDS = {"SQLITE", "POSTGRES"}


def app_persistence_profile_name() -> str:
    profile = os.getenv("APP_PERSISTENCE_PROFILE", _LOCAL_PROFILE).strip().upper()
    return _PRODUCTION_PROFILE if profile == _PRODUCTION_PROFILE else _LOCAL_PROFILE


def validate_persistence_profile_guardrails() -> None:
    """Refuse to start a production profile on a volatile or half-configured store."""
    if app_persistence_profile_name() != _PRODUCTION_PROFILE:
        return
    backend = money_request_store_backend_name()
    if backend not in _DURABLE_BACKENDS:
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_DURABLE_MONEY_REQUEST_STORE")
    if backend == "POSTGRES" and not money_request_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_MONEY_REQUEST_POSTGRES_DSN")
    if backend == "SQLITE" and not money_request_sqlite_path():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_MONEY_REQUEST_SQLITE_PATH")
