"""
FILE: tests/conftest.py
Shared fixtures for money request tests.
"""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from src.core.money_requests import (
    ApprovalWorkflowEngine,
    MoneyRequestWorkflowService,
    OrgDirectoryDefinition,
    StaticOrgDirectory,
    build_routing_policy,
)
from src.infrastructure.money_requests import InMemoryMoneyRequestRepository

ORG_DIRECTORY = {
    "ceo": "emp_ceo",
    "finance_approver": "emp_fin",
    "managers": {
        "emp_001": "emp_mgr",
        "emp_002": "emp_mgr",
        "emp_mgr": "emp_ceo",
    },
    "finance_approvers": {},
    "disbursers": ["emp_fin", "emp_cashier"],
}


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if (
            _has_marker(item, "unit")
            or _has_marker(item, "integration")
            or _has_marker(item, "e2e")
        ):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        if "/tests/e2e/" in path:
            item.add_marker(pytest.mark.e2e)
            continue
        item.add_marker(pytest.mark.unit)


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start or datetime(2026, 2, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self._current
        self._current = value + timedelta(seconds=1)
        return value


@pytest.fixture
def org_directory() -> StaticOrgDirectory:
    return StaticOrgDirectory(OrgDirectoryDefinition.model_validate(ORG_DIRECTORY))


@pytest.fixture
def make_engine(org_directory):
    def _make(threshold: str = "2000", directory=None) -> ApprovalWorkflowEngine:
        policy = build_routing_policy(
            directory=directory or org_directory,
            approval_threshold=Decimal(threshold),
        )
        return ApprovalWorkflowEngine(policy=policy, clock=StepClock())

    return _make


@pytest.fixture
def engine(make_engine) -> ApprovalWorkflowEngine:
    return make_engine()


@pytest.fixture
def service(engine) -> MoneyRequestWorkflowService:
    return MoneyRequestWorkflowService(
        repository=InMemoryMoneyRequestRepository(),
        engine=engine,
    )


@pytest.fixture(autouse=True)
def money_request_runtime_harness(monkeypatch: pytest.MonkeyPatch):
    """Pin the runtime to the in-memory store and a known org chart."""

    monkeypatch.setenv("MONEY_REQUEST_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.setenv("ORG_DIRECTORY_JSON", json.dumps(ORG_DIRECTORY))
    monkeypatch.delenv("MONEY_REQUEST_APPROVAL_THRESHOLD", raising=False)
    monkeypatch.delenv("MONEY_REQUEST_WORKFLOW_ENABLED", raising=False)
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
