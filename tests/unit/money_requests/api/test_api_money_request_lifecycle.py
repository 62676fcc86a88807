from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routers import money_requests as money_requests_router
from src.api.routers.money_requests import reset_money_request_workflow_service_for_tests


def _create(client: TestClient, amount: str = "1500", **overrides) -> dict:
    payload = {
        "requested_by": "emp_001",
        "amount": amount,
        "title": "Site visit fuel",
        "description": "Fuel for the Douala site visit",
        "category": "Urgent",
        "attachments": ["att_invoice_01"],
    }
    payload.update(overrides)
    response = client.post("/money/requests", json=payload)
    assert response.status_code == 201
    return response.json()


def _approve(client: TestClient, request_id: str, actor_id: str, **extra):
    return client.post(
        f"/money/requests/{request_id}/approve",
        json={"actor_id": actor_id, **extra},
    )


def setup_function() -> None:
    reset_money_request_workflow_service_for_tests()


def test_create_money_request_routes_to_manager():
    with TestClient(app) as client:
        created = _create(client)

    assert created["status"] == "Pending"
    assert created["current_approver"] == "emp_mgr"
    assert created["currency"] == "XAF"
    assert created["category"] == "Urgent"
    assert created["attachments"] == ["att_invoice_01"]
    assert created["version"] == 1
    assert created["approval_history"][0]["action"] == "submit"


def test_create_money_request_validation_failures_return_422():
    with TestClient(app) as client:
        non_positive = client.post(
            "/money/requests", json={"requested_by": "emp_001", "amount": "0"}
        )
        unknown_requester = client.post(
            "/money/requests", json={"requested_by": "emp_nobody", "amount": "10"}
        )
        malformed = client.post("/money/requests", json={"requested_by": "emp_001"})

    assert non_positive.status_code == 422
    assert non_positive.json()["detail"]["code"] == "VALIDATION_FAILED"
    assert unknown_requester.status_code == 422
    assert unknown_requester.json()["detail"]["code"] == "NO_APPROVER_AVAILABLE"
    assert malformed.status_code == 422


def test_small_request_lifecycle_to_disbursement():
    with TestClient(app) as client:
        request_id = _create(client, amount="1500")["request_id"]

        manager = _approve(client, request_id, "emp_mgr", expected_status="Pending")
        finance = _approve(client, request_id, "emp_fin", actor_role="Finance")
        disbursed = client.post(
            f"/money/requests/{request_id}/disburse",
            json={"actor_id": "emp_fin", "comment": "Paid in cash"},
        )
        history = client.get(f"/money/requests/{request_id}/history")
        detail = client.get(f"/money/requests/{request_id}")

    assert manager.status_code == 200
    assert manager.json()["status"] == "Finance Review"
    assert manager.json()["current_approver"] == "emp_fin"
    assert finance.json()["status"] == "Approved"
    assert finance.json()["current_approver"] is None
    assert disbursed.status_code == 200
    assert disbursed.json()["status"] == "Disbursed"
    assert [entry["action"] for entry in history.json()["entries"]] == [
        "submit",
        "approve",
        "approve",
        "disburse",
    ]
    assert history.json()["entries"][1]["routing"]["ceo_review_required"] is False
    assert detail.json()["ceo_review_required"] is False
    assert detail.json()["required_steps"] == [
        "Manager Review",
        "Finance Review",
        "Approved",
        "Disbursed",
    ]


def test_large_request_ceo_rejects_with_reason():
    with TestClient(app) as client:
        request_id = _create(client, amount="5000")["request_id"]
        manager = _approve(client, request_id, "emp_mgr")
        rejected = client.post(
            f"/money/requests/{request_id}/reject",
            json={"actor_id": "emp_ceo", "actor_role": "CEO", "reason": "over budget"},
        )
        late_approval = _approve(client, request_id, "emp_ceo")

    assert manager.json()["status"] == "CEO Review"
    assert manager.json()["current_approver"] == "emp_ceo"
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "Rejected"
    assert rejected.json()["rejection_reason"] == "over budget"
    assert rejected.json()["current_approver"] is None
    assert late_approval.status_code == 422
    assert late_approval.json()["detail"]["code"] == "INVALID_STATE"
    assert late_approval.json()["detail"]["status"] == "Rejected"


def test_wrong_actor_gets_403_with_authoritative_state():
    with TestClient(app) as client:
        request_id = _create(client)["request_id"]
        response = _approve(client, request_id, "emp_intruder", actor_role="Manager")
        fetched = client.get(f"/money/requests/{request_id}")

    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["code"] == "NOT_AUTHORIZED"
    assert detail["status"] == "Pending"
    assert detail["current_approver"] == "emp_mgr"
    assert fetched.json()["request"]["version"] == 1


def test_reject_without_reason_returns_422():
    with TestClient(app) as client:
        request_id = _create(client)["request_id"]
        response = client.post(
            f"/money/requests/{request_id}/reject",
            json={"actor_id": "emp_mgr", "reason": "   "},
        )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "MISSING_REASON"
    assert response.json()["detail"]["status"] == "Pending"


def test_disburse_requires_role_and_approved_status():
    with TestClient(app) as client:
        request_id = _create(client)["request_id"]
        too_early = client.post(
            f"/money/requests/{request_id}/disburse", json={"actor_id": "emp_fin"}
        )
        _approve(client, request_id, "emp_mgr")
        _approve(client, request_id, "emp_fin")
        wrong_role = client.post(
            f"/money/requests/{request_id}/disburse", json={"actor_id": "emp_mgr"}
        )

    assert too_early.status_code == 422
    assert too_early.json()["detail"]["code"] == "INVALID_STATE"
    assert wrong_role.status_code == 403
    assert wrong_role.json()["detail"]["status"] == "Approved"


def test_expected_status_mismatch_returns_409():
    with TestClient(app) as client:
        request_id = _create(client)["request_id"]
        response = _approve(client, request_id, "emp_mgr", expected_status="CEO Review")

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "STATE_CONFLICT"
    assert response.json()["detail"]["status"] == "Pending"


def test_unknown_request_returns_404():
    with TestClient(app) as client:
        detail = client.get("/money/requests/mr_missing")
        history = client.get("/money/requests/mr_missing/history")
        approve = _approve(client, "mr_missing", "emp_mgr")

    assert detail.status_code == 404
    assert detail.json()["detail"]["code"] == "MONEY_REQUEST_NOT_FOUND"
    assert history.status_code == 404
    assert approve.status_code == 404


def test_list_pending_queue_and_summary():
    with TestClient(app) as client:
        fuel = _create(client, amount="300", title="Fuel")["request_id"]
        laptop = _create(
            client,
            amount="9000",
            title="Laptop",
            description="Replacement laptop for the accounts team",
            requested_by="emp_002",
        )["request_id"]
        _approve(client, laptop, "emp_mgr")

        listed = client.get("/money/requests", params={"limit": 1})
        second_page = client.get(
            "/money/requests", params={"limit": 1, "cursor": listed.json()["next_cursor"]}
        )
        by_status = client.get("/money/requests", params={"status": "CEO Review"})
        by_search = client.get("/money/requests", params={"search": "FUEL"})
        ceo_queue = client.get("/money/requests/pending/emp_ceo")
        manager_queue = client.get("/money/requests/pending/emp_mgr")
        summary = client.get("/money/requests/summary")

    assert [item["request_id"] for item in listed.json()["items"]] == [laptop]
    assert [item["request_id"] for item in second_page.json()["items"]] == [fuel]
    assert second_page.json()["next_cursor"] is None
    assert [item["request_id"] for item in by_status.json()["items"]] == [laptop]
    assert [item["request_id"] for item in by_search.json()["items"]] == [fuel]
    assert [item["request_id"] for item in ceo_queue.json()["items"]] == [laptop]
    assert [item["request_id"] for item in manager_queue.json()["items"]] == [fuel]
    assert summary.status_code == 200
    assert summary.json()["total_requests"] == 2
    assert summary.json()["pending_requests"] == 2
    assert summary.json()["pending_amount"] == "9300"


def test_threshold_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("MONEY_REQUEST_APPROVAL_THRESHOLD", "10000")
    with TestClient(app) as client:
        request_id = _create(client, amount="5000")["request_id"]
        response = _approve(client, request_id, "emp_mgr")

    assert response.json()["status"] == "Finance Review"
    routing = response.json()["approval_history"][-1]["routing"]
    assert routing["approval_threshold"] == "10000"


def test_malformed_org_directory_keeps_endpoints_available(monkeypatch):
    monkeypatch.setenv("ORG_DIRECTORY_JSON", '{"managers": ["emp_001"]}')
    with TestClient(app) as client:
        listed = client.get("/money/requests")
        created = client.post("/money/requests", json={"requested_by": "emp_001", "amount": "10"})

    assert listed.status_code == 200
    assert listed.json()["items"] == []
    assert created.status_code == 422
    assert created.json()["detail"]["code"] == "NO_APPROVER_AVAILABLE"


def test_workflow_feature_flag_disables_endpoints(monkeypatch):
    monkeypatch.setenv("MONEY_REQUEST_WORKFLOW_ENABLED", "false")
    with TestClient(app) as client:
        response = client.get("/money/requests")

    assert response.status_code == 404
    assert response.json()["detail"] == "MONEY_REQUEST_WORKFLOW_DISABLED"


def test_store_misconfiguration_returns_503(monkeypatch):
    monkeypatch.setenv("MONEY_REQUEST_STORE_BACKEND", "POSTGRES")
    monkeypatch.delenv("MONEY_REQUEST_POSTGRES_DSN", raising=False)
    with TestClient(app) as client:
        response = client.get("/money/requests")

    assert response.status_code == 503
    assert response.json()["detail"] == "MONEY_REQUEST_POSTGRES_DSN_REQUIRED"


def test_unhandled_error_returns_problem_details(monkeypatch):
    def _boom(**_kwargs):
        raise KeyError("unexpected")

    service = money_requests_router.get_money_request_workflow_service()
    monkeypatch.setattr(service, "get_summary", _boom)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/money/requests/summary")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["instance"] == "/money/requests/summary"
