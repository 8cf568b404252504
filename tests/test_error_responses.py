"""Tests for API error response formats."""

from typing import Any

from fastapi.testclient import TestClient

import helpdesk_automation.api.app as app_module
from helpdesk_automation.actions.executor import ActionExecutor
from helpdesk_automation.api.app import create_app
from helpdesk_automation.api.deps import get_rule_store
from helpdesk_automation.core.config import Settings
from helpdesk_automation.engine.registry import EngineRegistry

from tests.fakes import FakeAIPort, FakeRuleRepository, RecordingHandler

TENANT = {"X-Tenant-ID": "tenant-a"}


class FakeRuleStore:
    """Minimal rule store for error response tests."""

    async def find_by_id(self, rule_id: str, tenant_id: str) -> Any | None:
        return None

    async def find_by_tenant(self, tenant_id: str) -> list:
        return []


def _make_client(monkeypatch) -> TestClient:
    async def _noop() -> None:
        return None

    monkeypatch.setattr(app_module, "init_redis_pool", _noop)
    monkeypatch.setattr(app_module, "close_redis_pool", _noop)

    registry = EngineRegistry(
        FakeRuleRepository(),
        FakeAIPort(),
        ActionExecutor([RecordingHandler(types=("add_tag",))]),
        Settings(_env_file=None),
    )
    app = create_app(registry=registry)
    app.dependency_overrides[get_rule_store] = lambda: FakeRuleStore()
    return TestClient(app)


def test_http_exception_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/api/v1/rules/missing-rule", headers=TENANT)

    assert response.status_code == 404
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Rule missing-rule not found"
    assert "data" in payload


def test_missing_tenant_header(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/api/v1/rules")

    assert response.status_code == 400
    assert response.json()["message"] == "Missing X-Tenant-ID header"


def test_validation_error_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post("/api/v1/rules", json={"name": ""}, headers=TENANT)

    assert response.status_code == 422
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Validation error"
    assert isinstance(payload["data"], list)
    assert payload["data"]


def test_rule_configuration_error_lists_problems(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post(
        "/api/v1/rules",
        json={
            "name": "Broken",
            "trigger": {"conditions": [{"field": "content", "operator": "regex", "value": "[unclosed"}]},
            "actions": [{"id": "a1", "type": "launch_rocket"}],
        },
        headers=TENANT,
    )

    assert response.status_code == 422
    payload = response.json()
    assert payload["message"] == "Invalid rule configuration"
    assert len(payload["data"]) == 2


def test_dry_run_of_unknown_rule_reports_error(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post(
        "/api/v1/rules/nope/test",
        json={"message": {"content": "hello"}},
        headers=TENANT,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["matched"] is False
    assert payload["data"]["error"] == "Rule nope not found"


def test_health_and_metrics(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    health = client.get("/health")
    metrics = client.get("/metrics")

    assert health.json()["status"] == "ok"
    assert metrics.status_code == 200
    assert "automation_active_engines" in metrics.text
