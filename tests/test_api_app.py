"""
Tests for the FastAPI endpoints. Stores are swapped through
app.dependency_overrides so no Supabase project is needed.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

import api_app
import settings
from config_store import ConfigStore
from job_store import JobStore
from local_storage import LocalStorage


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path)


@pytest.fixture
def client(storage, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    api_app.app.dependency_overrides[api_app.get_job_store] = lambda: JobStore(None, storage)
    api_app.app.dependency_overrides[api_app.get_config_store] = lambda: ConfigStore(storage)
    yield TestClient(api_app.app)
    api_app.app.dependency_overrides.clear()


QUOTE_BODY = {"part_type": "Bracket", "material": "steel", "quantity": 10, "complexity": "medium"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_quote_in_demo_mode(client):
    r = client.post("/quote", json=QUOTE_BODY)

    assert r.status_code == 200
    body = r.json()
    assert body["demo_mode"] is True
    assert body["status"] == "warning"
    assert 486 <= body["quote"] <= 594
    assert body["breakdown"]["base_cost"] == 450.0
    assert body["job"]["part_type"] == "Bracket"
    assert body["job"]["id"]
    assert body["error"] is None


def test_quote_validation_errors(client):
    r = client.post("/quote", json={"part_type": "", "material": "steel", "quantity": "zero"})

    assert r.status_code == 422
    assert r.json()["detail"]["errors"] == {
        "part_type": "Part type is required",
        "quantity": "Valid quantity is required",
    }


def test_quote_uses_saved_pricing(client):
    r = client.put("/pricing-config", json={
        "material_prices": {"steel": 15},
        "rush_fee_enabled": True,
        "rush_fee_amount": 100,
        "margin_percentage": 0,
    })
    assert r.status_code == 200

    body = client.post("/quote", json=QUOTE_BODY).json()

    assert body["breakdown"]["rush_fee_amount"] == 100.0
    assert body["job"]["rush_fee_enabled"] is True
    assert body["job"]["margin_percentage"] == 0
    assert 505 <= body["quote"] <= 595


def test_local_jobs_lists_demo_saves(client):
    client.post("/quote", json=QUOTE_BODY)
    client.post("/quote", json={**QUOTE_BODY, "part_type": "Gear"})

    jobs = client.get("/jobs/local").json()["jobs"]

    assert [j["part_type"] for j in jobs] == ["Bracket", "Gear"]


def test_jobs_returns_empty_list_with_error_when_offline(client):
    body = client.get("/jobs").json()
    assert body["jobs"] == []
    assert body["error"]


def test_jobs_from_remote(client, storage):
    sb = MagicMock()
    sb.table.return_value.select.return_value.order.return_value.limit.return_value.execute.return_value = MagicMock(
        data=[{"id": "u1", "part_type": "Gear", "material": "steel", "quantity": 3,
               "complexity": "low", "quote": 80.25, "created_at": "2026-10-18T10:00:00+00:00"}]
    )
    api_app.app.dependency_overrides[api_app.get_job_store] = lambda: JobStore(sb, storage)

    body = client.get("/jobs", params={"limit": 10}).json()

    assert body["error"] is None
    assert body["jobs"][0]["id"] == "u1"
    assert body["jobs"][0]["quote"] == 80.25


def test_pricing_config_defaults(client):
    body = client.get("/pricing-config").json()
    assert body["material_prices"] == {"aluminum": 10, "steel": 15, "plastic": 5, "titanium": 50}
    assert body["margin_percentage"] == 20
    assert body["customized"] is False


def test_ai_suggestion_falls_back_without_key(client):
    r = client.post("/ai-suggestion", json=QUOTE_BODY)

    assert r.status_code == 200
    body = r.json()
    assert body["used_fallback"] is True
    assert body["suggestion"].startswith("$")
    assert 405 <= body["amount"] <= 540


def test_api_key_is_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")

    assert client.post("/quote", json=QUOTE_BODY).status_code == 401
    assert client.post("/quote", json=QUOTE_BODY, headers={"x-api-key": "secret"}).status_code == 200


def test_quote_rejects_superscript_quantity(client):
    r = client.post("/quote", json={**QUOTE_BODY, "quantity": "²"})

    assert r.status_code == 422
    assert r.json()["detail"]["errors"] == {"quantity": "Valid quantity is required"}
