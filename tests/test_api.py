"""
HTTP tests for the trainset and scoring config routers
"""
import pytest
from fastapi.testclient import TestClient

from kmrl_induction.config import settings
from kmrl_induction.main import create_app
from kmrl_induction.utils.database import InMemoryTrainsetRepository, load_demo_fleet


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "api_key", None)
    app = create_app(InMemoryTrainsetRepository(load_demo_fleet()))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_list_trainsets(client):
    response = client.get("/api/trainsets/")
    assert response.status_code == 200

    data = response.json()
    assert len(data) == 7
    first = data[0]
    assert first["id"] == "TS-01"
    assert first["mileageKm"] == 12450
    assert first["fitness"]["rollingStock"]["status"] == "PASS"
    assert first["explanation"]["promoters"][0]["code"] == "BRANDING_HIGH"
    assert "lastConflictCheck" in first


def test_get_trainset_and_not_found(client):
    response = client.get("/api/trainsets/TS-07")
    assert response.status_code == 200
    assert [c["type"] for c in response.json()["conflicts"]] == [
        "MISSING_CERTIFICATE",
        "MISSING_CERTIFICATE",
        "MILEAGE_IMBALANCE",
    ]

    assert client.get("/api/trainsets/TS-99").status_code == 404


def test_conflicts_endpoint(client):
    data = client.get("/api/trainsets/conflicts").json()
    assert [entry["trainsetId"] for entry in data["conflicts"]] == ["TS-03", "TS-07"]


def test_scored_induction_defaults(client):
    data = client.get("/api/trainsets/scored-induction").json()

    assert data["total"] == 7
    assert data["limit"] == settings.scored_induction_default_limit
    assert data["weights"]["fitnessPass"] == 10
    assert [t["score"] for t in data["ranked"]] == [53, 53, 53, 24, 20, -118, -153]
    assert data["ranked"][0]["breakdown"] == {
        "fitness": 30,
        "mileage": 8,
        "branding": 6,
        "cleaning": 4,
        "jobCard": 5,
        "penalties": 0,
    }


def test_scored_induction_filters_and_paging(client):
    data = client.get("/api/trainsets/scored-induction", params={"minScore": "10", "skip": 2, "limit": 2}).json()
    assert data["total"] == 5
    assert [t["id"] for t in data["ranked"]] == ["TS-06", "TS-05"]


def test_scored_induction_weight_overrides(client):
    params = {"w_fitnessPass": "20", "w_bogus": "5", "w_jobCardOpen": "abc"}
    data = client.get("/api/trainsets/scored-induction", params=params).json()

    assert data["weights"]["fitnessPass"] == 20
    assert data["weights"]["jobCardOpen"] == -8
    assert "bogus" not in data["weights"]
    assert data["ranked"][0]["score"] == 83


def test_scored_induction_blank_and_unknown_filters(client):
    blank = client.get("/api/trainsets/scored-induction", params={"decision": ""}).json()
    assert blank["total"] == 7

    unknown = client.get("/api/trainsets/scored-induction", params={"jobCardOpen": "maybe"}).json()
    assert unknown["total"] == 0
    assert unknown["ranked"] == []


def test_scored_induction_limit_clamped(client):
    data = client.get("/api/trainsets/scored-induction", params={"limit": 10_000}).json()
    assert data["limit"] == settings.scored_induction_max_limit


def test_simulate(client):
    response = client.post("/api/trainsets/simulate", json={"rules": {"ignoreJobCards": True}})
    assert response.status_code == 200

    data = response.json()
    assert data["rules"]["ignoreJobCards"] is True
    assert sum(data["counts"].values()) == 7
    assert len(data["results"]) == 7
    # TS-03 and TS-07 stay withdrawn on fitness failures
    assert data["changes"] == []


def test_simulate_requires_rules(client):
    assert client.post("/api/trainsets/simulate", json={}).status_code == 422


def test_patch_decision_and_audit(client):
    response = client.patch(
        "/api/trainsets/TS-03",
        json={"recommendation": "REVENUE", "manualOverride": True},
        headers={"X-Actor": "controller"},
    )
    assert response.status_code == 200

    data = response.json()
    assert data["recommendation"] == "REVENUE"
    assert data["manualOverride"] is True
    assert data["explanation"]["overrides"][-1]["code"] == "REVENUE_WITH_BLOCKERS"

    logs = client.get("/api/trainsets/audit", params={"trainsetId": "TS-03"}).json()["logs"]
    assert len(logs) == 1
    assert logs[0]["action"] == "UPDATE_DECISION"
    assert logs[0]["actor"] == "controller"


def test_patch_rejects_unknown_decision(client):
    response = client.patch("/api/trainsets/TS-03", json={"recommendation": "MAINTENANCE"})
    assert response.status_code == 422


def test_patch_missing_trainset(client):
    response = client.patch("/api/trainsets/TS-99", json={"recommendation": "IBL"})
    assert response.status_code == 404


def test_api_key_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "api_key", "secret")

    assert client.patch("/api/trainsets/TS-01", json={"recommendation": "IBL"}).status_code == 401
    response = client.patch(
        "/api/trainsets/TS-01",
        json={"recommendation": "IBL"},
        headers={"X-API-Key": "secret"},
    )
    assert response.status_code == 200


def test_ml_suggestions(client):
    data = client.get("/api/trainsets/ml-suggestions", params={"limit": 2}).json()

    assert data["limit"] == 2
    assert data["onlyChanged"] is False
    assert len(data["suggestions"]) == 2
    assert data["suggestions"][0]["confidence"] == 100


def test_scoring_config_endpoints(client):
    assert client.get("/api/config/scoring").json()["weights"]["fitnessPass"] == 10

    response = client.put("/api/config/scoring", json={"weights": {"fitnessPass": 12}})
    assert response.status_code == 200
    assert response.json()["weights"]["fitnessPass"] == 12

    ranked = client.get("/api/trainsets/scored-induction").json()
    assert ranked["weights"]["fitnessPass"] == 12

    reset = client.delete("/api/config/scoring").json()
    assert reset["weights"]["fitnessPass"] == 10


def test_trainset_conflicts_endpoint(client):
    response = client.get("/api/trainsets/TS-03/conflicts")
    assert response.status_code == 200

    data = response.json()
    assert set(data) == {"conflicts", "lastConflictCheck"}
    assert [c["type"] for c in data["conflicts"]] == ["MISSING_CERTIFICATE", "MISSING_CERTIFICATE"]
    assert data["lastConflictCheck"] is not None

    assert client.get("/api/trainsets/TS-01/conflicts").json()["conflicts"] == []
    assert client.get("/api/trainsets/TS-99/conflicts").status_code == 404


def test_debug_flag_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "debug", True)
    assert create_app(InMemoryTrainsetRepository()).debug is True

    monkeypatch.setattr(settings, "debug", False)
    assert create_app(InMemoryTrainsetRepository()).debug is False
