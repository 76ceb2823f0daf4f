from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.pricing import router


SAMPLE_RULES = Path(__file__).parent / "fixtures" / "sample" / "rules.json"


@pytest.fixture
def client(monkeypatch):
    for name in ("PRICING_CURRENCY", "PRICING_LIFT_FLOOR_THRESHOLD", "PRICING_ALLOW_INFERENCE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PRICING_RULES_FILE", str(SAMPLE_RULES))
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


def test_price_quote_endpoint(client):
    response = client.post(
        "/pricing/quote",
        json={
            "quote": {
                "pickup": {"floor": 2, "declared_constraint_ids": ["difficult_stairs"]},
                "delivery": {"floor": 0},
            },
            "base_price": "600",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["final_price"]["amount"] == "635.00"
    assert body["lift_required"] is False
    assert [rule["rule_id"] for rule in body["applied_rules"]] == ["difficult_stairs"]


def test_invalid_address_is_rejected(client):
    response = client.post(
        "/pricing/quote",
        json={"quote": {"pickup": {"floor": -1}}, "base_price": "100"},
    )
    assert response.status_code == 422
    assert "Floor" in response.json()["detail"]


def test_missing_rule_file_setting(client, monkeypatch):
    monkeypatch.delenv("PRICING_RULES_FILE")
    response = client.post("/pricing/quote", json={"quote": {}, "base_price": "100"})
    assert response.status_code == 500


def test_detect_endpoint(client):
    response = client.post(
        "/pricing/detect",
        json={"pickup": {"floor": 5}, "delivery": {"floor": 1, "carry_distance_band": "long"}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["automatic_constraints"] == {
        "pickup": ["furniture_lift_required"],
        "delivery": ["long_carrying_distance"],
    }
    assert body["pickup"]["lift_required"] is True
    assert body["warnings"] == {"pickup": True, "delivery": False}
