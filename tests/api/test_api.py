"""
Integration tests for the Sentinel API routers.

Tests cover:
- Response envelope
- Portfolio, recommendations, activity and system endpoints
- Domain error to HTTP status mapping
"""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from sentinel.api.main import create_app
from sentinel.api.routers.base import create_response
from sentinel.core.core import RiskManager
from sentinel.data.providers import StaticPriceSource
from sentinel.signals import RecommendationAction


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def app(manager):
    return create_app(manager=manager)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def loaded_client(client):
    client.post("/api/portfolio/positions", json={"symbol": "RELIANCE", "quantity": 100, "price": 100.0})
    client.post("/api/portfolio/positions", json={"symbol": "TCS", "quantity": 20, "price": 250.0})
    return client


def assert_envelope(body, success=True):
    assert set(body) == {"success", "data", "error", "timestamp"}
    assert body["success"] is success


# =============================================================================
# System
# =============================================================================


class TestSystemRouter:
    """Tests for health and simulation endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert_envelope(body)
        assert body["data"]["status"] == "operational"

    def test_simulation_tick(self, loaded_client):
        response = loaded_client.post("/api/simulation/tick")
        assert response.status_code == 200
        assert response.json()["data"]["portfolio"]["positionCount"] == 2


# =============================================================================
# Portfolio
# =============================================================================


class TestPortfolioRouter:
    """Tests for portfolio endpoints."""

    def test_open_position(self, client):
        response = client.post(
            "/api/portfolio/positions",
            json={"symbol": "hdfc", "quantity": 5, "price": 1650.0, "type": "SHORT"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["symbol"] == "HDFC"
        assert data["type"] == "SHORT"
        assert data["riskScore"] == 50.0

    def test_open_position_invalid_quantity(self, client):
        response = client.post("/api/portfolio/positions", json={"symbol": "HDFC", "quantity": 0, "price": 10.0})
        assert response.status_code == 422
        body = response.json()
        assert_envelope(body, success=False)
        assert body["data"]["code"] == "INVALID_INPUT"

    def test_summary(self, loaded_client):
        data = loaded_client.get("/api/portfolio").json()["data"]
        assert data["positionCount"] == 2
        assert data["totalValue"] == 15000.0
        assert data["riskScore"] == 50.0

    def test_positions_in_order(self, loaded_client):
        data = loaded_client.get("/api/portfolio/positions").json()["data"]
        assert [p["symbol"] for p in data] == ["RELIANCE", "TCS"]

    def test_refresh(self, loaded_client):
        response = loaded_client.post("/api/portfolio/refresh")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["updated"] == 2
        assert data["portfolio"]["totalValue"] == pytest.approx(11000.0 + 4800.0)

    def test_refresh_with_broken_source_keeps_prices(self, loaded_client, manager):
        manager.price_source = StaticPriceSource(error=RuntimeError("upstream returned HTML"))
        response = loaded_client.post("/api/portfolio/refresh")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["updated"] == 0
        assert data["portfolio"]["totalValue"] == pytest.approx(10000.0 + 5000.0)

    def test_snapshot(self, loaded_client):
        data = loaded_client.get("/api/portfolio/snapshot").json()["data"]
        assert data["summary"]["positionCount"] == 2
        assert len(data["positions"]) == 2


# =============================================================================
# Recommendations
# =============================================================================


class TestRecommendationsRouter:
    """Tests for recommendation endpoints."""

    def test_analyze_and_list(self, loaded_client):
        response = loaded_client.post("/api/recommendations/analyze")
        assert response.status_code == 200
        assert [r["action"] for r in response.json()["data"]] == ["REDUCE", "HOLD"]
        listed = loaded_client.get("/api/recommendations").json()["data"]
        assert len(listed) == 2

    def test_execute(self, loaded_client):
        recs = loaded_client.post("/api/recommendations/analyze").json()["data"]
        response = loaded_client.post(f"/api/recommendations/{recs[0]['id']}/execute")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["outcome"] == "EXECUTED"
        assert data["quantity"] == 50

    def test_execute_unknown(self, client):
        response = client.post("/api/recommendations/rec_missing/execute")
        assert response.status_code == 404
        body = response.json()
        assert_envelope(body, success=False)
        assert body["data"]["outcome"] == "NOT_FOUND"

    def test_execute_insufficient_cash(self, loaded_client, manager, make_recommendation):
        rec = make_recommendation("TCS", RecommendationAction.BUY_DIP, suggested_quantity=10)
        manager.queue.replace_all([rec])
        response = loaded_client.post(f"/api/recommendations/{rec.recommendation_id}/execute")
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["data"]["outcome"] == "REJECTED"
        assert body["data"]["error"]["code"] == "INSUFFICIENT_CASH"
        assert len(loaded_client.get("/api/recommendations").json()["data"]) == 1

    def test_dismiss(self, loaded_client):
        recs = loaded_client.post("/api/recommendations/analyze").json()["data"]
        response = loaded_client.post(f"/api/recommendations/{recs[1]['id']}/dismiss")
        assert response.json()["data"]["status"] == "DISMISSED"
        assert len(loaded_client.get("/api/recommendations").json()["data"]) == 1

    def test_dismiss_unknown_is_noop(self, client):
        response = client.post("/api/recommendations/rec_missing/dismiss")
        assert response.status_code == 200
        assert response.json()["data"] is None

    def test_analyze_without_source(self, settings):
        manager = RiskManager(settings, price_source=StaticPriceSource())
        manager.book.open("TCS", 1, 100.0)
        client = TestClient(create_app(manager=manager))
        response = client.post("/api/recommendations/analyze")
        assert response.status_code == 503
        assert response.json()["data"]["code"] == "SOURCE_UNAVAILABLE"


# =============================================================================
# Activity
# =============================================================================


class TestActivityRouter:
    """Tests for the activity endpoint."""

    def test_activity(self, loaded_client):
        data = loaded_client.get("/api/activity").json()["data"]
        assert [e["type"] for e in data] == ["ACTION", "ACTION"]
        assert data[0]["message"].startswith("Added position: RELIANCE")

    def test_filter_and_limit(self, loaded_client):
        loaded_client.post("/api/portfolio/refresh")
        data = loaded_client.get("/api/activity", params={"type": "ACTION", "limit": 1}).json()["data"]
        assert len(data) == 1
        assert data[0]["message"].startswith("Added position: TCS")


# =============================================================================
# Response Envelope
# =============================================================================


class TestResponseEnvelope:
    """Tests for create_response and numpy conversion."""

    def test_numpy_values_become_native(self):
        response = create_response(data={
            "value": np.float64(1.5),
            "count": np.int64(2),
            "flag": np.bool_(True),
            "missing": np.float64("nan"),
            "rows": [{"quantity": np.int32(3)}],
        })
        assert response.success
        assert response.data == {
            "value": 1.5,
            "count": 2,
            "flag": True,
            "missing": None,
            "rows": [{"quantity": 3}],
        }
        assert type(response.data["count"]) is int
        assert type(response.data["flag"]) is bool
        assert type(response.data["rows"][0]["quantity"]) is int

    def test_dataframe_records_serialize(self, funded_book):
        records = funded_book.to_dataframe().to_dict("records")
        response = create_response(data=records)
        assert [row["symbol"] for row in response.data] == ["RELIANCE", "TCS"]
        assert response.model_dump_json()

    def test_error_marks_failure(self):
        response = create_response(error="boom")
        assert not response.success
        assert response.data is None
