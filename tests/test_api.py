"""
Tests for the JSON API.

Uses FastAPI's TestClient against an in-memory app (no files written).
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from utils.config import Config
from web.app import create_app


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def client(tmp_path):
    """Client for an app with in-memory repository and store."""
    config = Config(data_dir=str(tmp_path), default_top_k=5)
    return TestClient(create_app(config=config, persist=False))


@pytest.fixture
def raw_row():
    return {
        "source": "gov-tax-feed",
        "sourceRecordId": "TX-1",
        "address": "רח' ויצמן 12 תל אביב",
        "transactionDate": "2024-06-01",
        "price": 2_500_000,
        "areaSqm": 95,
    }


@pytest.fixture
def valuation_request():
    return {
        "subject": {"area_sqm": 100, "floor_num": 5, "rooms": 4, "building_age_years": 20},
        "pool": [
            {"id": "a", "distance_meters": 300, "area_sqm": 98, "floor_num": 5, "rooms": 4,
             "building_age_years": 18, "price": 2_700_000},
            {"id": "b", "distance_meters": 450, "area_sqm": 105, "floor_num": 6, "rooms": 4,
             "building_age_years": 22, "price": 2_850_000},
            {"id": "c", "distance_meters": 650, "area_sqm": 92, "floor_num": 4, "rooms": 3.5,
             "building_age_years": 25, "price": 2_550_000},
        ],
    }


# =============================================================================
# Test: Health
# =============================================================================

class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# =============================================================================
# Test: Address
# =============================================================================

class TestAddressRoutes:

    def test_normalize(self, client):
        response = client.post("/api/v1/address/normalize", json={"address": "רח' ויצמן 12 תל אביב דירה 4"})

        assert response.status_code == 200
        body = response.json()
        assert body["city"] == "תל אביב"
        assert body["apartment"] == "4"

    def test_compare(self, client):
        response = client.post("/api/v1/address/compare", json={"a": "הרצל 5 חיפה", "b": "הרצל 5 חיפה"})

        assert response.status_code == 200
        assert response.json()["score"] == pytest.approx(1.0)

    def test_missing_field_is_422(self, client):
        response = client.post("/api/v1/address/normalize", json={})
        assert response.status_code == 422


# =============================================================================
# Test: Ingestion
# =============================================================================

class TestIngestionRoutes:

    def test_run_and_fetch(self, client, raw_row):
        response = client.post(
            "/api/v1/ingestion/run",
            json={"rows": [raw_row, dict(raw_row, sourceRecordId="TX-2"), dict(raw_row, price=0)],
                  "reference_date": "2025-01-01"},
        )
        assert response.status_code == 200
        run = response.json()
        assert run["summary"]["clean_count"] == 1
        assert run["summary"]["duplicate_count"] == 1
        assert run["summary"]["error_count"] == 1

        fetched = client.get(f"/api/v1/ingestion/{run['run_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["run_id"] == run["run_id"]

        listed = client.get("/api/v1/ingestion/runs")
        assert listed.status_code == 200
        assert listed.json()["count"] == 1
        assert "result" not in listed.json()["runs"][0]

    def test_unknown_run_is_404(self, client):
        response = client.get("/api/v1/ingestion/ing_missing")
        assert response.status_code == 404

    def test_fingerprint_store_dedupes_across_runs(self, client, raw_row):
        payload = {"rows": [raw_row], "use_fingerprint_store": True}
        client.post("/api/v1/ingestion/run", json=payload)
        second = client.post("/api/v1/ingestion/run", json=payload).json()

        assert second["summary"]["clean_count"] == 0
        assert second["summary"]["duplicate_count"] == 1


# =============================================================================
# Test: Comparables and Valuation
# =============================================================================

class TestValuationRoutes:

    def test_search(self, client, valuation_request):
        response = client.post("/api/v1/comparables/search", json=dict(valuation_request, top_k=2))

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["comparables"][0]["id"] == "a"

    def test_estimate(self, client, valuation_request):
        response = client.post("/api/v1/valuations/estimate", json=valuation_request)

        assert response.status_code == 200
        valuation = response.json()["valuation"]
        assert valuation["low"] <= valuation["mid"] <= valuation["high"]
        assert valuation["comparables_used"] == 3

    def test_estimate_empty_pool(self, client, valuation_request):
        response = client.post("/api/v1/valuations/estimate", json=dict(valuation_request, pool=[]))

        assert response.status_code == 200
        assert response.json()["valuation"]["is_sufficient"] is False


# =============================================================================
# Test: Factual Data
# =============================================================================

class TestFactualRoute:

    def test_factual_data(self, client):
        response = client.post(
            "/api/v1/factual-data",
            json={"property": {"address": {"city": "חיפה", "street": "הרצל"}, "builtArea": 80},
                  "as_of": "2025-01-01T00:00:00"},
        )

        assert response.status_code == 200
        body = response.json()
        assert "No planning/zoning records" in body["missing_data"]
        assert 0 <= body["data_reliability_score"] <= 100
        assert "valuation" not in body
