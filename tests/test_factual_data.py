"""
Tests for the Factual Reliability Engine

Verifies:
- Reliability scores are bounded integers in [0, 100]
- Price-per-sqm outliers are routed away from the main set
- Missing-data flags and appraiser notes
- No valuation or price opinion ever appears in the output
"""

import pytest
from datetime import datetime
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shuma.factual import (
    FactualReliabilityEngine,
    FactualDataInput,
    SourceCredibility,
    build_factual_data_layer,
    completeness_score,
    reliability_score,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def as_of():
    """Fixed assessment moment for deterministic recency."""
    return datetime(2025, 1, 1)


@pytest.fixture
def engine(as_of):
    return FactualReliabilityEngine(as_of=as_of)


@pytest.fixture
def full_property():
    return {
        "address": {"city": "תל אביב", "street": "ויצמן", "houseNumber": "12"},
        "builtArea": 100,
        "totalArea": 110,
        "floor": 5,
        "totalFloors": 8,
        "buildYear": 2005,
        "amenities": ["elevator", "parking"],
        "source": {"source": "tabu", "credibility": "official", "updatedAt": "2024-12-01"},
    }


@pytest.fixture
def create_transaction():
    """Factory fixture for transaction facts."""
    def _create(id: str, price: float, area: float = 100, date: str = "2024-10-01", **extra) -> dict:
        tx = {
            "id": id,
            "price": price,
            "area": area,
            "date": date,
            "address": {"city": "תל אביב", "street": "ויצמן"},
            "source": {"source": "nadlan.gov.il", "credibility": "government"},
        }
        tx.update(extra)
        return tx
    return _create


@pytest.fixture
def full_input(full_property, create_transaction):
    return {
        "property": full_property,
        "transactions": [
            create_transaction("t1", 2_000_000),
            create_transaction("t2", 2_100_000),
            create_transaction("t3", 2_050_000),
            create_transaction("t4", 5_000_000),
        ],
        "planning": [
            {"planId": "TA/3616", "planName": "Tama 38", "landUse": "residential",
             "source": {"source": "iplan", "credibility": "municipality", "updatedAt": "2024-11-15"}},
        ],
    }


# =============================================================================
# Test: Scores
# =============================================================================

class TestScoreHelpers:
    """Tests for the scoring building blocks."""

    def test_completeness_counts_present_values(self):
        assert completeness_score([1, None, "", "x"]) == 50
        assert completeness_score([]) == 0
        assert completeness_score([0]) == 100

    def test_reliability_weighted_sum(self):
        assert reliability_score(100, 100, 100, 100) == 100
        assert reliability_score(0, 0, 0, 0) == 0
        assert reliability_score(100, 100, 100, 80) == 97

    @pytest.mark.parametrize("value,expected", [
        ("2024-12-01", 100),
        ("2024-08-01", 90),
        ("2024-03-01", 75),
        ("2023-06-01", 60),
        ("2020-01-01", 40),
        (None, 50),
        ("not-a-date", 50),
    ])
    def test_recency_buckets(self, engine, value, expected):
        assert engine.recency_score(value) == expected

    def test_unparseable_as_of_rejected(self):
        with pytest.raises(ValueError):
            FactualReliabilityEngine(as_of="last week")

    def test_unknown_credibility(self):
        assert SourceCredibility.from_string("blog") is SourceCredibility.UNKNOWN
        assert SourceCredibility.from_string("Official") is SourceCredibility.OFFICIAL


# =============================================================================
# Test: Factual Data Layer
# =============================================================================

class TestFactualDataLayer:
    """Tests for build_factual_data_layer."""

    def test_outlier_routed_out(self, full_input, as_of):
        result = build_factual_data_layer(full_input, as_of=as_of)

        assert [t.id for t in result.outliers_detected] == ["t4"]
        assert [t.id for t in result.transactions_used] == ["t1", "t2", "t3"]

    def test_transaction_without_area_kept(self, full_input, create_transaction, as_of):
        full_input["transactions"].append(create_transaction("no-area", 9_000_000, area=None))
        result = build_factual_data_layer(full_input, as_of=as_of)

        kept = {t.id: t for t in result.transactions_used}
        assert "no-area" in kept
        assert kept["no-area"].price_per_sqm is None
        assert kept["no-area"].deviation_pct is None

    def test_scores_bounded(self, full_input, as_of):
        result = build_factual_data_layer(full_input, as_of=as_of)

        assert 0 <= result.data_reliability_score <= 100
        assert isinstance(result.data_reliability_score, int)
        for tx in result.transactions_used + result.outliers_detected:
            assert 0 <= tx.reliability <= 100
        for plan in result.planning_used:
            assert 0 <= plan.reliability <= 100

    def test_complete_input_has_no_missing_flags(self, full_input, as_of):
        result = build_factual_data_layer(full_input, as_of=as_of)

        assert result.missing_data == []
        assert "Outliers removed" in result.notes_for_appraiser
        assert "incomplete" not in result.notes_for_appraiser

    def test_empty_input_flags_everything(self, as_of):
        result = build_factual_data_layer({}, as_of=as_of)

        assert result.property_summary is None
        assert result.missing_data == [
            "Missing property details",
            "No transaction records",
            "No planning/zoning records",
        ]
        assert result.transactions_used == []
        assert 0 <= result.data_reliability_score <= 100

    def test_partial_property_flags(self, as_of):
        result = build_factual_data_layer({"property": {"address": {"city": "חיפה"}}}, as_of=as_of)

        assert "Property address incomplete" in result.missing_data
        assert "Property area missing" in result.missing_data

    def test_notes_always_disclaim_valuation(self, full_input, as_of):
        for data in (full_input, {}):
            result = build_factual_data_layer(data, as_of=as_of)
            assert "No valuation or price opinion generated" in result.notes_for_appraiser

    def test_no_valuation_keys_in_output(self, full_input, as_of):
        data = build_factual_data_layer(full_input, as_of=as_of).to_dict()

        assert set(data) == {
            "property_summary",
            "transactions_used",
            "outliers_detected",
            "planning_used",
            "missing_data",
            "data_reliability_score",
            "notes_for_appraiser",
        }
        for forbidden in ("valuation", "estimate", "value_range", "mid"):
            assert forbidden not in data

    def test_accepts_typed_input(self, engine, full_input):
        typed = FactualDataInput.from_dict(full_input)
        result = engine.build(typed)

        assert result.property_summary["built_area"] == 100
        assert result.property_summary["source"]["credibility"] == "official"

    def test_deterministic_for_same_as_of(self, full_input, as_of):
        first = build_factual_data_layer(full_input, as_of=as_of).to_dict()
        second = build_factual_data_layer(full_input, as_of=as_of).to_dict()
        assert first == second

    def test_planning_reliability(self, full_input, as_of):
        result = build_factual_data_layer(full_input, as_of=as_of)
        plan = result.planning_used[0]

        # completeness 60, municipality 95, recency 100, default consistency 70
        assert plan.reliability == round(60 * 0.35 + 95 * 0.30 + 100 * 0.20 + 70 * 0.15)
