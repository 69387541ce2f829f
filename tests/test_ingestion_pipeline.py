"""
Tests for the Ingestion Pipeline

Verifies:
- Every row lands in exactly one of cleaned / duplicates / errors
- Rejection codes for invalid rows
- First occurrence wins within a batch
- Cross-run deduplication only through an injected store
- Deterministic recency with a fixed reference date
- Run repository persistence
"""

import json
import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shuma.ingestion import (
    RawTransactionRecord,
    IngestionPipeline,
    IngestionRun,
    IngestionRunRepository,
    InMemoryFingerprintStore,
    JsonFileFingerprintStore,
    FingerprintStore,
    REJECTION_CODES,
    run_ingestion_pipeline,
    compute_confidence_score,
    completeness_score,
    recency_score,
    source_reliability,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def reference_date():
    """Fixed reference date for deterministic tests."""
    return date(2025, 1, 1)


@pytest.fixture
def create_row():
    """Factory fixture for raw feed rows."""
    def _create(**overrides) -> dict:
        row = {
            "source": "gov-tax-feed",
            "sourceRecordId": "TX-1",
            "address": "רח' ויצמן 12 תל אביב",
            "transactionDate": "2024-06-01",
            "price": 2_500_000,
            "areaSqm": 95,
            "floorNum": 3,
            "rooms": 4,
            "lat": 32.0853,
            "lng": 34.7818,
        }
        row.update(overrides)
        return row
    return _create


@pytest.fixture
def pipeline(reference_date):
    """Pipeline with fixed reference date and no store."""
    return IngestionPipeline(reference_date=reference_date)


# =============================================================================
# Test: Partitioning
# =============================================================================

class TestPartitioning:
    """Every row ends up in exactly one partition."""

    def test_partition_counts_match_input(self, pipeline, create_row):
        rows = [
            create_row(),
            create_row(sourceRecordId="TX-2"),  # same fingerprint
            create_row(price=0),
            create_row(address="הרצל 5 חיפה", sourceRecordId="TX-3", lat=32.81, lng=34.99),
            42,
        ]
        result = pipeline.run(rows)

        assert result.total == len(rows)
        assert len(result.cleaned) == 2
        assert len(result.duplicates) == 1
        assert len(result.errors) == 2

    def test_empty_batch(self, pipeline):
        result = pipeline.run([])

        assert result.total == 0
        assert result.stats.avg_confidence == 0.0

    def test_accepts_record_instances(self, pipeline, create_row):
        record = RawTransactionRecord.from_dict(create_row())
        result = pipeline.run([record])

        assert len(result.cleaned) == 1
        assert result.cleaned[0].record is record


class TestValidation:
    """Tests for row rejection codes."""

    @pytest.mark.parametrize("overrides,code", [
        ({"source": ""}, "MISSING_SOURCE"),
        ({"sourceRecordId": None}, "MISSING_SOURCE_RECORD_ID"),
        ({"address": "   "}, "MISSING_ADDRESS"),
        ({"transactionDate": None}, "MISSING_TRANSACTION_DATE"),
        ({"price": 0}, "INVALID_PRICE"),
        ({"price": -100}, "INVALID_PRICE"),
        ({"price": "abc"}, "INVALID_PRICE"),
        ({"price": float("nan")}, "INVALID_PRICE"),
    ])
    def test_rejection_code(self, pipeline, create_row, overrides, code):
        result = pipeline.run([create_row(**overrides)])

        assert result.cleaned == []
        assert len(result.errors) == 1
        assert result.errors[0].code == code
        assert result.errors[0].reason == REJECTION_CODES[code]
        assert result.errors[0].index == 0

    @pytest.mark.parametrize("price", [float("inf"), float("nan"), -float("inf"), "abc", 0.0])
    def test_bad_price_on_record_instance(self, pipeline, create_row, price):
        valid = RawTransactionRecord.from_dict(create_row())
        record = RawTransactionRecord(
            source=valid.source,
            source_record_id="TX-BAD",
            address=valid.address,
            transaction_date=valid.transaction_date,
            price=price,
        )

        result = pipeline.run([record, valid])

        assert [e.code for e in result.errors] == ["INVALID_PRICE"]
        assert result.errors[0].index == 0
        assert [c.record for c in result.cleaned] == [valid]

    def test_non_mapping_row_is_invalid_record(self, pipeline):
        result = pipeline.run(["not a record"])

        assert result.errors[0].code == "INVALID_RECORD"

    def test_invalid_row_does_not_stop_batch(self, pipeline, create_row):
        result = pipeline.run([create_row(price=None), create_row()])

        assert result.errors[0].index == 0
        assert len(result.cleaned) == 1

    def test_price_with_thousands_separator_accepted(self, pipeline, create_row):
        result = pipeline.run([create_row(price="2,500,000")])

        assert result.cleaned[0].price == 2_500_000


class TestBatchDeduplication:
    """First occurrence of a fingerprint wins within one run."""

    def test_second_occurrence_is_duplicate(self, pipeline, create_row):
        first = create_row(sourceRecordId="A")
        second = create_row(sourceRecordId="B")
        result = pipeline.run([first, second])

        assert [r.source_record_id for r in result.cleaned] == ["A"]
        assert [r.source_record_id for r in result.duplicates] == ["B"]
        assert result.cleaned[0].dedupe_key == result.duplicates[0].dedupe_key

    def test_nearby_coordinates_collapse(self, pipeline, create_row):
        result = pipeline.run([
            create_row(lat=32.08531, lng=34.78181),
            create_row(sourceRecordId="TX-2", lat=32.08529, lng=34.78179),
        ])

        assert len(result.duplicates) == 1

    def test_runs_are_independent_without_store(self, pipeline, create_row):
        pipeline.run([create_row()])
        second = pipeline.run([create_row()])

        assert len(second.cleaned) == 1
        assert second.duplicates == []


class TestCrossRunDeduplication:
    """Cross-run deduplication through an injected FingerprintStore."""

    def test_store_routes_known_keys_to_duplicates(self, reference_date, create_row):
        store = InMemoryFingerprintStore()

        first = run_ingestion_pipeline([create_row()], reference_date, fingerprint_store=store)
        second = run_ingestion_pipeline([create_row()], reference_date, fingerprint_store=store)

        assert len(first.cleaned) == 1
        assert len(store) == 1
        assert second.cleaned == []
        assert len(second.duplicates) == 1

    def test_in_memory_store_satisfies_protocol(self):
        assert isinstance(InMemoryFingerprintStore(), FingerprintStore)

    def test_json_store_persists_keys(self, tmp_path):
        path = tmp_path / "fingerprints.json"
        store = JsonFileFingerprintStore(str(path))
        store.add("key-1")

        reloaded = JsonFileFingerprintStore(str(path))
        assert reloaded.has("key-1")
        assert not reloaded.has("key-2")
        assert json.loads(path.read_text(encoding="utf-8"))["fingerprints"] == ["key-1"]

    def test_corrupt_json_store_starts_empty(self, tmp_path):
        path = tmp_path / "fingerprints.json"
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileFingerprintStore(str(path))
        assert len(store) == 0


# =============================================================================
# Test: Scoring
# =============================================================================

class TestScoring:
    """Tests for completeness, recency, source and confidence scores."""

    def test_completeness_full_record(self, create_row):
        record = RawTransactionRecord.from_dict(create_row())
        assert completeness_score(record) == pytest.approx(1.0)

    def test_completeness_base_only(self, create_row):
        record = RawTransactionRecord.from_dict(
            create_row(areaSqm=None, floorNum=None, rooms=None, lat=None, lng=None)
        )
        assert completeness_score(record) == pytest.approx(0.4)

    def test_completeness_needs_both_coordinates(self, create_row):
        record = RawTransactionRecord.from_dict(
            create_row(areaSqm=None, floorNum=None, rooms=None, lng=None)
        )
        assert completeness_score(record) == pytest.approx(0.4)

    def test_recency_linear_in_months(self, reference_date):
        assert recency_score("2024-06-01", reference_date) == pytest.approx(1 - 7 / 48)

    def test_recency_beyond_horizon_is_zero(self, reference_date):
        assert recency_score("2020-01-01", reference_date) == 0.0

    def test_recency_future_date_is_one(self, reference_date):
        assert recency_score("2026-01-01", reference_date) == 1.0

    def test_recency_malformed_date_is_zero(self, reference_date):
        assert recency_score("01/06/2024", reference_date) == 0.0

    @pytest.mark.parametrize("source,expected", [
        ("gov-tax-feed", 0.95),
        ("Official-Registry", 0.95),
        ("yad2-listing", 0.65),
        ("marketplace", 0.65),
        ("user-entry", 0.75),
        (None, 0.75),
    ])
    def test_source_reliability(self, source, expected):
        assert source_reliability(source) == expected

    def test_confidence_weights(self):
        assert compute_confidence_score(1, 1, 1, 1, outlier_risk=0) == pytest.approx(1.0)
        assert compute_confidence_score(1, 1, 1, 1) == pytest.approx(0.95)
        assert compute_confidence_score(0, 0, 0, 0, outlier_risk=1) == 0.0

    def test_cleaned_confidence_in_range(self, pipeline, create_row):
        result = pipeline.run([create_row()])
        cleaned = result.cleaned[0]

        assert 0.0 <= cleaned.confidence_score <= 1.0
        assert result.stats.avg_confidence == pytest.approx(cleaned.confidence_score)

    def test_city_falls_back_to_parsed_city(self, pipeline, create_row):
        result = pipeline.run([create_row()])
        key = result.cleaned[0].dedupe_key

        assert key.split("|")[3] == "תל אביב"


# =============================================================================
# Test: Run Repository
# =============================================================================

class TestIngestionRunRepository:
    """Tests for storing completed runs."""

    def test_save_and_get(self, pipeline, create_row):
        repo = IngestionRunRepository()
        run = IngestionRun.create(pipeline.run([create_row()]), created_by="tester")
        repo.save(run)

        stored = repo.get(run.run_id)
        assert stored is run
        assert stored.run_id.startswith("ing_")
        assert stored.summary["clean_count"] == 1

    def test_unknown_run_is_none(self):
        assert IngestionRunRepository().get("ing_missing") is None

    def test_list_newest_first(self):
        repo = IngestionRunRepository()
        for run_id, created_at in [
            ("ing_old", "2025-01-01T10:00:00"),
            ("ing_new", "2025-01-03T10:00:00"),
            ("ing_mid", "2025-01-02T10:00:00"),
        ]:
            repo.save(IngestionRun(run_id, "tester", created_at, 1.0, {"stats": {}}))

        assert [r.run_id for r in repo.list_runs()] == ["ing_new", "ing_mid", "ing_old"]
        assert [r.run_id for r in repo.list_runs(limit=1)] == ["ing_new"]

    def test_persistence_round_trip(self, tmp_path, pipeline, create_row):
        path = tmp_path / "runs.json"
        repo = IngestionRunRepository(persist_path=str(path))
        run = repo.save(IngestionRun.create(pipeline.run([create_row()])))

        reloaded = IngestionRunRepository(persist_path=str(path))
        assert len(reloaded) == 1
        assert reloaded.get(run.run_id).result == run.result
