"""
Shuma Engine - Ingestion Layer

Validates, scores and deduplicates raw transaction batches from external
feeds (government transaction feed, listing marketplaces, user entry).

Deduplication is scoped to a single run. Cross-run deduplication needs an
injected FingerprintStore.
"""

from shuma.ingestion.schema import (
    RawTransactionRecord,
    CleanedTransactionRecord,
    IngestionError,
    IngestionResult,
    IngestionStats,
    REJECTION_CODES,
)
from shuma.ingestion.pipeline import (
    IngestionPipeline,
    run_ingestion_pipeline,
    compute_confidence_score,
    completeness_score,
    recency_score,
    source_reliability,
    DEFAULT_OUTLIER_RISK,
)
from shuma.ingestion.store import (
    FingerprintStore,
    InMemoryFingerprintStore,
    JsonFileFingerprintStore,
)
from shuma.ingestion.repository import IngestionRun, IngestionRunRepository

__all__ = [
    # Records
    "RawTransactionRecord",
    "CleanedTransactionRecord",
    "IngestionResult",
    "IngestionStats",
    # Rejection handling
    "IngestionError",
    "REJECTION_CODES",
    # Pipeline
    "IngestionPipeline",
    "run_ingestion_pipeline",
    "compute_confidence_score",
    "completeness_score",
    "recency_score",
    "source_reliability",
    "DEFAULT_OUTLIER_RISK",
    # Cross-run dedup
    "FingerprintStore",
    "InMemoryFingerprintStore",
    "JsonFileFingerprintStore",
    # Run storage
    "IngestionRun",
    "IngestionRunRepository",
]
