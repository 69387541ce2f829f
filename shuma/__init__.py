"""
Shuma Engine - Core Valuation Support Logic

Advisory data layer for Israeli residential appraisal:
1. Address normalisation (Hebrew free text -> canonical key)
2. Ingestion (validation, confidence scoring, deduplication)
3. Comp Engine (similarity ranking, IQR outlier rejection, value range)
4. Factual Reliability (sourced facts with reliability, never a value opinion)

The value range is a starting point for the appraiser, not a signed value.
"""

# Address normalisation
from .address import (
    AddressNormalizer,
    NormalizedAddress,
    ParsedAddress,
    normalize_israeli_address,
    fuzzy_address_score,
    dedupe_fingerprint,
)

# Ingestion Layer
from .ingestion import (
    RawTransactionRecord,
    CleanedTransactionRecord,
    IngestionError,
    IngestionResult,
    IngestionStats,
    REJECTION_CODES,
    IngestionPipeline,
    run_ingestion_pipeline,
    FingerprintStore,
    InMemoryFingerprintStore,
    JsonFileFingerprintStore,
    IngestionRun,
    IngestionRunRepository,
)

# Comp Engine v1.0
from .comp_engine import (
    SubjectPropertyFeatures,
    ComparableCandidate,
    ScoredComparable,
    OutlierSplit,
    ValuationSummary,
    AdjustmentOverrideEvent,
    ComparableScorer,
    PriceOutlierFilter,
    ValuationAggregator,
    rank_comparables,
    filter_price_outliers_by_iqr,
    calculate_valuation_range,
    apply_adjustment_override,
)

# Factual Reliability Engine
from .factual import (
    FactualDataInput,
    FactualDataResult,
    FactualReliabilityEngine,
    build_factual_data_layer,
)

__all__ = [
    # Address
    "AddressNormalizer",
    "NormalizedAddress",
    "ParsedAddress",
    "normalize_israeli_address",
    "fuzzy_address_score",
    "dedupe_fingerprint",
    # Ingestion
    "RawTransactionRecord",
    "CleanedTransactionRecord",
    "IngestionError",
    "IngestionResult",
    "IngestionStats",
    "REJECTION_CODES",
    "IngestionPipeline",
    "run_ingestion_pipeline",
    "FingerprintStore",
    "InMemoryFingerprintStore",
    "JsonFileFingerprintStore",
    "IngestionRun",
    "IngestionRunRepository",
    # Comp Engine
    "SubjectPropertyFeatures",
    "ComparableCandidate",
    "ScoredComparable",
    "OutlierSplit",
    "ValuationSummary",
    "AdjustmentOverrideEvent",
    "ComparableScorer",
    "PriceOutlierFilter",
    "ValuationAggregator",
    "rank_comparables",
    "filter_price_outliers_by_iqr",
    "calculate_valuation_range",
    "apply_adjustment_override",
    # Factual
    "FactualDataInput",
    "FactualDataResult",
    "FactualReliabilityEngine",
    "build_factual_data_layer",
]

__version__ = "0.1.0"
