"""
Ingestion Pipeline - Validate, Score and Deduplicate Transaction Batches

One call processes one batch in a single pass:
1. VALIDATE - required fields present, price finite and positive
2. NORMALISE - parse and canonicalise the address
3. SCORE - completeness, recency, source reliability, confidence
4. DEDUPE - first occurrence of a fingerprint wins within the batch

The pipeline never raises for bad rows; they are collected as errors and
the batch continues. Every input row ends up in exactly one of
cleaned / duplicates / errors.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Final, Iterable, Mapping, Optional, Union

from shuma.address import AddressNormalizer, dedupe_fingerprint
from shuma.ingestion.schema import (
    CleanedTransactionRecord,
    IngestionError,
    IngestionResult,
    RawTransactionRecord,
)
from shuma.ingestion.store import FingerprintStore
from utils.coercion import clamp, parse_iso_date, to_float


logger = logging.getLogger(__name__)


# =============================================================================
# Scoring Constants
# =============================================================================

# Completeness: base for required fields plus bonuses for optional ones
COMPLETENESS_BASE: Final = 0.4
COMPLETENESS_AREA: Final = 0.2
COMPLETENESS_FLOOR: Final = 0.1
COMPLETENESS_ROOMS: Final = 0.1
COMPLETENESS_COORDINATES: Final = 0.2

# Recency decays linearly to zero over this many whole months
RECENCY_HORIZON_MONTHS: Final = 48

# Source reliability lookup (substring match on the lowercased source id)
SOURCE_RELIABILITY_OFFICIAL: Final = 0.95
SOURCE_RELIABILITY_LISTING: Final = 0.65
SOURCE_RELIABILITY_DEFAULT: Final = 0.75
OFFICIAL_SOURCE_MARKERS: Final = ("tax", "gov", "official")
LISTING_SOURCE_MARKERS: Final = ("listing", "marketplace")

# Confidence blend
CONFIDENCE_WEIGHT_SOURCE: Final = 0.35
CONFIDENCE_WEIGHT_RECENCY: Final = 0.25
CONFIDENCE_WEIGHT_ADDRESS: Final = 0.25
CONFIDENCE_WEIGHT_COMPLETENESS: Final = 0.15
CONFIDENCE_PENALTY_OUTLIER_RISK: Final = 0.10

# Placeholder applied to every row until outlier risk is derived from local
# price dispersion. See DESIGN.md.
DEFAULT_OUTLIER_RISK: Final = 0.5


RawRow = Union[RawTransactionRecord, Mapping[str, Any]]


# =============================================================================
# Scoring Functions
# =============================================================================


def completeness_score(record: RawTransactionRecord) -> float:
    """0.4 base plus bonuses for area, floor, rooms and a full coordinate pair."""
    score = COMPLETENESS_BASE
    if record.area_sqm is not None:
        score += COMPLETENESS_AREA
    if record.floor_num is not None:
        score += COMPLETENESS_FLOOR
    if record.rooms is not None:
        score += COMPLETENESS_ROOMS
    if record.has_coordinates:
        score += COMPLETENESS_COORDINATES
    return clamp(score, 0.0, 1.0)


def recency_score(transaction_date: Optional[str], reference_date: date) -> float:
    """
    Linear decay over whole months since the sale.

    Malformed dates score 0. Future dates score 1.
    """
    sale_date = parse_iso_date(transaction_date)
    if sale_date is None:
        return 0.0
    months = max(
        0,
        (reference_date.year - sale_date.year) * 12 + reference_date.month - sale_date.month,
    )
    return clamp(1 - months / RECENCY_HORIZON_MONTHS, 0.0, 1.0)


def source_reliability(source: Optional[str]) -> float:
    """Fixed heuristic by source type: official > generic > listing."""
    key = (source or "").strip().lower()
    if any(marker in key for marker in OFFICIAL_SOURCE_MARKERS):
        return SOURCE_RELIABILITY_OFFICIAL
    if any(marker in key for marker in LISTING_SOURCE_MARKERS):
        return SOURCE_RELIABILITY_LISTING
    return SOURCE_RELIABILITY_DEFAULT


def compute_confidence_score(
    source_reliability: float,
    recency: float,
    address_confidence: float,
    completeness: float,
    outlier_risk: float = DEFAULT_OUTLIER_RISK,
) -> float:
    """Weighted confidence in [0, 1]."""
    score = (
        CONFIDENCE_WEIGHT_SOURCE * source_reliability
        + CONFIDENCE_WEIGHT_RECENCY * recency
        + CONFIDENCE_WEIGHT_ADDRESS * address_confidence
        + CONFIDENCE_WEIGHT_COMPLETENESS * completeness
        - CONFIDENCE_PENALTY_OUTLIER_RISK * outlier_risk
    )
    return clamp(score, 0.0, 1.0)


def validate_raw_record(record: RawTransactionRecord) -> Optional[str]:
    """
    Check required fields.

    Returns:
        Rejection code, or None if the record is valid
    """
    if not record.source:
        return "MISSING_SOURCE"
    if not record.source_record_id:
        return "MISSING_SOURCE_RECORD_ID"
    if not record.address:
        return "MISSING_ADDRESS"
    if not record.transaction_date:
        return "MISSING_TRANSACTION_DATE"
    price = to_float(record.price)
    if price is None or price <= 0:
        return "INVALID_PRICE"
    return None


# =============================================================================
# Pipeline
# =============================================================================


class IngestionPipeline:
    """
    Single-pass batch ingestion.

    The dedupe key set lives only for the duration of one run() call.
    Cross-run deduplication requires an injected FingerprintStore.
    """

    def __init__(
        self,
        reference_date: date = None,
        fingerprint_store: Optional[FingerprintStore] = None,
        normalizer: Optional[AddressNormalizer] = None,
    ):
        """
        Initialize pipeline.

        Args:
            reference_date: Date recency is measured against (default: today)
            fingerprint_store: Optional persisted key set shared across runs
            normalizer: Address normaliser (default: standard tables)
        """
        self._reference_date = reference_date or date.today()
        self._store = fingerprint_store
        self._normalizer = normalizer or AddressNormalizer()

    def run(self, raw_rows: Iterable[RawRow]) -> IngestionResult:
        """
        Validate, score and deduplicate a batch.

        Args:
            raw_rows: RawTransactionRecord instances or feed dictionaries

        Returns:
            IngestionResult partitioned into cleaned / duplicates / errors
        """
        result = IngestionResult()
        seen: set[str] = set()

        for index, row in enumerate(raw_rows):
            record = self._coerce(row)
            code = "INVALID_RECORD" if record is None else validate_raw_record(record)
            if code is not None:
                error = IngestionError.create(index, code)
                result.errors.append(error)
                logger.warning("Rejected row %d: %s", index, error.reason)
                continue

            cleaned = self.clean(record)

            if cleaned.dedupe_key in seen or self._in_store(cleaned.dedupe_key):
                result.duplicates.append(cleaned)
                continue

            seen.add(cleaned.dedupe_key)
            result.cleaned.append(cleaned)

        # Registered after the pass so the store never sees a half-processed batch
        if self._store is not None:
            for cleaned in result.cleaned:
                self._store.add(cleaned.dedupe_key)

        stats = result.stats
        logger.info(
            "Ingestion run: %d rows, %d cleaned, %d duplicates, %d errors (avg confidence %.3f)",
            stats.total,
            stats.clean_count,
            stats.duplicate_count,
            stats.error_count,
            stats.avg_confidence,
        )
        return result

    def clean(self, record: RawTransactionRecord) -> CleanedTransactionRecord:
        """Derive normalised address, scores and dedupe key for a valid record."""
        normalized = self._normalizer.normalize(record.address)
        completeness = completeness_score(record)

        confidence = compute_confidence_score(
            source_reliability=source_reliability(record.source),
            recency=recency_score(record.transaction_date, self._reference_date),
            address_confidence=normalized.confidence,
            completeness=completeness,
            outlier_risk=DEFAULT_OUTLIER_RISK,
        )

        dedupe_key = dedupe_fingerprint(
            normalized_address=normalized.normalized,
            city=record.city or normalized.city,
            lat=record.lat,
            lon=record.lon,
            area_sqm=record.area_sqm,
        )

        return CleanedTransactionRecord(
            record=record,
            normalized_address=normalized,
            completeness_score=completeness,
            dedupe_key=dedupe_key,
            confidence_score=confidence,
        )

    def _in_store(self, key: str) -> bool:
        return self._store is not None and self._store.has(key)

    @staticmethod
    def _coerce(row: Any) -> Optional[RawTransactionRecord]:
        if isinstance(row, RawTransactionRecord):
            return row
        if isinstance(row, Mapping):
            return RawTransactionRecord.from_dict(row)
        return None


def run_ingestion_pipeline(
    raw_rows: Iterable[RawRow],
    reference_date: date = None,
    fingerprint_store: Optional[FingerprintStore] = None,
) -> IngestionResult:
    """Run one batch through a fresh IngestionPipeline."""
    pipeline = IngestionPipeline(
        reference_date=reference_date,
        fingerprint_store=fingerprint_store,
    )
    return pipeline.run(raw_rows)
